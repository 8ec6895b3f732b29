"""
FastAPI Application — Entry Point

Document Conversion & Analysis API

Architecture:
  - All routes are versioned under /api/v1/
  - /convert/* is unauthenticated (stateless, nothing persisted)
  - /analyze and /documents require a JWT (AWS Cognito, Auth0 or any OIDC issuer)
  - S3 keys are user-scoped via dependency injection (<sub>/documents/)
  - Structured JSON error responses on all 4xx/5xx

Middleware stack (innermost → outermost):
  1. Request logging — one line per request with latency
  2. CORS — restrict to configured origins
  3. Gzip — compress responses > 1 KB
  4. Trusted host — reject unexpected Host headers in production

Error mapping:
  ConversionError        → its own status_code (400 / 413 / 500 / 502)
  HTTPException          → status with the ErrorResponse envelope as body
  RequestValidationError → 422
  anything else          → 500 INTERNAL_ERROR (never exposes stack traces)
"""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from docconvert.api.v1.analysis import router as analysis_router
from docconvert.api.v1.convert import router as convert_router
from docconvert.api.v1.documents import router as documents_router
from docconvert.conversion.errors import ConversionError
from docconvert.core.config import settings
from docconvert.db.session import check_db_health
from docconvert.schemas.documents import ConversionErrors, ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)


# ---------------------------------------------------------------------------
# Application lifespan: startup / shutdown hooks
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Run on startup: check DB connectivity, log config summary.
    Conversion works without a database, so a failed check is logged, not fatal;
    /ready reports it to the load balancer.
    Run on shutdown: clean up connection pools.
    """
    logger.info(
        "Starting DocConvert | env=%s llm=%s/%s max_upload_mb=%d",
        settings.app_env, settings.llm_provider, settings.llm_model, settings.max_upload_mb,
    )

    db_health = await check_db_health()
    if db_health["status"] != "ok":
        logger.error("Database health check failed at startup: %s", db_health)
    else:
        logger.info("Database: connected")
    logger.info("Auth issuer: %s", settings.auth_issuer)
    logger.info("S3 bucket: %s", settings.s3_bucket)

    yield

    logger.info("Shutting down DocConvert")
    from docconvert.db.session import engine
    await engine.dispose()


def _request_id(request: Request) -> str:
    """Id assigned by the logging middleware, else the client header, else a new one."""
    return (
        getattr(request.state, "request_id", None)
        or request.headers.get("X-Request-ID")
        or str(uuid.uuid4())
    )


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app() -> FastAPI:
    app = FastAPI(
        title="DocConvert",
        description=(
            "Converts PDF, DOCX, email and image uploads into a PDF rendition "
            "plus a text extraction, keeps a per-user document library and "
            "streams generated analyses over stored PDFs."
        ),
        version="1.0.0",
        docs_url="/api/docs" if not settings.is_production else None,
        redoc_url="/api/redoc" if not settings.is_production else None,
        openapi_url="/api/openapi.json" if not settings.is_production else None,
        lifespan=lifespan,
    )

    # ----------------------------------------------------------------
    # Middleware (applied in reverse order: last added = outermost)
    # ----------------------------------------------------------------

    # GZip compression for responses > 1 KB
    app.add_middleware(GZipMiddleware, minimum_size=1024)

    # CORS: restrict to configured origins
    allowed_origins = (
        ["*"] if settings.app_env == "development"
        else list(settings.cors_origins)
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "PATCH"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID", "Content-Disposition"],
    )

    # Trusted host check: prevent Host header injection in production
    if settings.is_production and settings.trusted_hosts:
        app.add_middleware(
            TrustedHostMiddleware,
            allowed_hosts=list(settings.trusted_hosts),
        )

    # ----------------------------------------------------------------
    # Request ID + structured logging middleware
    # ----------------------------------------------------------------

    @app.middleware("http")
    async def request_id_and_logging(request: Request, call_next):
        request_id = _request_id(request)
        request.state.request_id = request_id
        start = time.perf_counter()

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = request_id

        logger.info(
            "HTTP %s %s %d %.1fms | request_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            request_id,
        )
        return response

    # ----------------------------------------------------------------
    # Exception handlers: uniform structured error responses
    # ----------------------------------------------------------------

    @app.exception_handler(ConversionError)
    async def conversion_exception_handler(request: Request, exc: ConversionError):
        """Domain failures carry their own status code and error code."""
        request_id = _request_id(request)
        log = logger.warning if exc.status_code < 500 else logger.error
        log(
            "%s | path=%s request_id=%s error=%s",
            type(exc).__name__, request.url.path, request_id, exc.message,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=ConversionErrors.from_exception(exc, request_id).model_dump(mode="json"),
            headers={"X-Request-ID": request_id},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """
        Routes raise HTTPException(detail=ErrorResponse.model_dump()); that
        dict becomes the body as-is. Plain-string details (auth, 404 routing)
        are wrapped in the same envelope.
        """
        request_id = _request_id(request)
        if isinstance(exc.detail, dict) and "error_code" in exc.detail:
            body = ErrorResponse(**{**exc.detail, "request_id": exc.detail.get("request_id") or request_id})
        else:
            body = ErrorResponse(
                error=str(exc.detail),
                error_code=(
                    "UNAUTHORIZED" if exc.status_code == status.HTTP_401_UNAUTHORIZED
                    else f"HTTP_{exc.status_code}"
                ),
                request_id=request_id,
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=body.model_dump(mode="json"),
            headers={**(exc.headers or {}), "X-Request-ID": request_id},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Convert Pydantic/FastAPI validation errors to structured ErrorResponse."""
        details = [
            ErrorDetail(
                field=" → ".join(str(loc) for loc in err["loc"]),
                message=err["msg"],
                code="VALIDATION_ERROR",
            )
            for err in exc.errors()
        ]
        body = ErrorResponse(
            error="Request validation failed.",
            error_code="VALIDATION_ERROR",
            details=details,
            request_id=_request_id(request),
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=body.model_dump(mode="json"),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Catch-all for unhandled exceptions — never expose stack traces."""
        request_id = _request_id(request)
        logger.exception(
            "Unhandled exception | path=%s request_id=%s",
            request.url.path, request_id,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ConversionErrors.internal_error(request_id).model_dump(mode="json"),
            headers={"X-Request-ID": request_id},
        )

    # ----------------------------------------------------------------
    # Routers
    # ----------------------------------------------------------------

    app.include_router(convert_router,   prefix="/api/v1")
    app.include_router(analysis_router,  prefix="/api/v1")
    app.include_router(documents_router, prefix="/api/v1")

    # ----------------------------------------------------------------
    # Health & readiness endpoints (no auth: used by load balancer)
    # ----------------------------------------------------------------

    @app.get(
        "/health",
        tags=["Operations"],
        summary="Liveness probe",
        description="Returns 200 if the process is alive. No external checks.",
    )
    async def health() -> dict:
        return {"status": "ok", "service": "docconvert-api"}

    @app.get(
        "/ready",
        tags=["Operations"],
        summary="Readiness probe",
        description="Returns 200 only if the database is reachable.",
    )
    async def readiness() -> JSONResponse:
        db_status = await check_db_health()
        if db_status["status"] != "ok":
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "not_ready", "database": db_status},
            )
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"status": "ready", "database": db_status},
        )

    return app


# ---------------------------------------------------------------------------
# Application instance (imported by uvicorn)
# ---------------------------------------------------------------------------

app = create_app()


# ---------------------------------------------------------------------------
# Local development entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "docconvert.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.app_env == "development",
        log_level="debug" if settings.debug else "info",
        access_log=True,
    )
