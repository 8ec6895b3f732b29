"""
Composed FastAPI Dependencies

Combines auth + DB session + storage + conversion/LLM services into single
injectable objects. Route handlers import from here — never from
auth/token, db/session or the service constructors directly.

This is the single wiring point for the entire request context; tests
swap any of these out through ``app.dependency_overrides``.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, AsyncGenerator

import httpx
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from docconvert.analysis.service import AnalysisService
from docconvert.auth.token import TokenPayload, get_current_user
from docconvert.conversion.engine import HeadlessRenderEngine
from docconvert.conversion.orchestrator import ConversionOrchestrator
from docconvert.core.config import settings
from docconvert.db.session import get_db
from docconvert.llm.gateway import LLMGateway
from docconvert.llm.providers import build_chat_model
from docconvert.services.library import DocumentLibraryService
from docconvert.storage.s3 import S3DocumentStorage, UserStorageConfig


# ---------------------------------------------------------------------------
# 1. DB session (queries are user-filtered in the service layer)
# ---------------------------------------------------------------------------

async def get_user_db() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_db():
        yield session


# ---------------------------------------------------------------------------
# 2. User-scoped S3 service
#    All keys are prefixed <sub>/documents/.
# ---------------------------------------------------------------------------

async def get_user_storage(
    user: Annotated[TokenPayload, Depends(get_current_user)],
) -> S3DocumentStorage:
    return S3DocumentStorage(UserStorageConfig(user_id=user.sub))


# ---------------------------------------------------------------------------
# 3. Conversion pipeline
#    Stateless apart from configuration; each render launches its own browser.
# ---------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_orchestrator() -> ConversionOrchestrator:
    return ConversionOrchestrator(HeadlessRenderEngine())


# ---------------------------------------------------------------------------
# 4. Generative-text provider + analysis
# ---------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_llm_gateway() -> LLMGateway:
    return LLMGateway(build_chat_model(settings), model_name=settings.llm_model)


async def get_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(
        timeout=httpx.Timeout(settings.fetch_timeout_seconds),
        follow_redirects=True,
    ) as client:
        yield client


def get_analysis_service(
    gateway: Annotated[LLMGateway, Depends(get_llm_gateway)],
    http_client: Annotated[httpx.AsyncClient, Depends(get_http_client)],
) -> AnalysisService:
    return AnalysisService(gateway, http_client)


# ---------------------------------------------------------------------------
# 5. Document library (convert + persist, per request)
# ---------------------------------------------------------------------------

def get_library_service(
    user:         Annotated[TokenPayload,           Depends(get_current_user)],
    db:           Annotated[AsyncSession,           Depends(get_user_db)],
    storage:      Annotated[S3DocumentStorage,      Depends(get_user_storage)],
    orchestrator: Annotated[ConversionOrchestrator, Depends(get_orchestrator)],
) -> DocumentLibraryService:
    return DocumentLibraryService(db, storage, user, orchestrator)


# ---------------------------------------------------------------------------
# Type aliases for cleaner route signatures
# ---------------------------------------------------------------------------

CurrentUser  = Annotated[TokenPayload,           Depends(get_current_user)]
Orchestrator = Annotated[ConversionOrchestrator, Depends(get_orchestrator)]
Analysis     = Annotated[AnalysisService,        Depends(get_analysis_service)]
Library      = Annotated[DocumentLibraryService, Depends(get_library_service)]
