"""
Pydantic Request/Response Schemas

Covers:
  - Conversion endpoints (multipart in, attachment out — errors only here)
  - Document library records (POST/GET/PATCH/DELETE /documents)
  - Analysis requests (POST /analyze, POST /analyze/chat)
  - The uniform error envelope returned on every 4xx/5xx

Design decisions:
  - document ids are server-generated (UUID4); never client-supplied.
  - user_id always comes from the verified JWT, never from a request body.
  - The error envelope always carries ``error`` (human-readable message),
    so clients written against a plain ``{error: string}`` body keep working.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from docconvert.conversion.errors import ConversionError


# ---------------------------------------------------------------------------
# Structured error bodies
# ---------------------------------------------------------------------------

class ErrorDetail(BaseModel):
    """Single structured error — may appear in a list."""
    field:   str | None = Field(None, description="Request field that caused the error, if applicable")
    message: str
    code:    str         = Field(..., description="Machine-readable error code for client handling")


class ErrorResponse(BaseModel):
    """
    Uniform error envelope for all 4xx/5xx responses.
    Clients should check `error_code` for programmatic handling.
    """
    error:      str               = Field(..., description="Human-readable summary")
    error_code: str               = Field(..., description="Stable machine-readable code")
    details:    list[ErrorDetail] = Field(default_factory=list)
    request_id: str | None        = Field(None, description="Trace ID for log correlation")


# ---------------------------------------------------------------------------
# Pre-defined error factories (keeps route handlers thin)
# ---------------------------------------------------------------------------

class ConversionErrors:
    """Factories for every documented error case."""

    @staticmethod
    def from_exception(exc: ConversionError, request_id: str | None = None) -> ErrorResponse:
        return ErrorResponse(
            error=exc.message,
            error_code=exc.error_code,
            request_id=request_id,
        )

    @staticmethod
    def missing_file() -> ErrorResponse:
        return ErrorResponse(
            error="No file was provided in the request.",
            error_code="MISSING_FILE",
            details=[
                ErrorDetail(
                    field="file",
                    message="The 'file' multipart field is required and must not be empty.",
                    code="MISSING_FILE",
                )
            ],
        )

    @staticmethod
    def unauthorized() -> ErrorResponse:
        return ErrorResponse(
            error="Authentication required. Provide a valid Bearer token.",
            error_code="UNAUTHORIZED",
            details=[
                ErrorDetail(
                    field=None,
                    message="Missing or invalid Authorization header.",
                    code="UNAUTHORIZED",
                )
            ],
        )

    @staticmethod
    def storage_error(detail: str | None = None) -> ErrorResponse:
        return ErrorResponse(
            error="Failed to store the converted document. Please retry.",
            error_code="STORAGE_ERROR",
            details=(
                [ErrorDetail(field=None, message=detail, code="STORAGE_ERROR")]
                if detail
                else []
            ),
        )

    @staticmethod
    def document_not_found(document_id: UUID) -> ErrorResponse:
        return ErrorResponse(
            error=f"Document '{document_id}' was not found.",
            error_code="DOCUMENT_NOT_FOUND",
        )

    @staticmethod
    def internal_error(request_id: str | None = None) -> ErrorResponse:
        return ErrorResponse(
            error="An unexpected error occurred. Our team has been notified.",
            error_code="INTERNAL_ERROR",
            request_id=request_id,
        )


# ---------------------------------------------------------------------------
# Document library
# ---------------------------------------------------------------------------

class DocumentRecord(BaseModel):
    """One entry of the user's document library."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id:         UUID
    name:       str
    client:     str | None = None
    type:       str | None = None
    path_pdf:   str | None = Field(None, alias="pathPdf")
    path_txt:   str | None = Field(None, alias="pathTxt")
    url_pdf:    str | None = Field(None, alias="urlPdf")
    url_txt:    str | None = Field(None, alias="urlTxt")
    created_at: datetime | None = Field(None, alias="createdAt")


class DocumentListResponse(BaseModel):
    documents: list[DocumentRecord]
    total:     int


class DocumentMetadataUpdate(BaseModel):
    """PATCH body — absent fields are left unchanged."""
    client: str | None = None
    type:   str | None = None


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

class AnalyzeRequest(BaseModel):
    """
    Shape checks are left to AnalysisService so that a missing or malformed
    pdfUrls/prompt answers 400 INVALID_ANALYSIS_REQUEST rather than 422.
    """
    model_config = ConfigDict(populate_by_name=True)

    pdf_urls: Any = Field(None, alias="pdfUrls", description="Ordered PDF URLs to analyse")
    prompt:   Any = None


class ChatMessage(BaseModel):
    role:    Literal["user", "assistant", "system"]
    content: str


class ChatRequest(BaseModel):
    messages: list[ChatMessage]
