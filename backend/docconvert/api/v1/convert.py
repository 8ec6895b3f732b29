"""
Conversion API Router
POST /api/v1/convert/pdf
POST /api/v1/convert/text

Stateless conversion: nothing is persisted, the artifact is returned as an
attachment. Both routes share the multipart shape:

    file          required   the document to convert
    userId        optional   stamped as the PDF author
    filenameBase  optional   attachment name for /pdf (defaults to the stem)

Request lifecycle:
  ┌─────────────────────────────────────────────────────────┐
  │ 1. Read upload (missing/empty → 400 MISSING_FILE)        │
  │ 2. Size ceiling (→ 413) then format detection (→ 400)    │
  │ 3. Format handler: render/extract (→ 500 on failure)     │
  │ 4. Return bytes with Content-Disposition: attachment     │
  └─────────────────────────────────────────────────────────┘

ConversionError subclasses propagate to the app-level handler, which maps
them to the ErrorResponse envelope with the error's own status code.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, File, Form, Response, UploadFile

from docconvert.auth.dependencies import Orchestrator
from docconvert.schemas.documents import ErrorResponse
from docconvert.services.library import read_upload

router = APIRouter(
    prefix="/convert",
    tags=["Conversion"],
)

TEXT_ATTACHMENT_NAME = "converted.txt"

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Missing file or unsupported file type"},
    413: {"model": ErrorResponse, "description": "File exceeds the upload size limit"},
    500: {"model": ErrorResponse, "description": "Extraction or rendering failed"},
}


def _attachment(filename: str) -> dict[str, str]:
    safe = filename.replace('"', "").replace("\r", "").replace("\n", "")
    return {"Content-Disposition": f'attachment; filename="{safe}"'}


# ---------------------------------------------------------------------------
# POST /convert/pdf
# ---------------------------------------------------------------------------

@router.post(
    "/pdf",
    summary="Convert a document to PDF",
    description=(
        "Accepts PDF, DOCX, EML, MSG, HEIC and common image files. "
        "PDF input is returned unchanged; everything else is rendered "
        "to an A4 PDF with title/author metadata."
    ),
    response_class=Response,
    responses={200: {"content": {"application/pdf": {}}}, **_ERROR_RESPONSES},
)
async def convert_to_pdf(
    orchestrator: Orchestrator,
    file:          Optional[UploadFile] = File(None, description="Document to convert"),
    user_id:       Optional[str]        = Form(None, alias="userId"),
    filename_base: Optional[str]        = Form(None, alias="filenameBase"),
) -> Response:
    source = await read_upload(file)
    base = (filename_base or "").strip() or source.stem

    pdf_bytes = await orchestrator.to_pdf(source, title=base, author=user_id or None)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers=_attachment(f"{base}.pdf"),
    )


# ---------------------------------------------------------------------------
# POST /convert/text
# ---------------------------------------------------------------------------

@router.post(
    "/text",
    summary="Extract plain text from a document",
    response_class=Response,
    responses={200: {"content": {"text/plain": {}}}, **_ERROR_RESPONSES},
)
async def convert_to_text(
    orchestrator: Orchestrator,
    file:          Optional[UploadFile] = File(None, description="Document to extract"),
    user_id:       Optional[str]        = Form(None, alias="userId"),
    filename_base: Optional[str]        = Form(None, alias="filenameBase"),
) -> Response:
    source = await read_upload(file)

    text = await orchestrator.to_text(source)
    return Response(
        content=text.encode("utf-8"),
        media_type="text/plain; charset=utf-8",
        headers=_attachment(TEXT_ATTACHMENT_NAME),
    )
