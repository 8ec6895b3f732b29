"""
Document Library API Router
POST   /api/v1/documents            upload, convert and store
GET    /api/v1/documents            list (newest first)
PATCH  /api/v1/documents/{id}       update client/type
DELETE /api/v1/documents/{id}       remove both artifacts and the record

Implements:
  - Multipart upload converted to (PDF, text) in-request
  - Per-user isolation via the JWT subject (never client-supplied)
  - Artifacts stored under <sub>/documents/<id>.pdf|.txt
  - Structured error responses for all 4xx/5xx cases

Request lifecycle (POST):
  ┌─────────────────────────────────────────────────────────┐
  │ 1. JWT verification → sub                               │
  │ 2. Read upload (missing/empty → 400)                     │
  │ 3. Convert (413 / 400 / 500 via ConversionError)         │
  │ 4. DB insert + S3 put × 2 + presign (atomic per request) │
  │ 5. 201 with the DocumentRecord                           │
  └─────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, File, Form, Response, UploadFile, status

from docconvert.auth.dependencies import Library
from docconvert.schemas.documents import (
    DocumentListResponse,
    DocumentMetadataUpdate,
    DocumentRecord,
    ErrorResponse,
)

router = APIRouter(
    prefix="/documents",
    tags=["Document Library"],
)


# ---------------------------------------------------------------------------
# POST /documents
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=DocumentRecord,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
    summary="Upload and convert a document into the library",
    responses={
        201: {"model": DocumentRecord, "description": "Document converted and stored"},
        400: {"model": ErrorResponse, "description": "Missing file or unsupported file type"},
        401: {"model": ErrorResponse, "description": "Missing or invalid JWT"},
        413: {"model": ErrorResponse, "description": "File exceeds the upload size limit"},
        500: {"model": ErrorResponse, "description": "Conversion or storage failure"},
    },
)
async def upload_document(
    library:  Library,
    file:     Optional[UploadFile] = File(None, description="Document to convert and store"),
    client:   Optional[str]        = Form(None, max_length=255),
    doc_type: Optional[str]        = Form(None, alias="type", max_length=255),
) -> DocumentRecord:
    return await library.upload(file, client, doc_type)


# ---------------------------------------------------------------------------
# GET /documents
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=DocumentListResponse,
    response_model_by_alias=True,
    summary="List the caller's documents",
    responses={401: {"model": ErrorResponse}},
)
async def list_documents(library: Library) -> DocumentListResponse:
    documents = await library.list_documents()
    return DocumentListResponse(documents=documents, total=len(documents))


# ---------------------------------------------------------------------------
# PATCH /documents/{document_id}
# ---------------------------------------------------------------------------

@router.patch(
    "/{document_id}",
    response_model=DocumentRecord,
    response_model_by_alias=True,
    summary="Update document metadata",
    responses={
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def update_document(
    document_id: UUID,
    body:        DocumentMetadataUpdate,
    library:     Library,
) -> DocumentRecord:
    return await library.update_metadata(document_id, body.client, body.type)


# ---------------------------------------------------------------------------
# DELETE /documents/{document_id}
# ---------------------------------------------------------------------------

@router.delete(
    "/{document_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a document and both stored artifacts",
    responses={
        204: {"description": "Document deleted"},
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
async def delete_document(document_id: UUID, library: Library) -> Response:
    await library.delete(document_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
