"""
Document Library Service

Orchestrates the upload → convert → persist pipeline and the CRUD around it:

  upload()
    1. Read the upload (missing/empty file → 400)
    2. Convert to (PDF, text) via ConversionOrchestrator
       (size ceiling, format dispatch, render — errors propagate as
        ConversionError and are mapped by the app's exception handler)
    3. Insert the StoredDocument row (uuid4 id generated here)
    4. Upload <user>/documents/<id>.pdf and <user>/documents/<id>.txt
    5. Issue presigned GET URLs, store paths + URLs on the row
  list_documents()    newest first, URLs re-issued (presigned URLs expire)
  update_metadata()   merge client/type
  delete()            remove both objects, then the row

Invariants:
  - user_id is ALWAYS the verified token subject, never request input.
  - Every query filters on StoredDocument.user_id.
  - If either S3 upload fails, the objects written so far are removed and
    the transaction rolls back, so no half-stored document is listed.
"""

from __future__ import annotations

import logging
import uuid

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import HTTPException, UploadFile, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docconvert.auth.token import TokenPayload
from docconvert.conversion.detector import SourceDocument
from docconvert.conversion.orchestrator import ConversionOrchestrator, ConversionResult
from docconvert.models.documents import StoredDocument
from docconvert.schemas.documents import ConversionErrors, DocumentRecord
from docconvert.storage.s3 import S3DocumentStorage

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE  = "application/pdf"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"


def to_record(doc: StoredDocument) -> DocumentRecord:
    return DocumentRecord(
        id=doc.id,
        name=doc.name,
        client=doc.client,
        type=doc.type,
        path_pdf=doc.path_pdf,
        path_txt=doc.path_txt,
        url_pdf=doc.url_pdf,
        url_txt=doc.url_txt,
        created_at=doc.created_at,
    )


async def read_upload(file: UploadFile | None) -> SourceDocument:
    """Read a multipart upload; raises 400 when missing or empty."""
    if file is None or not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=ConversionErrors.missing_file().model_dump(),
        )

    data = await file.read()
    if not data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=ConversionErrors.missing_file().model_dump(),
        )

    return SourceDocument(
        content=data,
        mime_type=file.content_type or "application/octet-stream",
        filename=file.filename,
    )


class DocumentLibraryService:
    """
    Stateless service object — one instance per request.
    All dependencies are injected (testable, no hidden globals).
    """

    def __init__(
        self,
        db:           AsyncSession,
        storage:      S3DocumentStorage,
        user:         TokenPayload,
        orchestrator: ConversionOrchestrator,
    ) -> None:
        self._db           = db
        self._storage      = storage
        self._user         = user
        self._orchestrator = orchestrator

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    async def upload(
        self,
        file:   UploadFile,
        client: str | None,
        doc_type: str | None,
    ) -> DocumentRecord:
        source = await read_upload(file)
        document_id = uuid.uuid4()

        logger.info(
            "Upload start | user=%s doc=%s file=%s size=%d",
            self._user.sub, document_id, source.filename, source.size_bytes,
        )

        result = await self._orchestrator.convert(
            source, title=source.stem, author=self._user.sub,
        )

        doc = StoredDocument(
            id=document_id,
            user_id=self._user.sub,
            name=source.filename,
            client=client,
            type=doc_type,
        )
        self._db.add(doc)
        await self._db.flush()

        await self._store_artifacts(doc, result)
        await self._db.flush()

        logger.info(
            "Upload complete | user=%s doc=%s pdf_key=%s txt_key=%s",
            self._user.sub, document_id, doc.path_pdf, doc.path_txt,
        )
        return to_record(doc)

    async def _store_artifacts(self, doc: StoredDocument, result: ConversionResult) -> None:
        pdf_name = f"{doc.id}.pdf"
        txt_name = f"{doc.id}.txt"
        written: list[str] = []

        try:
            pdf_obj = await self._storage.put_object(pdf_name, result.pdf_bytes, PDF_CONTENT_TYPE)
            written.append(pdf_name)
            txt_obj = await self._storage.put_object(txt_name, result.text_bytes, TEXT_CONTENT_TYPE)
            written.append(txt_name)

            pdf_url = await self._storage.generate_presigned_get(pdf_name)
            txt_url = await self._storage.generate_presigned_get(txt_name)
        except (ClientError, BotoCoreError) as exc:
            logger.exception("S3 upload failed | user=%s doc=%s", self._user.sub, doc.id)
            for name in written:
                await self._storage.delete_object(name)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=ConversionErrors.storage_error(str(exc)).model_dump(),
            ) from exc

        doc.path_pdf = pdf_obj.key
        doc.path_txt = txt_obj.key
        doc.url_pdf  = pdf_url.url
        doc.url_txt  = txt_url.url

    # ------------------------------------------------------------------
    # Read / update / delete
    # ------------------------------------------------------------------

    async def list_documents(self) -> list[DocumentRecord]:
        stmt = (
            select(StoredDocument)
            .where(StoredDocument.user_id == self._user.sub)
            .order_by(StoredDocument.created_at.desc())
        )
        result = await self._db.execute(stmt)
        documents = list(result.scalars().all())

        for doc in documents:
            if doc.path_pdf:
                doc.url_pdf = (await self._storage.generate_presigned_get(f"{doc.id}.pdf")).url
            if doc.path_txt:
                doc.url_txt = (await self._storage.generate_presigned_get(f"{doc.id}.txt")).url

        return [to_record(doc) for doc in documents]

    async def update_metadata(
        self,
        document_id: uuid.UUID,
        client: str | None,
        doc_type: str | None,
    ) -> DocumentRecord:
        doc = await self._get_owned(document_id)
        if client is not None:
            doc.client = client
        if doc_type is not None:
            doc.type = doc_type
        await self._db.flush()

        logger.info("Metadata updated | user=%s doc=%s", self._user.sub, document_id)
        return to_record(doc)

    async def delete(self, document_id: uuid.UUID) -> None:
        doc = await self._get_owned(document_id)

        await self._storage.delete_object(f"{doc.id}.pdf")
        await self._storage.delete_object(f"{doc.id}.txt")
        await self._db.delete(doc)
        await self._db.flush()

        logger.info("Document deleted | user=%s doc=%s", self._user.sub, document_id)

    async def _get_owned(self, document_id: uuid.UUID) -> StoredDocument:
        stmt = select(StoredDocument).where(
            StoredDocument.id == document_id,
            StoredDocument.user_id == self._user.sub,
        )
        result = await self._db.execute(stmt)
        doc = result.scalars().first()
        if doc is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=ConversionErrors.document_not_found(document_id).model_dump(),
            )
        return doc
