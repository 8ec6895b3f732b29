"""
Conversion Orchestrator
═══════════════════════

Routes a SourceDocument to the (text extractor, HTML renderer) pair for its
detected format and returns both artifacts.

    SourceDocument
         │  size check (sync, before any await)
         ▼
    detect_format ──▶ unknown ──▶ UnsupportedFormat
         │
         ▼
    FormatHandler[format]
         ├── to_pdf   → HTML → HeadlessRenderEngine → stamp(title, author)
         └── to_text  → extractor
         ▼
    ConversionResult(pdf_bytes, text_bytes)

Per-format behaviour:
  pdf    original bytes returned untouched; text via PyMuPDF (no render)
  docx   mammoth HTML → render;   mammoth raw text
  eml    mail HTML → render;      header block + body
  msg    mail HTML → render;      header block + body
  image  data-URI page → render;  "Filename: <name>"
  heic   JPEG conversion, then the image path

The handler table is closed over DetectedFormat: constructing an
orchestrator with a format left unhandled raises immediately instead of
falling through to "unsupported" at request time.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

from docconvert.conversion import extractors, renderers
from docconvert.conversion.detector import DetectedFormat, SourceDocument, detect_format
from docconvert.conversion.engine import HeadlessRenderEngine
from docconvert.conversion.errors import SizeLimitExceeded, UnsupportedFormat
from docconvert.conversion.images import heic_to_jpeg
from docconvert.conversion.mail import MailMessage, parse_eml, parse_msg
from docconvert.conversion.postprocess import stamp
from docconvert.core.config import settings

logger = logging.getLogger(__name__)

FULL_BLEED_MARGIN = {"top": "0", "right": "0", "bottom": "0", "left": "0"}


# ---------------------------------------------------------------------------
# Result / dispatch types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ConversionResult:
    """Both halves are always present, even when the text is a placeholder."""
    pdf_bytes:  bytes
    text_bytes: bytes


@dataclass(frozen=True)
class FormatHandler:
    to_pdf:  Callable[[SourceDocument], Awaitable[bytes]]
    to_text: Callable[[SourceDocument], Awaitable[str]]
    stamp_metadata: bool = True


def check_exhaustive(handlers: dict[DetectedFormat, FormatHandler]) -> None:
    missing = set(DetectedFormat) - {DetectedFormat.UNKNOWN} - set(handlers)
    if missing:
        names = ", ".join(sorted(f.value for f in missing))
        raise RuntimeError(f"No conversion handler registered for: {names}")


async def _run_sync(fn, *args):
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, functools.partial(fn, *args))


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class ConversionOrchestrator:

    def __init__(
        self,
        engine: HeadlessRenderEngine,
        *,
        max_upload_bytes: int | None = None,
        mail_wrap_width:  int | None = None,
    ) -> None:
        self._engine           = engine
        self._max_upload_bytes = max_upload_bytes or settings.max_upload_bytes
        self._wrap_width       = mail_wrap_width or settings.mail_wrap_width

        self._handlers: dict[DetectedFormat, FormatHandler] = {
            DetectedFormat.PDF:   FormatHandler(self._pdf_passthrough, self._pdf_text, stamp_metadata=False),
            DetectedFormat.DOCX:  FormatHandler(self._docx_pdf, self._docx_text),
            DetectedFormat.EML:   FormatHandler(self._eml_pdf, self._eml_text),
            DetectedFormat.MSG:   FormatHandler(self._msg_pdf, self._msg_text),
            DetectedFormat.IMAGE: FormatHandler(self._image_pdf, self._filename_text),
            DetectedFormat.HEIC:  FormatHandler(self._heic_pdf, self._filename_text),
        }
        check_exhaustive(self._handlers)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def convert(
        self,
        doc: SourceDocument,
        *,
        title: str | None = None,
        author: str | None = None,
    ) -> ConversionResult:
        """Produce both the PDF rendition and the text extraction."""
        fmt, handler = self._resolve(doc)
        t0 = time.monotonic()

        pdf_bytes = await self._produce_pdf(handler, doc, title, author)
        text      = await handler.to_text(doc)

        result = ConversionResult(pdf_bytes=pdf_bytes, text_bytes=text.encode("utf-8"))
        logger.info(
            "Converted | format=%s filename=%s bytes=%d pdf_bytes=%d text_bytes=%d elapsed_ms=%.0f",
            fmt.value, doc.filename, doc.size_bytes,
            len(result.pdf_bytes), len(result.text_bytes), (time.monotonic() - t0) * 1000,
        )
        return result

    async def to_pdf(
        self,
        doc: SourceDocument,
        *,
        title: str | None = None,
        author: str | None = None,
    ) -> bytes:
        fmt, handler = self._resolve(doc)
        pdf_bytes = await self._produce_pdf(handler, doc, title, author)
        logger.info("PDF produced | format=%s filename=%s pdf_bytes=%d", fmt.value, doc.filename, len(pdf_bytes))
        return pdf_bytes

    async def to_text(self, doc: SourceDocument) -> str:
        fmt, handler = self._resolve(doc)
        text = await handler.to_text(doc)
        logger.info("Text produced | format=%s filename=%s chars=%d", fmt.value, doc.filename, len(text))
        return text

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _resolve(self, doc: SourceDocument) -> tuple[DetectedFormat, FormatHandler]:
        if doc.size_bytes > self._max_upload_bytes:
            raise SizeLimitExceeded(doc.size_bytes, self._max_upload_bytes)

        fmt = detect_format(doc.mime_type, doc.filename)
        if fmt is DetectedFormat.UNKNOWN:
            raise UnsupportedFormat(doc.filename, doc.mime_type)
        return fmt, self._handlers[fmt]

    async def _produce_pdf(
        self,
        handler: FormatHandler,
        doc: SourceDocument,
        title: str | None,
        author: str | None,
    ) -> bytes:
        pdf_bytes = await handler.to_pdf(doc)
        if not handler.stamp_metadata:
            return pdf_bytes
        return await _run_sync(stamp, pdf_bytes, title or doc.stem, author)

    # ------------------------------------------------------------------
    # PDF
    # ------------------------------------------------------------------

    async def _pdf_passthrough(self, doc: SourceDocument) -> bytes:
        return doc.content

    async def _pdf_text(self, doc: SourceDocument) -> str:
        return await _run_sync(extractors.extract_pdf_text, doc.content)

    # ------------------------------------------------------------------
    # DOCX
    # ------------------------------------------------------------------

    async def _docx_pdf(self, doc: SourceDocument) -> bytes:
        html = await _run_sync(renderers.render_docx_html, doc.content)
        return await self._engine.render(html)

    async def _docx_text(self, doc: SourceDocument) -> str:
        return await _run_sync(extractors.extract_docx_text, doc.content)

    # ------------------------------------------------------------------
    # Mail
    # ------------------------------------------------------------------

    async def _mail_pdf(self, message: MailMessage) -> bytes:
        html = await _run_sync(renderers.render_mail_html, message, self._wrap_width)
        return await self._engine.render(html)

    async def _mail_text(self, message: MailMessage) -> str:
        return await _run_sync(extractors.extract_mail_text, message, self._wrap_width)

    async def _eml_pdf(self, doc: SourceDocument) -> bytes:
        return await self._mail_pdf(await _run_sync(parse_eml, doc.content))

    async def _eml_text(self, doc: SourceDocument) -> str:
        return await self._mail_text(await _run_sync(parse_eml, doc.content))

    async def _msg_pdf(self, doc: SourceDocument) -> bytes:
        return await self._mail_pdf(await _run_sync(parse_msg, doc.content))

    async def _msg_text(self, doc: SourceDocument) -> str:
        return await self._mail_text(await _run_sync(parse_msg, doc.content))

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    async def _render_image(self, image_bytes: bytes, mime_type: str, alt: str) -> bytes:
        html = renderers.render_image_html(image_bytes, mime_type, alt)
        return await self._engine.render(html, margin=FULL_BLEED_MARGIN)

    async def _image_pdf(self, doc: SourceDocument) -> bytes:
        return await self._render_image(doc.content, doc.mime_type, doc.filename)

    async def _heic_pdf(self, doc: SourceDocument) -> bytes:
        jpeg = await _run_sync(heic_to_jpeg, doc.content)
        return await self._render_image(jpeg, "image/jpeg", doc.filename)

    async def _filename_text(self, doc: SourceDocument) -> str:
        return f"Filename: {doc.filename}"
