"""
Text extractors — raw bytes → plain text, one function per format.

All functions here are synchronous and CPU-bound; the orchestrator runs
them in the default thread executor so the event loop never blocks on a
large PDF or DOCX.

  PDF       PyMuPDF native text layer, pages in order
  DOCX      mammoth raw-text extraction (paragraph breaks kept)
  EML/MSG   four fixed header lines + blank line + body
"""

from __future__ import annotations

import io
import logging
import zipfile

import fitz  # PyMuPDF
import mammoth

from docconvert.conversion.errors import ExtractionFailure
from docconvert.conversion.mail import MailMessage, html_to_text
from docconvert.conversion.sanitize import strip_tags

logger = logging.getLogger(__name__)

NO_TEXT_CONTENT = "No Text Content"


def extract_pdf_text(pdf_bytes: bytes) -> str:
    """Concatenate the text layer of every page, in page order."""
    try:
        with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
            pages = [page.get_text("text") for page in doc]
    except Exception as exc:
        raise ExtractionFailure(f"Could not read PDF: {exc}") from exc

    text = "\n\n".join(p.strip() for p in pages if p.strip())
    logger.debug("PDF text | pages=%d chars=%d", len(pages), len(text))
    return text


def extract_docx_text(docx_bytes: bytes) -> str:
    try:
        result = mammoth.extract_raw_text(io.BytesIO(docx_bytes))
    except (zipfile.BadZipFile, KeyError, ValueError) as exc:
        raise ExtractionFailure(f"Could not read DOCX: {exc}") from exc

    for message in result.messages:
        logger.debug("mammoth: %s", message)
    return result.value.strip()


def mail_body_text(message: MailMessage, wrap_width: int = 130) -> str:
    """Plain-text body first; otherwise tag-stripped HTML, word-wrapped."""
    if message.text_body and message.text_body.strip():
        return message.text_body.strip()
    if message.html_body:
        text = html_to_text(strip_tags(message.html_body), wrap_width)
        if text:
            return text
    return NO_TEXT_CONTENT


def extract_mail_text(message: MailMessage, wrap_width: int = 130) -> str:
    header = [
        f"Subject: {message.subject_display}",
        f"From: {message.from_display}".rstrip(),
        f"To: {message.to_display}".rstrip(),
        f"Date: {message.date_display}",
    ]
    return "\n".join(header) + "\n\n" + mail_body_text(message, wrap_width) + "\n"
