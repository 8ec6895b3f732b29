"""
HTML renderer adapters — per-format builders for print-ready HTML.

Output of every builder is a complete UTF-8 HTML document handed to the
HeadlessRenderEngine. Mail bodies are sanitized here; nothing from a mail
body reaches the browser without going through MAIL_POLICY.
"""

from __future__ import annotations

import base64
import html
import io
import logging
import zipfile

import mammoth

from docconvert.conversion.errors import ExtractionFailure
from docconvert.conversion.mail import MailMessage, html_to_text, text_to_html
from docconvert.conversion.sanitize import MAIL_POLICY, sanitize_html

logger = logging.getLogger(__name__)

_DOCUMENT_TEMPLATE = (
    "<!DOCTYPE html>"
    '<html><head><meta charset="utf-8">{head}</head>'
    "<body>{body}</body></html>"
)

# Full-bleed page, image centred and scaled to fit without distortion.
IMAGE_PAGE_CSS = """<style>
  body, html {
    margin: 0;
    padding: 0;
    width: 100%;
    height: 100%;
    display: flex;
    align-items: center;
    justify-content: center;
  }
  img {
    max-width: 100%;
    max-height: 100%;
    object-fit: contain;
  }
</style>"""


def html_document(body: str, head: str = "") -> str:
    return _DOCUMENT_TEMPLATE.format(head=head, body=body)


# ---------------------------------------------------------------------------
# DOCX
# ---------------------------------------------------------------------------

def render_docx_html(docx_bytes: bytes) -> str:
    """Style-preserving DOCX → HTML (headings, lists, inline formatting)."""
    try:
        result = mammoth.convert_to_html(io.BytesIO(docx_bytes))
    except (zipfile.BadZipFile, KeyError, ValueError) as exc:
        raise ExtractionFailure(f"Could not read DOCX: {exc}") from exc

    for message in result.messages:
        logger.debug("mammoth: %s", message)
    return html_document(result.value)


# ---------------------------------------------------------------------------
# Mail (EML / MSG)
# ---------------------------------------------------------------------------

def select_mail_body(message: MailMessage, wrap_width: int = 130) -> str:
    """
    Pick the body markup for the PDF rendition:
      RTF-bearing text body → word-wrapped text as HTML
      HTML body             → as-is
      text body             → escaped text-as-HTML
    """
    if message.has_rtf_text:
        return text_to_html(html_to_text(message.text_body, wrap_width))
    if message.html_body:
        return message.html_body
    return text_to_html(message.text_body or "")


def render_mail_html(message: MailMessage, wrap_width: int = 130) -> str:
    body = sanitize_html(select_mail_body(message, wrap_width), MAIL_POLICY)
    return html_document(
        "<div>"
        f"<h2>{html.escape(message.subject_display)}</h2>"
        f"<h3>From: {html.escape(message.from_display)}</h3>"
        f"<h3>To: {html.escape(message.to_display)}</h3>"
        f"<h3>Date: {html.escape(message.date_display)}</h3>"
        f"<div>{body}</div>"
        "</div>"
    )


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

def render_image_html(image_bytes: bytes, mime_type: str, alt: str = "") -> str:
    encoded = base64.b64encode(image_bytes).decode("ascii")
    return html_document(
        f'<img src="data:{mime_type};base64,{encoded}" alt="{html.escape(alt, quote=True)}">',
        head=IMAGE_PAGE_CSS,
    )
