"""
Mail parsing — EML (stdlib email) and Outlook MSG (extract-msg) into a
single MailMessage shape, plus the text ↔ HTML helpers the mail
extractor and renderer share.
"""

from __future__ import annotations

import html
import logging
import re
import textwrap
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email import policy
from email.parser import BytesParser
from email.utils import format_datetime, getaddresses, parsedate_to_datetime

import extract_msg
from bs4 import BeautifulSoup

from docconvert.conversion.errors import ExtractionFailure

logger = logging.getLogger(__name__)

NO_SUBJECT = "No Subject"
NO_DATE    = "No Date"
RTF_MARKER = "{\\rtf"

_BLOCK_TAGS = [
    "p", "div", "li", "tr", "table", "ul", "ol", "blockquote", "pre",
    "h1", "h2", "h3", "h4", "h5", "h6", "hr",
]
_PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")


# ---------------------------------------------------------------------------
# Intermediate mail representation
# ---------------------------------------------------------------------------

@dataclass
class MailMessage:
    subject:        str | None = None
    from_addresses: list[str] = field(default_factory=list)
    to_addresses:   list[str] = field(default_factory=list)
    date:           datetime | None = None
    html_body:      str | None = None
    text_body:      str | None = None

    @property
    def subject_display(self) -> str:
        return self.subject or NO_SUBJECT

    @property
    def from_display(self) -> str:
        return ", ".join(self.from_addresses)

    @property
    def to_display(self) -> str:
        return ", ".join(self.to_addresses)

    @property
    def date_display(self) -> str:
        """RFC 1123 GMT string (``Tue, 15 Nov 1994 08:12:31 GMT``) or 'No Date'."""
        if self.date is None:
            return NO_DATE
        value = self.date
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return format_datetime(value.astimezone(timezone.utc), usegmt=True)

    @property
    def has_rtf_text(self) -> bool:
        return bool(self.text_body) and RTF_MARKER in self.text_body


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------

def wrap_text(text: str, width: int = 130) -> str:
    """
    Normalise whitespace line by line and word-wrap at ``width`` columns.
    Runs of blank lines collapse to a single paragraph break.
    """
    lines: list[str] = []
    for raw in (text or "").splitlines():
        line = " ".join(raw.split())
        if not line:
            if lines and lines[-1]:
                lines.append("")
            continue
        lines.extend(
            textwrap.wrap(line, width=width, break_long_words=False, break_on_hyphens=False)
        )
    return "\n".join(lines).strip()


def html_to_text(markup: str, width: int = 130) -> str:
    """Render HTML as word-wrapped plain text, keeping block and <br> breaks."""
    soup = BeautifulSoup(markup or "", "html.parser")
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for block in soup.find_all(_BLOCK_TAGS):
        block.insert_before("\n")
        block.insert_after("\n")
    return wrap_text(soup.get_text(), width)


def _paragraph_html(paragraph: str) -> str:
    return "<p>" + html.escape(paragraph).replace("\n", "<br/>") + "</p>"


def text_to_html(text: str) -> str:
    """Escape plain text into <p> paragraphs with <br/> line breaks."""
    paragraphs = _PARAGRAPH_SPLIT.split((text or "").strip())
    return "".join(_paragraph_html(p) for p in paragraphs if p)


# ---------------------------------------------------------------------------
# EML
# ---------------------------------------------------------------------------

def _header_addresses(header) -> list[str]:
    if header is None:
        return []
    addresses = getattr(header, "addresses", None)
    if addresses is not None:
        return [str(addr) for addr in addresses]
    return [value for value in str(header).split(",") if value.strip()]


def _header_datetime(header) -> datetime | None:
    if header is None:
        return None
    value = getattr(header, "datetime", None)
    if value is not None:
        return value
    try:
        return parsedate_to_datetime(str(header))
    except (TypeError, ValueError):
        logger.debug("Unparseable Date header: %r", str(header))
        return None


def _body_content(message, subtype: str) -> str | None:
    part = message.get_body(preferencelist=(subtype,))
    if part is None:
        return None
    return part.get_content()


def parse_eml(data: bytes) -> MailMessage:
    """Parse RFC 822 bytes; raises ExtractionFailure on malformed input."""
    try:
        message = BytesParser(policy=policy.default).parsebytes(data)
        return MailMessage(
            subject=message["subject"] or None,
            from_addresses=_header_addresses(message["from"]),
            to_addresses=_header_addresses(message["to"]),
            date=_header_datetime(message["date"]),
            html_body=_body_content(message, "html"),
            text_body=_body_content(message, "plain"),
        )
    except (LookupError, ValueError, TypeError) as exc:
        raise ExtractionFailure(f"Could not parse EML message: {exc}") from exc


# ---------------------------------------------------------------------------
# MSG (Outlook compound file)
# ---------------------------------------------------------------------------

def _split_recipients(value: str | None) -> list[str]:
    if not value:
        return []
    return [
        f"{name} <{addr}>" if name and addr else (addr or name)
        for name, addr in getaddresses([value.replace(";", ",")])
        if name or addr
    ]


def _msg_datetime(value) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return parsedate_to_datetime(str(value))
    except (TypeError, ValueError):
        return None


def _decode_html(value) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def parse_msg(data: bytes) -> MailMessage:
    """Parse an Outlook .msg blob; raises ExtractionFailure on malformed input."""
    msg = None
    try:
        msg = extract_msg.openMsg(data)
        return MailMessage(
            subject=msg.subject or None,
            from_addresses=_split_recipients(msg.sender),
            to_addresses=_split_recipients(msg.to),
            date=_msg_datetime(msg.date),
            html_body=_decode_html(msg.htmlBody),
            text_body=msg.body or None,
        )
    except Exception as exc:
        raise ExtractionFailure(f"Could not parse MSG message: {exc}") from exc
    finally:
        if msg is not None:
            msg.close()
