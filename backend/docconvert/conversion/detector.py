"""
Format detection — classify an upload from its declared MIME type and
filename extension.

Rule order:
  1. MIME ``application/pdf`` or extension ``pdf``      → pdf
  2. extension ``docx`` / ``eml`` / ``msg``             → docx / eml / msg
  3. MIME ``image/heic`` / ``image/heif``               → heic
  4. any other ``image/*`` MIME                         → image
  5. anything else                                      → unknown

Mail clients and browsers frequently send ``application/octet-stream`` for
.eml / .msg attachments, which is why everything except pdf is decided by
extension first.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class DetectedFormat(str, Enum):
    PDF     = "pdf"
    DOCX    = "docx"
    EML     = "eml"
    MSG     = "msg"
    IMAGE   = "image"
    HEIC    = "heic"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class SourceDocument:
    """Raw upload as received at the request boundary."""
    content:   bytes
    mime_type: str
    filename:  str

    @property
    def size_bytes(self) -> int:
        return len(self.content)

    @property
    def stem(self) -> str:
        """Filename without its final extension (``a.b.pdf`` → ``a.b``)."""
        return split_extension(self.filename)[0]


_EXTENSION_FORMATS: dict[str, DetectedFormat] = {
    "docx": DetectedFormat.DOCX,
    "eml":  DetectedFormat.EML,
    "msg":  DetectedFormat.MSG,
}

_HEIC_MIME_TYPES = frozenset({"image/heic", "image/heif"})


def split_extension(filename: str) -> tuple[str, str]:
    """
    Return (stem, lower-cased extension); extension is '' when absent.
    A bare dotfile name (``.eml``) keeps the whole name as its stem.
    """
    base = filename.replace("\\", "/").rsplit("/", 1)[-1]
    stem, dot, ext = base.rpartition(".")
    if not dot:
        return base, ""
    if not stem:
        return base, ext.lower()
    return stem, ext.lower()


def _normalize_mime(mime_type: str | None) -> str:
    return (mime_type or "").split(";", 1)[0].strip().lower()


def detect_format(mime_type: str | None, filename: str) -> DetectedFormat:
    """Pure function of (mime_type, filename); see module docstring for rules."""
    mime = _normalize_mime(mime_type)
    _, ext = split_extension(filename)

    if mime == "application/pdf" or ext == "pdf":
        return DetectedFormat.PDF

    by_extension = _EXTENSION_FORMATS.get(ext)
    if by_extension is not None:
        return by_extension

    if mime in _HEIC_MIME_TYPES:
        return DetectedFormat.HEIC
    if mime.startswith("image/"):
        return DetectedFormat.IMAGE

    return DetectedFormat.UNKNOWN
