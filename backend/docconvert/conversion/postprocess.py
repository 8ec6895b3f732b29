"""
PDF post-processor — stamp document-info metadata onto a rendered PDF.
"""

from __future__ import annotations

import fitz  # PyMuPDF

from docconvert.conversion.errors import RenderFailure

# Info-dictionary keys PyMuPDF's set_metadata() accepts back.
_INFO_KEYS = (
    "author", "creator", "producer", "subject", "keywords",
    "creationDate", "modDate", "trapped",
)


def stamp(pdf_bytes: bytes, title: str, author: str | None = None) -> bytes:
    """
    Set Title (and Author, when given) and re-serialize.

    Existing info fields are carried over; Author is left untouched when
    ``author`` is None or empty.
    """
    try:
        with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
            current = doc.metadata or {}
            metadata = {key: current[key] for key in _INFO_KEYS if current.get(key)}
            metadata["title"] = title
            if author:
                metadata["author"] = author
            doc.set_metadata(metadata)
            return doc.tobytes()
    except Exception as exc:
        raise RenderFailure(f"Could not stamp PDF metadata: {exc}") from exc
