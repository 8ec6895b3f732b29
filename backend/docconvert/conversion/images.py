"""HEIC/HEIF → JPEG pre-processing so Chromium can display the image."""

from __future__ import annotations

import io
import logging

from PIL import Image, UnidentifiedImageError
from pillow_heif import register_heif_opener

from docconvert.conversion.errors import ExtractionFailure

logger = logging.getLogger(__name__)

register_heif_opener()

JPEG_QUALITY = 90


def heic_to_jpeg(heic_bytes: bytes) -> bytes:
    try:
        with Image.open(io.BytesIO(heic_bytes)) as img:
            rgb = img.convert("RGB")
            out = io.BytesIO()
            rgb.save(out, format="JPEG", quality=JPEG_QUALITY)
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise ExtractionFailure(f"Could not decode HEIC image: {exc}") from exc

    logger.debug("HEIC → JPEG | in=%d out=%d", len(heic_bytes), out.tell())
    return out.getvalue()
