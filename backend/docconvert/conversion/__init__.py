"""
Document Conversion Package
════════════════════════════

Turns one uploaded file into a (PDF rendition, plain-text extraction) pair:

  Format Detection → Text Extraction ┐
                   → HTML Rendering → Headless Render → Metadata Stamp

Modules
───────
  detector.py      DetectedFormat + SourceDocument, pure detection rules
  mail.py          EML / MSG parsing into MailMessage, text ↔ HTML helpers
  sanitize.py      allow-list HTML sanitizer for untrusted mail bodies
  extractors.py    bytes → text per format
  renderers.py     bytes → print-ready HTML per format
  images.py        HEIC → JPEG pre-processing
  engine.py        headless Chromium lifecycle, HTML → A4 PDF
  postprocess.py   Title / Author stamping
  orchestrator.py  closed dispatch table, size ceiling, ConversionResult
"""

from docconvert.conversion.detector import DetectedFormat, SourceDocument, detect_format
from docconvert.conversion.engine import HeadlessRenderEngine
from docconvert.conversion.errors import (
    ConversionError,
    ExtractionFailure,
    RenderFailure,
    SizeLimitExceeded,
    UnsupportedFormat,
    UpstreamFetchFailure,
)
from docconvert.conversion.orchestrator import ConversionOrchestrator, ConversionResult

__all__ = [
    "DetectedFormat",
    "SourceDocument",
    "detect_format",
    "HeadlessRenderEngine",
    "ConversionOrchestrator",
    "ConversionResult",
    "ConversionError",
    "ExtractionFailure",
    "RenderFailure",
    "SizeLimitExceeded",
    "UnsupportedFormat",
    "UpstreamFetchFailure",
]
