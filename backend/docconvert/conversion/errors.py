"""
Conversion error taxonomy.

Every failure the pipeline can surface is a ConversionError subclass that
carries a stable machine-readable code and the HTTP status the API layer
maps it to. The two user-correctable kinds (oversized input, unsupported
type) are 4xx; everything else is 5xx.

    ConversionError
      ├── SizeLimitExceeded       413  input above the upload ceiling
      ├── UnsupportedFormat       400  no handler for the detected type
      ├── InvalidAnalysisRequest  400  empty URL list or blank prompt
      ├── ExtractionFailure       500  parser choked on malformed input
      ├── RenderFailure           500  headless engine could not paginate
      └── UpstreamFetchFailure    502  remote PDF unreachable / timed out
"""

from __future__ import annotations


class ConversionError(Exception):
    """Base class — never raised directly."""

    error_code:  str = "CONVERSION_ERROR"
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class SizeLimitExceeded(ConversionError):
    error_code  = "FILE_TOO_LARGE"
    status_code = 413

    def __init__(self, size_bytes: int, limit_bytes: int) -> None:
        limit_mb = limit_bytes // (1024 * 1024)
        super().__init__(f"File size exceeds {limit_mb}MB limit")
        self.size_bytes  = size_bytes
        self.limit_bytes = limit_bytes


class UnsupportedFormat(ConversionError):
    error_code  = "UNSUPPORTED_FILE_TYPE"
    status_code = 400

    def __init__(self, filename: str, mime_type: str) -> None:
        super().__init__(
            "Unsupported file type. Please upload a PDF, DOCX, image, EML, or MSG file."
        )
        self.filename  = filename
        self.mime_type = mime_type


class InvalidAnalysisRequest(ConversionError):
    error_code  = "INVALID_ANALYSIS_REQUEST"
    status_code = 400

    def __init__(self) -> None:
        super().__init__(
            "Invalid input. Please provide a valid array of PDF URLs and a prompt."
        )


class ExtractionFailure(ConversionError):
    error_code = "EXTRACTION_FAILED"


class RenderFailure(ConversionError):
    error_code = "RENDER_FAILED"


class UpstreamFetchFailure(ConversionError):
    error_code  = "UPSTREAM_FETCH_FAILED"
    status_code = 502
