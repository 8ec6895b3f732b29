"""
Analysis Streaming Service
══════════════════════════

Answers a free-form prompt over the text of one or more stored PDFs.

Flow:
  1. Validate — at least one URL and a non-blank prompt.
  2. For each URL in order:
       fetch (httpx, hard timeout) → PyMuPDF text → append
           "\\n\\n--- Document N ---\\n<text>"
     A fetch / timeout / parse failure skips that document with a warning;
     one bad PDF never aborts the batch. N is the URL's position in the
     request, so skipped documents leave a gap in the numbering.
  3. Stop at the combined-character ceiling (200 000 by default), cut the
     text there and append "--- Truncated ---".
  4. Send prompt + text as one user turn; forward the provider's token
     stream as a TextStream.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

import httpx

from docconvert.analysis.stream import TextStream
from docconvert.conversion.errors import (
    ExtractionFailure,
    InvalidAnalysisRequest,
    UpstreamFetchFailure,
)
from docconvert.conversion.extractors import extract_pdf_text
from docconvert.core.config import settings
from docconvert.llm.gateway import LLMGateway

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "--- Truncated ---"

PROMPT_TEMPLATE = (
    "prompt: {prompt}\n"
    "document: {document}\n\n"
    "Return plain text only. Do not use markdown or any other formatting."
)


def _redact(url: str) -> str:
    """Drop the query string; presigned URLs carry credentials there."""
    return url.split("?", 1)[0]


def build_prompt(prompt: str, document: str) -> str:
    return PROMPT_TEMPLATE.format(prompt=prompt, document=document)


class AnalysisService:

    def __init__(
        self,
        gateway: LLMGateway,
        http_client: httpx.AsyncClient,
        *,
        fetch_timeout_seconds: float | None = None,
        max_combined_chars:    int | None = None,
    ) -> None:
        self._gateway       = gateway
        self._http          = http_client
        self._fetch_timeout = fetch_timeout_seconds or settings.fetch_timeout_seconds
        self._max_chars     = max_combined_chars or settings.analysis_max_combined_chars

    # ------------------------------------------------------------------
    # Fetch + concatenate
    # ------------------------------------------------------------------

    async def fetch_pdf(self, url: str) -> bytes:
        """GET ``url``; the request is cancelled once the timeout elapses."""
        try:
            response = await asyncio.wait_for(self._http.get(url), timeout=self._fetch_timeout)
        except asyncio.TimeoutError as exc:
            raise UpstreamFetchFailure(
                f"Timed out fetching PDF after {self._fetch_timeout:.0f}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamFetchFailure(f"Failed to fetch PDF: {exc}") from exc

        if not response.is_success:
            raise UpstreamFetchFailure(f"Failed to fetch PDF ({response.status_code})")
        return response.content

    async def collect_text(self, pdf_urls: Sequence[str]) -> str:
        loop     = asyncio.get_event_loop()
        combined = ""

        for index, url in enumerate(pdf_urls, start=1):
            try:
                pdf_bytes = await self.fetch_pdf(url)
                text      = await loop.run_in_executor(None, extract_pdf_text, pdf_bytes)
            except (UpstreamFetchFailure, ExtractionFailure) as exc:
                logger.warning(
                    "Analysis | skipping document=%d url=%s error=%s",
                    index, _redact(url), exc,
                )
                continue

            combined += f"\n\n--- Document {index} ---\n{text}"

            if len(combined) > self._max_chars:
                combined = combined[: self._max_chars] + "\n\n" + TRUNCATION_MARKER
                logger.info(
                    "Analysis | truncated at document=%d ceiling=%d",
                    index, self._max_chars,
                )
                break

        return combined

    # ------------------------------------------------------------------
    # Streaming entry points
    # ------------------------------------------------------------------

    async def analyze(self, pdf_urls: Sequence[str], prompt: str) -> TextStream:
        """
        Raises InvalidAnalysisRequest before any fetch when the URL list is
        empty or the prompt is blank.
        """
        if (
            not isinstance(pdf_urls, (list, tuple))
            or not pdf_urls
            or not all(isinstance(u, str) and u.strip() for u in pdf_urls)
            or not isinstance(prompt, str)
            or not prompt.strip()
        ):
            raise InvalidAnalysisRequest()

        urls = list(pdf_urls)
        document = await self.collect_text(urls)
        logger.info(
            "Analysis | documents=%d combined_chars=%d prompt_chars=%d",
            len(urls), len(document), len(prompt),
        )

        messages = LLMGateway.build_messages(build_prompt(prompt, document))
        return TextStream(self._gateway.stream(messages))

    def continue_conversation(self, turns: Sequence[tuple[str, str]]) -> TextStream:
        if not turns:
            raise InvalidAnalysisRequest()
        messages = LLMGateway.build_conversation(list(turns))
        return TextStream(self._gateway.stream(messages))
