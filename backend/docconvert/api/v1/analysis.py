"""
Analysis API Router
POST /api/v1/analyze        — prompt over one or more stored PDFs
POST /api/v1/analyze/chat   — continue a conversation

Both endpoints answer with a chunked ``text/plain`` body. Each fragment
is written as soon as the provider emits it, in provider order.

Error timing:
  - Input validation, PDF fetching and text extraction all run before the
    response starts, so InvalidAnalysisRequest (400) and any unexpected
    failure still get a proper status and the ErrorResponse envelope.
  - Once streaming has started the status is already 200; a provider error
    is logged and the body simply ends.
  - A client disconnect cancels the relay, and the finally block closes
    the TextStream, which stops the upstream provider call.
"""

from __future__ import annotations

import logging
from typing import AsyncIterator

from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from docconvert.analysis.stream import TextStream
from docconvert.auth.dependencies import Analysis, CurrentUser
from docconvert.schemas.documents import AnalyzeRequest, ChatRequest, ErrorResponse

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/analyze",
    tags=["Analysis"],
)

_STREAM_HEADERS = {
    "Cache-Control":     "no-cache",
    "X-Accel-Buffering": "no",    # disable nginx buffering for chunked output
}


async def _relay(stream: TextStream, user_sub: str) -> AsyncIterator[str]:
    fragments = 0
    try:
        async for fragment in stream:
            fragments += 1
            yield fragment
    except Exception as exc:
        logger.error(
            "Analysis stream aborted | user=%s fragments=%d error=%s",
            user_sub, fragments, exc, exc_info=True,
        )
    finally:
        await stream.aclose()
        logger.info("Analysis stream closed | user=%s fragments=%d", user_sub, fragments)


# ---------------------------------------------------------------------------
# POST /analyze
# ---------------------------------------------------------------------------

@router.post(
    "",
    summary="Analyse stored PDFs with a prompt (streamed)",
    response_class=StreamingResponse,
    responses={
        200: {"content": {"text/plain": {}}},
        400: {"model": ErrorResponse, "description": "Empty URL list or blank prompt"},
        401: {"model": ErrorResponse},
    },
)
async def analyze(
    body:     AnalyzeRequest,
    user:     CurrentUser,
    analysis: Analysis,
) -> StreamingResponse:
    stream = await analysis.analyze(body.pdf_urls, body.prompt)
    return StreamingResponse(
        _relay(stream, user.sub),
        media_type="text/plain; charset=utf-8",
        headers=_STREAM_HEADERS,
    )


# ---------------------------------------------------------------------------
# POST /analyze/chat
# ---------------------------------------------------------------------------

@router.post(
    "/chat",
    summary="Continue an analysis conversation (streamed)",
    response_class=StreamingResponse,
    responses={
        200: {"content": {"text/plain": {}}},
        400: {"model": ErrorResponse, "description": "Empty conversation"},
        401: {"model": ErrorResponse},
    },
)
async def analyze_chat(
    body:     ChatRequest,
    user:     CurrentUser,
    analysis: Analysis,
) -> StreamingResponse:
    turns = [(message.role, message.content) for message in body.messages]
    stream = analysis.continue_conversation(turns)
    return StreamingResponse(
        _relay(stream, user.sub),
        media_type="text/plain; charset=utf-8",
        headers=_STREAM_HEADERS,
    )
