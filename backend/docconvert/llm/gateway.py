"""
LLM Gateway — single call site for generative-text requests

  ┌─────────────────────────────────────────────────────┐
  │  LLMGateway.stream()                                │
  │       │                                             │
  │       ▼                                             │
  │  BaseChatModel.astream  ← injected model            │
  │       │                                             │
  │       ▼                                             │
  │  structured log line (model, tokens, latency)       │
  │       │                                             │
  │       ▼                                             │
  │  text stream                                        │
  └─────────────────────────────────────────────────────┘

The chat model is passed in, never looked up from a global, so tests can
hand the gateway a fake model. There is no retry or fallback: a provider
failure is terminal for the request.

Usage::

    gateway = LLMGateway(build_chat_model(settings), model_name=settings.llm_model)

    async for token in gateway.stream(gateway.build_messages(prompt)):
        ...
"""

from __future__ import annotations

import logging
import time
from typing import AsyncIterator

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Token usage estimation (approximate: real count from API response)
# ---------------------------------------------------------------------------

def _estimate_tokens(messages: list[BaseMessage]) -> int:
    """Rough token count: 4 chars ≈ 1 token. Logged only, never billed."""
    total_chars = sum(len(m.content) for m in messages if isinstance(m.content, str))
    return max(1, total_chars // 4)


def _chunk_text(chunk) -> str:
    content = getattr(chunk, "content", chunk)
    if isinstance(content, str):
        return content
    # Gemini may return a list of content parts
    if isinstance(content, list):
        return "".join(
            part if isinstance(part, str) else part.get("text", "")
            for part in content
        )
    return str(content)


# ---------------------------------------------------------------------------
# LLMGateway
# ---------------------------------------------------------------------------

class LLMGateway:
    """Thin async wrapper over one injected LangChain chat model."""

    def __init__(self, model: BaseChatModel, model_name: str = "unknown") -> None:
        self._model      = model
        self._model_name = model_name

    async def stream(self, messages: list[BaseMessage]) -> AsyncIterator[str]:
        """
        Yield content deltas in provider order.

        Closing this generator (``aclose()`` or cancellation of the consuming
        task) closes the underlying ``astream`` and stops the provider call.
        """
        t0           = time.perf_counter()
        total_output = 0

        upstream = self._model.astream(messages)
        try:
            async for chunk in upstream:
                token = _chunk_text(chunk)
                if not token:
                    continue
                total_output += len(token) // 4 + 1
                yield token
        finally:
            await upstream.aclose()

        logger.info(
            "LLMGateway | model=%s tokens_in=%d tokens_out=%d latency_ms=%.1f",
            self._model_name, _estimate_tokens(messages),
            total_output, (time.perf_counter() - t0) * 1000,
        )

    # -----------------------------------------------------------------------
    # Convenience: build message list
    # -----------------------------------------------------------------------

    @staticmethod
    def build_messages(user_prompt: str) -> list[BaseMessage]:
        """Single user turn; the analysis flow sends no system prompt."""
        return [HumanMessage(content=user_prompt)]

    @staticmethod
    def build_conversation(turns: list[tuple[str, str]]) -> list[BaseMessage]:
        """Map (role, content) pairs onto LangChain messages."""
        messages: list[BaseMessage] = []
        for role, content in turns:
            if role == "assistant":
                messages.append(AIMessage(content=content))
            elif role == "system":
                messages.append(SystemMessage(content=content))
            else:
                messages.append(HumanMessage(content=content))
        return messages
