"""
TextStream — single-pass, cancellable stream of text fragments.

The producer is any async iterator (normally LLMGateway.stream). The
consumer pulls fragments with ``async for``; ``aclose()`` closes the
producer, which in turn closes the provider's ``astream`` and stops the
upstream call. A stream cannot be iterated twice.
"""

from __future__ import annotations

from typing import AsyncIterator


class TextStream:

    def __init__(self, source: AsyncIterator[str]) -> None:
        self._source  = source
        self._started = False
        self._closed  = False

    def __aiter__(self) -> "TextStream":
        if self._started:
            raise RuntimeError("TextStream is single-pass and has already been consumed")
        self._started = True
        return self

    async def __anext__(self) -> str:
        if self._closed:
            raise StopAsyncIteration
        try:
            return await self._source.__anext__()
        except StopAsyncIteration:
            self._closed = True
            raise

    @property
    def closed(self) -> bool:
        return self._closed

    async def aclose(self) -> None:
        """Stop the producer. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        aclose = getattr(self._source, "aclose", None)
        if aclose is not None:
            await aclose()

    async def collect(self) -> str:
        """Drain the stream into one string (tests and non-streaming callers)."""
        parts = [fragment async for fragment in self]
        return "".join(parts)
