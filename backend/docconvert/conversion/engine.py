"""
Headless Render Engine — HTML → paginated A4 PDF via headless Chromium
══════════════════════════════════════════════════════════════════════

Lifecycle (one browser process per render call):

  render(html)
      │ launch()
      ▼
  browser + page ──▶ set_content(wait_until=networkidle) ──▶ page.pdf(A4)
      │                                                        │
      └──── finally: browser.close() ◀────── pdf bytes ◀───────┘

Launch policy:
  - OS sandbox disabled
  - single process / single renderer, bounded V8 heap
  - launch, navigation and content-set share one hard timeout (300 s default)

The browser is acquired through an async context manager whose ``finally``
closes it on every exit path, cancellation included: close() count must
always equal launch() count.

The launcher is injectable; production uses PlaywrightLauncher, tests pass
a double that records launch/close calls.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Protocol

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from docconvert.conversion.errors import RenderFailure
from docconvert.core.config import settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Launch configuration
# ---------------------------------------------------------------------------

BASE_LAUNCH_ARGS: tuple[str, ...] = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--single-process",
    "--no-zygote",
    "--renderer-process-limit=1",
)

PDF_FORMAT = "A4"


def build_launch_args(max_old_space_mb: int) -> list[str]:
    return [*BASE_LAUNCH_ARGS, f"--js-flags=--max-old-space-size={max_old_space_mb}"]


# ---------------------------------------------------------------------------
# Launcher protocol + Playwright implementation
# ---------------------------------------------------------------------------

class BrowserHandle(Protocol):
    async def new_page(self) -> Any: ...
    async def close(self) -> None: ...


class BrowserLauncher(Protocol):
    async def launch(self) -> BrowserHandle: ...


class _PlaywrightBrowser:
    """Owns both the Playwright driver and the Chromium process."""

    def __init__(self, playwright, browser) -> None:
        self._playwright = playwright
        self._browser    = browser

    async def new_page(self):
        return await self._browser.new_page()

    async def close(self) -> None:
        try:
            await self._browser.close()
        finally:
            await self._playwright.stop()


class PlaywrightLauncher:
    def __init__(self, args: list[str], timeout_ms: float) -> None:
        self._args       = args
        self._timeout_ms = timeout_ms

    async def launch(self) -> _PlaywrightBrowser:
        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(
                headless=True,
                args=self._args,
                timeout=self._timeout_ms,
            )
        except BaseException:
            await playwright.stop()
            raise
        return _PlaywrightBrowser(playwright, browser)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class HeadlessRenderEngine:
    """render(html) → PDF bytes, one browser per call, always cleaned up."""

    def __init__(
        self,
        launcher: BrowserLauncher | None = None,
        *,
        timeout_seconds: float | None = None,
        max_old_space_mb: int | None = None,
    ) -> None:
        timeout_seconds = timeout_seconds or settings.render_timeout_seconds
        self._timeout_ms = timeout_seconds * 1000
        self._launcher   = launcher or PlaywrightLauncher(
            args=build_launch_args(max_old_space_mb or settings.render_max_old_space_mb),
            timeout_ms=self._timeout_ms,
        )

    @asynccontextmanager
    async def _browser(self) -> AsyncIterator[BrowserHandle]:
        try:
            browser = await self._launcher.launch()
        except PlaywrightError as exc:
            logger.error("Headless browser launch failed: %s", exc)
            raise RenderFailure(f"Could not launch headless browser: {exc}") from exc

        try:
            yield browser
        finally:
            await browser.close()

    async def render(self, html: str, *, margin: dict[str, str] | None = None) -> bytes:
        """
        Set ``html`` as page content, wait for network idle, print to A4.

        ``margin`` overrides the default print margins (the image path
        renders full-bleed with zero margin).
        """
        t0 = time.monotonic()
        pdf_options: dict[str, Any] = {"format": PDF_FORMAT, "print_background": True}
        if margin is not None:
            pdf_options["margin"] = margin

        async with self._browser() as browser:
            page = await browser.new_page()
            page.set_default_navigation_timeout(self._timeout_ms)
            page.set_default_timeout(self._timeout_ms)

            try:
                await page.set_content(html, wait_until="networkidle", timeout=self._timeout_ms)
            except PlaywrightError as exc:
                logger.error(
                    "Error setting HTML content | html_chars=%d error=%s", len(html), exc,
                )
                raise RenderFailure(f"Could not load HTML into renderer: {exc}") from exc

            try:
                pdf_bytes = await page.pdf(**pdf_options)
            except PlaywrightError as exc:
                logger.error("PDF generation failed | html_chars=%d error=%s", len(html), exc)
                raise RenderFailure(f"Could not generate PDF: {exc}") from exc

        logger.info(
            "Rendered PDF | html_chars=%d pdf_bytes=%d elapsed_ms=%.0f",
            len(html), len(pdf_bytes), (time.monotonic() - t0) * 1000,
        )
        return pdf_bytes
