"""Headless Chromium session scoped to a single request."""

from __future__ import annotations

import logging
import shutil
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

from playwright.async_api import Browser, Page, Playwright, async_playwright

from .config import Settings, get_settings

logger = logging.getLogger(__name__)

_USER_FONT_DIR = Path.home() / ".fonts"


@dataclass(frozen=True)
class Viewport:
    width: int = 800
    height: int = 800


SessionFactory = Callable[[Viewport], AbstractAsyncContextManager[Page]]


def install_font(font_path: str | None, font_dir: Path = _USER_FONT_DIR) -> Path | None:
    """Copy an extra font (emoji glyphs) where Chromium's fontconfig will find it.

    Blocking file I/O; called once at startup, not per session.
    """
    if not font_path:
        return None
    source = Path(font_path)
    if not source.is_file():
        logger.warning("font file not found: %s", source)
        return None
    target = font_dir / source.name
    if not target.exists():
        font_dir.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, target)
    return target


async def _close_quietly(browser: Browser | None, playwright: Playwright | None) -> None:
    # Release is best-effort: a crashed browser must not mask the stage outcome.
    if browser is not None:
        try:
            await browser.close()
        except Exception:
            logger.warning("browser close failed", exc_info=True)
    if playwright is not None:
        try:
            await playwright.stop()
        except Exception:
            logger.warning("playwright stop failed", exc_info=True)


@asynccontextmanager
async def open_session(viewport: Viewport, settings: Settings | None = None) -> AsyncIterator[Page]:
    settings = settings or get_settings()

    playwright: Playwright | None = None
    browser: Browser | None = None
    try:
        playwright = await async_playwright().start()
        browser = await playwright.chromium.launch(
            headless=True,
            args=list(settings.chromium_args),
            executable_path=settings.chromium_executable_path,
        )
        context = await browser.new_context(
            viewport={"width": viewport.width, "height": viewport.height},
            device_scale_factor=1,
            ignore_https_errors=True,
            java_script_enabled=True,
        )
        page = await context.new_page()
        logger.debug("browser session opened (%dx%d)", viewport.width, viewport.height)
        yield page
    finally:
        await _close_quietly(browser, playwright)
        logger.debug("browser session closed")
