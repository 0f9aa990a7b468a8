from __future__ import annotations

import logging
from typing import Literal

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from .errors import ErrorCode, Failure

logger = logging.getLogger(__name__)

WaitUntil = Literal["load", "domcontentloaded", "networkidle", "commit"]


async def navigate(
    page: Page,
    url: str,
    *,
    timeout_ms: int,
    wait_until: WaitUntil = "load",
) -> int | Failure:
    """Go to `url` and return the HTTP status, which must be 200."""
    try:
        response = await page.goto(url, wait_until=wait_until, timeout=timeout_ms)
    except PlaywrightTimeoutError:
        return Failure(ErrorCode.TIMEOUT, f"navigation exceeded {timeout_ms}ms")
    except PlaywrightError as e:
        return Failure(ErrorCode.UNKNOWN, f"navigation failed: {e.message}")

    if response is None:
        return Failure(ErrorCode.UNKNOWN, "navigation produced no response")
    if response.status != 200:
        return Failure(ErrorCode.HTTP_ERROR, f"status {response.status}")
    return response.status


async def wait_for_body(page: Page, *, timeout_ms: int) -> bool:
    """Grace wait for a minimal document; not finding one is not an error."""
    try:
        await page.wait_for_selector("body", timeout=timeout_ms)
        return True
    except PlaywrightError:
        logger.info("body not found after %dms, continuing", timeout_ms)
        return False
