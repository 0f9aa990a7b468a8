"""Readiness signals for generative artwork pages."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any

from playwright.async_api import Error as PlaywrightError

from .inspector import PageInspector
from .models import DelayTrigger, Trigger

logger = logging.getLogger(__name__)


async def race(*aws: Awaitable[Any]) -> Any:
    """Return the result of whichever awaitable finishes first.

    Losers are cancelled and awaited so no timer or page listener outlives the
    race. If several finish together, the earliest argument wins.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    winner = next(t for t in tasks if t in done)
    return winner.result()


async def wait_for_trigger(inspector: PageInspector, trigger: Trigger, *, ceiling_ms: int, event_name: str) -> None:
    """Suspend until the page is deemed ready. Never fails."""
    if isinstance(trigger, DelayTrigger):
        await asyncio.sleep(trigger.delay_ms / 1000)
        return

    try:
        fired = await race(
            inspector.wait_for_event(event_name),
            asyncio.sleep(ceiling_ms / 1000, False),
        )
    except PlaywrightError as e:
        logger.info("waiting for %r failed, continuing: %s", event_name, e.message)
        return
    if not fired:
        logger.info("%r not received within %dms, continuing", event_name, ceiling_ms)
