"""One bounded browser run per request.

Both endpoints share the same shape: open a session, navigate, run an
endpoint-specific stage against the page, close the session. Every stage
returns its value or a `Failure`; exceptions are only caught here, at the
boundary, and reported as UNKNOWN.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

import structlog

from .browser import SessionFactory, Viewport, open_session
from .capture import take_capture
from .config import Settings, get_settings
from .errors import ErrorCode, Failure
from .features import extract_features
from .inspector import PageInspector
from .models import CaptureRequest, CaptureResult, FeatureRequest, TokenFeature, ViewportCapture
from .navigation import WaitUntil, navigate, wait_for_body
from .postprocess import shrink_if_oversized
from .signals import wait_for_trigger

logger = logging.getLogger(__name__)

T = TypeVar("T")

FEATURES_VIEWPORT = Viewport(32, 32)
DEFAULT_CAPTURE_VIEWPORT = Viewport(800, 800)


@dataclass(frozen=True)
class PageJob:
    endpoint: str
    url: str
    viewport: Viewport
    navigation_timeout_ms: int
    wait_until: WaitUntil = "load"
    body_wait_ms: int | None = None


async def run_page_job(
    job: PageJob,
    stage: Callable[[PageInspector], Awaitable[T | Failure]],
    session_factory: SessionFactory = open_session,
) -> T | Failure:
    with structlog.contextvars.bound_contextvars(endpoint=job.endpoint, url=job.url):
        started = time.monotonic()
        try:
            async with session_factory(job.viewport) as page:
                inspector = PageInspector(page)
                status = await navigate(
                    page,
                    job.url,
                    timeout_ms=job.navigation_timeout_ms,
                    wait_until=job.wait_until,
                )
                if isinstance(status, Failure):
                    result: T | Failure = status
                else:
                    if job.body_wait_ms is not None:
                        await wait_for_body(page, timeout_ms=job.body_wait_ms)
                    result = await stage(inspector)
        except Exception:
            logger.exception("browser run aborted")
            return Failure(ErrorCode.UNKNOWN, "unexpected error")

        elapsed_ms = int((time.monotonic() - started) * 1000)
        if isinstance(result, Failure):
            logger.warning("browser run failed: %s (%s) after %dms", result.code.value, result.detail, elapsed_ms)
        else:
            logger.info("browser run finished in %dms", elapsed_ms)
        return result


async def run_features(
    request: FeatureRequest,
    session_factory: SessionFactory = open_session,
    settings: Settings | None = None,
) -> list[TokenFeature] | Failure:
    settings = settings or get_settings()
    job = PageJob(
        endpoint="features",
        url=request.url,
        viewport=FEATURES_VIEWPORT,
        navigation_timeout_ms=settings.features_navigation_timeout_ms,
        wait_until="domcontentloaded",
        body_wait_ms=settings.features_body_wait_ms,
    )

    async def stage(inspector: PageInspector) -> list[TokenFeature] | Failure:
        return await extract_features(
            inspector,
            global_name=settings.features_global_name,
            timeout_ms=settings.features_read_timeout_ms,
        )

    return await run_page_job(job, stage, session_factory)


def capture_viewport_for(request: CaptureRequest) -> Viewport:
    if isinstance(request, ViewportCapture):
        return Viewport(request.res_x, request.res_y)
    return DEFAULT_CAPTURE_VIEWPORT


async def run_capture(
    request: CaptureRequest,
    session_factory: SessionFactory = open_session,
    settings: Settings | None = None,
) -> CaptureResult | Failure:
    settings = settings or get_settings()
    job = PageJob(
        endpoint="capture",
        url=request.url,
        viewport=capture_viewport_for(request),
        navigation_timeout_ms=settings.capture_navigation_timeout_ms,
    )

    async def stage(inspector: PageInspector) -> bytes | Failure:
        await wait_for_trigger(
            inspector,
            request.trigger,
            ceiling_ms=settings.trigger_ceiling_ms,
            event_name=settings.trigger_event_name,
        )
        return await take_capture(inspector, request)

    data = await run_page_job(job, stage, session_factory)
    if isinstance(data, Failure):
        return data

    # the session is closed by now; resizing happens outside the browser scope
    try:
        return await asyncio.to_thread(
            shrink_if_oversized,
            data,
            max_bytes=settings.max_image_bytes,
            max_dimension=settings.downscale_px,
        )
    except Exception:
        logger.exception("capture post-processing failed")
        return Failure(ErrorCode.UNKNOWN, "post-processing failed")
