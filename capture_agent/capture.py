from __future__ import annotations

import base64
import binascii
import re

from playwright.async_api import Error as PlaywrightError

from .errors import ErrorCode, Failure
from .inspector import PageInspector
from .models import CanvasCapture, CaptureRequest

_PNG_DATA_URL_PREFIX = re.compile(r"^data:image/png;base64,")


async def capture_viewport(inspector: PageInspector) -> bytes:
    return await inspector.screenshot()


def decode_data_url(data_url: str) -> bytes:
    payload = _PNG_DATA_URL_PREFIX.sub("", data_url, count=1)
    return base64.b64decode(payload, validate=True)


async def capture_canvas(inspector: PageInspector, selector: str) -> bytes | Failure:
    try:
        data_url = await inspector.canvas_data_url(selector)
    except PlaywrightError as e:
        return Failure(ErrorCode.CANVAS_CAPTURE_FAILED, e.message)
    if not data_url:
        return Failure(ErrorCode.CANVAS_CAPTURE_FAILED, f"{selector!r} is not a canvas")

    try:
        data = decode_data_url(data_url)
    except (binascii.Error, ValueError) as e:
        return Failure(ErrorCode.CANVAS_CAPTURE_FAILED, f"bad data url: {e}")
    if not data:
        return Failure(ErrorCode.CANVAS_CAPTURE_FAILED, "canvas produced no image data")
    return data


async def take_capture(inspector: PageInspector, request: CaptureRequest) -> bytes | Failure:
    if isinstance(request, CanvasCapture):
        return await capture_canvas(inspector, request.canvas_selector)
    return await capture_viewport(inspector)
