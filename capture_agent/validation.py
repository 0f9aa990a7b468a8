"""Request validation for both endpoints.

Runs before any browser is launched. Each parser is a pure function of the raw
JSON body and returns either a typed request or a `Failure`; the first rule
that fails decides the error code.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from typing import Any

from .config import get_settings
from .errors import ErrorCode, Failure
from .models import (
    CanvasCapture,
    CaptureMode,
    CaptureRequest,
    DelayTrigger,
    EventTrigger,
    FeatureRequest,
    Trigger,
    TriggerMode,
    ViewportCapture,
)


DELAY_MIN_MS = 0
DELAY_MAX_MS = 300000
RES_MIN = 256
RES_MAX = 2048

_CAPTURE_FIELDS = frozenset({"url", "mode", "triggerMode", "delay", "resX", "resY", "canvasSelector"})
_VIEWPORT_ONLY = ("resX", "resY")
_CANVAS_ONLY = ("canvasSelector",)


def is_url_allowed(url: Any, prefixes: Iterable[str] | None = None) -> bool:
    if not isinstance(url, str) or not url:
        return False
    if prefixes is None:
        prefixes = get_settings().allowed_url_prefixes
    return any(url.startswith(p) for p in prefixes)


def _finite_number(value: Any) -> float | None:
    # bools are ints in Python but never a valid number here
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _parse_trigger(body: dict[str, Any]) -> Trigger | Failure:
    raw_mode = body.get("triggerMode")
    if raw_mode is None:
        raw_mode = TriggerMode.DELAY.value
    if raw_mode not in (TriggerMode.DELAY.value, TriggerMode.FN_TRIGGER.value):
        return Failure(ErrorCode.INVALID_TRIGGER_PARAMETERS, f"unknown triggerMode {raw_mode!r}")

    if raw_mode == TriggerMode.FN_TRIGGER.value:
        if body.get("delay") is not None:
            return Failure(ErrorCode.INVALID_TRIGGER_PARAMETERS, "delay is only valid with DELAY")
        return EventTrigger()

    delay = _finite_number(body.get("delay"))
    if delay is None or not (DELAY_MIN_MS <= delay <= DELAY_MAX_MS):
        return Failure(ErrorCode.INVALID_TRIGGER_PARAMETERS, "delay out of range")
    return DelayTrigger(delay_ms=delay)


def _present(body: dict[str, Any], names: Iterable[str]) -> list[str]:
    return [n for n in names if body.get(n) is not None]


def parse_capture_request(body: Any, prefixes: Iterable[str] | None = None) -> CaptureRequest | Failure:
    if not isinstance(body, dict):
        return Failure(ErrorCode.MISSING_PARAMETERS, "body is not an object")

    url = body.get("url")
    mode = body.get("mode")
    if not url or not mode:
        return Failure(ErrorCode.MISSING_PARAMETERS, "url and mode are required")
    if not is_url_allowed(url, prefixes):
        return Failure(ErrorCode.UNSUPPORTED_URL)
    if mode not in (CaptureMode.VIEWPORT.value, CaptureMode.CANVAS.value):
        return Failure(ErrorCode.MISSING_PARAMETERS, f"unknown mode {mode!r}")

    trigger = _parse_trigger(body)
    if isinstance(trigger, Failure):
        return trigger

    unknown = sorted(set(body) - _CAPTURE_FIELDS)
    if unknown:
        return Failure(ErrorCode.INVALID_PARAMETERS, f"unexpected fields {unknown}")

    if mode == CaptureMode.VIEWPORT.value:
        if body.get("resX") is None or body.get("resY") is None:
            return Failure(ErrorCode.MISSING_PARAMETERS, "resX and resY are required")
        res_x = _finite_number(body["resX"])
        res_y = _finite_number(body["resY"])
        if res_x is None or res_y is None:
            return Failure(ErrorCode.INVALID_PARAMETERS, "resX/resY must be numbers")
        res_x, res_y = _round_half_up(res_x), _round_half_up(res_y)
        if not (RES_MIN <= res_x <= RES_MAX and RES_MIN <= res_y <= RES_MAX):
            return Failure(ErrorCode.INVALID_PARAMETERS, f"resolution {res_x}x{res_y} out of range")
        if _present(body, _CANVAS_ONLY):
            return Failure(ErrorCode.INVALID_PARAMETERS, "canvasSelector is only valid with CANVAS")
        return ViewportCapture(url=url, trigger=trigger, res_x=res_x, res_y=res_y)

    selector = body.get("canvasSelector")
    if not isinstance(selector, str) or not selector.strip():
        return Failure(ErrorCode.INVALID_PARAMETERS, "canvasSelector is required")
    if _present(body, _VIEWPORT_ONLY):
        return Failure(ErrorCode.INVALID_PARAMETERS, "resX/resY are only valid with VIEWPORT")
    return CanvasCapture(url=url, trigger=trigger, canvas_selector=selector)


def parse_feature_request(body: Any, prefixes: Iterable[str] | None = None) -> FeatureRequest | Failure:
    if not isinstance(body, dict) or not body.get("url"):
        return Failure(ErrorCode.MISSING_PARAMETERS, "url is required")
    url = body["url"]
    if not is_url_allowed(url, prefixes):
        return Failure(ErrorCode.UNSUPPORTED_URL)
    return FeatureRequest(url=url)
