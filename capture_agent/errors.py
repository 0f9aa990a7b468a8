from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorCode(str, Enum):
    UNKNOWN = "UNKNOWN"
    HTTP_ERROR = "HTTP_ERROR"
    MISSING_PARAMETERS = "MISSING_PARAMETERS"
    INVALID_TRIGGER_PARAMETERS = "INVALID_TRIGGER_PARAMETERS"
    INVALID_PARAMETERS = "INVALID_PARAMETERS"
    UNSUPPORTED_URL = "UNSUPPORTED_URL"
    CANVAS_CAPTURE_FAILED = "CANVAS_CAPTURE_FAILED"
    TIMEOUT = "TIMEOUT"
    PAGE_EVALUATE_FAILED = "PAGE_EVALUATE_FAILED"


@dataclass(frozen=True)
class Failure:
    """A stage outcome that ends the request.

    `detail` is for logs only and never reaches the caller.
    """

    code: ErrorCode
    detail: str | None = None


def to_error_code(signal: object) -> ErrorCode:
    """Map any failure signal onto the closed error vocabulary."""
    if isinstance(signal, Failure):
        return signal.code
    if isinstance(signal, ErrorCode):
        return signal
    if isinstance(signal, str):
        try:
            return ErrorCode(signal)
        except ValueError:
            return ErrorCode.UNKNOWN
    return ErrorCode.UNKNOWN
