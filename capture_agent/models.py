from __future__ import annotations

from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr


class CaptureMode(str, Enum):
    VIEWPORT = "VIEWPORT"
    CANVAS = "CANVAS"


class TriggerMode(str, Enum):
    DELAY = "DELAY"
    FN_TRIGGER = "FN_TRIGGER"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class DelayTrigger(_Frozen):
    mode: Literal[TriggerMode.DELAY] = TriggerMode.DELAY
    delay_ms: float = Field(..., ge=0, le=300000)


class EventTrigger(_Frozen):
    mode: Literal[TriggerMode.FN_TRIGGER] = TriggerMode.FN_TRIGGER


Trigger = Union[DelayTrigger, EventTrigger]


class ViewportCapture(_Frozen):
    mode: Literal[CaptureMode.VIEWPORT] = CaptureMode.VIEWPORT
    url: str
    trigger: Trigger
    res_x: int = Field(..., ge=256, le=2048)
    res_y: int = Field(..., ge=256, le=2048)


class CanvasCapture(_Frozen):
    mode: Literal[CaptureMode.CANVAS] = CaptureMode.CANVAS
    url: str
    trigger: Trigger
    canvas_selector: str = Field(..., min_length=1)


CaptureRequest = Union[ViewportCapture, CanvasCapture]


class FeatureRequest(_Frozen):
    url: str


class TokenFeature(_Frozen):
    name: str
    value: Union[StrictBool, StrictInt, StrictFloat, StrictStr]


class CaptureResult(_Frozen):
    data: bytes
    content_type: str = "image/png"

    @property
    def size(self) -> int:
        return len(self.data)
