from __future__ import annotations

import io
import logging

from PIL import Image

from .models import CaptureResult

logger = logging.getLogger(__name__)


def _flatten(img: Image.Image) -> Image.Image:
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return img.convert("RGB")


def shrink_if_oversized(
    data: bytes,
    *,
    max_bytes: int,
    max_dimension: int = 1024,
    content_type: str = "image/png",
) -> CaptureResult:
    """Re-encode captures of `max_bytes` or more as a bounded JPEG.

    The longest side is brought down to `max_dimension` keeping the aspect
    ratio; smaller images are never upscaled.
    """
    if len(data) < max_bytes:
        return CaptureResult(data=data, content_type=content_type)

    with Image.open(io.BytesIO(data)) as img:
        img.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)
        out = io.BytesIO()
        _flatten(img).save(out, format="JPEG", quality=100)

    result = CaptureResult(data=out.getvalue(), content_type="image/jpeg")
    logger.info("capture re-encoded: %d -> %d bytes", len(data), result.size)
    return result
