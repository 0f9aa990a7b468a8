"""Generative feature extraction.

Artwork pages may expose their generative parameters as a global object. The
export is third-party code, so anything malformed degrades to an empty list;
only a failure to read the page at all is an error.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from playwright.async_api import Error as PlaywrightError

from .errors import ErrorCode, Failure
from .inspector import PageInspector
from .models import TokenFeature
from .signals import race

logger = logging.getLogger(__name__)

_PRIMITIVES = (bool, str, int, float)


def parse_features(raw: Any) -> list[TokenFeature]:
    """Keep the primitive-valued entries of a feature object, in source order."""
    if not isinstance(raw, dict):
        return []
    return [
        TokenFeature(name=name, value=value)
        for name, value in raw.items()
        if isinstance(value, _PRIMITIVES)
    ]


def decode_features(text: str | None) -> list[TokenFeature]:
    if not text:
        return []
    try:
        raw = json.loads(text)
    except ValueError:
        logger.info("feature export is not valid JSON")
        return []
    return parse_features(raw)


async def extract_features(
    inspector: PageInspector,
    *,
    global_name: str,
    timeout_ms: int,
) -> list[TokenFeature] | Failure:
    try:
        text = await race(
            inspector.read_global(global_name),
            asyncio.sleep(timeout_ms / 1000, None),
        )
    except PlaywrightError as e:
        return Failure(ErrorCode.PAGE_EVALUATE_FAILED, e.message)

    if text is None:
        logger.info("no %s exported by the page", global_name)
    return decode_features(text)
