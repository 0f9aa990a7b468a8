from __future__ import annotations

import os
from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_ALLOWED_URL_PREFIXES = (
    "https://ipfs.io/ipfs/",
    "https://gateway.fxhash.xyz/ipfs/",
    "https://gateway.fxhash2.xyz/ipfs/",
    "https://gateway.fxhash-dev.xyz/ipfs/",
    "https://gateway.fxhash-dev2.xyz/ipfs/",
)

DEFAULT_CHROMIUM_ARGS = (
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
)


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    return tuple(v.strip() for v in raw.split(",") if v.strip())


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    allowed_url_prefixes: tuple[str, ...] = DEFAULT_ALLOWED_URL_PREFIXES

    capture_navigation_timeout_ms: int = Field(300000, gt=0)
    features_navigation_timeout_ms: int = Field(90000, gt=0)
    features_body_wait_ms: int = Field(10000, ge=0)
    features_read_timeout_ms: int = Field(10000, ge=0)
    trigger_ceiling_ms: int = Field(300000, ge=0)

    max_image_bytes: int = Field(10 * 1024 * 1024, gt=0)
    downscale_px: int = Field(1024, gt=0)

    features_global_name: str = "$fxhashFeatures"
    trigger_event_name: str = "fxhash-preview"

    chromium_executable_path: str | None = None
    chromium_args: tuple[str, ...] = DEFAULT_CHROMIUM_ARGS
    font_path: str | None = None

    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            allowed_url_prefixes=_env_list("CAPTURE_ALLOWED_URL_PREFIXES", DEFAULT_ALLOWED_URL_PREFIXES),
            capture_navigation_timeout_ms=_env_int("CAPTURE_NAVIGATION_TIMEOUT_MS", 300000),
            features_navigation_timeout_ms=_env_int("FEATURES_NAVIGATION_TIMEOUT_MS", 90000),
            features_body_wait_ms=_env_int("FEATURES_BODY_WAIT_MS", 10000),
            features_read_timeout_ms=_env_int("FEATURES_READ_TIMEOUT_MS", 10000),
            trigger_ceiling_ms=_env_int("CAPTURE_TRIGGER_CEILING_MS", 300000),
            max_image_bytes=_env_int("CAPTURE_MAX_IMAGE_BYTES", 10 * 1024 * 1024),
            downscale_px=_env_int("CAPTURE_DOWNSCALE_PX", 1024),
            features_global_name=os.getenv("FEATURES_GLOBAL_NAME") or "$fxhashFeatures",
            trigger_event_name=os.getenv("CAPTURE_TRIGGER_EVENT") or "fxhash-preview",
            chromium_executable_path=os.getenv("CHROMIUM_EXECUTABLE_PATH") or None,
            chromium_args=_env_list("CHROMIUM_ARGS", DEFAULT_CHROMIUM_ARGS),
            font_path=os.getenv("CAPTURE_FONT_PATH") or None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_json=_env_bool("LOG_JSON"),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
