from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from dotenv import load_dotenv

from .browser import SessionFactory, install_font, open_session
from .config import get_settings
from .errors import ErrorCode, Failure, to_error_code
from .logging_config import configure as configure_logging
from .pipeline import run_capture, run_features
from .validation import parse_capture_request, parse_feature_request


# Local development reads settings from the repo root .env
_HERE = Path(__file__).resolve()
load_dotenv(_HERE.parents[1] / ".env", override=False)

_settings = get_settings()
configure_logging(json_output=_settings.log_json, level=_settings.log_level)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await asyncio.to_thread(install_font, get_settings().font_path)
    yield


app = FastAPI(title="Token Capture Agent", version="0.1.0", lifespan=lifespan)

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
}


@app.middleware("http")
async def cors_headers(request: Request, call_next):
    # Preflight never reaches a handler, so it can never start a browser.
    if request.method == "OPTIONS":
        return Response(status_code=204, headers=_CORS_HEADERS)
    response = await call_next(request)
    response.headers.update(_CORS_HEADERS)
    return response


def get_session_factory() -> SessionFactory:
    return open_session


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError, RecursionError):
        return None


async def _parse(request: Request, parser: Callable[..., Any]) -> Any:
    try:
        return parser(await _json_body(request), get_settings().allowed_url_prefixes)
    except Exception:
        logger.exception("request body could not be validated")
        return Failure(ErrorCode.UNKNOWN, "unreadable request")


def _capture_error(failure: Failure) -> PlainTextResponse:
    return PlainTextResponse(to_error_code(failure).value, status_code=500)


def _features_error(failure: Failure) -> JSONResponse:
    return JSONResponse({"error": to_error_code(failure).value}, status_code=400)


@app.get("/healthz")
def healthz():
    return {"ok": True}


@app.post("/features")
async def features_endpoint(request: Request, session_factory: SessionFactory = Depends(get_session_factory)):
    req = await _parse(request, parse_feature_request)
    if isinstance(req, Failure):
        logger.info("features request rejected: %s", req.code.value)
        return _features_error(req)

    features = await run_features(req, session_factory)
    if isinstance(features, Failure):
        return _features_error(features)
    return JSONResponse([f.model_dump() for f in features])


@app.post("/capture")
async def capture_endpoint(request: Request, session_factory: SessionFactory = Depends(get_session_factory)):
    req = await _parse(request, parse_capture_request)
    if isinstance(req, Failure):
        logger.info("capture request rejected: %s (%s)", req.code.value, req.detail)
        return _capture_error(req)

    shot = await run_capture(req, session_factory)
    if isinstance(shot, Failure):
        return _capture_error(shot)
    return Response(content=shot.data, media_type=shot.content_type, headers={"cache-control": "no-store"})
