"""End-to-end pipeline runs against fake browser sessions.

Every failure injection point must still release the session exactly once.
"""

from __future__ import annotations

import base64
from unittest.mock import AsyncMock

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from _fakes import FAKE_PNG, FakeSessions, make_page, png_bytes
from capture_agent.browser import Viewport
from capture_agent.errors import ErrorCode, Failure
from capture_agent.models import CanvasCapture, DelayTrigger, EventTrigger, FeatureRequest, TokenFeature, ViewportCapture
from capture_agent.navigation import navigate, wait_for_body
from capture_agent.pipeline import run_capture, run_features

URL = "https://ipfs.io/ipfs/QmArtwork/"


def _viewport_request(**kw) -> ViewportCapture:
    return ViewportCapture(url=URL, trigger=DelayTrigger(delay_ms=0), res_x=kw.get("res_x", 512), res_y=kw.get("res_y", 640))


def _canvas_request(selector: str = "canvas") -> CanvasCapture:
    return CanvasCapture(url=URL, trigger=DelayTrigger(delay_ms=0), canvas_selector=selector)


def _assert_released_once(sessions: FakeSessions) -> None:
    assert sessions.acquired == 1
    assert sessions.released == 1


# ── Navigation stage ────────────────────────────────────────────────


class TestNavigate:
    async def test_ok_returns_status(self):
        page = make_page()
        assert await navigate(page, URL, timeout_ms=1000) == 200
        page.goto.assert_awaited_once_with(URL, wait_until="load", timeout=1000)

    async def test_timeout(self):
        page = make_page()
        page.goto.side_effect = PlaywrightTimeoutError("Timeout 1000ms exceeded.")
        result = await navigate(page, URL, timeout_ms=1000)
        assert result.code == ErrorCode.TIMEOUT

    async def test_other_navigation_error_is_unknown(self):
        page = make_page()
        page.goto.side_effect = PlaywrightError("net::ERR_NAME_NOT_RESOLVED")
        result = await navigate(page, URL, timeout_ms=1000)
        assert result.code == ErrorCode.UNKNOWN

    @pytest.mark.parametrize("status", [404, 500, 301, 204])
    async def test_non_200_is_http_error(self, status):
        result = await navigate(make_page(status=status), URL, timeout_ms=1000)
        assert result.code == ErrorCode.HTTP_ERROR

    async def test_missing_response(self):
        page = make_page()
        page.goto.return_value = None
        result = await navigate(page, URL, timeout_ms=1000)
        assert result.code == ErrorCode.UNKNOWN

    async def test_body_wait_failure_tolerated(self):
        page = make_page()
        page.wait_for_selector.side_effect = PlaywrightTimeoutError("Timeout 10ms exceeded.")
        assert await wait_for_body(page, timeout_ms=10) is False


# ── Feature pipeline ────────────────────────────────────────────────


class TestRunFeatures:
    async def test_success(self, settings):
        page = make_page()
        page.evaluate.return_value = '{"size": "large", "count": 3, "rare": true, "nested": {"a": 1}}'
        sessions = FakeSessions(page)

        result = await run_features(FeatureRequest(url=URL), sessions, settings)

        assert result == [
            TokenFeature(name="size", value="large"),
            TokenFeature(name="count", value=3),
            TokenFeature(name="rare", value=True),
        ]
        assert sessions.viewports == [Viewport(32, 32)]
        page.goto.assert_awaited_once_with(URL, wait_until="domcontentloaded", timeout=1000)
        page.wait_for_selector.assert_awaited_once_with("body", timeout=100)
        _assert_released_once(sessions)

    async def test_no_global_is_empty(self, settings, sessions):
        assert await run_features(FeatureRequest(url=URL), sessions, settings) == []
        _assert_released_once(sessions)

    async def test_body_wait_timeout_still_extracts(self, settings):
        page = make_page()
        page.wait_for_selector.side_effect = PlaywrightTimeoutError("Timeout")
        page.evaluate.return_value = '{"a": 1}'
        sessions = FakeSessions(page)

        assert await run_features(FeatureRequest(url=URL), sessions, settings) == [TokenFeature(name="a", value=1)]
        _assert_released_once(sessions)

    async def test_evaluate_failure(self, settings):
        page = make_page()
        page.evaluate.side_effect = PlaywrightError("Target closed")
        sessions = FakeSessions(page)

        result = await run_features(FeatureRequest(url=URL), sessions, settings)

        assert result.code == ErrorCode.PAGE_EVALUATE_FAILED
        _assert_released_once(sessions)


# ── Capture pipeline ────────────────────────────────────────────────


class TestRunCapture:
    async def test_viewport_success(self, settings, sessions):
        result = await run_capture(_viewport_request(), sessions, settings)

        assert result.data == FAKE_PNG
        assert result.content_type == "image/png"
        assert sessions.viewports == [Viewport(512, 640)]
        sessions.page.goto.assert_awaited_once_with(URL, wait_until="load", timeout=1000)
        _assert_released_once(sessions)

    async def test_canvas_success_uses_default_viewport(self, settings):
        page = make_page()
        page.eval_on_selector.return_value = "data:image/png;base64," + base64.b64encode(FAKE_PNG).decode()
        sessions = FakeSessions(page)

        result = await run_capture(_canvas_request("#art"), sessions, settings)

        assert result.data == FAKE_PNG
        assert sessions.viewports == [Viewport(800, 800)]
        page.screenshot.assert_not_awaited()
        _assert_released_once(sessions)

    async def test_event_trigger_then_capture(self, settings):
        page = make_page()
        page.evaluate.return_value = True
        sessions = FakeSessions(page)
        request = ViewportCapture(url=URL, trigger=EventTrigger(), res_x=256, res_y=256)

        result = await run_capture(request, sessions, settings)

        assert result.data == FAKE_PNG
        assert page.evaluate.await_args.args[1] == settings.trigger_event_name

    async def test_oversized_capture_is_jpeg(self, settings):
        big = png_bytes((2048, 1024))
        sessions = FakeSessions(make_page(screenshot=big))
        small_limit = settings.model_copy(update={"max_image_bytes": len(big)})

        result = await run_capture(_viewport_request(), sessions, small_limit)

        assert result.content_type == "image/jpeg"
        _assert_released_once(sessions)

    async def test_undecodable_oversized_capture_is_unknown(self, settings):
        sessions = FakeSessions(make_page(screenshot=b"x" * 64))
        tiny_limit = settings.model_copy(update={"max_image_bytes": 1})

        result = await run_capture(_viewport_request(), sessions, tiny_limit)

        assert result.code == ErrorCode.UNKNOWN
        _assert_released_once(sessions)


def _nav_timeout(page):
    page.goto.side_effect = PlaywrightTimeoutError("Timeout")


def _nav_error(page):
    page.goto.side_effect = PlaywrightError("net::ERR_CONNECTION_RESET")


def _http_error(page):
    page.goto.return_value.status = 502


def _canvas_missing(page):
    page.eval_on_selector.side_effect = PlaywrightError("no element")


def _page_crash(page):
    page.eval_on_selector = AsyncMock(side_effect=RuntimeError("page crashed"))


@pytest.mark.parametrize(
    "inject,expected",
    [
        (_nav_timeout, ErrorCode.TIMEOUT),
        (_nav_error, ErrorCode.UNKNOWN),
        (_http_error, ErrorCode.HTTP_ERROR),
        (_canvas_missing, ErrorCode.CANVAS_CAPTURE_FAILED),
        (_page_crash, ErrorCode.UNKNOWN),
    ],
)
async def test_capture_failure_releases_session_once(settings, inject, expected):
    page = make_page()
    inject(page)
    sessions = FakeSessions(page)

    result = await run_capture(_canvas_request(), sessions, settings)

    assert isinstance(result, Failure)
    assert result.code == expected
    _assert_released_once(sessions)


async def test_launch_failure_is_unknown_and_released(settings):
    sessions = FakeSessions(launch_error=RuntimeError("Executable doesn't exist"))

    result = await run_capture(_viewport_request(), sessions, settings)

    assert result.code == ErrorCode.UNKNOWN
    _assert_released_once(sessions)


async def test_feature_navigation_failure_released(settings):
    page = make_page()
    _nav_timeout(page)
    sessions = FakeSessions(page)

    result = await run_features(FeatureRequest(url=URL), sessions, settings)

    assert result.code == ErrorCode.TIMEOUT
    page.evaluate.assert_not_awaited()
    _assert_released_once(sessions)
