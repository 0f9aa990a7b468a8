from __future__ import annotations

from playwright.async_api import Page


_READ_GLOBAL_JS = "(name) => JSON.stringify(window[name])"

_WAIT_EVENT_JS = """(name) => new Promise((resolve) => {
    window.addEventListener(name, () => resolve(true), { once: true });
})"""

_CANVAS_DATA_URL_JS = """(el) => {
    if (!el || el.tagName !== "CANVAS") return null;
    return el.toDataURL();
}"""


class PageInspector:
    """Narrow view of a page: the few in-page reads the pipeline needs."""

    def __init__(self, page: Page):
        self.page = page

    async def read_global(self, name: str) -> str | None:
        """JSON text of `window[name]`, or None when it is undefined."""
        return await self.page.evaluate(_READ_GLOBAL_JS, name)

    async def wait_for_event(self, name: str) -> bool:
        return bool(await self.page.evaluate(_WAIT_EVENT_JS, name))

    async def canvas_data_url(self, selector: str) -> str | None:
        """Raises when nothing matches `selector`; None when it is not a canvas."""
        return await self.page.eval_on_selector(selector, _CANVAS_DATA_URL_JS)

    async def screenshot(self) -> bytes:
        return await self.page.screenshot(type="png")
