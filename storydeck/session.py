"""
A single headless-browser page driven through Playwright's sync API.

Playwright talks to the browser over its own message channel; the sync API
blocks on each reply, so callers see plain sequential method calls.  Every
browser-side failure surfaces as SessionError (or a setup error during
launch and the first navigation).
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from storydeck.config import NAVIGATION_TIMEOUT_MS, VIEWPORT
from storydeck.errors import NavigationError, SessionError, SessionLaunchError

log = logging.getLogger(__name__)

_IS_DISABLED_JS = """el => el.classList.contains('disabled')
    || el.getAttribute('aria-disabled') === 'true'"""

# A DOM-level click, so overlays and visibility checks cannot block it.
_ACTIVATE_JS = "el => el.click()"


class ControlHandle:
    """A live element found by RenderSession.query()."""

    def __init__(self, element, selector: str):
        self._element = element
        self.selector = selector

    def is_disabled(self) -> bool:
        try:
            return bool(self._element.evaluate(_IS_DISABLED_JS))
        except PlaywrightError as e:
            raise SessionError(f"could not inspect {self.selector}: {e}") from e

    def activate(self) -> None:
        try:
            self._element.evaluate(_ACTIVATE_JS)
        except PlaywrightError as e:
            raise SessionError(f"could not activate {self.selector}: {e}") from e


class RenderSession:
    """One Chromium browser with one page at a fixed viewport."""

    def __init__(
        self,
        viewport: Optional[dict] = None,
        headless: bool = True,
        navigation_timeout_ms: int = NAVIGATION_TIMEOUT_MS,
    ):
        self.viewport = dict(viewport or VIEWPORT)
        self.headless = headless
        self.navigation_timeout_ms = navigation_timeout_ms
        self._playwright = None
        self._browser = None
        self._page = None

    # ── Lifecycle ────────────────────────────────────────────────────

    def open(self) -> "RenderSession":
        try:
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(headless=self.headless)
            self._page = self._browser.new_page(viewport=self.viewport)
        except PlaywrightError as e:
            self.close()
            raise SessionLaunchError(
                f"could not launch Chromium ({e}). "
                "Run: playwright install chromium"
            ) from e
        log.info(
            "Browser ready (%dx%d, %s)",
            self.viewport["width"], self.viewport["height"],
            "headless" if self.headless else "headed",
        )
        return self

    def close(self) -> None:
        for name in ("_browser", "_playwright"):
            resource = getattr(self, name)
            if resource is None:
                continue
            try:
                if name == "_playwright":
                    resource.stop()
                else:
                    resource.close()
            except PlaywrightError as e:
                log.warning("Error while closing %s: %s", name.strip("_"), e)
            setattr(self, name, None)
        self._page = None

    def __enter__(self) -> "RenderSession":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def page(self):
        if self._page is None:
            raise SessionError("render session is not open")
        return self._page

    # ── Commands ─────────────────────────────────────────────────────

    def navigate(self, url: str) -> None:
        try:
            self.page.goto(url, wait_until="load", timeout=self.navigation_timeout_ms)
        except PlaywrightError as e:
            raise NavigationError(f"could not load {url}: {e}") from e

    def wait(self, ms: int) -> None:
        try:
            self.page.wait_for_timeout(ms)
        except PlaywrightError as e:
            raise SessionError(f"page stopped responding: {e}") from e

    def evaluate(self, script: str, arg: Any = None) -> Any:
        try:
            return self.page.evaluate(script, arg)
        except PlaywrightError as e:
            raise SessionError(f"script evaluation failed: {e}") from e

    def screenshot(self) -> bytes:
        try:
            return self.page.screenshot(type="png", full_page=False)
        except PlaywrightError as e:
            raise SessionError(f"screenshot failed: {e}") from e

    def query(self, selector: str) -> Optional[ControlHandle]:
        try:
            element = self.page.query_selector(selector)
        except PlaywrightError as e:
            raise SessionError(f"query {selector!r} failed: {e}") from e
        if element is None:
            return None
        return ControlHandle(element, selector)
