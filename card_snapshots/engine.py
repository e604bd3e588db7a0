"""Headless rendering engine interface and its Playwright implementation.

The render orchestrator only talks to `RenderEngine`/`RenderSession`, so
any headless browser binding that can navigate, evaluate script, poll a
condition and take a screenshot can stand in (tests use an in-memory fake).

Sessions report waits that exceed the engine timeout as the builtin
`TimeoutError`; every other engine failure propagates as raised.
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from .utils import get_logger

logger = get_logger(__name__)

# Poll interval while waiting for the network to go mostly idle
_IDLE_POLL_MS = 50


class RenderSession(ABC):
    """One isolated browser instance with a single page open."""

    @abstractmethod
    def on_console(self, callback: Callable[[str], None]) -> None:
        """Call `callback` with the text of every console message the page logs."""
        ...

    @abstractmethod
    def navigate(self, url: str, max_inflight: int = 2, quiet_ms: int = 500) -> None:
        """
        Open `url` and wait until the network is mostly idle.

        Args:
            url: Page to open
            max_inflight: Most requests allowed in flight for the network to count as idle
            quiet_ms: How long the network has to stay idle
        """
        ...

    @abstractmethod
    def evaluate(self, expression: str, arg: Any = None) -> Any:
        """Evaluate a script (or function taking `arg`) in the page."""
        ...

    @abstractmethod
    def wait_for_function(self, expression: str) -> None:
        """Block until `expression` evaluates truthy in the page."""
        ...

    @abstractmethod
    def wait(self, ms: int) -> None:
        """Block for a fixed duration."""
        ...

    @abstractmethod
    def screenshot(self) -> bytes:
        """Capture the viewport as PNG bytes."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Shut the browser down. Safe to call more than once."""
        ...


class RenderEngine(ABC):
    """Factory for isolated render sessions."""

    @abstractmethod
    def launch(self, width: int, height: int) -> RenderSession:
        """Start a new browser with a fixed viewport and open a blank page."""
        ...


class PlaywrightSession(RenderSession):
    """Render session backed by a Playwright Chromium browser."""

    def __init__(self, playwright, browser, page, timeout_ms: int):
        self._playwright = playwright
        self._browser = browser
        self._page = page
        self._timeout_ms = timeout_ms
        self._closed = False

    def on_console(self, callback: Callable[[str], None]) -> None:
        self._page.on("console", lambda msg: callback(msg.text))

    def navigate(self, url: str, max_inflight: int = 2, quiet_ms: int = 500) -> None:
        from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

        # Playwright only knows "networkidle" (zero connections); track
        # requests ourselves to allow a few long-lived ones to stay open.
        inflight: set = set()
        listeners = {
            "request": inflight.add,
            "requestfinished": inflight.discard,
            "requestfailed": inflight.discard,
        }
        for event, handler in listeners.items():
            self._page.on(event, handler)

        try:
            try:
                self._page.goto(url, wait_until="domcontentloaded", timeout=self._timeout_ms)
            except PlaywrightTimeoutError as e:
                raise TimeoutError(f"Navigation to {url} timed out") from e

            deadline = time.monotonic() + self._timeout_ms / 1000
            quiet_since: Optional[float] = None
            while True:
                now = time.monotonic()
                if len(inflight) <= max_inflight:
                    if quiet_since is None:
                        quiet_since = now
                    elif (now - quiet_since) * 1000 >= quiet_ms:
                        break
                else:
                    quiet_since = None
                if now >= deadline:
                    raise TimeoutError(
                        f"Network never went idle for {url} ({len(inflight)} requests in flight)"
                    )
                self._page.wait_for_timeout(_IDLE_POLL_MS)
        finally:
            for event, handler in listeners.items():
                self._page.remove_listener(event, handler)

    def evaluate(self, expression: str, arg: Any = None) -> Any:
        return self._page.evaluate(expression, arg)

    def wait_for_function(self, expression: str) -> None:
        from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

        try:
            self._page.wait_for_function(expression, timeout=self._timeout_ms)
        except PlaywrightTimeoutError as e:
            raise TimeoutError(f"Timed out waiting for {expression}") from e

    def wait(self, ms: int) -> None:
        self._page.wait_for_timeout(ms)

    def screenshot(self) -> bytes:
        return self._page.screenshot(type="png", full_page=False)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._browser.close()
        finally:
            self._playwright.stop()


class PlaywrightEngine(RenderEngine):
    """Launches a fresh headless Chromium per render; nothing is pooled."""

    def __init__(
        self,
        browser_args: Optional[list[str]] = None,
        timeout_ms: int = 30000,
        headless: bool = True,
    ):
        self.browser_args = browser_args if browser_args is not None else ["--no-sandbox"]
        self.timeout_ms = timeout_ms
        self.headless = headless

    @classmethod
    def from_settings(cls, settings) -> "PlaywrightEngine":
        return cls(browser_args=settings.browser_args, timeout_ms=settings.render_timeout_ms)

    def launch(self, width: int, height: int) -> RenderSession:
        from playwright.sync_api import sync_playwright

        playwright = sync_playwright().start()
        try:
            browser = playwright.chromium.launch(headless=self.headless, args=self.browser_args)
            page = browser.new_page(viewport={"width": width, "height": height})
            page.set_default_timeout(self.timeout_ms)
        except BaseException:
            playwright.stop()
            raise

        logger.debug(f"Launched Chromium ({width}x{height}, args={self.browser_args})")
        return PlaywrightSession(playwright, browser, page, self.timeout_ms)
