"""Renders card screenshots by driving a headless browser.

The rendering host page is card-agnostic: it loads the card renderer and
then waits for the card to be injected through a global function, instead
of fetching it from the database. After injection the page sets a global
flag once the card has been laid out and painted.
"""

import json
from contextlib import contextmanager
from typing import Callable, Optional
from urllib.parse import quote

from .engine import PlaywrightEngine, RenderEngine, RenderSession
from .exceptions import InjectionHookMissingError, RenderError, RenderTimeoutError
from .models import Card, RelatedCards, related_cards_to_dict
from .utils import get_logger

logger = get_logger(__name__)

SCREENSHOT_WIDTH = 1330
SCREENSHOT_HEIGHT = 768

# Stages in the order they run
STAGES = (
    "launch",
    "navigate",
    "await_injection_hook",
    "inject",
    "await_fonts",
    "await_render",
    "settle",
    "capture",
)


def default_card_url(card_id: str) -> str:
    return f"http://localhost:8081/basic-card/{quote(card_id, safe='')}"


class CardRenderer:
    """Produces a PNG screenshot for a card, one fresh browser per call."""

    def __init__(
        self,
        engine: Optional[RenderEngine] = None,
        card_url: Callable[[str], str] = default_card_url,
        width: int = SCREENSHOT_WIDTH,
        height: int = SCREENSHOT_HEIGHT,
        inject_function: str = "injectFetchedCard",
        rendered_variable: str = "basicCardRendered",
        settle_ms: int = 1000,
        network_idle_max_inflight: int = 2,
        network_idle_quiet_ms: int = 500,
    ):
        """
        Initialize the renderer.

        Args:
            engine: Headless engine to launch sessions from (Playwright by default)
            card_url: Maps a card id to the URL of the rendering host page
            width: Viewport width in pixels
            height: Viewport height in pixels
            inject_function: Global function the page exposes to accept (card, related cards)
            rendered_variable: Global the page sets truthy once the card is rendered
            settle_ms: Extra wait after the render signal, for the card's fade-in
            network_idle_max_inflight: Requests allowed in flight when navigation counts as done
            network_idle_quiet_ms: How long the network has to stay that quiet
        """
        self.engine = engine or PlaywrightEngine()
        self.card_url = card_url
        self.width = width
        self.height = height
        self.inject_function = inject_function
        self.rendered_variable = rendered_variable
        self.settle_ms = settle_ms
        self.network_idle_max_inflight = network_idle_max_inflight
        self.network_idle_quiet_ms = network_idle_quiet_ms

    @classmethod
    def from_settings(cls, settings, engine: Optional[RenderEngine] = None) -> "CardRenderer":
        """Create a renderer from application settings."""
        return cls(
            engine=engine or PlaywrightEngine.from_settings(settings),
            card_url=settings.basic_card_url,
            width=settings.screenshot_width,
            height=settings.screenshot_height,
            inject_function=settings.inject_card_function,
            rendered_variable=settings.card_rendered_variable,
            settle_ms=settings.render_settle_ms,
            network_idle_max_inflight=settings.network_idle_max_inflight,
            network_idle_quiet_ms=settings.network_idle_quiet_ms,
        )

    def render(self, card: Card, related_cards: RelatedCards) -> bytes:
        """
        Render a screenshot of a card.

        Args:
            card: Card to render; injected into the page as-is
            related_cards: Cards linked from `card`, keyed by id

        Returns:
            PNG bytes

        Raises:
            RenderError: If any stage fails or times out. The browser is
                closed before the error propagates.
        """
        logger.info(f"Rendering screenshot for card {card.id}")

        with self._stage("launch", card):
            session = self.engine.launch(self.width, self.height)

        try:
            return self._run(session, card, related_cards)
        finally:
            self._close(session, card)

    def _close(self, session: RenderSession, card: Card) -> None:
        """Tear the browser down; a failed close never masks the render result."""
        try:
            session.close()
        except Exception as e:
            logger.warning(f"Closing browser for card {card.id} failed: {e}")
        else:
            logger.debug(f"Closed browser for card {card.id}")

    def _run(self, session: RenderSession, card: Card, related_cards: RelatedCards) -> bytes:
        session.on_console(_log_page_console)

        # Only wait for a mostly idle network: the real card data hasn't
        # been handed to the page yet.
        with self._stage("navigate", card):
            session.navigate(
                self.card_url(card.id),
                max_inflight=self.network_idle_max_inflight,
                quiet_ms=self.network_idle_quiet_ms,
            )

        inject_ref = f"window[{json.dumps(self.inject_function)}]"
        with self._stage("await_injection_hook", card):
            session.wait_for_function(f"{inject_ref} !== undefined")

        # Short-circuits the page's own fetch of the card
        with self._stage("inject", card):
            session.evaluate(
                f"([card, cards]) => {inject_ref}(card, cards)",
                [card.to_dict(), related_cards_to_dict(related_cards)],
            )

        # Screenshots taken before this fall back to the wrong fonts
        with self._stage("await_fonts", card):
            session.wait_for_function("document.fonts.status == 'loaded'")

        with self._stage("await_render", card):
            session.wait_for_function(f"window[{json.dumps(self.rendered_variable)}]")

        # The card fades in after it signals rendered; there is no event for that
        with self._stage("settle", card):
            session.wait(self.settle_ms)

        with self._stage("capture", card):
            png = session.screenshot()

        logger.info(f"Rendered screenshot for card {card.id} ({len(png)} bytes)")
        return png

    @contextmanager
    def _stage(self, stage: str, card: Card):
        logger.debug(f"Card {card.id}: {stage}")
        try:
            yield
        except RenderError:
            raise
        except TimeoutError as e:
            error_cls = InjectionHookMissingError if stage == "await_injection_hook" else RenderTimeoutError
            logger.error(f"Card {card.id}: {stage} timed out: {e}")
            raise error_cls(f"Render of card {card.id} timed out during {stage}", stage=stage, original=e) from e
        except Exception as e:
            logger.error(f"Card {card.id}: {stage} failed: {e}")
            raise RenderError(f"Render of card {card.id} failed during {stage}: {e}", stage=stage, original=e) from e


def _log_page_console(text: str) -> None:
    logger.info(f"Page logged via console: {text}")
