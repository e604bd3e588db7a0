"""Fetches card screenshots, rendering and caching them on a miss."""

import threading
from concurrent.futures import Future
from typing import Optional

from .adapters import CardSource
from .fingerprint import FingerprintBuilder
from .models import Card, RelatedCards
from .renderer import CardRenderer
from .storage import ScreenshotStore
from .utils import get_logger

logger = get_logger(__name__)


class ScreenshotCoordinator:
    """Serves card screenshots from the store, rendering the ones that are missing.

    Only published cards are ever rendered or cached. Render and storage
    failures propagate to the caller; nothing is retried here.
    """

    def __init__(
        self,
        fingerprints: FingerprintBuilder,
        store: ScreenshotStore,
        renderer: CardRenderer,
        card_source: Optional[CardSource] = None,
        cache_disabled: bool = False,
        single_flight: bool = True,
    ):
        """
        Initialize the coordinator.

        Args:
            fingerprints: Builds cache keys for cards
            store: Where screenshots are cached
            renderer: Renders screenshots on a cache miss
            card_source: Data layer used to resolve cards by id or slug
            cache_disabled: Ignore cached screenshots (new ones are still written)
            single_flight: Share one render between concurrent requests for the same key
        """
        self.fingerprints = fingerprints
        self.store = store
        self.renderer = renderer
        self.card_source = card_source
        self.cache_disabled = cache_disabled
        self.single_flight = single_flight
        self._in_flight: dict[str, Future] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings) -> "ScreenshotCoordinator":
        """Wire up a coordinator from application settings."""
        from .adapters import HttpCardSource
        from .storage import create_store

        card_source = HttpCardSource.from_settings(settings) if settings.card_api_base_url else None
        return cls(
            fingerprints=FingerprintBuilder.from_settings(settings),
            store=create_store(settings),
            renderer=CardRenderer.from_settings(settings),
            card_source=card_source,
            cache_disabled=settings.screenshot_cache_disabled,
            single_flight=settings.single_flight_renders,
        )

    def fingerprint_for(self, card: Card, related_cards: RelatedCards) -> str:
        """Cache key the card's screenshot is stored under."""
        return self.fingerprints.compute(card, related_cards)

    def fetch_screenshot_by_id_or_slug(self, id_or_slug: str) -> Optional[bytes]:
        """
        Fetch the screenshot of a card identified by id or slug.

        Args:
            id_or_slug: Card id or slug

        Returns:
            PNG bytes, or None if no such card exists or it isn't published
        """
        if self.card_source is None:
            raise ValueError("A card source is required to look cards up by id or slug")

        card = self.card_source.get_card_by_id_or_slug(id_or_slug)
        if not card:
            logger.warning(f"No such card: {id_or_slug}")
            return None
        return self.fetch_screenshot(card)

    def fetch_screenshot(
        self,
        card: Optional[Card],
        related_cards: Optional[RelatedCards] = None,
    ) -> Optional[bytes]:
        """
        Fetch the screenshot of a card, rendering it if it isn't cached.

        Args:
            card: Card to screenshot
            related_cards: Cards linked from `card`, keyed by id. Fetched
                from the card source when omitted.

        Returns:
            PNG bytes, or None if the card is missing or unpublished
        """
        if not card:
            logger.warning("No card provided")
            return None
        if not card.published:
            logger.warning(f"The card {card.id} wasn't published")
            return None

        if related_cards is None:
            related_cards = self.card_source.get_related_cards_for_card(card) if self.card_source else {}

        key = self.fingerprint_for(card, related_cards)

        if self.store.exists(key):
            if self.cache_disabled:
                logger.info(f"Screenshot {key} exists in cache, but the cache has been disabled.")
            else:
                logger.info(f"Serving cached screenshot {key}")
                return self.store.read(key)

        logger.info(f"Screenshot {key} didn't exist in storage, creating.")
        if not self.single_flight:
            return self._render_and_store(key, card, related_cards)
        return self._render_once(key, card, related_cards)

    def _render_once(self, key: str, card: Card, related_cards: RelatedCards) -> bytes:
        """Render `key`, or wait for the render another caller already started."""
        with self._lock:
            future = self._in_flight.get(key)
            owner = future is None
            if owner:
                future = Future()
                self._in_flight[key] = future

        if not owner:
            logger.info(f"Waiting on in-flight render of {key}")
            return future.result()

        try:
            png = self._render_and_store(key, card, related_cards)
        except BaseException as e:
            future.set_exception(e)
            raise
        else:
            future.set_result(png)
            return png
        finally:
            with self._lock:
                self._in_flight.pop(key, None)

    def _render_and_store(self, key: str, card: Card, related_cards: RelatedCards) -> bytes:
        png = self.renderer.render(card, related_cards)
        self.store.write(key, png)
        logger.info(f"Stored screenshot {key} ({len(png)} bytes)")
        return png
