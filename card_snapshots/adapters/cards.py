"""Card data layer adapter interface and implementations.

The screenshot pipeline needs two lookups from the data layer:
- resolve a card by id or slug
- fetch the cards linked from a card (at least their published flag)
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable, Mapping, Optional
from urllib.parse import quote

import requests

from ..exceptions import CardSourceError
from ..models import Card, RelatedCard, related_cards_from_dict
from ..utils import get_logger, http_retry

logger = get_logger(__name__)


class CardSource(ABC):
    """Abstract base class for card data access.

    Implement this interface to plug in a different data layer:
    - HTTP/JSON card API
    - In-memory cards for tests and local runs
    """

    @abstractmethod
    def get_card_by_id_or_slug(self, id_or_slug: str) -> Optional[Card]:
        """
        Look up a card by its id, falling back to its slugs.

        Args:
            id_or_slug: Card id or one of the card's slugs

        Returns:
            The card, or None if no card matches
        """
        pass

    @abstractmethod
    def get_related_cards_for_card(self, card: Card) -> dict[str, RelatedCard]:
        """
        Fetch the cards linked from a card.

        Args:
            card: Card whose links to resolve

        Returns:
            Related cards keyed by card id
        """
        pass


class InMemoryCardSource(CardSource):
    """Card source over a fixed set of cards."""

    def __init__(self, cards: Iterable[Card] = ()):
        self._cards: dict[str, Card] = {}
        for card in cards:
            self.add(card)

    def add(self, card: Card) -> None:
        self._cards[card.id] = card

    def get_card_by_id_or_slug(self, id_or_slug: str) -> Optional[Card]:
        card = self._cards.get(id_or_slug)
        if card:
            return card
        for candidate in self._cards.values():
            if id_or_slug in candidate.slugs:
                return candidate
        return None

    def get_related_cards_for_card(self, card: Card) -> dict[str, RelatedCard]:
        # Links to cards that don't exist are left out, same as the HTTP API
        return {
            link_id: RelatedCard(published=self._cards[link_id].published)
            for link_id in card.links
            if link_id in self._cards
        }


class HttpCardSource(CardSource):
    """Card source backed by the card JSON API.

    Endpoints:
        GET {base_url}/cards/{id_or_slug}          -> card record, 404 if missing
        GET {base_url}/cards/{id}/link-cards       -> {card_id: {"published": bool, ...}}
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._session = session or requests.Session()
        self._session.headers.update({"Accept": "application/json"})

    @classmethod
    def from_settings(cls, settings) -> "HttpCardSource":
        if not settings.card_api_base_url:
            raise ValueError("CARD_API_BASE_URL must be set to look up cards")
        return cls(settings.card_api_base_url, timeout_seconds=settings.card_api_timeout_seconds)

    @http_retry
    def _fetch(self, url: str) -> requests.Response:
        return self._session.get(url, timeout=self.timeout_seconds)

    def _get_json(self, path: str) -> Optional[Any]:
        """GET a JSON document, returning None on 404."""
        url = f"{self.base_url}{path}"
        try:
            response = self._fetch(url)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            raise CardSourceError(f"Card API request failed for {url}: {e}") from e

    def get_card_by_id_or_slug(self, id_or_slug: str) -> Optional[Card]:
        data = self._get_json(f"/cards/{quote(id_or_slug, safe='')}")
        if data is None:
            return None
        if not isinstance(data, Mapping) or "id" not in data:
            raise CardSourceError(f"Malformed card record for {id_or_slug}")
        return Card.from_dict(data)

    def get_related_cards_for_card(self, card: Card) -> dict[str, RelatedCard]:
        data = self._get_json(f"/cards/{quote(card.id, safe='')}/link-cards")
        if data is None:
            logger.debug(f"No link cards endpoint result for {card.id}")
            return {}
        if not isinstance(data, Mapping):
            raise CardSourceError(f"Malformed link cards for {card.id}")
        return related_cards_from_dict(data)
