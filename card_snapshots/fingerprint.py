"""Cache key generation for card screenshots.

The key has to cover everything that can change how a card looks. Card
content is hashed; the renderer itself is covered by the pipeline version
(bumped by hand) and the deploy tag (updated by deploy tooling whenever a
deploy could affect rendering).
"""

import hashlib
import json
from datetime import datetime
from typing import Any, Iterable, Optional

from .models import Card, RelatedCards

SCREENSHOT_VERSION = 8

# Never appears in card ids, which are alphanumeric (plus '-' and '_')
RELATED_ID_SEPARATOR = "+"


def canonical_json(value: Any) -> str:
    """Serialize to JSON that depends only on values, never on key order."""
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
        default=str,
    )


def _frame(parts: Iterable[str]) -> str:
    """Length-prefix each part so no two part lists join to the same string."""
    return "".join(f"{len(part)}:{part}" for part in parts)


def published_related_ids(related_cards: RelatedCards) -> list[str]:
    """Sorted ids of the related cards that are published."""
    return sorted(card_id for card_id, card in related_cards.items() if card.published)


def hash_card_content(card: Card, related_cards: Optional[RelatedCards] = None) -> str:
    """MD5 hex digest of every visually relevant part of a card."""
    # Missing and empty are the same thing as far as rendering goes
    title = card.title or ""
    subtitle = card.subtitle or ""
    body = card.body or ""
    star_count = str(card.star_count or 0)
    images_json = canonical_json(card.images or [])
    related_ids = RELATED_ID_SEPARATOR.join(published_related_ids(related_cards or {}))

    payload = _frame([title, subtitle, body, star_count, related_ids, images_json])
    # surrogatepass keeps lone surrogates (valid in JSON strings) hashable
    return hashlib.md5(payload.encode("utf-8", errors="surrogatepass")).hexdigest()


def make_release_tag(now: Optional[datetime] = None) -> str:
    """
    Build a deploy tag like "deploy-2024-01-01-00-00".

    Every component is zero-padded so tags sort lexicographically in
    deploy order.

    Args:
        now: Deploy time (defaults to the current local time)

    Returns:
        Deploy tag string
    """
    now = now or datetime.now()
    return now.strftime("deploy-%Y-%m-%d-%H-%M")


class FingerprintBuilder:
    """Computes storage paths for card screenshots."""

    def __init__(self, deploy_tag: str, pipeline_version: int = SCREENSHOT_VERSION):
        """
        Initialize the fingerprint builder.

        Args:
            deploy_tag: Tag of the last deploy that affected rendering
            pipeline_version: Screenshot pipeline version
        """
        self.deploy_tag = deploy_tag
        self.pipeline_version = pipeline_version

    @classmethod
    def from_settings(cls, settings) -> "FingerprintBuilder":
        """Create a builder from application settings."""
        return cls(
            deploy_tag=settings.last_deploy_affecting_rendering,
            pipeline_version=settings.screenshot_version,
        )

    @property
    def prefix(self) -> str:
        """Path prefix shared by every screenshot of this version and deploy."""
        return f"screenshots/v{self.pipeline_version}/{self.deploy_tag}/"

    def compute(self, card: Card, related_cards: Optional[RelatedCards] = None) -> str:
        """
        Compute the cache key for a card.

        Args:
            card: Card to be rendered
            related_cards: Cards linked from `card`, keyed by id

        Returns:
            Path like "screenshots/v8/deploy-.../<card id>/<md5>.png"
        """
        digest = hash_card_content(card, related_cards)
        return f"{self.prefix}{card.id}/{digest}.png"
