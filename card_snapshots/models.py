"""Card data passed through the screenshot pipeline."""

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

# Card fields with first-class attributes; anything else rides along in `extra`
_CARD_FIELDS = (
    "id", "title", "subtitle", "body", "star_count",
    "images", "published", "slugs", "links",
)


@dataclass
class Card:
    """A content card that can be rendered to a screenshot.

    Fields that may be missing in the source data default to None so the
    fingerprint can tell "missing" apart from a present value before it
    normalizes both. `extra` keeps every other field of the source record.
    `to_dict` sends missing fields to the page as null (empty lists for
    slugs and links), which the host page treats the same as absent.
    """

    id: str
    title: Optional[str] = None
    subtitle: Optional[str] = None
    body: Optional[str] = None
    star_count: Optional[int] = None
    images: Optional[list[dict[str, Any]]] = None
    published: bool = False
    slugs: list[str] = field(default_factory=list)
    links: list[str] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to the JSON shape the rendering host page expects."""
        data = dict(self.extra)
        data.update({
            "id": self.id,
            "title": self.title,
            "subtitle": self.subtitle,
            "body": self.body,
            "star_count": self.star_count,
            "images": self.images,
            "published": self.published,
            "slugs": list(self.slugs),
            "links": list(self.links),
        })
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Card":
        """Create from a card record as returned by the data layer."""
        return cls(
            id=str(data["id"]),
            title=data.get("title"),
            subtitle=data.get("subtitle"),
            body=data.get("body"),
            star_count=data.get("star_count"),
            images=data.get("images"),
            published=bool(data.get("published", False)),
            slugs=list(data.get("slugs") or []),
            links=list(data.get("links") or []),
            extra={k: v for k, v in data.items() if k not in _CARD_FIELDS},
        )


@dataclass
class RelatedCard:
    """Minimal projection of a card linked from the card being rendered."""

    published: bool = False
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = dict(self.extra)
        data["published"] = self.published
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RelatedCard":
        return cls(
            published=bool(data.get("published", False)),
            extra={k: v for k, v in data.items() if k != "published"},
        )


# Related card id -> projection. Supplied per request; never mutated.
RelatedCards = Mapping[str, RelatedCard]


def related_cards_from_dict(data: Mapping[str, Mapping[str, Any]]) -> dict[str, RelatedCard]:
    """Build a related-card map from raw JSON records keyed by card id."""
    return {card_id: RelatedCard.from_dict(record) for card_id, record in data.items()}


def related_cards_to_dict(related: RelatedCards) -> dict[str, dict]:
    """Convert a related-card map back to JSON records for page injection."""
    return {card_id: card.to_dict() for card_id, card in related.items()}
