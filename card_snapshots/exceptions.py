"""Exception hierarchy for the screenshot pipeline.

Policy no-ops (missing or unpublished cards) are not exceptions; the
coordinator returns None for those. Everything here is fatal to the
request that raised it and is never retried internally.
"""

from typing import Optional


class SnapshotError(Exception):
    """Base exception for all card snapshot errors."""


class RenderError(SnapshotError):
    """A render could not produce a screenshot.

    Attributes:
        stage: Name of the render stage that failed (e.g. "navigate")
        original: The engine exception that caused the failure, if any
    """

    def __init__(
        self,
        message: str,
        stage: str = "unknown",
        original: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.stage = stage
        self.original = original


class RenderTimeoutError(RenderError):
    """A render stage exceeded the engine's own timeout."""


class InjectionHookMissingError(RenderError):
    """The rendering host page never exposed its card injection entry point."""


class CacheEntryMissingError(SnapshotError):
    """A cache entry vanished between the existence check and the read."""

    def __init__(self, key: str):
        super().__init__(f"Screenshot {key} disappeared from storage before it could be read")
        self.key = key


class CardSourceError(SnapshotError):
    """The card data API could not be reached or returned garbage."""
