"""Base interface for screenshot storage backends."""

from abc import ABC, abstractmethod

PNG_CONTENT_TYPE = "image/png"


class ScreenshotStore(ABC):
    """Key-addressed storage for rendered screenshots.

    Keys are fingerprint paths, so an entry is never legitimately
    overwritten with different bytes. Entries are never deleted here;
    superseded versions are left for external lifecycle rules.
    """

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Check whether a screenshot is stored under `key`. Never raises for a missing key."""
        ...

    @abstractmethod
    def read(self, key: str) -> bytes:
        """
        Read a stored screenshot.

        Args:
            key: Fingerprint path

        Returns:
            PNG bytes

        Raises:
            CacheEntryMissingError: If the entry is not there (e.g. deleted
                after a positive `exists` check)
        """
        ...

    @abstractmethod
    def write(self, key: str, data: bytes) -> None:
        """
        Store a screenshot under `key`.

        Writing the same bytes to the same key again has no further effect.
        """
        ...
