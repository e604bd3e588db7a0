"""Local filesystem screenshot store."""

import os
import tempfile
from pathlib import Path
from typing import Union

from ..exceptions import CacheEntryMissingError
from ..utils import get_logger
from .base import ScreenshotStore

logger = get_logger(__name__)


class LocalStore(ScreenshotStore):
    """
    Stores screenshots under a base directory, preserving the key's
    path structure (screenshots/v8/<deploy>/<card>/<hash>.png).
    """

    def __init__(self, base_path: Union[str, Path] = "screenshot-cache"):
        self.base_path = Path(base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)
        logger.info(f"Local screenshot store at {self.base_path}")

    def _resolve_path(self, key: str) -> Path:
        """Resolve a key to a filesystem path inside the base directory."""
        clean_key = Path(key).as_posix().lstrip("/")
        full_path = (self.base_path / clean_key).resolve()
        try:
            full_path.relative_to(self.base_path)
        except ValueError:
            raise ValueError(f"Invalid key: {key} (outside base directory)")
        return full_path

    def exists(self, key: str) -> bool:
        return self._resolve_path(key).is_file()

    def read(self, key: str) -> bytes:
        try:
            return self._resolve_path(key).read_bytes()
        except FileNotFoundError:
            raise CacheEntryMissingError(key) from None

    def write(self, key: str, data: bytes) -> None:
        full_path = self._resolve_path(key)
        full_path.parent.mkdir(parents=True, exist_ok=True)

        # Write to a sibling temp file and rename, so concurrent readers
        # never see a half-written PNG
        fd, tmp_name = tempfile.mkstemp(dir=full_path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_name, full_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug(f"Wrote {len(data)} bytes to {full_path}")
