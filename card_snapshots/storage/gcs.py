"""Google Cloud Storage screenshot store."""

from typing import Optional

from google.api_core.exceptions import NotFound
from google.cloud import storage

from ..exceptions import CacheEntryMissingError
from ..utils import get_logger
from .base import PNG_CONTENT_TYPE, ScreenshotStore

logger = get_logger(__name__)


class GCSStore(ScreenshotStore):
    """Stores screenshots as objects in a single, pre-configured bucket."""

    def __init__(
        self,
        bucket_name: str,
        project: Optional[str] = None,
        client: Optional[storage.Client] = None,
    ):
        """
        Initialize the store.

        Args:
            bucket_name: Bucket holding the screenshots
            project: Optional GCP project for the storage client
            client: Optional pre-built storage client (created if omitted)
        """
        self.client = client or storage.Client(project=project)
        self.bucket = self.client.bucket(bucket_name)
        logger.info(f"GCS screenshot store using bucket {bucket_name}")

    def exists(self, key: str) -> bool:
        return self.bucket.blob(key).exists()

    def read(self, key: str) -> bytes:
        try:
            return self.bucket.blob(key).download_as_bytes()
        except NotFound:
            raise CacheEntryMissingError(key) from None

    def write(self, key: str, data: bytes) -> None:
        self.bucket.blob(key).upload_from_string(data, content_type=PNG_CONTENT_TYPE)
