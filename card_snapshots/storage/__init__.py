"""Screenshot storage backends."""

from .base import PNG_CONTENT_TYPE, ScreenshotStore
from .local import LocalStore
from .memory import MemoryStore

__all__ = [
    "PNG_CONTENT_TYPE",
    "ScreenshotStore",
    "LocalStore",
    "MemoryStore",
    "create_store",
]


def create_store(settings) -> ScreenshotStore:
    """
    Build the store selected by SCREENSHOT_STORE.

    Args:
        settings: Application settings

    Returns:
        Configured ScreenshotStore
    """
    if settings.screenshot_store == "memory":
        return MemoryStore()
    if settings.screenshot_store == "local":
        return LocalStore(settings.local_store_dir)
    if settings.screenshot_store == "gcs":
        if not settings.screenshot_bucket:
            raise ValueError("SCREENSHOT_BUCKET must be set when SCREENSHOT_STORE=gcs")
        # Imported lazily so local runs don't need google-cloud-storage credentials
        from .gcs import GCSStore

        return GCSStore(settings.screenshot_bucket, project=settings.gcp_project_id)
    raise ValueError(f"Unknown screenshot store: {settings.screenshot_store}")
