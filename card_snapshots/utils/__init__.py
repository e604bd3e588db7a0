"""Utility modules for card snapshots."""

from .logging_config import get_logger, setup_logging
from .retry import http_retry

__all__ = ["get_logger", "setup_logging", "http_retry"]
