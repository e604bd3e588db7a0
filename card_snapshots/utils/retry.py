"""Retry decorators for calls to the card data API.

The screenshot pipeline itself never retries; only the data-layer
transport does, and only for connection-level failures.
"""

import logging

import requests
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

# Card API retry decorator
http_retry = retry(
    retry=retry_if_exception_type(
        (requests.ConnectionError, requests.Timeout)
    ),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=8),
    stop=stop_after_attempt(4),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
