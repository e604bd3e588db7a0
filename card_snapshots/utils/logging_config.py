"""Logging configuration with optional GCP Cloud Logging integration."""

import logging
import sys
from typing import Iterable, Optional

# Third-party loggers that are too chatty at DEBUG for day-to-day use
NOISY_LOGGERS = ("urllib3", "google.auth", "google.cloud.storage", "asyncio")


def setup_logging(
    level: str = "INFO",
    gcp_project_id: Optional[str] = None,
    quiet_loggers: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        gcp_project_id: Optional GCP project ID for Cloud Logging integration
        quiet_loggers: Logger names pinned to WARNING regardless of level
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    # Screenshots usually run inside Cloud Run / Functions, so ship logs there too
    if gcp_project_id:
        try:
            import google.cloud.logging

            client = google.cloud.logging.Client(project=gcp_project_id)
            client.setup_logging(log_level=log_level)
            logging.info(f"GCP Cloud Logging enabled for project: {gcp_project_id}")
        except ImportError:
            logging.warning(
                "google-cloud-logging not installed. Skipping GCP integration."
            )
        except Exception as e:
            logging.warning(f"Failed to setup GCP Cloud Logging: {e}")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
