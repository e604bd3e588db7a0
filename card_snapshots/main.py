"""Card Snapshots - command line entry point for fetching a card screenshot."""

import argparse
import sys
from pathlib import Path

from .config import settings
from .utils import get_logger, setup_logging

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_NO_SCREENSHOT = 1
EXIT_ERROR = 2


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Card Snapshots - fetch (and cache) the screenshot of a card",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m card_snapshots.main c-123               # Writes c-123.png
  python -m card_snapshots.main my-slug -o out.png  # Look up by slug
  python -m card_snapshots.main c-123 --no-cache    # Re-render, still warms the cache
  python -m card_snapshots.main c-123 --print-key   # Show the cache key only

Environment:
  CARD_API_BASE_URL                 Card data API used to resolve cards
  LAST_DEPLOY_AFFECTING_RENDERING   Deploy tag baked into cache keys
  SCREENSHOT_STORE                  gcs | local | memory
        """,
    )

    parser.add_argument("id_or_slug", help="Card id or slug")
    parser.add_argument(
        "-o", "--output",
        type=Path,
        help="Where to write the PNG (default: <id_or_slug>.png)",
    )
    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Ignore any cached screenshot and render a fresh one",
    )
    parser.add_argument(
        "--print-key",
        action="store_true",
        help="Print the cache key for the card and exit without rendering",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    return parser.parse_args(argv)


def print_key(id_or_slug: str) -> int:
    """Print the cache key a card's screenshot is stored under, without touching the store."""
    from .adapters import HttpCardSource
    from .fingerprint import FingerprintBuilder

    card_source = HttpCardSource.from_settings(settings)
    card = card_source.get_card_by_id_or_slug(id_or_slug)
    if not card:
        logger.error(f"No such card: {id_or_slug}")
        return EXIT_NO_SCREENSHOT
    if not card.published:
        logger.warning(f"Card {card.id} wasn't published, it has no screenshot")
        return EXIT_NO_SCREENSHOT

    related = card_source.get_related_cards_for_card(card)
    print(FingerprintBuilder.from_settings(settings).compute(card, related))
    return EXIT_OK


def run(args: argparse.Namespace) -> int:
    """
    Fetch one screenshot.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (0 for success)
    """
    from .coordinator import ScreenshotCoordinator

    if not settings.card_api_base_url:
        logger.error("CARD_API_BASE_URL is not set; cannot look up cards")
        return EXIT_ERROR

    try:
        if args.print_key:
            return print_key(args.id_or_slug)

        coordinator = ScreenshotCoordinator.from_settings(settings)
        if args.no_cache:
            coordinator.cache_disabled = True

        png = coordinator.fetch_screenshot_by_id_or_slug(args.id_or_slug)
    except Exception as e:
        logger.exception(f"Screenshot failed for {args.id_or_slug}: {e}")
        return EXIT_ERROR

    if png is None:
        return EXIT_NO_SCREENSHOT

    output = args.output or Path(f"{args.id_or_slug}.png")
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(png)
    logger.info(f"Screenshot saved: {output}")
    return EXIT_OK


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    log_level = "DEBUG" if args.debug else settings.log_level
    setup_logging(level=log_level, gcp_project_id=settings.gcp_project_id)

    logger.info(f"Arguments: {args}")
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
