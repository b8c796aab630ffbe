# main.py

"""Entry point for the price_watch reconciliation service."""

import argparse
import asyncio
import logging
import sys

from src.config.logging_config import setup_logging
from src.config.settings import Settings

logger = logging.getLogger("price_watch.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    valid_ids = ", ".join(m["id"] for m in Settings.AVAILABLE_MARKETPLACES)

    parser = argparse.ArgumentParser(
        prog="price_watch",
        description="Marketplace price tracker with change alerts.",
        epilog=f"Available marketplaces: {valid_ids}",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Echo INFO logs to the console.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("run", help="Run a single reconciliation cycle.")

    watch = sub.add_parser(
        "watch", help="Run cycles back to back until interrupted."
    )
    watch.add_argument(
        "-i",
        "--interval",
        type=float,
        default=None,
        help=(
            "Seconds between cycles "
            f"(default: {Settings.CYCLE_INTERVAL:.0f})."
        ),
    )

    track = sub.add_parser("track", help="Track a product for a chat.")
    track.add_argument("--chat-id", required=True, dest="chat_id")
    track.add_argument("--marketplace", required=True)
    track.add_argument("--link", required=True)

    history = sub.add_parser(
        "history", help="Show a product's price history."
    )
    history.add_argument("product_id", type=int)
    return parser


def main() -> None:
    """Route to the requested sub-command and exit with its code."""
    parser = _build_parser()
    args = parser.parse_args()

    log_file = setup_logging(
        console_level=logging.INFO if args.verbose else logging.WARNING
    )
    logger.info("price_watch starting, log file: %s", log_file)

    from src.cli import runner

    try:
        if args.command == "run":
            exit_code = asyncio.run(runner.run_once())
        elif args.command == "watch":
            exit_code = runner.run_watch_blocking(args.interval)
        elif args.command == "track":
            exit_code = runner.run_track(
                args.chat_id, args.marketplace, args.link
            )
        else:
            exit_code = runner.run_history(args.product_id)
    except Exception:
        logger.critical("Fatal error in '%s'", args.command, exc_info=True)
        raise
    finally:
        logger.info("price_watch shutting down")
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
