#!/usr/bin/env python3
"""Check the JMA feed once and print what the API would serve.

Runs a single refresh against the live JMA feed (no cache reuse) and
prints the status, recent items or raw preview as JSON. Handy for
checking parser behaviour against real bulletins.

Usage:
    # Status for a prefecture
    python scripts/check_feed.py status --prefecture Tokyo

    # Recent events
    python scripts/check_feed.py recent

    # Raw preview of the latest bulletin
    python scripts/check_feed.py raw

Environment:
    CONFIG_PATH: Path to config file (optional; env vars otherwise)
    JMA_FEED_URL: Override the feed URL
"""

import argparse
import json
import logging
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.core.config import validate_config
from src.service import FeedService
from src.shell.config_loader import load_config, load_config_from_env

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Check the JMA earthquake feed")
    parser.add_argument(
        "command",
        choices=["status", "recent", "raw"],
        help="What to fetch",
    )
    parser.add_argument(
        "--prefecture",
        default="Tokyo",
        help="English prefecture name for 'status' (default: Tokyo)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config_path = os.environ.get("CONFIG_PATH")
    config = load_config(config_path) if config_path else load_config_from_env()

    validation = validate_config(config)
    if not validation.valid:
        for error in validation.critical_errors:
            logger.error("%s: %s", error.field, error.message)
        return 1

    service = FeedService(config)

    if args.command == "status":
        payload = service.get_status(args.prefecture).to_dict()
        ok = payload["connected"]
    elif args.command == "recent":
        payload = service.get_recent().to_dict()
        ok = payload["ok"]
    else:
        payload = service.get_raw().to_dict()
        ok = payload["ok"]

    print(json.dumps(payload, indent=2, ensure_ascii=False))

    if not ok:
        logger.error("Feed check failed: %s", payload.get("errorCategory"))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
