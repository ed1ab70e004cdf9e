"""CLI entry point: block inactive users, or unblock one page with -u."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Optional, Sequence

from scripts.inactive_users.config import load_config
from scripts.inactive_users.errors import BlockingError
from scripts.inactive_users.job import BlockJob, JobContext
from scripts.inactive_users.logging_config import configure_logging
from scripts.inactive_users.models import SearchCriteria

logger = logging.getLogger("inactive_users.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="inactive-users",
        description="Block Auth0 users that have been inactive past a threshold",
    )
    parser.add_argument(
        "-u", "--unblock",
        action="store_true",
        help="Unblock one page of blocked users (reverses a test run)",
    )
    parser.add_argument(
        "--settings",
        default=None,
        help="Path to an appsettings.json file (default: ./appsettings.json)",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        help="Log level (default: INFO)",
    )
    parser.add_argument(
        "--rate-limit-log-level",
        default=os.environ.get("RATE_LIMIT_LOG_LEVEL"),
        help="Log level for rate-limit pauses (default: same as --log-level)",
    )
    return parser


def run(args: argparse.Namespace) -> None:
    config = load_config(args.settings)
    context = JobContext.create(config)
    try:
        job = BlockJob(context)
        if args.unblock:
            print(f"Unblocked {job.undo()} users.")
            return

        result = job.run()
        print(
            f"Blocked {result.total} users "
            f"(last login: {result.counts.get(SearchCriteria.BY_LAST_LOGIN, 0)}, "
            f"never logged in: {result.counts.get(SearchCriteria.BY_CREATION_NEVER_LOGGED_IN, 0)})."
        )
    finally:
        context.close()


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, args.rate_limit_log_level)

    try:
        run(args)
    except BlockingError as exc:
        logger.error("Run failed: %s", exc, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
