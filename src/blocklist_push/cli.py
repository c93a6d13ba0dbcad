#!/usr/bin/env python3
"""Command line front end.

Usage:
    blocklist-push [-c CONFIG] [-u USER] [-m COMMENT] [--group NAME] ADDRESS [ADDRESS ...]

Environment variables:
    NETWORK_PASSWORD           Device password (prompted for when unset)
    BLOCKLIST_PUSH_LOG_LEVEL   Console log level (default: INFO)
"""
import argparse
import asyncio
import getpass
import logging
import os
import sys
from typing import Optional

from .config import PushInventory, validate_addresses
from .devices import create_device
from .push_engine import AddressListBuilder, DistributionCoordinator, format_report, summarize
from .schema import Credentials, InvalidConfiguration
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="blocklist-push",
        description="Add IPv4 addresses to a block-list on every configured device",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Push two entries to every target in ./configs/blocklist-push.yaml
    blocklist-push -u admin -m "ticket 4711" 203.0.113.7 198.51.100.0/24

    # Only the edge group, four devices at a time
    blocklist-push --group edge --concurrency 4 203.0.113.7

    # Show what would be loaded without touching any device
    blocklist-push --dry-run 203.0.113.7

Environment:
    NETWORK_PASSWORD    Device password (prompted for when unset)
""",
    )
    parser.add_argument(
        "addresses",
        nargs="+",
        metavar="ADDRESS",
        help="IPv4 address or network to add",
    )
    parser.add_argument(
        "-c", "--config",
        type=str,
        default=None,
        help="Config file (default: search ./configs/blocklist-push.yaml and friends)",
    )
    parser.add_argument(
        "-u", "--user",
        type=str,
        default=None,
        help="Device username (default: current user)",
    )
    parser.add_argument(
        "-m", "--comment",
        type=str,
        default="",
        help="Commit comment",
    )
    parser.add_argument(
        "--password-env",
        type=str,
        default="NETWORK_PASSWORD",
        help="Environment variable holding the password (default: NETWORK_PASSWORD)",
    )
    parser.add_argument(
        "--group",
        type=str,
        default=None,
        help="Only push to the targets of this group",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Devices to work on at once (default: from config, else 1)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-step network timeout in seconds (default: from config, else 30)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the configuration and targets without contacting any device",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def get_password(env_var: str, username: str) -> str:
    """Password from the environment, else prompt for it."""
    password = os.environ.get(env_var)
    if password:
        return password
    return getpass.getpass(f"Password for {username}: ")


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    setup_logging(level=logging.DEBUG if args.verbose else None)

    try:
        inventory = PushInventory(args.config)
    except FileNotFoundError as e:
        logger.error(str(e))
        return EXIT_CONFIG
    except InvalidConfiguration as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_CONFIG

    entries, rejected = validate_addresses(args.addresses)
    if rejected:
        logger.warning(f"Ignoring {len(rejected)} invalid address(es): {', '.join(rejected)}")
    if not entries:
        logger.error("No valid IPv4 addresses to push")
        return EXIT_FAILED

    try:
        fragment = AddressListBuilder().build(inventory.list_name, entries, args.comment)
    except InvalidConfiguration as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_CONFIG

    username = args.user or getpass.getuser()

    try:
        if args.dry_run:
            # Password is not needed when no device is contacted
            targets = inventory.get_targets(Credentials(username=username), args.group)
        else:
            password = get_password(args.password_env, username)
            targets = inventory.get_targets(Credentials(username, password), args.group)
    except KeyError as e:
        logger.error(f"Invalid configuration: {e.args[0]}")
        return EXIT_CONFIG

    if not targets:
        logger.error(f"Invalid configuration: group '{args.group}' has no targets")
        return EXIT_CONFIG

    if args.dry_run:
        logger.info(f"DRY RUN: would load into {len(targets)} device(s):")
        for target in targets:
            logger.info(f"  {target.device_id}")
        logger.info(create_device(targets[0], inventory.device_type).render_config(fragment))
        if fragment.comment:
            logger.info(f"Commit comment: {fragment.comment}")
        return EXIT_OK

    try:
        coordinator = DistributionCoordinator(
            concurrency=args.concurrency if args.concurrency is not None else inventory.concurrency,
            step_timeout=args.timeout if args.timeout is not None else inventory.timeout,
            device_type=inventory.device_type,
        )
        outcomes = asyncio.run(coordinator.run(targets, fragment))
    except InvalidConfiguration as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_CONFIG
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return EXIT_INTERRUPTED

    summary = summarize(outcomes)
    logger.info("")
    logger.info(format_report(outcomes))
    logger.info("")
    logger.info(
        f"Total: {summary['total']}  Committed: {summary['committed']}  "
        f"Failed: {summary['failed']}  Unlock failures: {summary['unlock_failures']}"
    )

    return EXIT_OK if summary["failed"] == 0 else EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
