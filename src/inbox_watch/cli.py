"""Command-line entry point for Inbox Watch."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

import uvicorn

from inbox_watch.core import AppSettings, configure_logging, load_app_settings
from inbox_watch.core.container import (
    CLASSIFIER,
    NOTIFIER,
    SCHEDULER,
    build_container,
)
from inbox_watch.intelligence import MissingApiKeyError
from inbox_watch.transport import ImapError
from inbox_watch.web import create_app

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Create and configure the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Watch a mailbox and classify matching emails"
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=Path(".env"),
        help="Path to a .env file containing configuration overrides.",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="serve",
        choices=["serve", "check", "info"],
        help="Operation to execute (default: serve).",
    )
    return parser


def execute(args: argparse.Namespace, settings: AppSettings) -> int:
    """Execute the requested CLI command and return the exit status."""
    command = args.command
    if command == "info":
        _print_info(settings)
        return 0
    try:
        if command == "check":
            return asyncio.run(_run_check(settings))
        app = create_app(settings)
    except MissingApiKeyError as exc:
        LOGGER.error("%s; refusing to start", exc)
        return 1
    uvicorn.run(app, host=settings.server.host, port=settings.server.port)
    return 0


def main() -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    settings = load_app_settings(env_file=args.env_file)
    configure_logging(settings.logging)
    raise SystemExit(execute(args, settings))


def _print_info(settings: AppSettings) -> None:
    print(f"IMAP host: {settings.imap.host}:{settings.imap.port}")
    print(f"IMAP user: {settings.imap.username}")
    print(f"Mailbox: {settings.imap.mailbox}")
    print(f'Watched subject: "{settings.monitor.subject}"')
    print(f"Poll interval: {settings.monitor.interval_seconds}s")
    print(f"Classifier model: {settings.classifier.model}")
    print(f"Classifier API key set: {'yes' if settings.classifier.api_key else 'no'}")
    print(f"HTTP port: {settings.server.port}")


async def _run_check(settings: AppSettings) -> int:
    """Run one manual cycle and let any alert pulses finish."""
    container = build_container(settings)
    scheduler = container.resolve(SCHEDULER)
    notifier = container.resolve(NOTIFIER)
    classifier = container.resolve(CLASSIFIER)
    try:
        report = await scheduler.run_cycle(manual=True)
    except ImapError as exc:
        print(f"Error reading emails: {exc}")
        return 1
    finally:
        await notifier.drain()
        await classifier.aclose()
    print(
        f"Processed {report.processed} of {report.new} new email(s); "
        f"{report.classified} classified."
    )
    return 0


if __name__ == "__main__":
    main()
