"""Entrypoint for running Remote Days via `python -m remote_days.main`."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from datetime import datetime
from typing import List, Optional

from .absence_client import AbsenceClient
from .config import Settings, load_settings
from .console import Console, TerminalConsole
from .errors import RemoteDaysError
from .models import RunOutcome
from .service import RemoteWorkService

logger = logging.getLogger("remote_days")


def parse_month(value: str) -> datetime:
    try:
        return datetime.strptime(value, "%Y-%m")
    except ValueError as exc:
        raise argparse.ArgumentTypeError("Invalid month format. Use YYYY-MM") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="remote-days",
        description="Create missing remote-work absences in absence.io, month by month.",
    )
    parser.add_argument("--env-file", default=os.getenv("REMOTE_DAYS_ENV"), help="Path to a .env file")
    parser.add_argument("--start", type=parse_month, help="First month to reconcile (YYYY-MM)")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the days that would be created without creating anything",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


async def reconcile(
    settings: Settings,
    console: Console,
    start: Optional[datetime] = None,
    dry_run: bool = False,
) -> RunOutcome:
    client = AbsenceClient(settings.api_key_id, settings.api_key, settings.api_base)
    try:
        service = RemoteWorkService(settings, client, console)
        reference = start
        if start is not None:
            now = datetime.now(settings.timezone)
            reference = start.replace(day=1, hour=now.hour, minute=now.minute, tzinfo=settings.timezone)
        return await service.run(reference, dry_run=dry_run)
    finally:
        await client.close()


def run(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    level = "DEBUG" if args.verbose else os.getenv("LOG_LEVEL", "WARNING")
    logging.basicConfig(level=level.upper(), handlers=[logging.StreamHandler()])

    try:
        settings = load_settings(args.env_file)
    except (RuntimeError, ValueError) as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1

    try:
        asyncio.run(reconcile(settings, TerminalConsole(), args.start, args.dry_run))
    except RemoteDaysError as exc:
        logger.error("%s", exc)
        return 1
    return 0


def main() -> None:  # pragma: no cover
    sys.exit(run())


if __name__ == "__main__":  # pragma: no cover
    main()
