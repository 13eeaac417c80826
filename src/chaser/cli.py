"""Command-line interface for operating the payment chaser.

Provides an argparse-based tool to create the database, seed the voice
catalog, and run the engine's entry points without the HTTP server.
Output formats: table (default) or JSON.

Usage::

    python -m chaser.cli init-db
    python -m chaser.cli seed-voices --voices config/voices.yaml
    python -m chaser.cli run-all --format json
    python -m chaser.cli sync --user USER_ID
    python -m chaser.cli followup --user USER_ID --request REQUEST_ID
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

import structlog

from chaser.app import configure_logging, initialize_services
from chaser.config import get_settings
from chaser.domain.errors import ChaserError
from chaser.llm.voices import seed_voices
from chaser.store.schema import close_db

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for chaser commands.

    Returns:
        A configured :class:`argparse.ArgumentParser`.
    """
    parser = argparse.ArgumentParser(description="Payment follow-up engine")
    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="Path to the chaser database (default: DATABASE_PATH setting)",
    )
    parser.add_argument(
        "--format",
        type=str,
        choices=["table", "json"],
        default="table",
        dest="output_format",
        help="Output format (default: table)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create the database tables")

    seed = commands.add_parser("seed-voices", help="Upsert the voice catalog from YAML")
    seed.add_argument(
        "--voices",
        type=str,
        default=None,
        help="Path to the voices YAML (default: VOICES_SEED_PATH setting)",
    )

    commands.add_parser("run-all", help="Run one scheduled pass over every user")

    sync = commands.add_parser("sync", help="Ingest and payment-check one user")
    sync.add_argument("--user", required=True, help="User ID")

    followup = commands.add_parser("followup", help="Follow up one request now")
    followup.add_argument("--user", required=True, help="User ID")
    followup.add_argument("--request", required=True, help="Request ID")

    return parser


def format_table(result: dict[str, Any]) -> str:
    """Format a flat result dict as aligned ``key  value`` lines.

    Args:
        result: The command result.

    Returns:
        Formatted table string with header row.
    """
    if not result:
        return "No results."

    width = max(len(k) for k in result)
    lines = [f"{'Field'.ljust(width)}  Value", "-" * (width + 8)]
    lines.extend(f"{k.ljust(width)}  {v}" for k, v in result.items())
    return "\n".join(lines)


def format_json(result: dict[str, Any]) -> str:
    """Format a result dict as a pretty-printed JSON string."""
    return json.dumps(result, indent=2, default=str)


def run_command(args: argparse.Namespace) -> dict[str, Any]:
    """Execute the parsed command and return its result.

    Raises:
        ChaserError: Propagated from the engine for missing records or
            failed preconditions.
        RuntimeError: If an engine command runs without ``ANTHROPIC_API_KEY``.
        FileNotFoundError: If the voice seed file does not exist.
    """
    settings = get_settings()
    if args.db:
        settings = settings.model_copy(update={"database_path": Path(args.db)})

    services = initialize_services(settings)
    try:
        if args.command == "init-db":
            return {"database": str(settings.database_path), "status": "ready"}

        if args.command == "seed-voices":
            path = Path(args.voices) if args.voices else settings.voices_seed_path
            return {"seeded": seed_voices(services["store"], path)}

        engine = services["engine"]
        if engine is None:
            raise RuntimeError("ANTHROPIC_API_KEY is required for engine commands")

        if args.command == "run-all":
            return dict(engine.run_all().model_dump())
        if args.command == "sync":
            return dict(engine.sync_user(args.user).model_dump())
        return dict(engine.followup_now(args.request, args.user).model_dump(mode="json"))
    finally:
        close_db(services["conn"])


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, run the command, and print the result.

    Returns:
        Process exit code: 0 on success, 1 on a domain or configuration error.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    # Logs go to stderr so stdout carries only the command result.
    configure_logging(production=get_settings().production, stream=sys.stderr)

    try:
        result = run_command(args)
    except (ChaserError, RuntimeError, FileNotFoundError) as exc:
        logger.error("Command failed", command=args.command, error=str(exc))
        print(f"error: {exc}", file=sys.stderr)
        return 1

    output = format_json(result) if args.output_format == "json" else format_table(result)
    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
