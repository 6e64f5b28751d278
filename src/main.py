# src/main.py - v2
"""CLI entry point: term matching and batch inspection/control commands.

Usage:
    transbatch match <terms.json> <dictionary.json> [--dict-name NAME]
    transbatch status <batch_id>
    transbatch health <batch_id>
    transbatch recover <batch_id>
    transbatch pause|resume <batch_id>
    transbatch cancel <batch_id> [--reason TEXT]
    transbatch retry <batch_id> <index> [<index> ...]

Batch commands operate on the state store configured in Settings (.env).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from transbatch.version import __version__

logger = logging.getLogger(__name__)

# Result statuses reported with a non-zero exit code.
FAILURE_STATUSES = frozenset({"not_found", "invalid_state", "conflict", "error"})


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        from transbatch.config.settings import load_settings

        settings = load_settings()
        _setup_logging(settings, args.verbose)
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        print(f"error: {exc}", file=sys.stderr)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="transbatch",
        description=f"transbatch v{__version__} - batch document translation",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- match ---
    p_match = subparsers.add_parser(
        "match", help="Match extracted terms against a dictionary file",
    )
    p_match.add_argument("terms", type=Path, help="JSON list of terms")
    p_match.add_argument(
        "dictionary", type=Path,
        help="JSON dictionary: list of entries or {name: [entries]}",
    )
    p_match.add_argument(
        "--dict-name", default="default",
        help="Dictionary to use when the file holds several (default: default)",
    )
    p_match.set_defaults(func=_cmd_match)

    # --- batch commands ---
    for name, help_text in [
        ("status", "Show batch status and progress"),
        ("health", "Run a batch health check"),
        ("recover", "Attempt auto-recovery of a batch"),
        ("pause", "Pause a processing batch"),
        ("resume", "Resume a paused batch"),
    ]:
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument("batch_id", help="Batch identifier")
        p.set_defaults(func=_cmd_batch)

    p_cancel = subparsers.add_parser("cancel", help="Cancel a batch")
    p_cancel.add_argument("batch_id", help="Batch identifier")
    p_cancel.add_argument("--reason", default=None, help="Cancellation reason")
    p_cancel.set_defaults(func=_cmd_batch)

    p_retry = subparsers.add_parser("retry", help="Requeue failed files by index")
    p_retry.add_argument("batch_id", help="Batch identifier")
    p_retry.add_argument("indices", type=int, nargs="+", help="File indices")
    p_retry.set_defaults(func=_cmd_batch)

    return parser


async def _cmd_match(args: argparse.Namespace, settings) -> int:
    """Run the term matching cascade on files and print the result."""
    from transbatch.terms.matcher import TermMatcher
    from transbatch.terms.memory_dictionary_store import MemoryDictionaryStore

    for path in (args.terms, args.dictionary):
        if not path.is_file():
            logger.error("File not found: %s", path)
            print(f"error: file not found: {path}", file=sys.stderr)
            return 1

    terms = json.loads(args.terms.read_text(encoding="utf-8"))
    if not isinstance(terms, list):
        print("error: terms file must hold a JSON list", file=sys.stderr)
        return 1

    store = MemoryDictionaryStore.from_json_file(args.dictionary, args.dict_name)
    matcher = TermMatcher.from_settings(settings)
    result = matcher.match(
        [str(t) for t in terms], await store.get_all_terms(args.dict_name)
    )
    print(result.model_dump_json(indent=2))
    return 0


async def _cmd_batch(args: argparse.Namespace, settings) -> int:
    """Dispatch a batch command through the public service."""
    from transbatch.api.service import build_service

    service = build_service(settings)
    batch_id = args.batch_id
    command = args.command

    if command == "status":
        result = await service.get_batch_status(batch_id)
    elif command == "health":
        result = await service.perform_health_check(batch_id)
    elif command == "recover":
        result = await service.attempt_auto_recovery(batch_id)
    elif command == "pause":
        result = await service.pause_batch(batch_id)
    elif command == "resume":
        result = await service.resume_batch(batch_id)
    elif command == "cancel":
        result = await service.cancel_batch(batch_id, args.reason)
    elif command == "retry":
        result = await service.retry_failed_files(batch_id, args.indices)
    else:
        raise ValueError(f"Unknown command: {command}")

    print(result.model_dump_json(indent=2))
    return 1 if result.status in FAILURE_STATUSES else 0


def _setup_logging(settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from transbatch.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
