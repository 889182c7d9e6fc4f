# =============================================================================
# cratedigger/cli/main.py: CLI Entry Point
# =============================================================================
#
# Runs one CrateDigger job once, outside of any scheduler:
#
#   discover   catalog discovery: library artists -> similar artists ->
#              album suggestions in the pending queue
#   recommend  ListenBrainz recommendations -> tracks or albums in the
#              pending queue
#   pending    list what is waiting for approval
#   reject     move a pending MBID to the rejected list
#
# Usage examples:
#   cratedigger discover
#   cratedigger --config config/config.yaml recommend --json
#   python -m cratedigger.cli pending
#   python -m cratedigger.cli reject 1b022e01-4da6-387b-8658-8678046e4cef
#
# Exit codes: 0 completed / skipped / deferred, 1 failed, 130 cancelled.
# Ctrl+C cancels the running job through its cancellation token, so the
# job stops at its next checkpoint and reports "cancelled".
# =============================================================================

"""Command-line entry point for running CrateDigger jobs."""

from __future__ import annotations

import argparse
import asyncio
import json
import signal
import sys

from cratedigger.models.discovery import JobOutcome, JobRunResult

_EXIT_CODES = {
    JobOutcome.COMPLETED: 0,
    JobOutcome.SKIPPED: 0,
    JobOutcome.DEFERRED: 0,
    JobOutcome.FAILED: 1,
    JobOutcome.CANCELLED: 130,
}


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def _format_result(result: JobRunResult, json_output: bool) -> str:
    if json_output:
        return json.dumps(result.model_dump(mode="json"), indent=2)
    elapsed = (result.finished_at - result.started_at).total_seconds()
    line = f"{result.job_name}: {result.outcome.value} ({result.added_count} added, {elapsed:.1f}s)"
    if result.error:
        line += f" - {result.error}"
    return line


# ---------------------------------------------------------------------------
# Command runners
# ---------------------------------------------------------------------------


async def _run_job_command(args: argparse.Namespace) -> int:
    # Deferred import: building the components pulls in httpx and aiosqlite.
    from cratedigger.config.loader import load_settings
    from cratedigger.interfaces.job_control import JOB_CATALOG_DISCOVERY, JOB_LISTENBRAINZ_FETCH
    from cratedigger.main import build_components, run_catalog_discovery, run_listenbrainz_fetch
    from cratedigger.utils.logging import configure_logging

    app_settings = load_settings(args.config)
    configure_logging(
        log_level="WARNING" if args.quiet else app_settings.log_level,
        json_output=app_settings.app_env == "production",
    )

    components = await build_components(app_settings)
    job_name = JOB_CATALOG_DISCOVERY if args.command == "discover" else JOB_LISTENBRAINZ_FETCH

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(
            signal.SIGINT, components.registry.request_cancel, job_name, "interrupted"
        )
    except NotImplementedError:
        pass  # Windows event loops have no signal handlers

    try:
        if args.command == "discover":
            result = await run_catalog_discovery(components)
        else:
            result = await run_listenbrainz_fetch(components)
    finally:
        await components.aclose()

    print(_format_result(result, args.json_output))
    return _EXIT_CODES[result.outcome]


async def _run_queue_command(args: argparse.Namespace) -> int:
    from cratedigger.config.loader import load_settings
    from cratedigger.providers.queue.sqlite_pending_queue import SQLitePendingQueue
    from cratedigger.utils.logging import configure_logging

    app_settings = load_settings(args.config)
    configure_logging(
        log_level="WARNING" if args.quiet else app_settings.log_level,
        json_output=app_settings.app_env == "production",
    )

    queue = SQLitePendingQueue(db_path=app_settings.queue_db_path)
    await queue.initialize()

    if args.command == "reject":
        await queue.reject(args.mbid)
        print(f"Rejected {args.mbid}")
        return 0

    entries = await queue.list_pending()
    if args.json_output:
        print(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return 0

    if not entries:
        print("Nothing pending.")
        return 0
    for entry in entries:
        name = entry.album or entry.title or "?"
        score = f"{entry.score:.1f}" if entry.score is not None else "-"
        because = f"  (like {', '.join(entry.similar_to)})" if entry.similar_to else ""
        print(f"[{entry.type.value}] {entry.artist} - {name}  score={score}  {entry.mbid}{because}")
    return 0


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cratedigger",
        description="Discover new music from your library and ListenBrainz.",
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        default="config/config.yaml",
        help="Path to the YAML config file (default: config/config.yaml).",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Print results as JSON.",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only log warnings and errors.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("discover", help="Run catalog discovery once.")
    subparsers.add_parser("recommend", help="Fetch ListenBrainz recommendations once.")
    subparsers.add_parser("pending", help="List entries waiting for approval.")
    reject = subparsers.add_parser("reject", help="Reject a pending entry by MBID.")
    reject.add_argument("mbid", type=str, help="MusicBrainz id of the entry.")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Parse arguments, run the chosen command and exit with its status."""
    args = _build_parser().parse_args(argv)

    if args.command in ("discover", "recommend"):
        exit_code = asyncio.run(_run_job_command(args))
    else:
        exit_code = asyncio.run(_run_queue_command(args))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
