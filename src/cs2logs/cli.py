"""CLI entry point for the CS2 log parser.

Provides ``main()`` as the entry point for the ``cs2-logs`` console
script, and ``run(args)`` which sets up logging, opens the database,
ingests each log file with a fresh replay state machine, and prints an
end-of-run summary.

Usage::

    cs2-logs server.log                       # ingest one capture
    cs2-logs logs/                            # every capture in a directory
    cs2-logs --accolade-threshold 4 a.log.gz  # accept shorter games
    cs2-logs --keep-bot-events --verbose server.log
"""

import argparse
import logging
import sys
import time

from cs2logs.config import ParserConfig
from cs2logs.db import Database
from cs2logs.exceptions import SchemaError
from cs2logs.ingest import ShutdownHandler, ingest_file
from cs2logs.logging_config import setup_logging
from cs2logs.repository import EventRepository
from cs2logs.storage import find_log_files

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the cs2-logs CLI."""
    parser = argparse.ArgumentParser(
        prog="cs2-logs",
        description="Parse CS2 dedicated server logs into game events",
    )
    parser.add_argument(
        "logfiles",
        nargs="+",
        metavar="LOGFILE",
        help="Log capture files (plain or .gz) or directories containing them",
    )
    parser.add_argument(
        "--data-dir",
        type=str,
        default="data",
        help="Data directory for DB and logs (default: data)",
    )
    parser.add_argument(
        "--accolade-threshold",
        type=int,
        default=None,
        help="Minimum ACCOLADE lines for a game to count (default: 6)",
    )
    parser.add_argument(
        "--keep-bot-events",
        action="store_true",
        help="Also store kills/assists/attacks between two bots",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Show DEBUG output on the console",
    )
    return parser


def build_config(args: argparse.Namespace) -> ParserConfig:
    """Apply CLI overrides on top of the ParserConfig defaults."""
    overrides = {
        "data_dir": args.data_dir,
        "db_path": f"{args.data_dir}/cs2logs.db",
        "skip_bot_only_events": not args.keep_bot_events,
    }
    if args.accolade_threshold is not None:
        overrides["accolade_threshold"] = args.accolade_threshold
    return ParserConfig(**overrides)


def _format_results(results: dict, wall_time: float, log_file: str) -> str:
    """Format end-of-run results into a human-readable summary string."""
    files = results.get("files", [])
    events: dict[str, int] = {}
    for stats in files:
        for event_type, count in stats.get("events", {}).items():
            events[event_type] = events.get(event_type, 0) + count

    lines = [
        "=" * 60,
        "Ingest complete",
        "-" * 60,
        f"Files:       {len(files)}",
        "Games:       {} stored".format(sum(s.get("games", 0) for s in files)),
        "Events:      {} emitted, {} bot-only skipped".format(
            sum(events.values()),
            sum(s.get("skipped_bot_events", 0) for s in files),
        ),
    ]
    for event_type in sorted(events):
        lines.append(f"  {event_type:<16} {events[event_type]}")
    store = results.get("store")
    if store:
        lines.append(
            "Store:       {} events, {} accolades in total".format(
                store.get("events", 0), store.get("accolades", 0),
            )
        )
    lines += [
        "-" * 60,
        f"Wall time:   {wall_time:.1f}s",
        f"Log file:    {log_file}",
    ]

    if results.get("halted"):
        lines.append(f"Halted:      {results.get('halt_reason', 'unknown')}")

    lines.append("=" * 60)
    return "\n".join(lines)


def run(args: argparse.Namespace) -> dict:
    """Set up components, ingest every file, print summary."""
    # 1. Logging
    log_file = setup_logging(data_dir=args.data_dir, verbose=args.verbose)

    # 2. Config
    config = build_config(args)
    paths = find_log_files(args.logfiles)
    logger.info(
        "Starting cs2-logs: %d files, data_dir=%s, accolade_threshold=%d, "
        "skip_bot_only_events=%s, log=%s",
        len(paths), config.data_dir, config.accolade_threshold,
        config.skip_bot_only_events, log_file,
    )

    # 3. Database
    db = Database(config.db_path)
    try:
        db.initialize()
    except SchemaError:
        db.close()
        raise
    repo = EventRepository(db.conn)

    # 4. Shutdown handler
    shutdown = ShutdownHandler()
    shutdown.install()

    results: dict = {"files": []}
    start_time = time.monotonic()

    try:
        for path in paths:
            if shutdown.is_set:
                results["halted"] = True
                results["halt_reason"] = "shutdown requested"
                break
            stats = ingest_file(
                path, repo, config, should_stop=lambda: shutdown.is_set
            )
            results["files"].append(stats)
            if stats["stopped"]:
                results["halted"] = True
                results["halt_reason"] = "shutdown requested"
                break
    finally:
        results["store"] = db.table_counts()
        wall_time = time.monotonic() - start_time
        summary_text = _format_results(results, wall_time, str(log_file))
        logger.info("\n%s", summary_text)

        db.close()
        shutdown.restore()

    return results


def main(argv: list[str] | None = None) -> int:
    """Entry point for the cs2-logs console script."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        run(args)
    except (FileNotFoundError, SchemaError) as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        pass  # Already handled by ShutdownHandler
    finally:
        logging.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
