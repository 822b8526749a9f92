"""Driver loop that walks a log buffer through the replay state machine.

Usage::

    from cs2logs.ingest import ingest_file

    store = EventRepository(db.conn)
    stats = ingest_file("server.log.gz", store, config)

The driver honours every ``next_index`` exactly, including backward
rewinds, and forwards emitted events to an ``EventSink``.
"""

import logging
import signal
import threading
from collections import Counter
from pathlib import Path
from typing import Callable, Sequence

from cs2logs.config import ParserConfig
from cs2logs.interfaces import AccoladeSink, EventSink, ProcessedGameLookup
from cs2logs.models import GameActionEvent, GameEventType, ParsedEvent
from cs2logs.replay import ReplayStateMachine
from cs2logs.storage import read_log_lines

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Graceful shutdown
# ---------------------------------------------------------------------------

class ShutdownHandler:
    """Graceful shutdown via Ctrl+C.

    First Ctrl+C sets a flag so the current file can stop between lines.
    Second Ctrl+C raises ``SystemExit(1)`` for an immediate exit.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._original_handler = None

    def install(self) -> None:
        """Save the current SIGINT handler and install our own."""
        self._original_handler = signal.getsignal(signal.SIGINT)
        signal.signal(signal.SIGINT, self._handle)

    def _handle(self, sig, frame) -> None:  # noqa: ANN001
        if self._event.is_set():
            logger.warning("Force shutdown")
            raise SystemExit(1)
        logger.info("Shutdown requested. Stopping after the current line...")
        self._event.set()

    @property
    def is_set(self) -> bool:
        """Whether a shutdown has been requested."""
        return self._event.is_set()

    def restore(self) -> None:
        """Restore the original SIGINT handler if one was saved."""
        if self._original_handler is not None:
            signal.signal(signal.SIGINT, self._original_handler)


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------

def is_bot_only(event: ParsedEvent) -> bool:
    """True for a kill/assist/attack in which neither player is human."""
    if not isinstance(event, GameActionEvent):
        return False
    return event.player1.is_bot and event.player2.is_bot


def process_lines(
    lines: Sequence[str],
    machine: ReplayStateMachine,
    sink: EventSink,
    *,
    skip_bot_only_events: bool = True,
    should_stop: Callable[[], bool] | None = None,
) -> dict:
    """Run every line of one log buffer through ``machine``.

    Args:
        lines: The full raw (enveloped) log buffer.
        machine: A fresh state machine for this buffer.
        sink: Receives each emitted event, in emission order.
        skip_bot_only_events: Do not forward bot-vs-bot action events.
            The cursor still follows their ``next_index``.
        should_stop: Checked before each line; returning True ends the
            loop early.

    Returns:
        Stats dict with keys: lines, steps, events (per type), games,
        games_processed, skipped_bot_events, rewinds, app_server_id,
        stopped.
    """
    events: Counter[str] = Counter()
    skipped = 0
    rewinds = 0
    steps = 0
    stopped = False

    i = 0
    while i < len(lines):
        if should_stop is not None and should_stop():
            logger.info("Stopping at line %d of %d", i, len(lines))
            stopped = True
            break

        steps += 1
        result = machine.parse_line(lines[i], lines, i)
        if result is None:
            i += 1
            continue

        event = result.event
        if skip_bot_only_events and is_bot_only(event):
            skipped += 1
        else:
            sink.on_event(event)
            events[event.event_type] += 1

        if result.next_index <= i:
            rewinds += 1
        i = result.next_index

    stats = {
        "lines": len(lines),
        "steps": steps,
        "events": dict(events),
        "games": events.get(GameEventType.GAME_OVER.value, 0),
        "games_processed": events.get(GameEventType.GAME_PROCESSED.value, 0),
        "skipped_bot_events": skipped,
        "rewinds": rewinds,
        "app_server_id": machine.app_server_id,
        "stopped": stopped,
    }
    logger.debug("Processed buffer: %s", stats)
    return stats


def ingest_file(
    path: str | Path,
    store: EventSink,
    config: ParserConfig | None = None,
    *,
    lookup: ProcessedGameLookup | None = None,
    accolade_sink: AccoladeSink | None = None,
    should_stop: Callable[[], bool] | None = None,
) -> dict:
    """Read one log file and ingest it with a fresh state machine.

    ``store`` doubles as the processed-game lookup and accolade sink
    unless those are given separately (``EventRepository`` and
    ``InMemoryEventStore`` implement all three).

    Returns:
        ``process_lines`` stats plus ``file``.
    """
    config = config or ParserConfig()
    lines = read_log_lines(path)
    logger.info("Ingesting %s (%d lines)", path, len(lines))

    machine = ReplayStateMachine(
        lookup if lookup is not None else store,
        accolade_sink if accolade_sink is not None else store,
        config,
    )
    stats = process_lines(
        lines,
        machine,
        store,
        skip_bot_only_events=config.skip_bot_only_events,
        should_stop=should_stop,
    )
    stats["file"] = str(path)

    logger.info(
        "Finished %s: %d games, %d events, %d bot-only skipped",
        path, stats["games"], sum(stats["events"].values()),
        stats["skipped_bot_events"],
    )
    return stats
