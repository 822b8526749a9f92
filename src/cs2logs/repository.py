"""SQLite-backed event store for the replay parser.

Provides EventRepository, which implements the three collaborator
protocols of ``cs2logs.interfaces`` (EventSink, ProcessedGameLookup,
AccoladeSink) on top of the ``events`` and ``accolades`` tables.

Events are inserted with INSERT ... ON CONFLICT DO NOTHING keyed on
(event_type, timestamp, payload), so the in-round events that a replay
re-emits are stored once. Read methods return dicts (via sqlite3.Row) or,
for events, validated Pydantic models.
"""

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Sequence

from cs2logs.models import (
    AccoladeRecord,
    GameEventType,
    ParsedEvent,
    parsed_event_adapter,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# SQL constants
# ---------------------------------------------------------------------------

INSERT_EVENT = """
    INSERT INTO events (event_type, timestamp, payload, ingested_at)
    VALUES (:event_type, :timestamp, :payload, :ingested_at)
    ON CONFLICT(event_type, timestamp, payload) DO NOTHING
"""

SELECT_EVENT_ID = """
    SELECT id FROM events
    WHERE event_type = :event_type AND timestamp = :timestamp AND payload = :payload
"""

INSERT_ACCOLADE = """
    INSERT INTO accolades (
        game_over_id, type, player_name, player_id, steam_id,
        value, position, score
    ) VALUES (
        :game_over_id, :type, :player_name, :player_id, :steam_id,
        :value, :position, :score
    )
    ON CONFLICT(game_over_id, type, player_id, position) DO NOTHING
"""


def format_timestamp(value: datetime) -> str:
    """Canonical text form used for the ``timestamp`` column."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository class
# ---------------------------------------------------------------------------

class EventRepository:
    """Idempotent event store, processed-game lookup and accolade sink.

    Receives a raw ``sqlite3.Connection`` (not a Database instance) so
    tests can pass any connection, including in-memory databases.

    Accolades handed to ``queue_accolades`` are held in memory and written
    together with the next GAME_OVER event, linked to its row.

    Write methods use ``with self.conn:`` for automatic commit on
    success / rollback on exception. sqlite3 errors propagate to callers.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        self._pending_accolades: list[AccoladeRecord] = []

    # ------------------------------------------------------------------
    # Collaborator protocols
    # ------------------------------------------------------------------

    def on_event(self, event: ParsedEvent) -> None:
        """Store an emitted event; flush queued accolades on GAME_OVER."""
        if event.event_type == GameEventType.GAME_OVER:
            self.store_game_over(event, self._pending_accolades)
            self._pending_accolades = []
        else:
            self.store_event(event)

    def exists(self, event_type: str, timestamp: datetime) -> bool:
        """Whether an event of ``event_type`` at ``timestamp`` is stored."""
        row = self.conn.execute(
            "SELECT 1 FROM events WHERE event_type = ? AND timestamp = ? LIMIT 1",
            (_type_value(event_type), format_timestamp(timestamp)),
        ).fetchone()
        return row is not None

    def queue_accolades(self, accolades: Sequence[AccoladeRecord]) -> None:
        """Hold accolades until the GAME_OVER they belong to is stored."""
        if self._pending_accolades:
            logger.warning(
                "Dropping %d queued accolades that were never linked to a game",
                len(self._pending_accolades),
            )
        self._pending_accolades = list(accolades)

    @property
    def pending_accolades(self) -> list[AccoladeRecord]:
        return list(self._pending_accolades)

    # ------------------------------------------------------------------
    # Write methods
    # ------------------------------------------------------------------

    def store_event(self, event: ParsedEvent) -> bool:
        """Insert an event row. Returns False if it was already stored."""
        with self.conn:
            cursor = self.conn.execute(INSERT_EVENT, self._event_row(event))
        return cursor.rowcount == 1

    def store_game_over(
        self, event: ParsedEvent, accolades: Sequence[AccoladeRecord]
    ) -> int:
        """Atomically insert a GAME_OVER event and its accolades.

        Returns:
            The ``events.id`` of the GAME_OVER row.
        """
        row = self._event_row(event)
        with self.conn:
            self.conn.execute(INSERT_EVENT, row)
            game_over_id = self.conn.execute(
                SELECT_EVENT_ID,
                {k: row[k] for k in ("event_type", "timestamp", "payload")},
            ).fetchone()[0]
            for accolade in accolades:
                self.conn.execute(
                    INSERT_ACCOLADE,
                    {"game_over_id": game_over_id, **accolade.model_dump()},
                )
        logger.debug(
            "Stored game over %s with %d accolades", row["timestamp"], len(accolades)
        )
        return game_over_id

    # ------------------------------------------------------------------
    # Read methods
    # ------------------------------------------------------------------

    def get_events(self, event_type: str | None = None) -> list[dict]:
        """Return stored event rows in insertion order."""
        if event_type is None:
            rows = self.conn.execute("SELECT * FROM events ORDER BY id").fetchall()
        else:
            rows = self.conn.execute(
                "SELECT * FROM events WHERE event_type = ? ORDER BY id",
                (_type_value(event_type),),
            ).fetchall()
        return [dict(r) for r in rows]

    def load_events(self, event_type: str | None = None) -> list[ParsedEvent]:
        """Return stored events re-validated into their Pydantic models."""
        return [
            parsed_event_adapter.validate_json(row["payload"])
            for row in self.get_events(event_type)
        ]

    def get_game_accolades(self, timestamp: datetime) -> list[dict]:
        """Return the accolades linked to the GAME_OVER at ``timestamp``."""
        rows = self.conn.execute(
            """
            SELECT a.* FROM accolades a
            JOIN events e ON e.id = a.game_over_id
            WHERE e.event_type = ? AND e.timestamp = ?
            ORDER BY a.id
            """,
            (GameEventType.GAME_OVER.value, format_timestamp(timestamp)),
        ).fetchall()
        return [dict(r) for r in rows]

    def count_events(self, event_type: str | None = None) -> int:
        """Return the number of stored events, optionally of one type."""
        if event_type is None:
            return self.conn.execute("SELECT COUNT(*) FROM events").fetchone()[0]
        return self.conn.execute(
            "SELECT COUNT(*) FROM events WHERE event_type = ?",
            (_type_value(event_type),),
        ).fetchone()[0]

    def count_accolades(self) -> int:
        """Return the total number of stored accolades."""
        return self.conn.execute("SELECT COUNT(*) FROM accolades").fetchone()[0]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _event_row(event: ParsedEvent) -> dict:
        return {
            "event_type": _type_value(event.event_type),
            "timestamp": format_timestamp(event.timestamp),
            "payload": event.model_dump_json(),
            "ingested_at": datetime.now(timezone.utc).isoformat(),
        }


def _type_value(event_type: str) -> str:
    # GameEventType members and plain strings both end up as "GAME_OVER" etc.
    return event_type.value if isinstance(event_type, GameEventType) else event_type
