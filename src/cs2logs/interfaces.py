"""Collaborator interfaces between the replay parser and persistence.

The parser core only ever talks to three narrow protocols:

* **EventSink** -- receives each emitted event.
* **ProcessedGameLookup** -- "was this GAME_OVER already ingested?"
* **AccoladeSink** -- receives the accolades of each accepted game.

``cs2logs.repository.EventRepository`` implements all three on SQLite;
``InMemoryEventStore`` implements them on plain lists for tests and dry
runs.
"""

from datetime import datetime
from typing import Protocol, Sequence

from cs2logs.models import AccoladeRecord, GameEventType, ParsedEvent


class EventSink(Protocol):
    def on_event(self, event: ParsedEvent) -> None: ...


class ProcessedGameLookup(Protocol):
    def exists(self, event_type: str, timestamp: datetime) -> bool: ...


class AccoladeSink(Protocol):
    def queue_accolades(self, accolades: Sequence[AccoladeRecord]) -> None: ...


class InMemoryEventStore:
    """List-backed event sink, processed-game lookup and accolade sink.

    ``exists`` only answers for GAME_OVER events seen by ``on_event`` or
    pre-seeded through ``processed``.
    """

    def __init__(self, processed: set[datetime] | None = None) -> None:
        self.events: list[ParsedEvent] = []
        self.accolade_batches: list[list[AccoladeRecord]] = []
        self.processed: set[datetime] = set(processed or ())

    def on_event(self, event: ParsedEvent) -> None:
        self.events.append(event)
        if event.event_type == GameEventType.GAME_OVER:
            self.processed.add(event.timestamp)

    def exists(self, event_type: str, timestamp: datetime) -> bool:
        return event_type == GameEventType.GAME_OVER and timestamp in self.processed

    def queue_accolades(self, accolades: Sequence[AccoladeRecord]) -> None:
        self.accolade_batches.append(list(accolades))

    def events_of(self, event_type: str) -> list[ParsedEvent]:
        """Return emitted events of one type, in emission order."""
        return [e for e in self.events if e.event_type == event_type]
