"""Pydantic v2 models for parsed CS2 log events.

Re-exports all model classes for convenient import::

    from cs2logs.models import KillEvent, GameOverEvent, ...
"""

from .accolade import AccoladeRecord
from .events import (
    AssistEvent,
    AssistType,
    AttackEvent,
    BombAction,
    BombEvent,
    GameActionEvent,
    GameEvent,
    GameEventType,
    GameOverEvent,
    GameProcessedEvent,
    KillEvent,
    ParsedEvent,
    RoundEndEvent,
    RoundStartEvent,
    parsed_event_adapter,
)
from .player import Player, Position, Team

__all__ = [
    "AccoladeRecord",
    "AssistEvent",
    "AssistType",
    "AttackEvent",
    "BombAction",
    "BombEvent",
    "GameActionEvent",
    "GameEvent",
    "GameEventType",
    "GameOverEvent",
    "GameProcessedEvent",
    "KillEvent",
    "ParsedEvent",
    "Player",
    "Position",
    "RoundEndEvent",
    "RoundStartEvent",
    "Team",
    "parsed_event_adapter",
]
