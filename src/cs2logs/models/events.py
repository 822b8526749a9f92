"""Pydantic v2 models for every event the replay parser can emit.

``ParsedEvent`` is a closed tagged union discriminated on ``event_type``;
sinks dispatch with ``match event.event_type`` (or ``isinstance``) instead
of a visitor hierarchy.
"""

from abc import abstractmethod
from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator
from typing_extensions import Self

from .player import Player, Position


class GameEventType(str, Enum):
    KILL = "KILL"
    ASSIST = "ASSIST"
    ATTACK = "ATTACK"
    BOMB_EVENT = "BOMB_EVENT"
    ROUND_START = "ROUND_START"
    ROUND_END = "ROUND_END"
    GAME_OVER = "GAME_OVER"
    GAME_PROCESSED = "GAME_PROCESSED"


class AssistType(str, Enum):
    REGULAR = "Regular"
    FLASH = "Flash"


class BombAction(str, Enum):
    PLANT = "PLANT"
    BEGIN_DEFUSE = "BEGIN_DEFUSE"
    DEFUSE = "DEFUSE"
    EXPLODE = "EXPLODE"


class GameEvent(BaseModel):
    """Fields shared by every emitted event."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime


class GameActionEvent(GameEvent):
    """A player-on-player event (kill, assist, attack).

    Abstract: only the concrete subclasses can be instantiated.
    """

    victim: Player
    attacker_pos: Position | None = None
    victim_pos: Position | None = None

    @property
    @abstractmethod
    def player1(self) -> Player:
        """The acting player: attacker or assister."""

    @property
    def player2(self) -> Player:
        return self.victim

    def _require_positions(self) -> None:
        if self.attacker_pos is None or self.victim_pos is None:
            raise ValueError(
                f"{type(self).__name__} requires coordinates for both players"
            )


class KillEvent(GameActionEvent):
    event_type: Literal["KILL"] = "KILL"
    attacker: Player
    weapon: str = Field(min_length=1)
    headshot: bool = False
    modifiers: list[str] = Field(default_factory=list)

    @property
    def player1(self) -> Player:
        return self.attacker

    @model_validator(mode="after")
    def check_positions(self) -> Self:
        """Kill lines always print both players' coordinates."""
        self._require_positions()
        return self


class AttackEvent(GameActionEvent):
    event_type: Literal["ATTACK"] = "ATTACK"
    attacker: Player
    weapon: str = Field(min_length=1)
    damage: int = Field(ge=0)
    armor_damage: int = Field(ge=0)
    health_remaining: int = Field(ge=0)
    armor_remaining: int = Field(ge=0)
    hitgroup: str

    @property
    def player1(self) -> Player:
        return self.attacker

    @model_validator(mode="after")
    def check_positions(self) -> Self:
        """Attack lines always print both players' coordinates."""
        self._require_positions()
        return self


class AssistEvent(GameActionEvent):
    event_type: Literal["ASSIST"] = "ASSIST"
    assister: Player
    assist_type: AssistType = AssistType.REGULAR

    @property
    def player1(self) -> Player:
        return self.assister

    @model_validator(mode="after")
    def check_no_positions(self) -> Self:
        """The assist grammar has no coordinates; never invent them."""
        if self.attacker_pos is not None or self.victim_pos is not None:
            raise ValueError("AssistEvent must not carry coordinates")
        return self


class BombEvent(GameEvent):
    event_type: Literal["BOMB_EVENT"] = "BOMB_EVENT"
    action: BombAction
    actor: Player | None = None  # None when a team-level line has no tracked player
    bombsite: str | None = None
    with_kit: bool | None = None


class RoundStartEvent(GameEvent):
    event_type: Literal["ROUND_START"] = "ROUND_START"


class RoundEndEvent(GameEvent):
    event_type: Literal["ROUND_END"] = "ROUND_END"
    players: list[int] = Field(default_factory=list)  # account ids, in print order


class GameOverEvent(GameEvent):
    event_type: Literal["GAME_OVER"] = "GAME_OVER"
    map_name: str = Field(min_length=1)
    mode: str
    submode: str | None = None
    team1_score: int = Field(ge=0)
    team2_score: int = Field(ge=0)
    duration_minutes: int | None = Field(default=None, ge=0)
    app_server_id: int | None = None

    @property
    def total_rounds(self) -> int:
        return self.team1_score + self.team2_score


class GameProcessedEvent(GameEvent):
    event_type: Literal["GAME_PROCESSED"] = "GAME_PROCESSED"


ParsedEvent = Annotated[
    Union[
        KillEvent,
        AssistEvent,
        AttackEvent,
        BombEvent,
        RoundStartEvent,
        RoundEndEvent,
        GameOverEvent,
        GameProcessedEvent,
    ],
    Field(discriminator="event_type"),
]

parsed_event_adapter: TypeAdapter[ParsedEvent] = TypeAdapter(ParsedEvent)
