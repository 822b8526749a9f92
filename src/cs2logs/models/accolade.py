"""Pydantic v2 model for end-of-game accolade records."""

from pydantic import BaseModel, ConfigDict, Field


class AccoladeRecord(BaseModel):
    """One ``ACCOLADE, FINAL: {type}, ...`` line.

    ``player_id`` is the session slot number printed in ``<...>``;
    ``steam_id`` is resolved from player tokens seen during the same game
    and stays None for bots or players that never appeared in an event.
    """

    model_config = ConfigDict(frozen=True)

    type: str = Field(min_length=1)
    player_name: str = Field(min_length=1)
    player_id: int = Field(ge=0)
    steam_id: str | None = None
    value: float
    position: int = Field(ge=0)
    score: float
