"""Pydantic v2 models for players and map positions."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Team(str, Enum):
    CT = "CT"
    TERRORIST = "TERRORIST"


class Position(BaseModel):
    """World coordinates printed in ``[x y z]`` brackets."""

    model_config = ConfigDict(frozen=True)

    x: int
    y: int
    z: int


class Player(BaseModel):
    """A player token such as ``"name<3><[U:1:12345]><CT>"``.

    Bots print the literal ``BOT`` in place of the Steam ID3 bracket; they
    are stored with ``steam_id=None``.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    user_id: int | None = None  # per-session slot number, not stable
    steam_id: str | None = None
    team: Team

    @field_validator("steam_id")
    @classmethod
    def validate_steam_id(cls, v: str | None) -> str | None:
        """Steam ID must be in ``[U:1:N]`` form; ``BOT`` normalises to None."""
        if v is None or v == "BOT":
            return None
        if not (v.startswith("[U:") and v.endswith("]")):
            raise ValueError(f"steam_id must look like [U:1:N], got '{v}'")
        return v

    @property
    def is_bot(self) -> bool:
        return self.steam_id is None
