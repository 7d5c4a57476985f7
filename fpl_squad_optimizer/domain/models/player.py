"""Player domain model with strict validation."""

from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Position(str, Enum):
    """Player positions."""

    GK = "GK"
    DEF = "DEF"
    MID = "MID"
    FWD = "FWD"

    @property
    def squad_slots(self) -> int:
        """Number of players a 15-man squad holds for this position."""
        return SQUAD_SLOTS[self]

    @property
    def lineup_bounds(self) -> Tuple[int, int]:
        """(min, max) starters allowed for this position in a legal XI."""
        return LINEUP_BOUNDS[self]

    @classmethod
    def from_any(cls, value: object) -> "Position":
        """Accept a Position or a case-insensitive name/alias."""
        if isinstance(value, Position):
            return value
        if isinstance(value, str):
            key = value.strip().upper()
            key = POSITION_ALIASES.get(key, key)
            if key in cls.__members__:
                return cls[key]
        raise ValueError(f"Invalid position: {value!r}")


SQUAD_SLOTS = {Position.GK: 2, Position.DEF: 5, Position.MID: 5, Position.FWD: 3}
LINEUP_BOUNDS = {
    Position.GK: (1, 1),
    Position.DEF: (3, 5),
    Position.MID: (2, 5),
    Position.FWD: (1, 3),
}
POSITION_ALIASES = {
    "GKP": "GK",
    "GOALKEEPER": "GK",
    "DEFENDER": "DEF",
    "MIDFIELDER": "MID",
    "FORWARD": "FWD",
}

SQUAD_SIZE = sum(SQUAD_SLOTS.values())
LINEUP_SIZE = 11


class Player(BaseModel):
    """
    Mapped player record consumed by the optimizer.

    Predictions are indexed by gameweek - 1. Records are immutable and shared
    by reference across combinations and squads.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Display name")
    position: Position = Field(..., description="Player position")
    club: str = Field(..., min_length=1, description="Club code")
    price: Optional[float] = Field(None, description="Current price in millions")
    predictions: Tuple[float, ...] = Field(
        default=(), description="Predicted points per gameweek (index 0 = GW1)"
    )

    @field_validator("position", mode="before")
    @classmethod
    def coerce_position(cls, v: object) -> Position:
        return Position.from_any(v)

    @field_validator("name", "club")
    @classmethod
    def strip_text(cls, v: str) -> str:
        trimmed = v.strip()
        if not trimmed:
            raise ValueError("must not be blank")
        return trimmed

    def points_for(self, gameweek: int) -> float:
        """Predicted points for a 1-based gameweek; 0.0 past the end of the data."""
        index = gameweek - 1
        if 0 <= index < len(self.predictions):
            return self.predictions[index]
        return 0.0

    def points_in_window(self, start_gw: int, end_gw: int) -> float:
        """Sum of predictions over the inclusive gameweek window."""
        return sum(self.points_for(gw) for gw in range(start_gw, end_gw + 1))

    def value_in_window(self, start_gw: int, end_gw: int) -> float:
        """Window points per million; 0.0 for unpriced players."""
        if not self.price:
            return 0.0
        return self.points_in_window(start_gw, end_gw) / self.price

    def is_selectable(self, start_gw: int, end_gw: int) -> bool:
        """Priced and with a non-zero value over the window."""
        return self.price is not None and self.value_in_window(start_gw, end_gw) != 0
