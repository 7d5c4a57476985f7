"""Squad and player analysis report models."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .player import Player


class PlayerResolution(BaseModel):
    """Outcome of looking up player names: the resolved subset plus the misses."""

    model_config = ConfigDict(frozen=True)

    found: List[Player] = Field(default_factory=list)
    unresolved: List[str] = Field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.unresolved


class PlayerSummary(BaseModel):
    """Window totals for one player."""

    name: str
    position: str
    club: str
    price: Optional[float] = None
    total_points: float
    value: float


class PlayerComparison(PlayerSummary):
    """A player's per-gameweek predictions over a window."""

    gameweek_points: List[float] = Field(default_factory=list)


class PlayersComparison(BaseModel):
    """Head-to-head comparison of two players."""

    player1: PlayerComparison
    player2: PlayerComparison
    gameweek_delta: List[float]
    total_delta: float


class TeamPointsDifference(BaseModel):
    """Primary minus opponent."""

    gameweek_points_delta: List[float]
    total_points_delta: float
    team_value_delta: float


class TeamPointsReport(BaseModel):
    """Predicted points of a named squad across a window."""

    player_names: List[str]
    start_gameweek: int
    end_gameweek: int
    gameweek_points: List[float] = Field(default_factory=list)
    total_points: float = 0.0
    not_found_players: List[str] = Field(default_factory=list)
    team_value: Optional[float] = None
    team_by_week: List[List[str]] = Field(default_factory=list)
    captains_by_week: List[str] = Field(default_factory=list)
    bb_gw: Optional[int] = None
    opponent: Optional["TeamPointsReport"] = None
    difference: Optional[TeamPointsDifference] = None

    @computed_field
    @property
    def found_players_count(self) -> int:
        return len(self.player_names) - len(self.not_found_players)


class TransferSuggestion(BaseModel):
    """A single same-position swap."""

    player_out: str
    player_in: str
    delta_points: float


class TransferPlan(BaseModel):
    """Greedy transfer suggestions over a lookahead horizon."""

    original_team: List[str]
    suggestions: List[TransferSuggestion] = Field(default_factory=list)
    final_team: List[str]
    original_projected_points: float
    final_projected_points: float

    @computed_field
    @property
    def projected_gain(self) -> float:
        return round(self.final_projected_points - self.original_projected_points, 2)
