"""Optimization request, progress and result data contracts."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from fpl_squad_optimizer.config import config

from ..common.exceptions import InputError
from .player import Position


class OptimizationRequest(BaseModel):
    """Inputs for one squad optimization job.

    Defaults come from the global ``config.optimization`` section.
    """

    start_gw: int = Field(default_factory=lambda: config.optimization.start_gw, ge=1)
    end_gw: int = Field(default_factory=lambda: config.optimization.end_gw, ge=1)
    complexity: int = Field(
        default_factory=lambda: config.optimization.complexity, ge=1
    )
    max_players_per_club: int = Field(
        default_factory=lambda: config.optimization.max_players_per_club, ge=1
    )
    min_team_price: float = Field(
        default_factory=lambda: config.optimization.min_team_price, ge=0.0
    )
    max_team_price: float = Field(
        default_factory=lambda: config.optimization.max_team_price, gt=0.0
    )
    calculate_bench_boost: bool = Field(
        default_factory=lambda: config.optimization.calculate_bench_boost
    )
    top_teams: int = Field(default_factory=lambda: config.optimization.top_teams, ge=1)
    include_list: List[str] = Field(default_factory=list)
    ban_list: List[str] = Field(default_factory=list)
    locked_players: Dict[str, Position] = Field(
        default_factory=dict, description="Player name -> position"
    )

    @field_validator("include_list", "ban_list", mode="before")
    @classmethod
    def clean_names(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            raise ValueError("Expected a list of player names")
        names = []
        for name in v:
            if name is None:
                continue
            if not isinstance(name, str):
                raise ValueError(f"Player names must be strings, got {name!r}")
            if name.strip():
                names.append(name.strip())
        return names

    @field_validator("locked_players", mode="before")
    @classmethod
    def coerce_locked(cls, v):
        if v is None:
            return {}
        if not isinstance(v, Mapping):
            raise ValueError("Locked players must map player name to position")
        locked = {}
        for name, position in v.items():
            if not isinstance(name, str) or not name.strip():
                raise ValueError(f"Locked player names must be non-empty strings, got {name!r}")
            locked[name.strip()] = Position.from_any(position)
        return locked

    @model_validator(mode="after")
    def validate_request(self):
        season_length = config.optimization.season_length
        if self.start_gw > self.end_gw:
            raise ValueError("start_gw must be less than or equal to end_gw")
        if self.end_gw > season_length:
            raise ValueError(f"end_gw cannot exceed {season_length}")
        if self.min_team_price > self.max_team_price:
            raise ValueError("min_team_price must not exceed max_team_price")

        banned = set(self.ban_list)
        conflicts = sorted(banned.intersection(self.locked_players))
        conflicts += sorted(banned.intersection(self.include_list) - set(conflicts))
        if conflicts:
            raise ValueError(f"Players both required and banned: {conflicts}")

        for position in Position:
            locked = [n for n, p in self.locked_players.items() if p == position]
            if len(locked) > position.squad_slots:
                raise ValueError(
                    f"{len(locked)} {position.value} players locked but a squad "
                    f"holds only {position.squad_slots}"
                )
        return self

    @property
    def number_of_gameweeks(self) -> int:
        return self.end_gw - self.start_gw + 1

    def locked_by_position(self) -> Dict[Position, List[str]]:
        grouped: Dict[Position, List[str]] = {}
        for name, position in self.locked_players.items():
            grouped.setdefault(position, []).append(name)
        return grouped

    @classmethod
    def parse(cls, data: Optional[Mapping[str, Any]] = None, **overrides) -> "OptimizationRequest":
        """Build a request, reporting validation failures as InputError."""
        payload = {**(data or {}), **overrides}
        try:
            return cls(**payload)
        except ValidationError as e:
            raise InputError(f"Invalid optimization request: {e}") from e


class ProgressStage(str, Enum):
    """Stage labels carried by progress events."""

    IMPORT = "Import"
    FILTERING = "Filtering"
    COMBINING = "Combining"
    SCORING = "Scoring"
    FINALIZING = "Finalizing"
    DONE = "Done"
    CANCELED = "Canceled"
    ERROR = "Error"

    @property
    def is_terminal(self) -> bool:
        return self in (ProgressStage.DONE, ProgressStage.CANCELED, ProgressStage.ERROR)


class JobStatus(str, Enum):
    """Lifecycle of an optimization job."""

    CREATED = "created"
    RUNNING = "running"
    DONE = "done"
    CANCELED = "canceled"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.DONE, JobStatus.CANCELED, JobStatus.ERROR)


class ProgressEvent(BaseModel):
    """One progress message for a running job."""

    stage: ProgressStage
    message: str = ""
    percent: Optional[float] = Field(None, ge=0.0, le=100.0)


class OptimizedSquad(BaseModel):
    """One ranked squad in an optimization result."""

    player_names: List[str]
    predicted_points: float
    price: float
    optimal_teams_by_week: List[List[str]]
    captains_by_week: List[str]
    bench_boost_gw: Optional[int] = None


class OptimizationResult(BaseModel):
    """Final output of an optimization job."""

    teams: List[OptimizedSquad] = Field(default_factory=list)
    squads_evaluated: int = 0
    elapsed_import_filter: Optional[str] = None
    elapsed_combining: Optional[str] = None
    elapsed_scoring: Optional[str] = None


class JobSnapshot(BaseModel):
    """Read-only view of a job's state."""

    job_id: str
    status: JobStatus
    stage: Optional[ProgressStage] = None
    percent: Optional[float] = None
    message: str = ""
    error: Optional[str] = None
    created_at: datetime
    finished_at: Optional[datetime] = None
