"""Domain models with strict data contracts for frontend-agnostic architecture."""

from .analysis import (
    PlayerComparison,
    PlayerResolution,
    PlayersComparison,
    PlayerSummary,
    TeamPointsDifference,
    TeamPointsReport,
    TransferPlan,
    TransferSuggestion,
)
from .optimization import (
    JobSnapshot,
    JobStatus,
    OptimizationRequest,
    OptimizationResult,
    OptimizedSquad,
    ProgressEvent,
    ProgressStage,
)
from .player import LINEUP_SIZE, SQUAD_SIZE, Player, Position
from .squad import Combination, ScoredSquad, Squad, SquadScore, WeeklyLineup

__all__ = [
    "Player",
    "Position",
    "SQUAD_SIZE",
    "LINEUP_SIZE",
    "Combination",
    "Squad",
    "WeeklyLineup",
    "SquadScore",
    "ScoredSquad",
    "OptimizationRequest",
    "OptimizationResult",
    "OptimizedSquad",
    "ProgressEvent",
    "ProgressStage",
    "JobStatus",
    "JobSnapshot",
    "PlayerResolution",
    "PlayerSummary",
    "PlayerComparison",
    "PlayersComparison",
    "TeamPointsReport",
    "TeamPointsDifference",
    "TransferSuggestion",
    "TransferPlan",
]
