"""Squad optimization engine building blocks."""

from .candidate_filter import CandidateFilter, CandidateShortlists, PositionShortlist
from .combinations import count_combinations, generate_combinations, generate_index_combinations
from .lineup_scoring import FORMATIONS, LineupScorer
from .squad_assembly import SquadAssembler

__all__ = [
    "generate_combinations",
    "generate_index_combinations",
    "count_combinations",
    "CandidateFilter",
    "CandidateShortlists",
    "PositionShortlist",
    "SquadAssembler",
    "LineupScorer",
    "FORMATIONS",
]
