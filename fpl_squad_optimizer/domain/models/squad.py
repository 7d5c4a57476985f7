"""Squad building value objects.

These sit on the optimizer's hot path (millions may be created per job), so
they are plain frozen dataclasses with derived values computed once.
Equality is identity: two combinations of the same players built separately
are different candidates.
"""

from collections import Counter
from dataclasses import dataclass, field
from functools import cached_property
from typing import Dict, Mapping, Optional, Tuple

from .player import Player, Position


@dataclass(frozen=True, eq=False)
class Combination:
    """Fixed-size group of same-position players scored over a gameweek window."""

    players: Tuple[Player, ...]
    start_gw: int
    end_gw: int
    price: float = field(init=False)
    predicted_points: float = field(init=False)
    club_counts: Mapping[str, int] = field(init=False)

    def __post_init__(self):
        if not self.players:
            raise ValueError("Combination needs at least one player")
        positions = {p.position for p in self.players}
        if len(positions) != 1:
            raise ValueError(
                f"Combination members must share a position, got {sorted(positions)}"
            )
        object.__setattr__(self, "price", sum(p.price or 0.0 for p in self.players))
        object.__setattr__(
            self,
            "predicted_points",
            sum(p.points_in_window(self.start_gw, self.end_gw) for p in self.players),
        )
        object.__setattr__(self, "club_counts", Counter(p.club for p in self.players))

    @property
    def position(self) -> Position:
        return self.players[0].position

    @property
    def size(self) -> int:
        return len(self.players)

    @property
    def value(self) -> float:
        return self.predicted_points / self.price if self.price else 0.0

    @property
    def points_per_player(self) -> float:
        return self.predicted_points / len(self.players)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.players)


@dataclass(frozen=True, eq=False)
class Squad:
    """Fifteen players: one combination per position."""

    goalkeepers: Combination
    defenders: Combination
    midfielders: Combination
    forwards: Combination

    @property
    def combinations(self) -> Tuple[Combination, Combination, Combination, Combination]:
        return (self.goalkeepers, self.defenders, self.midfielders, self.forwards)

    @cached_property
    def players(self) -> Tuple[Player, ...]:
        return tuple(p for combo in self.combinations for p in combo.players)

    @property
    def price(self) -> float:
        return sum(combo.price for combo in self.combinations)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.players)

    def club_counts(self) -> Dict[str, int]:
        counts: Counter = Counter()
        for combo in self.combinations:
            counts.update(combo.club_counts)
        return dict(counts)


@dataclass(frozen=True)
class WeeklyLineup:
    """Best legal starting XI for one gameweek."""

    gameweek: int
    starters: Tuple[Player, ...]
    bench: Tuple[Player, ...]
    captain: Player
    formation: str
    points: float
    captain_points: float
    bench_points: float

    @property
    def total_points(self) -> float:
        """Starters' points with the captain counted twice."""
        return self.points + self.captain_points

    @property
    def starter_names(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.starters)


@dataclass(frozen=True)
class SquadScore:
    """Per-week lineups and aggregate predicted points for a set of players."""

    start_gw: int
    end_gw: int
    lineups: Tuple[WeeklyLineup, ...]
    total_points: float
    best_bench_gameweek: int
    bench_boost_gameweek: Optional[int] = None

    @property
    def captains_by_week(self) -> Tuple[str, ...]:
        return tuple(lineup.captain.name for lineup in self.lineups)

    @property
    def lineups_by_week(self) -> Tuple[Tuple[str, ...], ...]:
        return tuple(lineup.starter_names for lineup in self.lineups)

    @property
    def bench_points_by_week(self) -> Tuple[float, ...]:
        return tuple(lineup.bench_points for lineup in self.lineups)

    @property
    def points_by_week(self) -> Tuple[float, ...]:
        return tuple(lineup.total_points for lineup in self.lineups)


@dataclass(frozen=True, eq=False)
class ScoredSquad:
    """An assembled squad with its score."""

    squad: Squad
    score: SquadScore

    @property
    def total_points(self) -> float:
        return self.score.total_points
