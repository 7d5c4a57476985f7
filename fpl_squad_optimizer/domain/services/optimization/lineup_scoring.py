"""Weekly lineup selection and squad scoring."""

from typing import Dict, List, Sequence, Tuple

from fpl_squad_optimizer.domain.models import (
    LINEUP_SIZE,
    Player,
    Position,
    SquadScore,
    WeeklyLineup,
)

# (defenders, midfielders, forwards) in evaluation order
FORMATIONS: Tuple[Tuple[int, int, int], ...] = tuple(
    (d, m, f)
    for d in range(Position.DEF.lineup_bounds[0], Position.DEF.lineup_bounds[1] + 1)
    for m in range(Position.MID.lineup_bounds[0], Position.MID.lineup_bounds[1] + 1)
    for f in range(Position.FWD.lineup_bounds[0], Position.FWD.lineup_bounds[1] + 1)
    if 1 + d + m + f == LINEUP_SIZE
)


class LineupScorer:
    """Picks the best legal XI per gameweek and totals a squad over a window."""

    def select_optimal_lineup(
        self, squad_players: Sequence[Player], gameweek: int
    ) -> WeeklyLineup:
        """Best-scoring legal starting XI for one gameweek.

        Tries every legal formation with the best goalkeeper and the top
        players of each outfield group; the highest sum wins, earlier
        formations on ties. If no formation can be filled the top 11 by
        points start instead.
        """
        by_position: Dict[Position, List[Player]] = {position: [] for position in Position}
        for player in squad_players:
            by_position[player.position].append(player)
        for group in by_position.values():
            group.sort(key=lambda p: p.points_for(gameweek), reverse=True)

        goalkeepers = by_position[Position.GK]
        defenders = by_position[Position.DEF]
        midfielders = by_position[Position.MID]
        forwards = by_position[Position.FWD]

        best_starters: Tuple[Player, ...] = ()
        best_points = float("-inf")
        best_formation = ""
        if goalkeepers:
            for d, m, f in FORMATIONS:
                if len(defenders) < d or len(midfielders) < m or len(forwards) < f:
                    continue
                starters = (goalkeepers[0], *defenders[:d], *midfielders[:m], *forwards[:f])
                points = sum(p.points_for(gameweek) for p in starters)
                if points > best_points:
                    best_points = points
                    best_starters = starters
                    best_formation = f"{d}-{m}-{f}"

        if not best_starters:
            ranked = sorted(squad_players, key=lambda p: p.points_for(gameweek), reverse=True)
            best_starters = tuple(ranked[:LINEUP_SIZE])
            best_points = sum(p.points_for(gameweek) for p in best_starters)
            best_formation = _describe_formation(best_starters)

        captain = best_starters[0]
        for player in best_starters[1:]:
            if player.points_for(gameweek) > captain.points_for(gameweek):
                captain = player

        starter_ids = {id(p) for p in best_starters}
        bench = tuple(p for p in squad_players if id(p) not in starter_ids)

        return WeeklyLineup(
            gameweek=gameweek,
            starters=best_starters,
            bench=bench,
            captain=captain,
            formation=best_formation,
            points=best_points,
            captain_points=captain.points_for(gameweek),
            bench_points=sum(p.points_for(gameweek) for p in bench),
        )

    def calculate_predicted_points(
        self,
        squad_players: Sequence[Player],
        start_gw: int,
        end_gw: int,
        bench_boost: bool = False,
    ) -> SquadScore:
        """Total predicted points over an inclusive gameweek window.

        Each week scores its optimal lineup plus the captain's points again.
        The first week with the highest bench total is reported as the best
        bench week; with ``bench_boost`` its bench points are added once.
        Lineups are computed once per gameweek and reused for the bench pass.
        """
        if not squad_players:
            raise ValueError("Cannot score an empty squad")

        memo: Dict[int, WeeklyLineup] = {}

        def lineup_for(gameweek: int) -> WeeklyLineup:
            if gameweek not in memo:
                memo[gameweek] = self.select_optimal_lineup(squad_players, gameweek)
            return memo[gameweek]

        weeks = range(start_gw, end_gw + 1)
        total = sum(lineup_for(gameweek).total_points for gameweek in weeks)

        # max() keeps the first of equal bench totals
        best_bench = lineup_for(max(weeks, key=lambda gameweek: lineup_for(gameweek).bench_points))

        bench_boost_gameweek = None
        if bench_boost:
            total += best_bench.bench_points
            bench_boost_gameweek = best_bench.gameweek

        return SquadScore(
            start_gw=start_gw,
            end_gw=end_gw,
            lineups=tuple(lineup_for(gameweek) for gameweek in weeks),
            total_points=total,
            best_bench_gameweek=best_bench.gameweek,
            bench_boost_gameweek=bench_boost_gameweek,
        )


def _describe_formation(starters: Sequence[Player]) -> str:
    counts = {position: 0 for position in Position}
    for player in starters:
        counts[player.position] += 1
    return f"{counts[Position.DEF]}-{counts[Position.MID]}-{counts[Position.FWD]}"
