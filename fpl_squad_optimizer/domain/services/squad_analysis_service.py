"""Squad analysis service: player lookups, team scoring and transfer advice.

Provides read-only analysis over the player dataset:
- Name resolution (case-insensitive, partial results)
- Top players by points or value over a window
- Head-to-head player comparison
- Predicted points for a named squad, optionally against an opponent
- Greedy same-position transfer suggestions over a lookahead horizon
"""

from typing import Dict, Iterable, List, Optional, Sequence

from loguru import logger

from fpl_squad_optimizer.config import config
from fpl_squad_optimizer.domain.common.exceptions import DataError, InputError
from fpl_squad_optimizer.domain.models import (
    SQUAD_SIZE,
    Player,
    PlayerComparison,
    PlayerResolution,
    PlayersComparison,
    PlayerSummary,
    Position,
    TeamPointsDifference,
    TeamPointsReport,
    TransferPlan,
    TransferSuggestion,
)

from .optimization import LineupScorer

SORT_KEYS = ("points", "value")


class SquadAnalysisService:
    """Analysis operations over a read-only player dataset."""

    def __init__(self, players: Sequence[Player], season_length: Optional[int] = None):
        """Initialize the service.

        Args:
            players: Mapped player records
            season_length: Last valid gameweek (defaults to config)
        """
        self.players = list(players)
        self.season_length = season_length or config.optimization.season_length
        self.scorer = LineupScorer()
        self._by_name: Dict[str, Player] = {}
        for player in self.players:
            self._by_name.setdefault(player.name.casefold(), player)

    def validate_window(self, start_gw: int, end_gw: int) -> None:
        if start_gw < 1 or end_gw < 1:
            raise InputError("Gameweek numbers must be positive integers")
        if start_gw > end_gw:
            raise InputError("Start gameweek must be less than or equal to end gameweek")
        if end_gw > self.season_length:
            raise InputError(f"End gameweek cannot exceed {self.season_length}")

    def resolve_players(
        self,
        names: Iterable[str],
        start_gw: Optional[int] = None,
        end_gw: Optional[int] = None,
    ) -> PlayerResolution:
        """Look players up by case-insensitive name.

        When a window is given, unpriced or zero-value players count as
        unresolved.
        """
        found: List[Player] = []
        unresolved: List[str] = []
        for name in names:
            player = self._by_name.get(name.strip().casefold())
            if player is None:
                unresolved.append(name)
            elif start_gw is not None and end_gw is not None and not player.is_selectable(
                start_gw, end_gw
            ):
                unresolved.append(name)
            else:
                found.append(player)
        return PlayerResolution(found=found, unresolved=unresolved)

    def top_players(
        self,
        start_gw: int,
        end_gw: int,
        position: Optional[str] = None,
        sort_by: str = "points",
        limit: int = 20,
    ) -> List[PlayerSummary]:
        """Best players with positive predicted points over the window."""
        self.validate_window(start_gw, end_gw)
        if sort_by not in SORT_KEYS:
            raise InputError(f"sort_by must be one of {SORT_KEYS}, got {sort_by!r}")
        wanted = None
        if position:
            try:
                wanted = Position.from_any(position)
            except ValueError as e:
                raise InputError(str(e)) from e

        summaries = [
            self._summarize(p, start_gw, end_gw)
            for p in self.players
            if wanted is None or p.position == wanted
        ]
        summaries = [s for s in summaries if s.total_points > 0]
        summaries.sort(
            key=lambda s: s.total_points if sort_by == "points" else s.value, reverse=True
        )
        return summaries[:limit]

    def compare_players(
        self, name1: str, name2: str, start_gw: int, end_gw: int
    ) -> PlayersComparison:
        """Per-gameweek head-to-head of two players (first minus second)."""
        self.validate_window(start_gw, end_gw)
        resolution = self.resolve_players([name1, name2])
        if not resolution.is_complete:
            raise DataError(
                f"Player(s) not found: {', '.join(resolution.unresolved)}",
                resolution.unresolved,
            )

        first, second = (self._compare_entry(p, start_gw, end_gw) for p in resolution.found)
        return PlayersComparison(
            player1=first,
            player2=second,
            gameweek_delta=[
                round(a - b, 2) for a, b in zip(first.gameweek_points, second.gameweek_points)
            ],
            total_delta=round(first.total_points - second.total_points, 2),
        )

    def team_points(
        self,
        names: Sequence[str],
        start_gw: int,
        end_gw: int,
        opponent_names: Optional[Sequence[str]] = None,
    ) -> TeamPointsReport:
        """Predicted points of a named squad, optionally compared to an opponent.

        Unknown names are reported, not fatal, as long as one name resolves.
        """
        if not names:
            raise InputError("Player names list cannot be empty")
        self.validate_window(start_gw, end_gw)

        report = self._team_report(names, start_gw, end_gw)
        if opponent_names:
            opponent = self._team_report(opponent_names, start_gw, end_gw)
            report.opponent = opponent
            report.difference = TeamPointsDifference(
                gameweek_points_delta=[
                    round(a - b, 2)
                    for a, b in zip(report.gameweek_points, opponent.gameweek_points)
                ],
                total_points_delta=round(report.total_points - opponent.total_points, 2),
                team_value_delta=round((report.team_value or 0) - (opponent.team_value or 0), 2),
            )
        return report

    def suggest_transfers(
        self,
        names: Sequence[str],
        free_transfers: int,
        current_gw: int,
        lookahead_gws: int = 1,
        ban_list: Iterable[str] = (),
        locked_players: Iterable[str] = (),
        max_players_per_club: Optional[int] = None,
        budget: Optional[float] = None,
    ) -> TransferPlan:
        """Greedy transfer suggestions over ``lookahead_gws`` gameweeks.

        Each free transfer applies the single same-position swap with the
        largest positive gain; the search stops as soon as nothing improves.
        Banned players are never brought in and locked players never leave.
        """
        if len(names) != SQUAD_SIZE:
            raise InputError(f"Provide exactly {SQUAD_SIZE} player names for the team")
        if free_transfers < 0:
            raise InputError("free_transfers must be >= 0")
        if current_gw < 1 or current_gw > self.season_length:
            raise InputError(f"current_gw must be between 1 and {self.season_length}")
        if lookahead_gws < 1:
            raise InputError("lookahead_gws must be >= 1")

        max_per_club = max_players_per_club or config.optimization.max_players_per_club
        budget = budget if budget is not None else config.optimization.max_team_price
        start_gw = current_gw
        end_gw = min(self.season_length, current_gw + lookahead_gws - 1)

        resolution = self.resolve_players(names, start_gw, end_gw)
        if not resolution.is_complete:
            raise DataError(
                f"Player(s) not found or invalid: {', '.join(resolution.unresolved)}",
                resolution.unresolved,
            )
        original = resolution.found

        banned = {n.casefold() for n in ban_list}
        locked = {n.casefold() for n in locked_players}
        pool = [p for p in self.players if p.is_selectable(start_gw, end_gw)]

        def projected(team: Sequence[Player]) -> float:
            score = self.scorer.calculate_predicted_points(team, start_gw, end_gw)
            return round(score.total_points, 2)

        team = list(original)
        suggestions: List[TransferSuggestion] = []
        current_points = projected(team)
        for _ in range(free_transfers):
            in_team = {p.name.casefold() for p in team}
            team_price = sum(p.price or 0.0 for p in team)
            club_counts: Dict[str, int] = {}
            for player in team:
                club_counts[player.club] = club_counts.get(player.club, 0) + 1

            best: Optional[TransferSuggestion] = None
            best_team: Optional[List[Player]] = None
            for index, out_player in enumerate(team):
                if out_player.name.casefold() in locked:
                    continue
                for candidate in pool:
                    if (
                        candidate.position != out_player.position
                        or candidate.name.casefold() in in_team
                        or candidate.name.casefold() in banned
                    ):
                        continue
                    if (
                        candidate.club != out_player.club
                        and club_counts.get(candidate.club, 0) + 1 > max_per_club
                    ):
                        continue
                    if team_price - (out_player.price or 0.0) + (candidate.price or 0.0) > budget:
                        continue

                    new_team = team[:index] + [candidate] + team[index + 1 :]
                    delta = round(projected(new_team) - current_points, 2)
                    if delta > 0 and (best is None or delta > best.delta_points):
                        best = TransferSuggestion(
                            player_out=out_player.name,
                            player_in=candidate.name,
                            delta_points=delta,
                        )
                        best_team = new_team

            if best is None or best_team is None:
                break
            logger.debug(f"Transfer {best.player_out} -> {best.player_in} (+{best.delta_points})")
            suggestions.append(best)
            team = best_team
            current_points = projected(team)

        return TransferPlan(
            original_team=[p.name for p in original],
            suggestions=suggestions,
            final_team=[p.name for p in team],
            original_projected_points=projected(original),
            final_projected_points=projected(team),
        )

    def _summarize(self, player: Player, start_gw: int, end_gw: int) -> PlayerSummary:
        return PlayerSummary(
            name=player.name,
            position=player.position.value,
            club=player.club,
            price=player.price,
            total_points=round(player.points_in_window(start_gw, end_gw), 2),
            value=round(player.value_in_window(start_gw, end_gw), 2),
        )

    def _compare_entry(self, player: Player, start_gw: int, end_gw: int) -> PlayerComparison:
        summary = self._summarize(player, start_gw, end_gw)
        return PlayerComparison(
            **summary.model_dump(),
            gameweek_points=[
                round(player.points_for(gw), 2) for gw in range(start_gw, end_gw + 1)
            ],
        )

    def _team_report(self, names: Sequence[str], start_gw: int, end_gw: int) -> TeamPointsReport:
        resolution = self.resolve_players(names)
        if not resolution.found:
            raise DataError("No valid players found in the provided list", resolution.unresolved)

        team = resolution.found
        score = self.scorer.calculate_predicted_points(team, start_gw, end_gw)
        prices = [p.price for p in team]
        team_value = None if any(price is None for price in prices) else round(sum(prices), 2)

        return TeamPointsReport(
            player_names=list(names),
            start_gameweek=start_gw,
            end_gameweek=end_gw,
            gameweek_points=[round(points, 2) for points in score.points_by_week],
            total_points=round(score.total_points, 2),
            not_found_players=resolution.unresolved,
            team_value=team_value,
            team_by_week=[list(lineup) for lineup in score.lineups_by_week],
            captains_by_week=list(score.captains_by_week),
            bb_gw=score.best_bench_gameweek,
        )
