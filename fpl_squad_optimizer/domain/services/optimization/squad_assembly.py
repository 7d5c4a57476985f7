"""Squad assembly from per-position shortlists."""

from typing import Callable, Dict, Iterable, Iterator, Mapping, Optional, Sequence

from loguru import logger

from fpl_squad_optimizer.domain.models import Combination, OptimizationRequest, Position, Squad

GoalkeeperProgress = Callable[[int, int], None]
CancelCheck = Callable[[], None]


class SquadAssembler:
    """Combines GK, DEF, MID and FWD shortlists into valid 15-player squads.

    Constraints are checked as early as possible: clubs after GK+DEF, clubs and
    the price ceiling after MID, the full price band and clubs after FWD.
    """

    def __init__(
        self,
        max_players_per_club: int = 3,
        min_team_price: float = 0.0,
        max_team_price: float = 100.0,
    ):
        self.max_players_per_club = max_players_per_club
        self.min_team_price = min_team_price
        self.max_team_price = max_team_price

    @classmethod
    def from_request(cls, request: OptimizationRequest) -> "SquadAssembler":
        return cls(
            max_players_per_club=request.max_players_per_club,
            min_team_price=request.min_team_price,
            max_team_price=request.max_team_price,
        )

    def within_club_limit(self, club_counts: Mapping[str, int]) -> bool:
        return all(count <= self.max_players_per_club for count in club_counts.values())

    def within_price_band(self, price: float) -> bool:
        return self.min_team_price <= price <= self.max_team_price

    def assemble(
        self,
        shortlists: Mapping[Position, Sequence[Combination]],
        locked_names: Iterable[str] = (),
        on_goalkeeper: Optional[GoalkeeperProgress] = None,
        cancel_check: Optional[CancelCheck] = None,
    ) -> Iterator[Squad]:
        """Lazily yield every squad satisfying the club cap and price band.

        Args:
            shortlists: Candidate combinations keyed by position
            locked_names: Names every emitted squad must contain
            on_goalkeeper: Called with (index, total) before each GK combination
            cancel_check: Called at each GK boundary; raises to abort

        Yields:
            Squads in GK, DEF, MID, FWD nested iteration order
        """
        goalkeepers = shortlists.get(Position.GK, ())
        defenders = shortlists.get(Position.DEF, ())
        midfielders = shortlists.get(Position.MID, ())
        forwards = shortlists.get(Position.FWD, ())
        locked = set(locked_names)
        max_price = self.max_team_price

        emitted = 0
        discarded_for_locks = 0
        for gk_index, gk in enumerate(goalkeepers):
            if cancel_check:
                cancel_check()
            if on_goalkeeper:
                on_goalkeeper(gk_index, len(goalkeepers))

            for df in defenders:
                gk_df_clubs = _merge_counts(gk.club_counts, df.club_counts)
                if not self.within_club_limit(gk_df_clubs):
                    continue
                gk_df_price = gk.price + df.price

                for md in midfielders:
                    gk_df_md_price = gk_df_price + md.price
                    if gk_df_md_price > max_price:
                        continue
                    gk_df_md_clubs = _merge_counts(gk_df_clubs, md.club_counts)
                    if not self.within_club_limit(gk_df_md_clubs):
                        continue

                    for fw in forwards:
                        price = gk_df_md_price + fw.price
                        if not self.within_price_band(price):
                            continue
                        if not self.within_club_limit(
                            _merge_counts(gk_df_md_clubs, fw.club_counts)
                        ):
                            continue

                        squad = Squad(gk, df, md, fw)
                        if locked and not locked.issubset(squad.names):
                            discarded_for_locks += 1
                            continue
                        emitted += 1
                        yield squad

        logger.debug(
            f"Assembled {emitted} squads"
            + (f" ({discarded_for_locks} missing locked players)" if locked else "")
        )


def _merge_counts(first: Mapping[str, int], second: Mapping[str, int]) -> Dict[str, int]:
    merged = dict(first)
    for club, count in second.items():
        merged[club] = merged.get(club, 0) + count
    return merged
