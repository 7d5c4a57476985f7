"""Candidate narrowing before squad assembly.

This module handles:
- Player pool preselection (top by points and by value, include/lock/ban overrides)
- Collapsing players with identical position, price and club
- Per-position combination generation with locked-player filtering
- Shortlisting combinations by value and by points-per-player
"""

import heapq
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from loguru import logger

from fpl_squad_optimizer.domain.models import Combination, OptimizationRequest, Player, Position

from .combinations import count_combinations, generate_index_combinations

CancelCheck = Callable[[], None]

# How many raw combinations to enumerate between cancellation checks
CANCEL_CHECK_EVERY = 50_000


class _TopK:
    """Bounded heap keeping the k largest keys; earlier entries win ties."""

    def __init__(self, k: int):
        self.k = k
        self._heap: List[Tuple[float, int, Tuple[int, ...]]] = []

    def push(self, key: float, seq: int, item: Tuple[int, ...]) -> None:
        entry = (key, -seq, item)
        if len(self._heap) < self.k:
            heapq.heappush(self._heap, entry)
        elif entry > self._heap[0]:
            heapq.heapreplace(self._heap, entry)

    def ranked(self) -> List[Tuple[int, ...]]:
        return [item for _, _, item in sorted(self._heap, reverse=True)]


@dataclass
class PositionShortlist:
    """Shortlisted combinations for one position plus bookkeeping."""

    position: Position
    combinations: List[Combination]
    pool_size: int
    combinations_considered: int
    lock_fallback: bool = False


@dataclass
class CandidateShortlists:
    """Shortlists for all four positions."""

    by_position: Dict[Position, PositionShortlist] = field(default_factory=dict)

    def for_position(self, position: Position) -> List[Combination]:
        shortlist = self.by_position.get(position)
        return shortlist.combinations if shortlist else []

    @property
    def sizes(self) -> Dict[str, int]:
        return {p.value: len(s.combinations) for p, s in self.by_position.items()}


class CandidateFilter:
    """Narrows the player pool and shortlists per-position combinations.

    Args:
        top_players_by_points: Players kept by window points
        top_players_by_value: Players kept by window points per million
    """

    def __init__(self, top_players_by_points: int = 200, top_players_by_value: int = 200):
        self.top_players_by_points = top_players_by_points
        self.top_players_by_value = top_players_by_value

    def select_player_pool(
        self, players: Sequence[Player], request: OptimizationRequest
    ) -> List[Player]:
        """Top players by points and by value, plus locked/included, minus banned.

        ``players`` is expected to be cleaned already (priced, non-zero value).
        """
        start, end = request.start_gw, request.end_gw
        points = {id(p): p.points_in_window(start, end) for p in players}
        values = {id(p): p.value_in_window(start, end) for p in players}

        top_points = sorted(players, key=lambda p: points[id(p)], reverse=True)
        top_values = sorted(players, key=lambda p: values[id(p)], reverse=True)

        pool = _unique(
            top_points[: self.top_players_by_points]
            + top_values[: self.top_players_by_value]
        )
        pool.sort(key=lambda p: values[id(p)], reverse=True)

        present = {p.name for p in pool}
        required = list(dict.fromkeys([*request.locked_players, *request.include_list]))
        for name in required:
            if name not in present:
                matches = [p for p in players if p.name == name]
                if not matches:
                    logger.warning(f"Required player '{name}' is not in the dataset")
                pool.extend(matches)
                present.add(name)

        banned = set(request.ban_list)
        return [p for p in pool if p.name not in banned]

    def collapse_duplicates(
        self,
        players: Iterable[Player],
        start_gw: int,
        end_gw: int,
        keep_names: Iterable[str] = (),
    ) -> List[Player]:
        """Keep the best-predicted player per (position, price, club).

        A same-position, same-price clubmate with fewer points can never
        improve a squad, so only the top one survives. Players named in
        ``keep_names`` (locked or included) are never collapsed away.
        """
        keep = set(keep_names)
        kept: List[Player] = []
        slot_of: Dict[Tuple[Position, Optional[float], str], int] = {}
        best_points: Dict[Tuple[Position, Optional[float], str], float] = {}
        for player in players:
            if player.name in keep:
                kept.append(player)
                continue
            key = (player.position, player.price, player.club)
            points = player.points_in_window(start_gw, end_gw)
            if key not in slot_of:
                slot_of[key] = len(kept)
                kept.append(player)
                best_points[key] = points
            elif points > best_points[key]:
                kept[slot_of[key]] = player
                best_points[key] = points
        return kept

    def shortlist_position(
        self,
        players: Sequence[Player],
        position: Position,
        request: OptimizationRequest,
        cancel_check: Optional[CancelCheck] = None,
    ) -> PositionShortlist:
        """Enumerate squad-slot combinations for one position and shortlist them.

        Keeps the union of the top ``complexity`` by value and the top
        ``complexity`` by points-per-player. When locked players exist for the
        position only combinations containing all of them compete, unless none
        does, in which case every combination competes.
        """
        size = position.squad_slots
        start, end = request.start_gw, request.end_gw
        names = [p.name for p in players]
        points = [p.points_in_window(start, end) for p in players]
        prices = [p.price or 0.0 for p in players]
        locked = set(request.locked_by_position().get(position, []))

        value_top, ppp_top, matched = self._rank(
            names, points, prices, size, request.complexity, locked, cancel_check
        )
        lock_fallback = False
        if locked and matched == 0:
            logger.warning(
                f"No {position.value} combination contains all locked players "
                f"{sorted(locked)}; using every combination"
            )
            lock_fallback = True
            value_top, ppp_top, matched = self._rank(
                names, points, prices, size, request.complexity, set(), cancel_check
            )

        chosen = list(dict.fromkeys(value_top + ppp_top))
        combinations = [
            Combination(tuple(players[i] for i in idx), start, end) for idx in chosen
        ]
        logger.debug(
            f"{position.value}: {len(players)} players, {matched} combinations, "
            f"{len(combinations)} shortlisted"
        )
        return PositionShortlist(
            position=position,
            combinations=combinations,
            pool_size=len(players),
            combinations_considered=matched,
            lock_fallback=lock_fallback,
        )

    def build_shortlists(
        self,
        players: Sequence[Player],
        request: OptimizationRequest,
        cancel_check: Optional[CancelCheck] = None,
    ) -> CandidateShortlists:
        """Full filter: pool selection, duplicate collapse, per-position shortlists."""
        pool = self.select_player_pool(players, request)
        collapsed = self.collapse_duplicates(
            pool,
            request.start_gw,
            request.end_gw,
            keep_names=[*request.locked_players, *request.include_list],
        )

        shortlists = CandidateShortlists()
        for position in Position:
            position_players = [p for p in collapsed if p.position == position]
            logger.debug(
                f"{position.value}: C({len(position_players)}, {position.squad_slots}) = "
                f"{count_combinations(len(position_players), position.squad_slots)}"
            )
            shortlists.by_position[position] = self.shortlist_position(
                position_players, position, request, cancel_check
            )
            if cancel_check:
                cancel_check()
        return shortlists

    def _rank(
        self,
        names: Sequence[str],
        points: Sequence[float],
        prices: Sequence[float],
        size: int,
        complexity: int,
        locked: Set[str],
        cancel_check: Optional[CancelCheck],
    ) -> Tuple[List[Tuple[int, ...]], List[Tuple[int, ...]], int]:
        by_value = _TopK(complexity)
        by_ppp = _TopK(complexity)
        matched = 0
        for seq, idx in enumerate(generate_index_combinations(len(names), size)):
            if cancel_check and seq % CANCEL_CHECK_EVERY == 0:
                cancel_check()
            if locked and not locked.issubset(names[i] for i in idx):
                continue
            matched += 1
            total_points = sum(points[i] for i in idx)
            total_price = sum(prices[i] for i in idx)
            by_value.push(total_points / total_price if total_price else 0.0, seq, idx)
            by_ppp.push(total_points / size, seq, idx)
        return by_value.ranked(), by_ppp.ranked(), matched


def _unique(players: Iterable[Player]) -> List[Player]:
    seen: Set[int] = set()
    unique = []
    for player in players:
        if id(player) not in seen:
            seen.add(id(player))
            unique.append(player)
    return unique
