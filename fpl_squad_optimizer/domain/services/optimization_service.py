"""Squad optimization pipeline.

Runs one optimization request end to end:
- Import: drop unpriced and zero-value players
- Filtering: narrow the pool and shortlist per-position combinations
- Combining: count squads inside the club cap and price band
- Scoring: re-stream those squads; best lineup per week, captaincy,
  optional bench boost
- Finalizing: rank and shape the result

Progress is reported through a callback and cancellation is cooperative via a
``threading.Event`` checked between stages, per goalkeeper combination and per
scored squad.
"""

import heapq
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from itertools import islice
from typing import Callable, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

from loguru import logger

from fpl_squad_optimizer.config import config
from fpl_squad_optimizer.domain.common.exceptions import DataError, OptimizationCanceled
from fpl_squad_optimizer.domain.models import (
    Combination,
    OptimizationRequest,
    OptimizationResult,
    OptimizedSquad,
    Player,
    Position,
    ProgressEvent,
    ProgressStage,
    ScoredSquad,
    Squad,
)

from .optimization import CandidateFilter, LineupScorer, SquadAssembler

ProgressCallback = Callable[[ProgressEvent], None]

# Stage percentages reported while a job runs
IMPORT_PERCENT = 20.0
FILTERING_PERCENT = 40.0
COMBINING_END_PERCENT = 70.0
SCORING_END_PERCENT = 95.0
FINALIZING_PERCENT = 100.0

# Squads handed to one scoring thread at a time
SCORING_BATCH_SIZE = 5_000

# (total, -sequence, scored squad); larger is better, earlier wins ties
_Ranked = Tuple[float, int, ScoredSquad]


class ProgressAccumulator:
    """Thread-safe scored-squad counter with throttled progress reporting.

    Workers call ``add`` after every squad. At most one message is emitted per
    ``interval`` seconds, built from a snapshot taken under the lock.
    """

    def __init__(
        self,
        total: int,
        report: Callable[[float, str], None],
        start_percent: float = 0.0,
        end_percent: float = 100.0,
        interval: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.total = total
        self.report = report
        self.start_percent = start_percent
        self.end_percent = end_percent
        self.interval = interval
        self.clock = clock
        self._done = 0
        self._lock = threading.Lock()
        self._last_emit = clock()

    @property
    def done(self) -> int:
        with self._lock:
            return self._done

    def add(self, count: int = 1) -> None:
        with self._lock:
            self._done += count
            now = self.clock()
            if now - self._last_emit < self.interval:
                return
            self._last_emit = now
            self.report(self._percent(self._done), f"Scored {self._done}/{self.total} squads")

    def _percent(self, done: int) -> float:
        if not self.total:
            return self.end_percent
        fraction = min(done / self.total, 1.0)
        return self.start_percent + (self.end_percent - self.start_percent) * fraction


class SquadOptimizationService:
    """Brute-force squad optimizer over a read-only player dataset.

    Args:
        players: Mapped player records shared by every request
        scoring_workers: Threads used for scoring (defaults to config)
        progress_interval_seconds: Minimum gap between scoring progress messages
        clock: Monotonic time source, injectable for tests
    """

    def __init__(
        self,
        players: Sequence[Player],
        scoring_workers: Optional[int] = None,
        progress_interval_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.players = list(players)
        self.scoring_workers = scoring_workers or config.optimization.scoring_workers
        self.progress_interval_seconds = (
            progress_interval_seconds
            if progress_interval_seconds is not None
            else config.optimization.progress_interval_seconds
        )
        self.clock = clock
        self.candidate_filter = CandidateFilter(
            top_players_by_points=config.optimization.top_players_by_points,
            top_players_by_value=config.optimization.top_players_by_value,
        )
        self.scorer = LineupScorer()

    def optimize(
        self,
        request: OptimizationRequest,
        progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> OptimizationResult:
        """Run the full pipeline for one request.

        Raises:
            DataError: If a locked or included player is not selectable
            OptimizationCanceled: If ``cancel_event`` is set while running
        """

        def emit(stage: ProgressStage, percent: float, message: str) -> None:
            logger.debug(f"[{stage.value}] {percent:.1f}% {message}")
            if progress:
                progress(ProgressEvent(stage=stage, percent=percent, message=message))

        def check_cancel() -> None:
            if cancel_event is not None and cancel_event.is_set():
                raise OptimizationCanceled("Optimization canceled")

        started = self.clock()
        logger.info(
            f"🚀 Optimizing GW{request.start_gw}-{request.end_gw} "
            f"(complexity {request.complexity}, budget {request.min_team_price}-"
            f"{request.max_team_price})"
        )

        emit(ProgressStage.IMPORT, 0.0, "Preparing player data")
        selectable = self.select_players(request)
        self.check_required_players(request, selectable)
        emit(
            ProgressStage.IMPORT,
            IMPORT_PERCENT,
            f"{len(selectable)} of {len(self.players)} players selectable",
        )
        check_cancel()

        shortlists = self.candidate_filter.build_shortlists(selectable, request, check_cancel)
        sizes = shortlists.sizes
        emit(
            ProgressStage.FILTERING,
            FILTERING_PERCENT,
            "Shortlisted " + ", ".join(f"{pos} {n}" for pos, n in sizes.items()),
        )
        combinations = {position: shortlists.for_position(position) for position in Position}
        filtered = self.clock()
        check_cancel()

        squad_count = self.count_squads(request, combinations, emit, check_cancel)
        emit(ProgressStage.COMBINING, COMBINING_END_PERCENT, f"Assembled {squad_count} squads")
        combined = self.clock()
        check_cancel()

        ranked = self.score_squads(
            request,
            self.assemble_squads(request, combinations, check_cancel=check_cancel),
            squad_count,
            emit,
            check_cancel,
        )
        scored = self.clock()
        check_cancel()

        teams = [self._to_optimized_squad(entry) for entry in ranked]
        emit(ProgressStage.FINALIZING, FINALIZING_PERCENT, f"Ranked top {len(teams)} squads")

        result = OptimizationResult(
            teams=teams,
            squads_evaluated=squad_count,
            elapsed_import_filter=format_elapsed(filtered - started),
            elapsed_combining=format_elapsed(combined - filtered),
            elapsed_scoring=format_elapsed(scored - combined),
        )
        if not teams:
            logger.warning("⚠️ No squad satisfies the club and price constraints")
        else:
            logger.info(
                f"✅ Best squad {teams[0].predicted_points} pts from "
                f"{squad_count} squads in {format_elapsed(scored - started)}"
            )
        return result

    def select_players(self, request: OptimizationRequest) -> List[Player]:
        """Players that are priced and have a non-zero value over the window."""
        return [p for p in self.players if p.is_selectable(request.start_gw, request.end_gw)]

    def check_required_players(
        self, request: OptimizationRequest, selectable: Optional[Sequence[Player]] = None
    ) -> None:
        """Ensure every locked and included name is selectable in the window.

        Raises:
            DataError: Listing names that are unknown, unpriced or zero-value
        """
        if selectable is None:
            selectable = self.select_players(request)
        available = {p.name for p in selectable}
        required = dict.fromkeys([*request.locked_players, *request.include_list])
        unresolved = [name for name in required if name not in available]
        if unresolved:
            raise DataError(
                f"Player(s) not found or not selectable in GW{request.start_gw}-"
                f"{request.end_gw}: {', '.join(unresolved)}",
                unresolved,
            )

    def assemble_squads(
        self,
        request: OptimizationRequest,
        combinations: Mapping[Position, Sequence[Combination]],
        on_goalkeeper: Optional[Callable[[int, int], None]] = None,
        check_cancel: Optional[Callable[[], None]] = None,
    ) -> Iterator[Squad]:
        """Lazily stream every squad passing the club, price and lock checks."""
        return SquadAssembler.from_request(request).assemble(
            combinations,
            locked_names=request.locked_players,
            on_goalkeeper=on_goalkeeper,
            cancel_check=check_cancel,
        )

    def count_squads(
        self,
        request: OptimizationRequest,
        combinations: Mapping[Position, Sequence[Combination]],
        emit: Callable[[ProgressStage, float, str], None],
        check_cancel: Callable[[], None],
    ) -> int:
        span = COMBINING_END_PERCENT - FILTERING_PERCENT

        def on_goalkeeper(index: int, total: int) -> None:
            emit(
                ProgressStage.COMBINING,
                FILTERING_PERCENT + span * index / total,
                f"Goalkeeper combination {index + 1}/{total}",
            )

        squads = self.assemble_squads(request, combinations, on_goalkeeper, check_cancel)
        return sum(1 for _ in squads)

    def score_squads(
        self,
        request: OptimizationRequest,
        squads: Iterable[Squad],
        total: int,
        emit: Callable[[ProgressStage, float, str], None],
        check_cancel: Callable[[], None],
    ) -> List[ScoredSquad]:
        """Score a stream of ``total`` squads and keep the best ``request.top_teams``.

        Ranking uses the bench-boosted total when bench boost is requested and
        is independent of how squads are split across workers. With several
        workers the stream is cut into batches of ``SCORING_BATCH_SIZE``, one
        batch per worker at a time.
        """
        emit(ProgressStage.SCORING, COMBINING_END_PERCENT, f"Scoring {total} squads")
        accumulator = ProgressAccumulator(
            total=total,
            report=lambda percent, message: emit(ProgressStage.SCORING, percent, message),
            start_percent=COMBINING_END_PERCENT,
            end_percent=SCORING_END_PERCENT,
            interval=self.progress_interval_seconds,
            clock=self.clock,
        )

        indexed = enumerate(squads)
        workers = max(1, min(self.scoring_workers, total))
        if workers == 1:
            best = self._score_chunk(request, indexed, accumulator, check_cancel)
        else:
            logger.debug(f"Scoring {total} squads on {workers} threads")
            best = []
            with ThreadPoolExecutor(max_workers=workers) as executor:
                while True:
                    chunks = [list(islice(indexed, SCORING_BATCH_SIZE)) for _ in range(workers)]
                    chunks = [chunk for chunk in chunks if chunk]
                    if not chunks:
                        break
                    futures = [
                        executor.submit(
                            self._score_chunk, request, chunk, accumulator, check_cancel
                        )
                        for chunk in chunks
                    ]
                    for future in as_completed(futures):
                        best.extend(future.result())
                    best = heapq.nlargest(request.top_teams, best, key=_rank_key)

        emit(
            ProgressStage.SCORING,
            SCORING_END_PERCENT,
            f"Scored {accumulator.done}/{total} squads",
        )
        return [entry[2] for entry in best]

    def _score_chunk(
        self,
        request: OptimizationRequest,
        chunk: Iterable[Tuple[int, Squad]],
        accumulator: ProgressAccumulator,
        check_cancel: Callable[[], None],
    ) -> List[_Ranked]:
        def scored():
            for seq, squad in chunk:
                check_cancel()
                score = self.scorer.calculate_predicted_points(
                    squad.players,
                    request.start_gw,
                    request.end_gw,
                    bench_boost=request.calculate_bench_boost,
                )
                accumulator.add()
                yield (score.total_points, -seq, ScoredSquad(squad=squad, score=score))

        return heapq.nlargest(request.top_teams, scored(), key=_rank_key)

    @staticmethod
    def _to_optimized_squad(scored: ScoredSquad) -> OptimizedSquad:
        score = scored.score
        return OptimizedSquad(
            player_names=list(scored.squad.names),
            predicted_points=round(score.total_points, 2),
            price=round(scored.squad.price, 2),
            optimal_teams_by_week=[list(names) for names in score.lineups_by_week],
            captains_by_week=list(score.captains_by_week),
            bench_boost_gw=score.bench_boost_gameweek,
        )


def _rank_key(entry: _Ranked) -> Tuple[float, int]:
    return (entry[0], entry[1])


def format_elapsed(seconds: float) -> str:
    """Format a duration as hh:mm:ss."""
    total = int(max(seconds, 0))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
