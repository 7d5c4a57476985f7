"""Tests for background optimization jobs."""

import itertools
import threading
from datetime import datetime, timedelta

import pytest

from fpl_squad_optimizer.domain.common.exceptions import (
    DataError,
    InputError,
    OptimizationCanceled,
)
from fpl_squad_optimizer.domain.models import (
    JobStatus,
    OptimizationResult,
    Player,
    ProgressEvent,
    ProgressStage,
)
from fpl_squad_optimizer.domain.services import OptimizationJobRunner, ProgressChannel

REQUEST = {"start_gw": 1, "end_gw": 2, "min_team_price": 0.0, "complexity": 5}


def small_pool():
    players = []
    for position, count, price in (("GK", 3, 4.5), ("DEF", 6, 5.0), ("MID", 6, 6.0), ("FWD", 4, 7.0)):
        for n in range(count):
            players.append(
                Player(
                    name=f"{position}{n}",
                    position=position,
                    club=f"{position}-club{n}",
                    price=price,
                    predictions=(float(n + 1), float(count - n)),
                )
            )
    return players


class FakeService:
    """Scripted stand-in for SquadOptimizationService."""

    def __init__(self, events=(), error=None, block=False):
        self.events = list(events)
        self.error = error
        self.block = block
        self.started = threading.Event()

    def check_required_players(self, request, selectable=None):
        pass

    def optimize(self, request, progress=None, cancel_event=None):
        for event in self.events:
            progress(event)
        self.started.set()
        if self.block:
            while not cancel_event.wait(0.01):
                pass
            raise OptimizationCanceled("canceled")
        if self.error:
            raise self.error
        return OptimizationResult(squads_evaluated=1)


@pytest.fixture
def runner():
    runner = OptimizationJobRunner(players=small_pool(), max_concurrent_jobs=2)
    yield runner
    runner.shutdown(wait=True, cancel_jobs=True)


class TestJobLifecycle:
    def test_stream_then_result(self, runner):
        job_id = runner.start_optimization(REQUEST)

        events = list(runner.stream_progress(job_id))

        assert events[0].stage == ProgressStage.IMPORT
        assert events[-1].stage == ProgressStage.DONE
        assert events[-1].percent == 100.0
        percents = [e.percent for e in events if e.percent is not None]
        assert percents == sorted(percents)

        result = runner.get_result(job_id)
        assert result is not None
        assert result.teams
        snapshot = runner.get_status(job_id)
        assert snapshot.status == JobStatus.DONE
        assert snapshot.finished_at is not None

    def test_stream_is_not_restartable(self, runner):
        job_id = runner.start_optimization(REQUEST)
        list(runner.stream_progress(job_id))

        assert list(runner.stream_progress(job_id)) == []

    def test_unknown_job(self, runner):
        assert list(runner.stream_progress("missing")) == []
        assert runner.get_result("missing") is None
        assert runner.get_status("missing") is None
        assert runner.cancel("missing") is False

    def test_invalid_request_creates_no_job(self, runner):
        with pytest.raises(InputError):
            runner.start_optimization({"start_gw": 5, "end_gw": 1})

        assert runner.list_jobs() == []

    def test_unknown_locked_player_creates_no_job(self, runner):
        with pytest.raises(DataError) as excinfo:
            runner.start_optimization(
                {**REQUEST, "locked_players": {"Nobody": "MID"}, "include_list": ["GK0"]}
            )

        assert excinfo.value.unresolved_names == ["Nobody"]
        assert runner.list_jobs() == []

    def test_concurrent_jobs_are_independent(self, runner):
        first = runner.start_optimization(REQUEST)
        second = runner.start_optimization({**REQUEST, "end_gw": 1})

        list(runner.stream_progress(first))
        list(runner.stream_progress(second))

        assert first != second
        assert runner.get_result(first) is not None
        assert runner.get_result(second) is not None


class TestCancellationAndErrors:
    def test_cancel_running_job(self):
        service = FakeService(
            events=[ProgressEvent(stage=ProgressStage.SCORING, percent=80.0, message="x")],
            block=True,
        )
        with OptimizationJobRunner(service=service, max_concurrent_jobs=1) as runner:
            job_id = runner.start_optimization(REQUEST)
            assert service.started.wait(5)

            assert runner.cancel(job_id) is True
            events = list(runner.stream_progress(job_id))

            assert events[-1].stage == ProgressStage.CANCELED
            assert events[-1].percent == 80.0
            assert runner.get_status(job_id).status == JobStatus.CANCELED
            assert runner.get_result(job_id) is None
            assert runner.cancel(job_id) is False

    def test_cancel_queued_job(self):
        blocker = FakeService(block=True)
        with OptimizationJobRunner(service=blocker, max_concurrent_jobs=1) as runner:
            running = runner.start_optimization(REQUEST)
            assert blocker.started.wait(5)
            queued = runner.start_optimization(REQUEST)

            assert runner.cancel(queued) is True
            assert [e.stage for e in runner.stream_progress(queued)] == [ProgressStage.CANCELED]
            runner.cancel(running)

    def test_failure_reported(self):
        service = FakeService(error=RuntimeError("boom"))
        with OptimizationJobRunner(service=service, max_concurrent_jobs=1) as runner:
            job_id = runner.start_optimization(REQUEST)

            events = list(runner.stream_progress(job_id))

            assert events[-1].stage == ProgressStage.ERROR
            assert "boom" in events[-1].message
            snapshot = runner.get_status(job_id)
            assert snapshot.status == JobStatus.ERROR
            assert "boom" in snapshot.error
            assert runner.get_result(job_id) is None

    def test_percent_never_decreases(self):
        service = FakeService(
            events=[
                ProgressEvent(stage=ProgressStage.FILTERING, percent=50.0),
                ProgressEvent(stage=ProgressStage.COMBINING, percent=30.0),
                ProgressEvent(stage=ProgressStage.SCORING),
            ]
        )
        with OptimizationJobRunner(service=service, max_concurrent_jobs=1) as runner:
            job_id = runner.start_optimization(REQUEST)

            percents = [e.percent for e in runner.stream_progress(job_id)]

            assert percents == [50.0, 50.0, 50.0, 100.0]


class TestEviction:
    @staticmethod
    def clock(start=datetime(2025, 8, 1)):
        counter = itertools.count()
        offset = {"seconds": 0}

        def now():
            return start + timedelta(seconds=next(counter) + offset["seconds"])

        return now, offset

    def test_finished_jobs_expire(self):
        now, offset = self.clock()
        with OptimizationJobRunner(
            service=FakeService(), max_concurrent_jobs=1, job_ttl_seconds=60, now=now
        ) as runner:
            job_id = runner.start_optimization(REQUEST)
            list(runner.stream_progress(job_id))

            assert runner.evict_expired() == 0
            offset["seconds"] = 120
            assert runner.evict_expired() == 1
            assert runner.get_status(job_id) is None

    def test_store_capped_oldest_first(self):
        now, _ = self.clock()
        with OptimizationJobRunner(
            service=FakeService(), max_concurrent_jobs=1, max_jobs=2, now=now
        ) as runner:
            job_ids = []
            for _ in range(3):
                job_ids.append(runner.start_optimization(REQUEST))
                list(runner.stream_progress(job_ids[-1]))

            assert runner.evict_expired() == 1
            assert runner.get_status(job_ids[0]) is None
            assert runner.get_status(job_ids[2]) is not None


class TestProgressChannel:
    def test_fifo_then_close(self):
        channel = ProgressChannel()
        channel.publish(ProgressEvent(stage=ProgressStage.IMPORT, message="a"))
        channel.publish(ProgressEvent(stage=ProgressStage.FILTERING, message="b"))
        channel.close()

        assert [e.message for e in channel.events()] == ["a", "b"]

    def test_publish_after_close_is_dropped(self):
        channel = ProgressChannel()
        channel.close()
        channel.close()

        assert channel.publish(ProgressEvent(stage=ProgressStage.DONE)) is False
        assert list(channel.events()) == []

    def test_every_reader_terminates(self):
        channel = ProgressChannel()
        seen = []

        def read():
            seen.append(list(channel.events()))

        readers = [threading.Thread(target=read) for _ in range(3)]
        for reader in readers:
            reader.start()
        channel.publish(ProgressEvent(stage=ProgressStage.IMPORT))
        channel.close()
        for reader in readers:
            reader.join(timeout=5)

        assert all(not reader.is_alive() for reader in readers)
        assert sum(len(events) for events in seen) == 1
