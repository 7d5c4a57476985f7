"""Background optimization jobs with progress streaming and cancellation."""

import queue
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Union

from loguru import logger

from fpl_squad_optimizer.config import config
from fpl_squad_optimizer.domain.common.exceptions import ComputationFault, OptimizationCanceled
from fpl_squad_optimizer.domain.models import (
    JobSnapshot,
    JobStatus,
    OptimizationRequest,
    OptimizationResult,
    Player,
    ProgressEvent,
    ProgressStage,
)

from .optimization_service import SquadOptimizationService

_CLOSED = object()


class ProgressChannel:
    """Unbounded FIFO of progress events that can be closed once.

    Writers never block. Readers block until the next event and stop at the
    close marker, which is put back so every reader terminates.
    """

    def __init__(self):
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, event: ProgressEvent) -> bool:
        with self._lock:
            if self._closed:
                return False
            self._queue.put_nowait(event)
            return True

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    def events(self) -> Iterator[ProgressEvent]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                self._queue.put_nowait(_CLOSED)
                return
            yield item


@dataclass
class OptimizationJob:
    """Mutable state of one job; guarded by ``lock``."""

    job_id: str
    request: OptimizationRequest
    created_at: datetime
    status: JobStatus = JobStatus.CREATED
    stage: Optional[ProgressStage] = None
    percent: Optional[float] = None
    message: str = ""
    error: Optional[str] = None
    result: Optional[OptimizationResult] = None
    finished_at: Optional[datetime] = None
    cancel_event: threading.Event = field(default_factory=threading.Event)
    channel: ProgressChannel = field(default_factory=ProgressChannel)
    future: Optional[Future] = None
    lock: threading.Lock = field(default_factory=threading.Lock)

    def snapshot(self) -> JobSnapshot:
        with self.lock:
            return JobSnapshot(
                job_id=self.job_id,
                status=self.status,
                stage=self.stage,
                percent=self.percent,
                message=self.message,
                error=self.error,
                created_at=self.created_at,
                finished_at=self.finished_at,
            )


class OptimizationJobRunner:
    """Runs optimization requests on a thread pool and tracks them by id.

    Args:
        players: Player dataset shared by every job
        service: Pre-built optimization service (overrides ``players``)
        max_concurrent_jobs: Worker threads (defaults to config)
        job_ttl_seconds: Age after which finished jobs are evicted
        max_jobs: Upper bound on tracked jobs
        now: Wall clock, injectable for tests
    """

    def __init__(
        self,
        players: Optional[Sequence[Player]] = None,
        service: Optional[SquadOptimizationService] = None,
        max_concurrent_jobs: Optional[int] = None,
        job_ttl_seconds: Optional[float] = None,
        max_jobs: Optional[int] = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        if service is None:
            if players is None:
                raise ValueError("Either players or service must be provided")
            service = SquadOptimizationService(players)
        self.service = service
        self.job_ttl_seconds = (
            job_ttl_seconds if job_ttl_seconds is not None else config.jobs.job_ttl_seconds
        )
        self.max_jobs = max_jobs or config.jobs.max_jobs
        self.now = now
        self._executor = ThreadPoolExecutor(
            max_workers=max_concurrent_jobs or config.jobs.max_concurrent_jobs,
            thread_name_prefix="optimizer",
        )
        self._jobs: Dict[str, OptimizationJob] = {}
        self._lock = threading.Lock()

    def __enter__(self) -> "OptimizationJobRunner":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown(wait=True, cancel_jobs=True)

    def start_optimization(
        self, request: Union[OptimizationRequest, Mapping[str, Any], None] = None
    ) -> str:
        """Validate a request and queue it.

        Returns:
            The new job's id

        Raises:
            InputError: If the request is invalid (no job is created)
            DataError: If a locked or included player cannot be selected
        """
        if not isinstance(request, OptimizationRequest):
            request = OptimizationRequest.parse(request)
        self.service.check_required_players(request)

        self.evict_expired()
        job = OptimizationJob(job_id=uuid.uuid4().hex, request=request, created_at=self.now())
        with self._lock:
            self._jobs[job.job_id] = job
        job.future = self._executor.submit(self._run, job)
        logger.info(f"📋 Queued optimization job {job.job_id}")
        return job.job_id

    def stream_progress(self, job_id: str) -> Iterator[ProgressEvent]:
        """Progress events for a job until it finishes; empty for unknown ids."""
        job = self._get(job_id)
        if job is None:
            return iter(())
        return job.channel.events()

    def get_result(self, job_id: str) -> Optional[OptimizationResult]:
        job = self._get(job_id)
        if job is None:
            return None
        with job.lock:
            return job.result if job.status == JobStatus.DONE else None

    def get_status(self, job_id: str) -> Optional[JobSnapshot]:
        job = self._get(job_id)
        return job.snapshot() if job else None

    def list_jobs(self) -> List[JobSnapshot]:
        with self._lock:
            jobs = list(self._jobs.values())
        return [job.snapshot() for job in jobs]

    def cancel(self, job_id: str) -> bool:
        """Request cancellation; False for unknown or already finished jobs."""
        job = self._get(job_id)
        if job is None:
            return False
        with job.lock:
            if job.status.is_terminal:
                return False
            job.cancel_event.set()
        if job.future is not None and job.future.cancel():
            # Never started; the worker will not run to finish it
            self._finish(job, JobStatus.CANCELED, ProgressStage.CANCELED, "Optimization canceled")
        logger.info(f"🛑 Cancellation requested for job {job_id}")
        return True

    def evict_expired(self) -> int:
        """Drop finished jobs past their TTL, then the oldest finished over the cap."""
        now = self.now()
        with self._lock:
            expired = [
                job_id
                for job_id, job in self._jobs.items()
                if job.finished_at is not None
                and (now - job.finished_at).total_seconds() > self.job_ttl_seconds
            ]
            for job_id in expired:
                del self._jobs[job_id]

            overflow = len(self._jobs) - self.max_jobs
            if overflow > 0:
                finished = sorted(
                    (job for job in self._jobs.values() if job.finished_at is not None),
                    key=lambda job: job.finished_at,
                )
                for job in finished[:overflow]:
                    del self._jobs[job.job_id]
                    expired.append(job.job_id)

        if expired:
            logger.debug(f"Evicted {len(expired)} finished jobs")
        return len(expired)

    def shutdown(self, wait: bool = True, cancel_jobs: bool = False) -> None:
        if cancel_jobs:
            with self._lock:
                job_ids = list(self._jobs)
            for job_id in job_ids:
                self.cancel(job_id)
        self._executor.shutdown(wait=wait)

    def _get(self, job_id: str) -> Optional[OptimizationJob]:
        with self._lock:
            return self._jobs.get(job_id)

    def _run(self, job: OptimizationJob) -> None:
        with job.lock:
            if job.status.is_terminal:
                return
            job.status = JobStatus.RUNNING
        if job.cancel_event.is_set():
            self._finish(job, JobStatus.CANCELED, ProgressStage.CANCELED, "Optimization canceled")
            return

        try:
            result = self.service.optimize(
                job.request,
                progress=lambda event: self._publish(job, event),
                cancel_event=job.cancel_event,
            )
        except OptimizationCanceled:
            logger.info(f"🛑 Job {job.job_id} canceled")
            self._finish(job, JobStatus.CANCELED, ProgressStage.CANCELED, "Optimization canceled")
        except Exception as e:
            logger.exception(f"❌ Job {job.job_id} failed")
            fault = ComputationFault(f"{type(e).__name__}: {e}")
            self._finish(job, JobStatus.ERROR, ProgressStage.ERROR, str(fault), error=str(fault))
        else:
            with job.lock:
                job.result = result
            best = f", best {result.teams[0].predicted_points} pts" if result.teams else ""
            self._finish(
                job,
                JobStatus.DONE,
                ProgressStage.DONE,
                f"Evaluated {result.squads_evaluated} squads{best}",
                percent=100.0,
            )

    def _publish(self, job: OptimizationJob, event: ProgressEvent) -> None:
        with job.lock:
            if job.status.is_terminal:
                return
            if event.percent is None:
                event = event.model_copy(update={"percent": job.percent})
            elif job.percent is not None and event.percent < job.percent:
                event = event.model_copy(update={"percent": job.percent})
            job.stage = event.stage
            job.percent = event.percent
            job.message = event.message
            job.channel.publish(event)

    def _finish(
        self,
        job: OptimizationJob,
        status: JobStatus,
        stage: ProgressStage,
        message: str,
        error: Optional[str] = None,
        percent: Optional[float] = None,
    ) -> None:
        with job.lock:
            if job.status.is_terminal:
                return
            job.status = status
            job.stage = stage
            job.message = message
            job.error = error
            if percent is not None:
                job.percent = percent
            job.finished_at = self.now()
            job.channel.publish(ProgressEvent(stage=stage, message=message, percent=job.percent))
            job.channel.close()
