"""
Background jobs and the report-created hook.

JobRunner runs side effects on a thread pool and keeps an in-process record
of each job (pending, running, succeeded, failed) so callers can poll it.
Jobs run at most once; a failure is recorded and logged, never retried.
Only the most recent finished jobs are kept; older ones are forgotten.
"""

from collections import OrderedDict
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging
import threading
import uuid

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Job(BaseModel):
    id: str
    name: str
    status: JobStatus = JobStatus.PENDING
    error: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None


class JobRunner:

    def __init__(self, max_workers: int = 4, history_limit: int = 1000):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="fillahole-job")
        self._history_limit = max(0, history_limit)
        self._jobs: "OrderedDict[str, Job]" = OrderedDict()
        self._futures: Dict[str, Future] = {}
        self._lock = threading.Lock()

    def submit(self, name: str, fn: Callable, *args, **kwargs) -> Job:
        job = Job(id=uuid.uuid4().hex, name=name)
        with self._lock:
            self._jobs[job.id] = job
            future = self._executor.submit(self._run, job.id, fn, args, kwargs)
            self._futures[job.id] = future
        # Runs immediately if the job already finished; must be outside the lock
        future.add_done_callback(lambda _f, job_id=job.id: self._forget_future(job_id))
        logger.info(f"Job {job.id} ({name}) queued")
        return job.model_copy()

    def _run(self, job_id: str, fn: Callable, args: Tuple, kwargs: Dict) -> None:
        self._update(job_id, status=JobStatus.RUNNING, started_at=datetime.now(timezone.utc))
        try:
            result = fn(*args, **kwargs)
        except Exception as e:
            logger.error(f"Job {job_id} failed: {e}", exc_info=True)
            self._update(
                job_id,
                status=JobStatus.FAILED,
                error=f"{type(e).__name__}: {e}",
                finished_at=datetime.now(timezone.utc),
            )
            return

        if isinstance(result, BaseModel):
            result = result.model_dump()
        self._update(
            job_id,
            status=JobStatus.SUCCEEDED,
            result=result if isinstance(result, dict) else None,
            finished_at=datetime.now(timezone.utc),
        )
        logger.info(f"Job {job_id} succeeded")

    def _update(self, job_id: str, **changes) -> None:
        with self._lock:
            job = self._jobs[job_id]
            self._jobs[job_id] = job.model_copy(update=changes)

    def _forget_future(self, job_id: str) -> None:
        with self._lock:
            self._futures.pop(job_id, None)
            self._prune()

    def _prune(self) -> None:
        """Drop the oldest finished jobs beyond the history limit. Caller holds the lock."""
        finished = [
            job_id for job_id, job in self._jobs.items()
            if job.status in (JobStatus.SUCCEEDED, JobStatus.FAILED) and job_id not in self._futures
        ]
        for job_id in finished[:max(0, len(finished) - self._history_limit)]:
            del self._jobs[job_id]

    def get(self, job_id: str) -> Optional[Job]:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy() if job else None

    def list(self, status: Optional[JobStatus] = None) -> List[Job]:
        with self._lock:
            jobs = [j.model_copy() for j in self._jobs.values()]
        if status is not None:
            jobs = [j for j in jobs if j.status == status]
        return sorted(jobs, key=lambda j: j.created_at)

    def wait(self, job_id: str, timeout: Optional[float] = None) -> Optional[Job]:
        """Block until the job finishes (used by tests and shutdown)."""
        with self._lock:
            future = self._futures.get(job_id)
        if future is not None:
            future.result(timeout=timeout)
        return self.get(job_id)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


class ReportCreatedHook:
    """
    Fires once per newly created report.

    Each subscriber becomes its own job, so one failing subscriber never
    affects another or the submission that fired the hook.
    """

    def __init__(self, jobs: JobRunner):
        self.jobs = jobs
        self._subscribers: List[Tuple[str, Callable[[Dict], Any]]] = []

    def subscribe(self, name: str, handler: Callable[[Dict], Any]) -> None:
        self._subscribers.append((name, handler))

    @property
    def subscribers(self) -> List[str]:
        return [name for name, _ in self._subscribers]

    def fire(self, report: Dict) -> List[Job]:
        jobs = []
        for name, handler in self._subscribers:
            jobs.append(self.jobs.submit(f"{name}:{report.get('id')}", handler, dict(report)))
        return jobs
