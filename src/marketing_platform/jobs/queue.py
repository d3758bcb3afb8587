"""
Fire-and-forget job queue.

Services depend only on ``JobQueue.enqueue``. ``InProcessJobQueue`` drains an
``asyncio.Queue`` with a fixed pool of worker tasks; a broker-backed queue can
replace it without touching callers. Enqueuing never waits for, or learns
the outcome of, the job.
"""

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol
from uuid import uuid4

from marketing_platform.shared.database import utcnow
from marketing_platform.shared.exceptions import JobQueueFullError
from marketing_platform.shared.logging import correlation_id_var, get_logger

logger = get_logger(__name__)

JOB_EXECUTE_WORKFLOW = "workflows.execute"
JOB_TRIGGER_EVENT = "events.trigger"


@dataclass(frozen=True)
class JobDescriptor:
    """A named unit of background work with a JSON-compatible payload."""

    name: str
    payload: dict[str, Any] = field(default_factory=dict)
    job_id: str = field(default_factory=lambda: uuid4().hex)
    enqueued_at: datetime = field(default_factory=utcnow)


def execute_workflow_job(workflow_id: int, contact_id: int) -> JobDescriptor:
    """Job running one workflow for one contact."""
    return JobDescriptor(
        name=JOB_EXECUTE_WORKFLOW,
        payload={"workflow_id": workflow_id, "contact_id": contact_id},
    )


def trigger_event_job(
    event_type: Any,
    contact_id: int,
    event_data: Mapping[str, Any] | None = None,
) -> JobDescriptor:
    """Job re-entering event triggering for a contact."""
    return JobDescriptor(
        name=JOB_TRIGGER_EVENT,
        payload={
            "event_type": str(getattr(event_type, "value", event_type)),
            "contact_id": contact_id,
            "event_data": dict(event_data or {}),
        },
    )


class JobQueue(Protocol):
    """Protocol for the background job queue."""

    async def enqueue(self, job: JobDescriptor) -> None:
        """Schedule a job; returns without waiting for it to run."""
        ...


JobHandler = Callable[[JobDescriptor], Awaitable[None]]


class InProcessJobQueue:
    """asyncio worker pool implementing ``JobQueue``."""

    def __init__(
        self,
        handlers: Mapping[str, JobHandler] | None = None,
        maxsize: int = 10000,
        workers: int = 4,
    ) -> None:
        """Initialize the queue.

        Args:
            handlers: Job name to coroutine handler.
            maxsize: Queue capacity (0 = unbounded).
            workers: Number of worker tasks started by ``start``.
        """
        self._handlers: dict[str, JobHandler] = dict(handlers or {})
        self._queue: asyncio.Queue[JobDescriptor] = asyncio.Queue(maxsize=maxsize)
        self._worker_count = workers
        self._workers: list[asyncio.Task[None]] = []

    def register(self, name: str, handler: JobHandler) -> None:
        self._handlers[name] = handler

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._workers)

    async def enqueue(self, job: JobDescriptor) -> None:
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull:
            logger.warning(
                "Job queue full; rejecting job",
                extra={"job_name": job.name, "job_id": job.job_id},
            )
            raise JobQueueFullError(job.name) from None

        logger.debug(
            "Job enqueued",
            extra={
                "job_name": job.name,
                "job_id": job.job_id,
                "queue_size": self._queue.qsize(),
            },
        )

    async def start(self) -> None:
        """Start the worker tasks (idempotent)."""
        if self.running:
            return
        self._workers = [
            asyncio.create_task(self._worker(index), name=f"job-worker-{index}")
            for index in range(self._worker_count)
        ]
        logger.info("Job workers started", extra={"workers": self._worker_count})

    async def join(self) -> None:
        """Wait until every enqueued job has been processed."""
        await self._queue.join()

    async def stop(self, drain_timeout: float | None = 5.0) -> None:
        """Stop the workers, first giving queued jobs up to ``drain_timeout`` seconds."""
        if drain_timeout and self.running:
            try:
                await asyncio.wait_for(self._queue.join(), timeout=drain_timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    "Job queue not drained before shutdown",
                    extra={"pending": self._queue.qsize()},
                )

        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info("Job workers stopped")

    async def _worker(self, index: int) -> None:
        while True:
            job = await self._queue.get()
            token = correlation_id_var.set(job.job_id)
            try:
                await self._run(job, index)
            finally:
                correlation_id_var.reset(token)
                self._queue.task_done()

    async def _run(self, job: JobDescriptor, index: int) -> None:
        handler = self._handlers.get(job.name)
        if handler is None:
            logger.error(
                "No handler registered for job",
                extra={"job_name": job.name, "job_id": job.job_id},
            )
            return

        try:
            await handler(job)
        except asyncio.CancelledError:
            raise
        except Exception:
            # Retry / dead-letter belongs to a broker-backed queue
            logger.exception(
                "Job failed",
                extra={"job_name": job.name, "job_id": job.job_id, "worker": index},
            )
