"""
Job runners — where `Orchestrator.resume()` actually gets called.

    AnalysisRunner    — in-process asyncio worker pool (EXECUTION_BACKEND=local)
    CeleryDispatcher  — hands job ids to Celery workers (EXECUTION_BACKEND=celery)

Both expose the same surface: start(), stop(), submit(job_id), recover().
`recover()` re-submits every job still Running, which is how work
survives a process restart.  A job that comes back from resume() still
Running is leased by another worker; it is checked again later, so a
lease left behind by a dead worker is picked up once it lapses.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from leaselogic.core.logging import get_logger
from leaselogic.pipeline.errors import StorageError
from leaselogic.pipeline.orchestrator import Orchestrator
from leaselogic.pipeline.state_store import JobStateStore

logger = get_logger(__name__)


class AnalysisRunner:
    """
    Bounded pool of asyncio workers draining a queue of job ids.

    A StorageError aborts the current resume attempt; the runner retries
    it after a delay, up to `storage_max_retries` times.
    """

    def __init__(
        self,
        orchestrator: Orchestrator,
        states: JobStateStore,
        *,
        worker_count: int = 4,
        storage_max_retries: int = 3,
        storage_retry_delay: float = 2.0,
        lease_recheck_delay: float = 60.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.orchestrator = orchestrator
        self.states = states
        self.worker_count = worker_count
        self.storage_max_retries = storage_max_retries
        self.storage_retry_delay = storage_retry_delay
        self.lease_recheck_delay = lease_recheck_delay
        self._sleep = sleep
        self._queue: asyncio.Queue[str] | None = None
        self._workers: list[asyncio.Task] = []
        self._rechecks: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return bool(self._workers)

    async def start(self) -> None:
        if self._workers:
            return
        self._queue = asyncio.Queue()
        self._workers = [
            asyncio.create_task(self._worker(index), name=f"analysis-worker-{index}")
            for index in range(self.worker_count)
        ]
        logger.info("Analysis runner started", workers=self.worker_count)

    async def stop(self) -> None:
        tasks = [*self._workers, *self._rechecks]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._workers = []
        self._rechecks.clear()
        logger.info("Analysis runner stopped")

    async def submit(self, job_id: str) -> None:
        if self._queue is None:
            raise RuntimeError("AnalysisRunner.start() must be called before submit()")
        await self._queue.put(job_id)
        logger.debug("Job queued", job_id=job_id, queue_size=self._queue.qsize())

    async def recover(self) -> int:
        """Queue every unfinished job.  Returns how many were queued."""
        job_ids = await self.states.list_unfinished()
        for job_id in job_ids:
            await self.submit(job_id)
        if job_ids:
            logger.info("Recovered unfinished jobs", count=len(job_ids))
        return len(job_ids)

    async def join(self) -> None:
        """Wait until every queued job has been processed."""
        if self._queue is not None:
            await self._queue.join()

    # ─── Workers ───────────────────────────────────────

    async def _worker(self, index: int) -> None:
        assert self._queue is not None
        while True:
            job_id = await self._queue.get()
            try:
                await self.run_job(job_id)
            finally:
                self._queue.task_done()

    async def run_job(self, job_id: str) -> None:
        """Resume one job, retrying storage faults with a fixed delay."""
        log = logger.bind(job_id=job_id)
        attempt = 0
        while True:
            attempt += 1
            try:
                snapshot = await self.orchestrator.resume(job_id)
                if not snapshot.is_terminal:
                    log.info("Job leased by another worker, rechecking later", delay=self.lease_recheck_delay)
                    self._schedule_recheck(job_id)
                    return
                log.info("Job run finished", status=str(snapshot.status), progress=snapshot.progress)
                return

            except StorageError as exc:
                if attempt > self.storage_max_retries:
                    log.error("Storage retries exhausted, job left for recovery", attempts=attempt, error=str(exc))
                    return
                log.warning(
                    f"Storage error (attempt {attempt}/{self.storage_max_retries + 1}), "
                    f"retrying in {self.storage_retry_delay}s",
                    error=str(exc),
                )
                await self._sleep(self.storage_retry_delay)

            except Exception as exc:
                # Keep the worker alive; the job stays Running until recovery
                log.exception("Unexpected error while running job", error=str(exc))
                return

    def _schedule_recheck(self, job_id: str) -> None:
        task = asyncio.create_task(self._recheck(job_id), name=f"analysis-recheck-{job_id}")
        self._rechecks.add(task)
        task.add_done_callback(self._rechecks.discard)

    async def _recheck(self, job_id: str) -> None:
        await self._sleep(self.lease_recheck_delay)
        if self._queue is not None and self._workers:
            await self.submit(job_id)


class CeleryDispatcher:
    """Submits jobs to the `resume_analysis` Celery task."""

    def __init__(self, states: JobStateStore) -> None:
        self.states = states

    @property
    def running(self) -> bool:
        return True

    async def start(self) -> None:
        logger.info("Dispatching analysis jobs to Celery")

    async def stop(self) -> None:
        return None

    async def submit(self, job_id: str) -> None:
        from leaselogic.tasks.analysis_tasks import resume_analysis

        result = await asyncio.to_thread(resume_analysis.delay, job_id)
        logger.info("Job dispatched to Celery", job_id=job_id, celery_task_id=result.id)

    async def recover(self) -> int:
        job_ids = await self.states.list_unfinished()
        for job_id in job_ids:
            await self.submit(job_id)
        if job_ids:
            logger.info("Recovered unfinished jobs", count=len(job_ids))
        return len(job_ids)
