"""
Orchestrator — drives one analysis job through its phases to a terminal Result.

Responsibilities:
    - Validate a request and create the job (`start`)
    - Replay checkpoints and run every phase that has none (`resume`)
    - Write each phase output as a checkpoint before advancing progress
    - Convert permanent phase failures into a Failed job with a fallback Result
    - Observe termination requests at phase boundaries (`terminate`)
    - Send the completion webhook once, after the job is terminal

Decisions come only from `replay()` over the checkpoint log; the only
external side effects happen through the ActivityGateway.  Calls for
one job are serialised by a per-job asyncio.Lock within a process, and
by a worker lease on the job row across processes.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from contextlib import asynccontextmanager
from typing import AsyncIterator

from leaselogic.core.constants import CheckpointKind, Phase
from leaselogic.core.logging import get_logger
from leaselogic.db.models.base import generate_id
from leaselogic.pipeline.checkpoint_log import CheckpointLog
from leaselogic.pipeline.context import AnalysisRequest, Checkpoint, JobSnapshot, utcnow
from leaselogic.pipeline.errors import NotFoundError, PermanentActivityError
from leaselogic.pipeline.gateway import ActivityGateway
from leaselogic.pipeline.replay import (
    TERMINATION_REASON,
    ReplayState,
    fallback_payload,
    notification_payload,
    phase_payload,
    replay,
)
from leaselogic.pipeline.state_store import JobStateStore
from leaselogic.processing.base import FileStore, ReportSynthesizer

logger = get_logger(__name__)

Checkpoints = dict[CheckpointKind, Checkpoint]


class Orchestrator:
    """
    Usage::

        orchestrator = Orchestrator(
            checkpoints=CheckpointLog(session_factory),
            states=JobStateStore(session_factory),
            gateway=ActivityGateway(registry),
            file_store=LocalFileStore("./data/documents"),
            synthesizer=DefaultReportSynthesizer(),
        )
        snapshot = await orchestrator.start(request)
        snapshot = await orchestrator.resume(snapshot.id)
    """

    def __init__(
        self,
        *,
        checkpoints: CheckpointLog,
        states: JobStateStore,
        gateway: ActivityGateway,
        file_store: FileStore,
        synthesizer: ReportSynthesizer,
        max_file_size: int | None = None,
        worker_id: str | None = None,
        lease_seconds: float = 1200.0,
    ) -> None:
        self.checkpoints = checkpoints
        self.states = states
        self.gateway = gateway
        self.file_store = file_store
        self.synthesizer = synthesizer
        self.max_file_size = max_file_size
        self.worker_id = worker_id or generate_id()
        self.lease_seconds = lease_seconds
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: Counter[str] = Counter()

    # ─── Public API ────────────────────────────────────

    async def start(self, request: AnalysisRequest, job_id: str | None = None) -> JobSnapshot:
        """
        Validate `request` and create its job in Running/Initializing/0%.

        Raises:
            ValidationError: Malformed or unsupported request.  No job is created.
            NotFoundError: The file is not in the FileStore.  No job is created.
        """
        request.validate(self.max_file_size)
        if not await asyncio.to_thread(self.file_store.exists, request.file_id):
            raise NotFoundError(
                f"File {request.file_id} not found",
                details={"fileId": request.file_id},
            )

        job_id = job_id or generate_id()
        async with self._job_lock(job_id):
            checkpoint = await self.checkpoints.write(
                job_id, CheckpointKind.REQUEST, request.to_dict()
            )
            state = replay(job_id, {CheckpointKind.REQUEST: checkpoint})
            snapshot = await self.states.upsert(state.to_snapshot())

        logger.info(
            "Analysis job created",
            job_id=job_id,
            file_id=request.file_id,
            content_type=request.content_type,
        )
        return snapshot

    async def resume(self, job_id: str) -> JobSnapshot:
        """
        Bring the job as far as possible and return its snapshot.

        Idempotent: phases with a checkpoint are never invoked again and a
        terminal job is only re-projected.  When another worker holds the
        job's lease, nothing runs and the current snapshot is returned.
        StorageError propagates.
        """
        async with self._job_lock(job_id):
            if not await self.states.acquire_lease(job_id, self.worker_id, self.lease_seconds):
                logger.info("Job leased by another worker, backing off", job_id=job_id)
                return await self.states.get(job_id)
            try:
                await self._advance(job_id)
            finally:
                await self.states.release_lease(job_id, self.worker_id)
        return await self.states.get(job_id)

    async def terminate(self, job_id: str) -> JobSnapshot:
        """
        Record a cancellation request.

        The job stops at its next phase boundary, or on its next
        `resume()` if no worker is running it.  No-op for terminal jobs.
        """
        snapshot = await self.states.get(job_id)
        if snapshot.is_terminal:
            return snapshot
        await self.states.request_termination(job_id)
        return await self.states.get(job_id)

    # ─── Exclusivity ───────────────────────────────────

    @asynccontextmanager
    async def _job_lock(self, job_id: str) -> AsyncIterator[None]:
        """Per-job lock, dropped again once no caller is using or waiting on it."""
        lock = self._locks.setdefault(job_id, asyncio.Lock())
        self._lock_users[job_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[job_id] -= 1
            if not self._lock_users[job_id]:
                del self._lock_users[job_id]
                del self._locks[job_id]

    async def _renew_lease(self, job_id: str) -> bool:
        return await self.states.acquire_lease(job_id, self.worker_id, self.lease_seconds)

    # ─── Phase loop ────────────────────────────────────

    async def _advance(self, job_id: str) -> None:
        checkpoints = await self.checkpoints.read_all(job_id)
        state = replay(job_id, checkpoints)
        log = logger.bind(job_id=job_id)

        # the snapshot is a cache; re-derive it in case an update was lost
        await self.states.upsert(state.to_snapshot())

        while not state.is_terminal:
            if not await self._renew_lease(job_id):
                log.warning("Lease taken over by another worker, stopping", worker_id=self.worker_id)
                return

            if await self.states.is_termination_requested(job_id):
                state = await self._terminate_now(state, checkpoints)
                break

            phase = state.next_phase
            phase_log = log.bind(phase=str(phase))
            entering = state.entering(phase)
            await self.states.upsert(entering.to_snapshot())
            phase_log.info(f"Phase {phase}: {entering.message}")

            try:
                output = await self.gateway.invoke(
                    phase, phase_payload(state, phase), job_id=job_id
                )
            except PermanentActivityError as exc:
                if not await self._renew_lease(job_id):
                    phase_log.warning("Lease lost during phase, discarding phase failure", worker_id=self.worker_id)
                    return
                if await self.states.is_termination_requested(job_id):
                    state = await self._terminate_now(state, checkpoints)
                    break
                phase_log.error("Phase failed, entering fallback", error=exc.message, attempts=exc.attempts)
                state = await self._fail(state, checkpoints, phase, exc)
                break

            if not await self._renew_lease(job_id):
                phase_log.warning("Lease lost during phase, discarding phase output", worker_id=self.worker_id)
                return

            if await self.states.is_termination_requested(job_id):
                phase_log.info("Termination requested, discarding phase output")
                state = await self._terminate_now(state, checkpoints)
                break

            # write-ahead: checkpoint first, progress second
            checkpoints[CheckpointKind(phase)] = await self.checkpoints.write(
                job_id, CheckpointKind(phase), output
            )
            state = replay(job_id, checkpoints)
            await self.states.upsert(state.to_snapshot())
            phase_log.info("Phase completed", progress=state.progress)

        if state.is_terminal:
            await self.states.upsert(state.to_snapshot())
            log.info("Analysis finished", status=str(state.status), progress=state.progress)
            await self._notify(state, checkpoints)

    async def _fail(
        self,
        state: ReplayState,
        checkpoints: Checkpoints,
        phase: Phase,
        exc: PermanentActivityError,
    ) -> ReplayState:
        job_id = state.job_id
        error = exc.message
        try:
            result = await self.gateway.invoke(
                CheckpointKind.FALLBACK,
                fallback_payload(state, error=error, failed_phase=phase),
                job_id=job_id,
            )
        except PermanentActivityError as fallback_exc:
            logger.error(
                "Fallback activity failed, synthesizing error result locally",
                job_id=job_id,
                error=fallback_exc.message,
            )
            result = self.synthesizer.synthesize_error(
                analysis_id=job_id,
                request=state.request.to_dict(),
                error=error,
                started_at=state.started_at,
                completed_at=utcnow(),
            ).to_payload()

        checkpoints[CheckpointKind.FALLBACK] = await self.checkpoints.write(
            job_id,
            CheckpointKind.FALLBACK,
            {"error": error, "failedPhase": str(phase), "result": result},
        )
        return replay(job_id, checkpoints)

    async def _terminate_now(self, state: ReplayState, checkpoints: Checkpoints) -> ReplayState:
        job_id = state.job_id
        result = self.synthesizer.synthesize_terminated(
            analysis_id=job_id,
            request=state.request.to_dict(),
            reason=TERMINATION_REASON,
            started_at=state.started_at,
            completed_at=utcnow(),
        ).to_payload()

        checkpoints[CheckpointKind.TERMINATION] = await self.checkpoints.write(
            job_id,
            CheckpointKind.TERMINATION,
            {"reason": TERMINATION_REASON, "result": result},
        )
        logger.info("Analysis terminated", job_id=job_id, phase=str(state.phase))
        return replay(job_id, checkpoints)

    async def _notify(self, state: ReplayState, checkpoints: Checkpoints) -> None:
        payload = notification_payload(state)
        if payload is None or state.notified:
            return

        try:
            receipt = await self.gateway.invoke(
                CheckpointKind.NOTIFICATION, payload, job_id=state.job_id
            )
        except PermanentActivityError as exc:
            logger.warning(
                "Completion notification failed",
                job_id=state.job_id,
                url=payload["url"],
                error=exc.message,
            )
            receipt = {"url": payload["url"], "delivered": False, "error": exc.message}

        checkpoints[CheckpointKind.NOTIFICATION] = await self.checkpoints.write(
            state.job_id, CheckpointKind.NOTIFICATION, receipt
        )
