"""
JobStateStore — latest-snapshot projection of each job for fast polling.

The snapshot is a cache: the CheckpointLog is the source of truth and
`Orchestrator.resume()` re-derives a lost or stale snapshot from it.
Every call opens its own short-lived session, so pollers never wait on
the orchestrator and vice versa.

Invariants enforced on every write:
    - a terminal snapshot is never changed again
    - progress never decreases and phase never regresses
    - updated_at strictly increases

The worker lease (`acquire_lease` / `release_lease`) keeps a job to one
writer across processes: a second worker finds the lease held and backs
off until it lapses.
"""

from __future__ import annotations

from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from leaselogic.core.constants import PHASE_ORDER, JobStatus, Phase
from leaselogic.core.logging import get_logger
from leaselogic.db.models.analysis_job import AnalysisJob
from leaselogic.db.models.base import as_utc, utcnow
from leaselogic.pipeline.context import JobSnapshot
from leaselogic.pipeline.errors import NotFoundError, StorageError
from leaselogic.repositories import jobs as job_repository

logger = get_logger(__name__)

_TICK = timedelta(microseconds=1)


def _to_snapshot(row: AnalysisJob) -> JobSnapshot:
    return JobSnapshot(
        id=row.id,
        status=JobStatus(row.status),
        phase=Phase(row.phase),
        progress=row.progress,
        message=row.message,
        file_id=row.file_id,
        file_name=row.file_name,
        file_size=row.file_size,
        content_type=row.content_type,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
        result=row.result,
        error=row.error,
        termination_requested=row.termination_requested,
    )


def _later_phase(a: Phase, b: Phase) -> Phase:
    return a if PHASE_ORDER.index(a) >= PHASE_ORDER.index(b) else b


class JobStateStore:
    """Single-writer-per-job, many-reader snapshot store."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def upsert(self, snapshot: JobSnapshot) -> JobSnapshot:
        """Insert or update the snapshot and return what is stored."""
        try:
            async with self._session_factory() as session:
                row = await job_repository.get_job(session, snapshot.id)
                now = utcnow()

                if row is None:
                    row = await job_repository.insert_job(
                        session,
                        id=snapshot.id,
                        status=snapshot.status,
                        phase=snapshot.phase,
                        progress=snapshot.progress,
                        message=snapshot.message,
                        file_id=snapshot.file_id,
                        file_name=snapshot.file_name,
                        file_size=snapshot.file_size,
                        content_type=snapshot.content_type,
                        result=snapshot.result,
                        error=snapshot.error,
                        termination_requested=snapshot.termination_requested,
                        created_at=snapshot.created_at,
                        updated_at=max(now, snapshot.created_at),
                    )
                    await session.commit()
                    return _to_snapshot(row)

                current = _to_snapshot(row)
                if current.is_terminal:
                    if snapshot.status != current.status:
                        logger.warning(
                            "Ignoring write to terminal job",
                            job_id=snapshot.id,
                            stored_status=str(current.status),
                            attempted_status=str(snapshot.status),
                        )
                    return current

                updated_at = now if now > current.updated_at else current.updated_at + _TICK
                await job_repository.update_job(
                    session,
                    row,
                    status=snapshot.status,
                    phase=_later_phase(snapshot.phase, current.phase),
                    progress=max(snapshot.progress, current.progress),
                    message=snapshot.message,
                    result=snapshot.result,
                    error=snapshot.error,
                    updated_at=updated_at,
                )
                await session.commit()
                return _to_snapshot(row)

        except SQLAlchemyError as exc:
            logger.error("Job snapshot write failed", job_id=snapshot.id, error=str(exc))
            raise StorageError(
                f"Failed to write job state: {exc}",
                job_id=snapshot.id,
            ) from exc

    async def get(self, job_id: str) -> JobSnapshot:
        try:
            async with self._session_factory() as session:
                row = await job_repository.get_job(session, job_id)
        except SQLAlchemyError as exc:
            raise StorageError(str(exc), job_id=job_id) from exc
        if row is None:
            raise NotFoundError(f"Analysis {job_id} not found", job_id=job_id)
        return _to_snapshot(row)

    async def request_termination(self, job_id: str) -> bool:
        """Record an external cancellation request.  Returns False for unknown ids."""
        try:
            async with self._session_factory() as session:
                found = await job_repository.set_termination_requested(session, job_id)
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(str(exc), job_id=job_id) from exc
        if found:
            logger.info("Termination requested", job_id=job_id)
        return found

    async def is_termination_requested(self, job_id: str) -> bool:
        try:
            async with self._session_factory() as session:
                return await job_repository.is_termination_requested(session, job_id)
        except SQLAlchemyError as exc:
            raise StorageError(str(exc), job_id=job_id) from exc

    async def acquire_lease(self, job_id: str, worker_id: str, seconds: float) -> bool:
        """
        Take or renew `worker_id`'s lease on the job for `seconds`.

        False means another worker holds a live lease (or the id is
        unknown) and the caller must not advance the job.
        """
        now = utcnow()
        try:
            async with self._session_factory() as session:
                acquired = await job_repository.acquire_lease(
                    session,
                    job_id,
                    worker_id=worker_id,
                    now=now,
                    expires_at=now + timedelta(seconds=seconds),
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(str(exc), job_id=job_id) from exc
        return acquired

    async def release_lease(self, job_id: str, worker_id: str) -> None:
        try:
            async with self._session_factory() as session:
                await job_repository.release_lease(session, job_id, worker_id=worker_id)
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(str(exc), job_id=job_id) from exc

    async def list_unfinished(self) -> list[str]:
        """Ids of jobs still Running, used to resume work after a restart."""
        try:
            async with self._session_factory() as session:
                return await job_repository.list_job_ids_by_status(session, JobStatus.RUNNING)
        except SQLAlchemyError as exc:
            raise StorageError(str(exc)) from exc
