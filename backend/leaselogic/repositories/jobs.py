"""
Job repository containing all data-access operations for the
analysis_jobs table.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from leaselogic.db.models.analysis_job import AnalysisJob

_MUTABLE_FIELDS = {
    "status",
    "phase",
    "progress",
    "message",
    "result",
    "error",
    "updated_at",
}


async def get_job(db: AsyncSession, job_id: str) -> AnalysisJob | None:
    """Fetch a job by primary key."""
    return await db.get(AnalysisJob, job_id)


async def insert_job(db: AsyncSession, **fields: object) -> AnalysisJob:
    """Create a new job row."""
    job = AnalysisJob(**fields)
    db.add(job)
    await db.flush()
    return job


async def update_job(db: AsyncSession, job: AnalysisJob, **fields: object) -> AnalysisJob:
    """Apply mutable snapshot fields to an existing row."""
    for key, value in fields.items():
        if key not in _MUTABLE_FIELDS:
            continue
        setattr(job, key, value)
    await db.flush()
    return job


async def set_termination_requested(db: AsyncSession, job_id: str) -> bool:
    """Flag a job for termination.  Returns True when the job exists."""
    stmt = (
        update(AnalysisJob)
        .where(AnalysisJob.id == job_id)
        .values(termination_requested=True)
    )
    result = await db.execute(stmt)
    await db.flush()
    return result.rowcount > 0


async def is_termination_requested(db: AsyncSession, job_id: str) -> bool:
    stmt = select(AnalysisJob.termination_requested).where(AnalysisJob.id == job_id)
    result = await db.execute(stmt)
    return bool(result.scalar_one_or_none())


async def acquire_lease(
    db: AsyncSession,
    job_id: str,
    *,
    worker_id: str,
    now: datetime,
    expires_at: datetime,
) -> bool:
    """
    Take or renew the worker lease on a job in a single conditional UPDATE.

    Succeeds when the job is unleased, already leased to `worker_id`, or
    its lease has lapsed.  Returns False otherwise and for unknown ids.
    """
    stmt = (
        update(AnalysisJob)
        .where(
            AnalysisJob.id == job_id,
            or_(
                AnalysisJob.worker_id.is_(None),
                AnalysisJob.worker_id == worker_id,
                AnalysisJob.lease_expires_at < now,
            ),
        )
        .values(worker_id=worker_id, lease_expires_at=expires_at)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    await db.flush()
    return result.rowcount > 0


async def release_lease(db: AsyncSession, job_id: str, *, worker_id: str) -> None:
    """Clear the lease if `worker_id` still holds it."""
    stmt = (
        update(AnalysisJob)
        .where(AnalysisJob.id == job_id, AnalysisJob.worker_id == worker_id)
        .values(worker_id=None, lease_expires_at=None)
        .execution_options(synchronize_session=False)
    )
    await db.execute(stmt)
    await db.flush()


async def list_job_ids_by_status(db: AsyncSession, status: str) -> list[str]:
    """Ids of every job currently in `status`, oldest first."""
    stmt = (
        select(AnalysisJob.id)
        .where(AnalysisJob.status == status)
        .order_by(AnalysisJob.created_at)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())
