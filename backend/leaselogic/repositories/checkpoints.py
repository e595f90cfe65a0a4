"""
Checkpoint repository containing all data-access operations for the
phase_checkpoints table.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leaselogic.db.models.phase_checkpoint import PhaseCheckpoint


async def get_checkpoint(
    db: AsyncSession,
    job_id: str,
    kind: str,
) -> PhaseCheckpoint | None:
    """Fetch the checkpoint for (job_id, kind)."""
    stmt = select(PhaseCheckpoint).where(
        PhaseCheckpoint.job_id == job_id,
        PhaseCheckpoint.kind == kind,
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def list_checkpoints(db: AsyncSession, job_id: str) -> list[PhaseCheckpoint]:
    """All checkpoints of a job in write order."""
    stmt = (
        select(PhaseCheckpoint)
        .where(PhaseCheckpoint.job_id == job_id)
        .order_by(PhaseCheckpoint.id)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def insert_checkpoint(
    db: AsyncSession,
    *,
    job_id: str,
    kind: str,
    output: dict[str, Any],
    written_at: datetime,
) -> PhaseCheckpoint:
    """Insert a new checkpoint row.  Raises IntegrityError on a duplicate key."""
    row = PhaseCheckpoint(
        job_id=job_id,
        kind=kind,
        output=output,
        written_at=written_at,
    )
    db.add(row)
    await db.flush()
    return row
