"""
AnalysisJob — latest-snapshot row for one analysis job.

The row is a cache for fast polling.  It can always be re-derived from
the job's PhaseCheckpoint rows, which are the source of truth.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import BigInteger, Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from leaselogic.db.models.base import Base, JSONType, utcnow


class AnalysisJob(Base):
    """One row per submitted document."""

    __tablename__ = "analysis_jobs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    # ── Status / Progress ────────────────────
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    phase: Mapped[str] = mapped_column(String(20), nullable=False)
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    message: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # ── File ─────────────────────────────────
    file_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    file_name: Mapped[str] = mapped_column(String(512), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    content_type: Mapped[str] = mapped_column(String(255), nullable=False)

    # ── Outcome ──────────────────────────────
    result: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ── External cancellation ────────────────
    termination_requested: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # ── Worker lease ─────────────────────────
    # the worker advancing the job; a lapsed lease may be taken over
    worker_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    lease_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # ── Audit timestamps ─────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<AnalysisJob {self.id} status={self.status} "
            f"phase={self.phase} progress={self.progress}>"
        )
