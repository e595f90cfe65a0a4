"""
PhaseCheckpoint — append-only, write-once output of one job step.

One row per (job_id, kind).  The unique constraint is what makes a
second write for the same key detectable.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from leaselogic.db.models.base import Base, JSONType, utcnow


class PhaseCheckpoint(Base):
    """Durable record of a completed phase, fallback, termination or notification."""

    __tablename__ = "phase_checkpoints"
    __table_args__ = (
        UniqueConstraint("job_id", "kind", name="uq_phase_checkpoints_job_kind"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    output: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    written_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<PhaseCheckpoint job={self.job_id} kind={self.kind}>"
