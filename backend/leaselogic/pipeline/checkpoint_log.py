"""
CheckpointLog — durable, write-once record of step outputs per job.

Write-ahead discipline: `write()` commits before it returns, so a crash
after a phase checkpoint but before the job snapshot update resumes
from the checkpoint instead of calling the collaborator again.

Rules enforced here:
    - at most one checkpoint per (job_id, kind)
    - re-writing identical content is a no-op, different content is a
      ConflictError (catches non-deterministic replay)
    - phase checkpoints are written strictly in phase order
    - nothing but a Notification follows a terminal checkpoint
"""

from __future__ import annotations

import json
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from leaselogic.core.constants import (
    PHASE_SEQUENCE,
    TERMINAL_CHECKPOINTS,
    CheckpointKind,
)
from leaselogic.core.logging import get_logger
from leaselogic.db.models.base import as_utc, utcnow
from leaselogic.db.models.phase_checkpoint import PhaseCheckpoint
from leaselogic.pipeline.context import Checkpoint
from leaselogic.pipeline.errors import ConflictError, NotFoundError, StorageError
from leaselogic.repositories import checkpoints as checkpoint_repository

logger = get_logger(__name__)

_PHASE_KINDS: tuple[CheckpointKind, ...] = tuple(CheckpointKind(p.value) for p in PHASE_SEQUENCE)


def canonical_output(output: dict[str, Any]) -> dict[str, Any]:
    """JSON round-trip so stored and in-memory payloads compare equal."""
    try:
        return json.loads(json.dumps(output, sort_keys=True, ensure_ascii=False))
    except (TypeError, ValueError) as exc:
        raise StorageError(f"Checkpoint output is not JSON-serialisable: {exc}") from exc


def _to_checkpoint(row: PhaseCheckpoint) -> Checkpoint:
    return Checkpoint(
        job_id=row.job_id,
        kind=CheckpointKind(row.kind),
        output=row.output,
        written_at=as_utc(row.written_at),
    )


class CheckpointLog:
    """Write-once checkpoint store keyed by (job_id, kind)."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def write(
        self,
        job_id: str,
        kind: CheckpointKind | str,
        output: dict[str, Any],
    ) -> Checkpoint:
        kind = CheckpointKind(kind)
        payload = canonical_output(output)
        log = logger.bind(job_id=job_id, kind=str(kind))

        try:
            async with self._session_factory() as session:
                existing = await checkpoint_repository.get_checkpoint(session, job_id, kind)
                if existing is not None:
                    return self._same_or_conflict(existing, payload, job_id, kind)

                await self._check_order(session, job_id, kind)

                row = await checkpoint_repository.insert_checkpoint(
                    session,
                    job_id=job_id,
                    kind=kind,
                    output=payload,
                    written_at=utcnow(),
                )
                await session.commit()
                log.info("Checkpoint written")
                return _to_checkpoint(row)

        except IntegrityError:
            # A concurrent writer committed the same key first.
            log.warning("Checkpoint insert raced, comparing with stored row")
            try:
                async with self._session_factory() as session:
                    existing = await checkpoint_repository.get_checkpoint(session, job_id, kind)
            except SQLAlchemyError as exc:
                raise StorageError(str(exc), job_id=job_id, phase=str(kind)) from exc
            if existing is None:
                raise StorageError(
                    "Checkpoint insert failed without a stored row",
                    job_id=job_id,
                    phase=str(kind),
                )
            return self._same_or_conflict(existing, payload, job_id, kind)

        except SQLAlchemyError as exc:
            log.error("Checkpoint write failed", error=str(exc))
            raise StorageError(
                f"Failed to write checkpoint: {exc}",
                job_id=job_id,
                phase=str(kind),
            ) from exc

    async def read(self, job_id: str, kind: CheckpointKind | str) -> Checkpoint:
        kind = CheckpointKind(kind)
        try:
            async with self._session_factory() as session:
                row = await checkpoint_repository.get_checkpoint(session, job_id, kind)
        except SQLAlchemyError as exc:
            raise StorageError(str(exc), job_id=job_id, phase=str(kind)) from exc
        if row is None:
            raise NotFoundError(
                f"No {kind} checkpoint for job {job_id}",
                job_id=job_id,
                phase=str(kind),
            )
        return _to_checkpoint(row)

    async def read_all(self, job_id: str) -> dict[CheckpointKind, Checkpoint]:
        """Every checkpoint of a job, keyed by kind."""
        try:
            async with self._session_factory() as session:
                rows = await checkpoint_repository.list_checkpoints(session, job_id)
        except SQLAlchemyError as exc:
            raise StorageError(str(exc), job_id=job_id) from exc
        return {CheckpointKind(row.kind): _to_checkpoint(row) for row in rows}

    # ─── Helpers ───────────────────────────────────────

    @staticmethod
    def _same_or_conflict(
        existing: PhaseCheckpoint,
        payload: dict[str, Any],
        job_id: str,
        kind: CheckpointKind,
    ) -> Checkpoint:
        if canonical_output(existing.output) != payload:
            raise ConflictError(
                f"Checkpoint {kind} for job {job_id} already exists with different content",
                job_id=job_id,
                phase=str(kind),
            )
        return _to_checkpoint(existing)

    @staticmethod
    async def _check_order(session: AsyncSession, job_id: str, kind: CheckpointKind) -> None:
        if kind == CheckpointKind.REQUEST:
            return

        rows = await checkpoint_repository.list_checkpoints(session, job_id)
        present = {CheckpointKind(row.kind) for row in rows}

        if CheckpointKind.REQUEST not in present:
            raise ConflictError(
                f"Cannot write {kind} before the job request is recorded",
                job_id=job_id,
                phase=str(kind),
            )

        terminal = present & TERMINAL_CHECKPOINTS
        if kind == CheckpointKind.NOTIFICATION:
            if not terminal:
                raise ConflictError(
                    "Notification requires a terminal checkpoint",
                    job_id=job_id,
                    phase=str(kind),
                )
            return

        if terminal:
            raise ConflictError(
                f"Cannot write {kind} after terminal checkpoint {sorted(terminal)[0]}",
                job_id=job_id,
                phase=str(kind),
            )

        if kind in _PHASE_KINDS:
            preceding = _PHASE_KINDS[: _PHASE_KINDS.index(kind)]
            missing = [k for k in preceding if k not in present]
            if missing:
                raise ConflictError(
                    f"Checkpoint {kind} written out of order; missing {', '.join(missing)}",
                    job_id=job_id,
                    phase=str(kind),
                )
