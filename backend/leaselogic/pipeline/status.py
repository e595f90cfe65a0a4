"""Read-only projections over the Job State Store for polling clients."""

from __future__ import annotations

from typing import Any

from leaselogic.pipeline.context import JobSnapshot
from leaselogic.pipeline.errors import NotReadyError, StorageError
from leaselogic.pipeline.state_store import JobStateStore


class StatusReader:
    def __init__(self, states: JobStateStore) -> None:
        self.states = states

    async def get_status(self, job_id: str) -> JobSnapshot:
        """Current snapshot.  Raises NotFoundError for unknown ids."""
        return await self.states.get(job_id)

    async def get_result(self, job_id: str) -> dict[str, Any]:
        """
        The job's Result, once it is terminal.

        Raises:
            NotFoundError: Unknown job id.
            NotReadyError: The job is still Running; carries its status.
        """
        snapshot = await self.states.get(job_id)
        if not snapshot.is_terminal:
            raise NotReadyError(
                f"Analysis {job_id} is not finished yet",
                status=str(snapshot.status),
                job_id=job_id,
                phase=str(snapshot.phase),
                details={"progress": snapshot.progress},
            )
        if snapshot.result is None:
            raise StorageError(f"Terminal job {job_id} has no stored result", job_id=job_id)
        return snapshot.result
