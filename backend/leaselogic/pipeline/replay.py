"""
Replay — pure reducer from (request, checkpoints) to job state.

`replay()` is the whole of the orchestration decision logic: given the
checkpoints recorded for a job it derives the status, phase, progress
and Result, and names the next phase to run.  It performs no I/O and
reads no clock, so replaying the same checkpoints after a restart
always yields the same decisions.

Terminal checkpoint outputs:
    Reporting    → the success Result itself
    Fallback     → {"error", "failedPhase", "result"}
    Termination  → {"reason", "result"}
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from leaselogic.core.constants import (
    PHASE_MESSAGES,
    PHASE_MILESTONES,
    PHASE_ORDER,
    PHASE_SEQUENCE,
    CheckpointKind,
    JobStatus,
    Phase,
)
from leaselogic.pipeline.context import AnalysisRequest, Checkpoint, JobSnapshot, isoformat
from leaselogic.pipeline.errors import NotFoundError

COMPLETED_MESSAGE = "Analysis completed"
TERMINATED_MESSAGE = "Analysis terminated"
TERMINATION_REASON = "Terminated by external request"


def _phase_after(phase: Phase) -> Phase:
    return PHASE_ORDER[PHASE_ORDER.index(phase) + 1]


@dataclass(frozen=True)
class ReplayState:
    """Job state derived from its checkpoints."""

    job_id: str
    request: AnalysisRequest
    started_at: datetime
    outputs: dict[CheckpointKind, dict[str, Any]]
    status: JobStatus
    phase: Phase
    progress: int
    message: str
    next_phase: Phase | None = None
    result: dict[str, Any] | None = None
    error: str | None = None
    notified: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.status != JobStatus.RUNNING

    def entering(self, phase: Phase) -> ReplayState:
        """State shown while `phase` is being invoked; progress is unchanged."""
        return ReplayState(
            job_id=self.job_id,
            request=self.request,
            started_at=self.started_at,
            outputs=self.outputs,
            status=self.status,
            phase=phase,
            progress=self.progress,
            message=PHASE_MESSAGES[phase],
            next_phase=phase,
        )

    def to_snapshot(self) -> JobSnapshot:
        return JobSnapshot(
            id=self.job_id,
            status=self.status,
            phase=self.phase,
            progress=self.progress,
            message=self.message,
            file_id=self.request.file_id,
            file_name=self.request.file_name,
            file_size=self.request.file_size,
            content_type=self.request.content_type,
            created_at=self.started_at,
            updated_at=self.started_at,
            result=self.result,
            error=self.error,
        )


def replay(job_id: str, checkpoints: dict[CheckpointKind, Checkpoint]) -> ReplayState:
    """
    Reduce a job's checkpoints to its current state.

    Raises:
        NotFoundError: If the job's Request checkpoint is missing.
    """
    request_checkpoint = checkpoints.get(CheckpointKind.REQUEST)
    if request_checkpoint is None:
        raise NotFoundError(f"Analysis {job_id} not found", job_id=job_id)

    request = AnalysisRequest.from_dict(request_checkpoint.output)
    outputs = {kind: cp.output for kind, cp in checkpoints.items()}

    phase = Phase.INITIALIZING
    progress = 0
    next_phase: Phase | None = None
    for candidate in PHASE_SEQUENCE:
        if candidate not in outputs:
            next_phase = candidate
            break
        phase = _phase_after(candidate)
        progress = PHASE_MILESTONES[candidate]

    common = dict(
        job_id=job_id,
        request=request,
        started_at=request_checkpoint.written_at,
        outputs=outputs,
        notified=CheckpointKind.NOTIFICATION in outputs,
    )

    if CheckpointKind.TERMINATION in outputs:
        termination = outputs[CheckpointKind.TERMINATION]
        return ReplayState(
            **common,
            status=JobStatus.TERMINATED,
            phase=phase,
            progress=progress,
            message=TERMINATED_MESSAGE,
            result=termination["result"],
            error=termination.get("reason", TERMINATION_REASON),
        )

    if CheckpointKind.FALLBACK in outputs:
        fallback = outputs[CheckpointKind.FALLBACK]
        return ReplayState(
            **common,
            status=JobStatus.FAILED,
            phase=Phase(fallback.get("failedPhase", phase)),
            progress=progress,
            message=f"Analysis failed: {fallback['error']}",
            result=fallback["result"],
            error=fallback["error"],
        )

    if CheckpointKind.REPORTING in outputs:
        return ReplayState(
            **common,
            status=JobStatus.COMPLETED,
            phase=Phase.DONE,
            progress=100,
            message=COMPLETED_MESSAGE,
            result=outputs[CheckpointKind.REPORTING],
        )

    return ReplayState(
        **common,
        status=JobStatus.RUNNING,
        phase=phase,
        progress=progress,
        message=PHASE_MESSAGES[phase],
        next_phase=next_phase,
    )


# ═══════════════════════════════════════════════════════════
#  Activity payloads
# ═══════════════════════════════════════════════════════════

def phase_payload(state: ReplayState, phase: Phase) -> dict[str, Any]:
    """Input for `phase`, built only from the request and earlier outputs."""
    base = {"analysisId": state.job_id}
    outputs = state.outputs

    if phase == Phase.PARSING:
        return {**base, "request": state.request.to_dict()}
    if phase == Phase.STRUCTURING:
        return {**base, "parsed": outputs[CheckpointKind.PARSING]}
    if phase == Phase.CLASSIFYING:
        return {**base, "structured": outputs[CheckpointKind.STRUCTURING]}
    if phase == Phase.REPORTING:
        return {
            **base,
            "request": state.request.to_dict(),
            "structured": outputs[CheckpointKind.STRUCTURING],
            "classification": outputs[CheckpointKind.CLASSIFYING],
            "startedAt": isoformat(state.started_at),
        }
    raise ValueError(f"{phase} is not an executable phase")


def fallback_payload(state: ReplayState, *, error: str, failed_phase: Phase) -> dict[str, Any]:
    return {
        "analysisId": state.job_id,
        "request": state.request.to_dict(),
        "error": error,
        "failedPhase": str(failed_phase),
        "startedAt": isoformat(state.started_at),
    }


def notification_payload(state: ReplayState) -> dict[str, Any] | None:
    """Webhook input, or None when the request asked for no notification."""
    url = state.request.options.notification_url
    if not url:
        return None
    return {
        "url": url,
        "analysisId": state.job_id,
        "status": str(state.status),
        "resultUrl": f"/api/result/{state.job_id}",
    }
