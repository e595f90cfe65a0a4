"""
ErrorResultActivity — fallback path.

Synthesizes the minimal, structurally complete Result for a job whose
phase failed permanently (isLease=false, confidence=0, the error in
riskFactors).

Payload: {"analysisId", "request", "error", "failedPhase", "startedAt"}
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from leaselogic.core.constants import CheckpointKind
from leaselogic.pipeline.activity import Activity
from leaselogic.processing.base import ReportSynthesizer


class ErrorResultActivity(Activity):
    kind = CheckpointKind.FALLBACK
    description = "Generating error result"

    def __init__(self, synthesizer: ReportSynthesizer) -> None:
        self.synthesizer = synthesizer

    async def run(self, payload: dict[str, Any]) -> dict[str, Any]:
        result = await self._in_thread(
            self.synthesizer.synthesize_error,
            analysis_id=payload["analysisId"],
            request=payload["request"],
            error=payload["error"],
            started_at=datetime.fromisoformat(payload["startedAt"]),
            completed_at=self._now(),
        )
        return result.to_payload()
