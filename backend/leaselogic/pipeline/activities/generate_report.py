"""
GenerateReportActivity — Reporting phase.

Synthesizes the success Result from the accumulated phase outputs.
The output of this activity *is* the job's Result.

Payload: {"analysisId", "request", "structured", "classification", "startedAt"}
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from leaselogic.core.constants import PHASE_MESSAGES, CheckpointKind, Phase
from leaselogic.pipeline.activity import Activity
from leaselogic.processing.base import ReportSynthesizer


class GenerateReportActivity(Activity):
    kind = CheckpointKind.REPORTING
    description = PHASE_MESSAGES[Phase.REPORTING]

    def __init__(self, synthesizer: ReportSynthesizer) -> None:
        self.synthesizer = synthesizer

    async def run(self, payload: dict[str, Any]) -> dict[str, Any]:
        result = await self._in_thread(
            self.synthesizer.synthesize,
            analysis_id=payload["analysisId"],
            request=payload["request"],
            structured=payload["structured"],
            classification=payload["classification"],
            started_at=datetime.fromisoformat(payload["startedAt"]),
            completed_at=self._now(),
        )
        return result.to_payload()
