"""
StructureContentActivity — Structuring phase.

Payload: {"analysisId", "parsed": <Parsing output>}
"""

from __future__ import annotations

from typing import Any

from leaselogic.core.constants import PHASE_MESSAGES, CheckpointKind, Phase
from leaselogic.pipeline.activity import Activity
from leaselogic.processing.base import ContentStructurer


class StructureContentActivity(Activity):
    kind = CheckpointKind.STRUCTURING
    description = PHASE_MESSAGES[Phase.STRUCTURING]

    def __init__(self, structurer: ContentStructurer) -> None:
        self.structurer = structurer

    async def run(self, payload: dict[str, Any]) -> dict[str, Any]:
        structured = await self._in_thread(self.structurer.structure, payload["parsed"])
        structured["structuredAt"] = self._now().isoformat()
        return structured
