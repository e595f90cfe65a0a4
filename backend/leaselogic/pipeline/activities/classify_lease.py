"""
ClassifyLeaseActivity — Classifying phase.

Payload: {"analysisId", "structured": <Structuring output>}
"""

from __future__ import annotations

from typing import Any

from leaselogic.core.constants import PHASE_MESSAGES, CheckpointKind, Phase
from leaselogic.pipeline.activity import Activity
from leaselogic.processing.base import LeaseClassifier


class ClassifyLeaseActivity(Activity):
    kind = CheckpointKind.CLASSIFYING
    description = PHASE_MESSAGES[Phase.CLASSIFYING]

    def __init__(self, classifier: LeaseClassifier) -> None:
        self.classifier = classifier

    async def run(self, payload: dict[str, Any]) -> dict[str, Any]:
        classification = await self._in_thread(self.classifier.classify, payload["structured"])
        classification["classifiedAt"] = self._now().isoformat()
        return classification
