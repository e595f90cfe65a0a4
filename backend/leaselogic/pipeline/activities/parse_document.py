"""
ParseDocumentActivity — Parsing phase.

Opens the uploaded document from the FileStore and hands the stream to
the DocumentParser.

Payload: {"analysisId", "request": AnalysisRequest.to_dict()}
"""

from __future__ import annotations

from typing import Any

from leaselogic.core.constants import PHASE_MESSAGES, CheckpointKind, Phase
from leaselogic.core.logging import get_logger
from leaselogic.pipeline.activity import Activity
from leaselogic.processing.base import DocumentParser, FileStore

logger = get_logger(__name__)


class ParseDocumentActivity(Activity):
    kind = CheckpointKind.PARSING
    description = PHASE_MESSAGES[Phase.PARSING]

    def __init__(self, file_store: FileStore, parser: DocumentParser) -> None:
        self.file_store = file_store
        self.parser = parser

    async def run(self, payload: dict[str, Any]) -> dict[str, Any]:
        request = payload["request"]
        logger.info(
            "Parsing document",
            analysis_id=payload.get("analysisId"),
            file_id=request["fileId"],
        )
        parsed = await self._in_thread(self._parse, request)
        parsed["parsedAt"] = self._now().isoformat()
        return parsed

    def _parse(self, request: dict[str, Any]) -> dict[str, Any]:
        with self.file_store.open_stream(request["fileId"]) as stream:
            return self.parser.parse(
                stream,
                file_id=request["fileId"],
                file_name=request["fileName"],
                content_type=request["contentType"],
            )
