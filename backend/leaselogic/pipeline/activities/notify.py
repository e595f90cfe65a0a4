"""
NotifyActivity — completion webhook.

POSTs {analysisId, status, resultUrl} to the notificationUrl supplied
with the analysis request once the job is terminal.

Payload: {"url", "analysisId", "status", "resultUrl"}
"""

from __future__ import annotations

from typing import Any

import httpx

from leaselogic.core.constants import CheckpointKind
from leaselogic.core.logging import get_logger
from leaselogic.pipeline.activity import Activity
from leaselogic.pipeline.errors import PermanentActivityError, TransientActivityError

logger = get_logger(__name__)

# Default timeout for webhook calls (seconds)
DEFAULT_TIMEOUT = 10.0


class NotifyActivity(Activity):
    kind = CheckpointKind.NOTIFICATION
    description = "Sending completion notification"

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout_seconds = timeout
        self._transport = transport

    async def run(self, payload: dict[str, Any]) -> dict[str, Any]:
        url = payload["url"]
        body = {
            "analysisId": payload["analysisId"],
            "status": payload["status"],
            "resultUrl": payload["resultUrl"],
        }

        logger.info("Sending completion notification", analysis_id=body["analysisId"], url=url)

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.post(url, json=body)
        except httpx.InvalidURL as exc:
            raise PermanentActivityError(f"Invalid notification URL: {exc}", phase=self.kind) from exc
        except httpx.TransportError as exc:
            raise TransientActivityError(f"Notification failed: {exc}", phase=self.kind) from exc

        if response.status_code >= 500 or response.status_code == 429:
            raise TransientActivityError(
                f"Notification endpoint returned {response.status_code}",
                phase=self.kind,
            )
        if response.status_code >= 400:
            raise PermanentActivityError(
                f"Notification endpoint rejected the call with {response.status_code}",
                phase=self.kind,
            )

        return {
            "url": url,
            "delivered": True,
            "statusCode": response.status_code,
            "deliveredAt": self._now().isoformat(),
        }
