"""
ActivityGateway — the single entry point for calling external collaborators.

Responsibilities:
    - Resolve the activity for a kind from the ActivityRegistry
    - Enforce a per-call timeout
    - Retry transient errors and timeouts with exponential backoff
    - Bound concurrent external calls with a worker-pool semaphore
    - Trace each attempt in LangSmith when tracing is enabled

A timed-out call keeps its pool slot until it has actually stopped.
Calls running in a thread cannot be interrupted, so their slot is only
freed when the thread returns.

The gateway never reads or writes Job or Checkpoint records; it is a
pure request/response boundary.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from leaselogic.core.logging import get_logger
from leaselogic.core.tracing import trace_activity
from leaselogic.pipeline.errors import (
    PermanentActivityError,
    TransientActivityError,
)
from leaselogic.pipeline.registry import ActivityRegistry

logger = get_logger(__name__)


class ActivityGateway:
    """
    Uniform `invoke(kind, payload)` over every registered activity.

    Usage::

        gateway = ActivityGateway(registry, max_attempts=3, backoff_seconds=1.0)
        output = await gateway.invoke("Parsing", {"request": {...}}, job_id=job_id)
    """

    def __init__(
        self,
        registry: ActivityRegistry,
        *,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
        default_timeout: float = 300.0,
        pool_size: int = 8,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.registry = registry
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.default_timeout = default_timeout
        self._semaphore = asyncio.Semaphore(pool_size)
        self._sleep = sleep

    async def invoke(
        self,
        kind: str,
        payload: dict[str, Any],
        *,
        job_id: str | None = None,
    ) -> dict[str, Any]:
        """
        Run the activity registered under `kind` and return its output.

        Raises:
            PermanentActivityError: The collaborator rejected the input,
                retries were exhausted, or the activity is unknown.
        """
        kind = str(kind)
        activity = self.registry.resolve(kind)
        timeout = activity.timeout_seconds or self.default_timeout
        log = logger.bind(job_id=job_id, activity=kind)
        last_error = ""

        for attempt in range(1, self.max_attempts + 1):
            try:
                run = trace_activity(activity.run, kind=kind, job_id=job_id, attempt=attempt)
                await self._semaphore.acquire()
                call = asyncio.ensure_future(run(payload))
                call.add_done_callback(self._release_slot)
                try:
                    output = await asyncio.wait_for(asyncio.shield(call), timeout=timeout)
                finally:
                    if not call.done():
                        call.cancel()

            except PermanentActivityError as exc:
                log.error("Activity failed permanently", attempt=attempt, error=str(exc))
                exc.attempts = attempt
                exc.job_id = exc.job_id or job_id
                exc.phase = exc.phase or kind
                raise

            except TransientActivityError as exc:
                last_error = str(exc)

            except asyncio.TimeoutError:
                last_error = f"timed out after {timeout}s"

            except Exception as exc:
                # Unexpected error, not retried
                log.exception("Unexpected error in activity", attempt=attempt, error=str(exc))
                raise PermanentActivityError(
                    f"Unexpected: {exc}",
                    attempts=attempt,
                    job_id=job_id,
                    phase=kind,
                ) from exc

            else:
                if not isinstance(output, dict):
                    raise PermanentActivityError(
                        f"Activity {kind} returned {type(output).__name__}, expected a dict",
                        attempts=attempt,
                        job_id=job_id,
                        phase=kind,
                    )
                if attempt > 1:
                    log.info("Activity succeeded after retry", attempt=attempt)
                return output

            if attempt < self.max_attempts:
                wait_seconds = self.backoff_seconds * 2 ** (attempt - 1)
                log.warning(
                    f"Activity failed (attempt {attempt}/{self.max_attempts}), retrying in {wait_seconds}s",
                    error=last_error,
                )
                await self._sleep(wait_seconds)

        log.error("Activity retries exhausted", attempts=self.max_attempts, error=last_error)
        raise PermanentActivityError(
            f"{kind} failed after {self.max_attempts} attempts: {last_error}",
            attempts=self.max_attempts,
            job_id=job_id,
            phase=kind,
        )

    def _release_slot(self, _call: asyncio.Future) -> None:
        self._semaphore.release()
