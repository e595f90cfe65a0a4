"""
Activity — abstract base class for everything the gateway can invoke.

Each pipeline phase, the fallback Result synthesis and the completion
webhook are activities.  The ActivityGateway calls run() and applies
timeout, retry and the worker-pool bound uniformly.  Activities only
need to implement the call to their collaborator.
"""

from __future__ import annotations

import asyncio
import contextvars
import functools
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable

from leaselogic.pipeline.errors import (
    NotFoundError,
    PermanentActivityError,
    TransientActivityError,
)


class Activity(ABC):
    """
    Base class for every activity.

    Subclasses MUST implement:
        - kind (str)          — registry key, e.g. "Parsing"
        - description (str)   — human-readable label for logs/traces
        - run(payload)        — the call to the external collaborator

    Subclasses MAY set:
        - timeout_seconds     — overrides the gateway's per-call timeout
    """

    kind: str = "unnamed_activity"
    description: str = "No description"
    timeout_seconds: float | None = None

    @abstractmethod
    async def run(self, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Perform the call and return a JSON-serialisable output.

        Raise TransientActivityError for failures worth retrying and
        PermanentActivityError for inputs the collaborator rejects.
        """
        ...

    # ─── Helpers available to all activities ───────────

    async def _in_thread(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """
        Run a synchronous collaborator off the event loop, mapping its
        errors onto the activity taxonomy.

        If the call is cancelled, cancellation completes only once the
        thread has returned, so the caller never loses track of it.
        """
        loop = asyncio.get_running_loop()
        context = contextvars.copy_context()
        thread = loop.run_in_executor(None, functools.partial(context.run, func, *args, **kwargs))
        try:
            return await asyncio.shield(thread)
        except asyncio.CancelledError:
            await asyncio.wait([thread])
            raise
        except NotFoundError as exc:
            raise PermanentActivityError(exc.message, phase=self.kind) from exc
        except ValueError as exc:
            raise PermanentActivityError(str(exc), phase=self.kind) from exc
        except OSError as exc:
            raise TransientActivityError(f"I/O error: {exc}", phase=self.kind) from exc

    def _now(self) -> datetime:
        """UTC-aware now."""
        return datetime.now(timezone.utc)
