"""
LangSmith tracing for activity invocations.

When LANGSMITH_TRACING is on and an API key is configured, every
attempt the ActivityGateway makes shows up in LangSmith as a "tool"
run named `activity.<kind>`, tagged with the job id and attempt
number.  Otherwise activities are called directly.

Usage:
    from leaselogic.core.tracing import setup_tracing, trace_activity

    setup_tracing(settings)   # once, from the application lifespan

    output = await trace_activity(activity.run, kind="Parsing", job_id=job_id, attempt=1)(payload)
"""

from __future__ import annotations

import os
from typing import Any, Awaitable, Callable

from langsmith import traceable

from leaselogic.core.config import Settings, settings as default_settings
from leaselogic.core.logging import get_logger

logger = get_logger(__name__)

_tracing_enabled = False

_LANGSMITH_ENV = ("LANGSMITH_API_KEY", "LANGSMITH_ENDPOINT", "LANGSMITH_PROJECT")


def setup_tracing(settings: Settings | None = None) -> bool:
    """
    Export the LangSmith settings for the SDK and switch tracing on.

    Returns True if tracing was enabled, False otherwise.
    """
    global _tracing_enabled
    settings = settings or default_settings

    if not (settings.LANGSMITH_TRACING and settings.LANGSMITH_API_KEY):
        logger.info("LangSmith tracing disabled")
        _tracing_enabled = False
        return False

    for name in _LANGSMITH_ENV:
        os.environ[name] = getattr(settings, name)
    os.environ["LANGSMITH_TRACING"] = "true"

    logger.info("LangSmith tracing enabled", project=settings.LANGSMITH_PROJECT)
    _tracing_enabled = True
    return True


def trace_activity(
    run: Callable[[dict[str, Any]], Awaitable[Any]],
    *,
    kind: str,
    job_id: str | None,
    attempt: int,
) -> Callable[[dict[str, Any]], Awaitable[Any]]:
    """Return `run` wrapped in a LangSmith tool run, or `run` itself when tracing is off."""
    if not _tracing_enabled:
        return run
    return traceable(
        name=f"activity.{kind}",
        run_type="tool",
        metadata={"job_id": job_id, "attempt": attempt},
        tags=[kind],
    )(run)
