"""
ActivityRegistry — maps a checkpoint kind to the Activity that produces it.

The gateway resolves every invocation through the registry, so tests
and alternative deployments swap collaborators by registering
different Activity instances under the same kind.
"""

from __future__ import annotations

from leaselogic.core.logging import get_logger
from leaselogic.pipeline.activity import Activity
from leaselogic.pipeline.errors import UnknownActivityError

logger = get_logger(__name__)


class ActivityRegistry:
    def __init__(self, activities: list[Activity] | None = None) -> None:
        self._activities: dict[str, Activity] = {}
        for activity in activities or []:
            self.register(activity)

    def register(self, activity: Activity) -> None:
        """Register (or replace) the activity for its kind."""
        kind = str(activity.kind)
        if kind in self._activities:
            logger.info("Replacing registered activity", kind=kind)
        self._activities[kind] = activity

    def resolve(self, kind: str) -> Activity:
        """
        Return the activity registered under `kind`.

        Raises:
            UnknownActivityError: If nothing is registered under that kind.
        """
        try:
            return self._activities[str(kind)]
        except KeyError:
            raise UnknownActivityError(
                f"No activity registered for '{kind}'",
                phase=str(kind),
            ) from None

    def list_available(self) -> list[str]:
        """Return all registered kinds."""
        return list(self._activities.keys())
