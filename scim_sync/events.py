"""Routes host lifecycle events to the synchronizer."""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

from .errors import CorrelationError, PayloadError, SCIMError
from .models import LocalGroup, LocalUser
from .synchronizer import ScimSynchronizer

logger = logging.getLogger(__name__)

USER = "user"
GROUP = "group"

CREATE = "create"
UPDATE = "update"
DELETE = "delete"
SYNC = "sync"

ACTIONS = (CREATE, UPDATE, DELETE, SYNC)


@dataclass
class LifecycleEvent:
    """A create/update/delete (or upsert) notification for one local record."""

    resource: str
    action: str
    record: Union[LocalUser, LocalGroup]

    @property
    def label(self) -> str:
        name = getattr(self.record, "username", None) or getattr(self.record, "name", "")
        return f"{self.resource} {self.action} {name}"


_ROUTES = {
    (USER, CREATE): "create_user",
    (USER, UPDATE): "update_user",
    (USER, DELETE): "remove_user",
    (USER, SYNC): "sync_user",
    (GROUP, CREATE): "create_group",
    (GROUP, UPDATE): "update_group",
    (GROUP, DELETE): "delete_group",
    (GROUP, SYNC): "sync_group",
}


def dispatch(synchronizer: ScimSynchronizer, event: LifecycleEvent) -> Any:
    """Run the synchronizer operation for ``event`` and return its result."""
    operation = _ROUTES.get((event.resource, event.action))
    if operation is None:
        raise ValueError(f"Unsupported lifecycle event: {event.resource} {event.action}")
    return getattr(synchronizer, operation)(event.record)


@dataclass
class EventFailure:
    event: LifecycleEvent
    error: Exception

    def __str__(self):
        return f"{self.event.label}: {self.error}"


@dataclass
class EventDispatcher:
    """Dispatches a stream of events, recording failures instead of stopping.

    Only SCIM-level failures are absorbed; transport errors from ``requests``
    and programming errors propagate.
    """

    synchronizer: ScimSynchronizer
    counts: Counter = field(default_factory=Counter)
    failures: List[EventFailure] = field(default_factory=list)

    def handle(self, event: LifecycleEvent) -> bool:
        """Dispatch one event.  Returns False if it failed."""
        try:
            dispatch(self.synchronizer, event)
        except (SCIMError, PayloadError, CorrelationError) as e:
            logger.error("Failed to process %s: %s", event.label, e)
            self.failures.append(EventFailure(event, e))
            self.counts["failed"] += 1
            return False
        self.counts[event.action] += 1
        return True

    def summary(self) -> Dict[str, int]:
        result = {action: self.counts.get(action, 0) for action in ACTIONS}
        result["failed"] = self.counts.get("failed", 0)
        return result
