"""In-process subscribe-for-changes feed, keyed by collection name.

The repository publishes one TaskChange per write; subscribers (for example
the current-task watcher) re-read whatever they need. Delivery is
synchronous, in subscription order.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Callable, DefaultDict, List, Optional

logger = logging.getLogger(__name__)


class ChangeType(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass(frozen=True)
class TaskChange:
    collection: str
    change_type: ChangeType
    task_id: Optional[str]


Listener = Callable[[TaskChange], None]


class ChangeFeed:
    """Registry of listeners per collection."""

    def __init__(self):
        self._listeners: DefaultDict[str, List[Listener]] = defaultdict(list)

    def subscribe(self, collection: str, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it."""
        self._listeners[collection].append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners[collection]:
                self._listeners[collection].remove(listener)

        return unsubscribe

    def publish(self, change: TaskChange) -> None:
        """Deliver a change to every listener of its collection.

        A failing listener is logged and does not stop delivery to the others.
        """
        for listener in list(self._listeners[change.collection]):
            try:
                listener(change)
            except Exception as e:
                logger.error(f"Change listener failed for {change.collection}/{change.task_id}: {type(e).__name__}: {e}")

    def listener_count(self, collection: str) -> int:
        return len(self._listeners[collection])
