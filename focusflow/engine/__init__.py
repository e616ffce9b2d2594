"""Task engine for FocusFlow."""

from focusflow.engine.normalizer import normalize
from focusflow.engine.ranking import (
    SortPolicy,
    PriorityScale,
    TaskView,
    compare,
    rank_tasks,
    select_current,
    filter_by_view,
)
from focusflow.engine.transitions import (
    ReflectionGate,
    RecheckAnswer,
    complete,
    defer,
    request_reflection,
    decline_with_reflection,
    resolve_priority_recheck,
    update_priority_deadline,
)

__all__ = [
    "normalize",
    "SortPolicy",
    "PriorityScale",
    "TaskView",
    "compare",
    "rank_tasks",
    "select_current",
    "filter_by_view",
    "ReflectionGate",
    "RecheckAnswer",
    "complete",
    "defer",
    "request_reflection",
    "decline_with_reflection",
    "resolve_priority_recheck",
    "update_priority_deadline",
]
