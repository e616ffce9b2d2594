"""Task ordering and current-task selection for FocusFlow.

Two orderings are supported as named policies:
- PRIORITY_FIRST: deferred last, then priority, then overdue, then due instant
- DUE_DATE_FIRST: deferred last, then overdue, then due instant, then priority

"Overdue" is evaluated against the instant passed in (or now), so the order
changes over time and must be recomputed on every selection.
"""

from datetime import datetime
from enum import Enum
from functools import cmp_to_key
from typing import Iterable, List, Optional

from focusflow.models.constants import MAX_PRIORITY, MIN_PRIORITY
from focusflow.models.task import Task, TaskKind


class SortPolicy(str, Enum):
    """Named ordering strategies."""
    PRIORITY_FIRST = "priority_first"
    DUE_DATE_FIRST = "due_date_first"


class PriorityScale(str, Enum):
    """Which end of the 1..5 priority range is most urgent."""
    ONE_IS_HIGHEST = "one_is_highest"
    FIVE_IS_HIGHEST = "five_is_highest"


class TaskView(str, Enum):
    """Task list views."""
    ACTIVE = "active"
    COMPLETED = "completed"
    DEFERRED = "deferred"
    ALL = "all"


DEFAULT_SORT_POLICY = SortPolicy.PRIORITY_FIRST
DEFAULT_PRIORITY_SCALE = PriorityScale.ONE_IS_HIGHEST


def is_candidate(task: Task) -> bool:
    """Completed single tasks are terminal; habits are never removed by completion."""
    return not (task.kind == TaskKind.SINGLE and task.completed)


def is_overdue(task: Task, now: Optional[datetime] = None) -> bool:
    """Check whether the task's due instant is strictly in the past."""
    if task.next_due_at is None:
        return False
    now = now or datetime.utcnow()
    return task.next_due_at < now


def to_scale(priority: int, scale: PriorityScale = DEFAULT_PRIORITY_SCALE) -> int:
    """Express a priority given as 1 = most urgent on the configured scale.

    Parsers and the language model always rank urgency with 1 highest; stored
    priorities follow the scale the ranking uses.
    """
    if PriorityScale(scale) == PriorityScale.FIVE_IS_HIGHEST:
        return MIN_PRIORITY + MAX_PRIORITY - priority
    return priority


def _deferred_sort_key(task: Task) -> int:
    return 1 if task.deferred else 0


def _priority_sort_key(task: Task, scale: PriorityScale) -> int:
    """Get sort key for priority (lower = more urgent).

    Args:
        task: Task to get sort key for
        scale: Which end of the range is most urgent

    Returns:
        Priority as-is for ONE_IS_HIGHEST, negated for FIVE_IS_HIGHEST
    """
    if PriorityScale(scale) == PriorityScale.FIVE_IS_HIGHEST:
        return -task.priority
    return task.priority


def _overdue_sort_key(task: Task, now: datetime) -> int:
    return 0 if is_overdue(task, now) else 1


def _due_sort_key(task: Task) -> tuple:
    """Get sort key for due-date urgency.

    Tasks with a due instant come before those without.
    Among tasks with one, earlier instants come first.

    Args:
        task: Task to get sort key for

    Returns:
        Tuple for sorting: (has_due: 0 or 1, due instant or max)
    """
    if task.next_due_at:
        return (0, task.next_due_at)
    else:
        return (1, datetime.max)


def sort_key(
    task: Task,
    policy: SortPolicy = DEFAULT_SORT_POLICY,
    now: Optional[datetime] = None,
    scale: PriorityScale = DEFAULT_PRIORITY_SCALE,
) -> tuple:
    """Full sort key of a task under a policy."""
    now = now or datetime.utcnow()
    if SortPolicy(policy) == SortPolicy.DUE_DATE_FIRST:
        return (
            _deferred_sort_key(task),
            _overdue_sort_key(task, now),
            _due_sort_key(task),
            _priority_sort_key(task, scale),
        )
    return (
        _deferred_sort_key(task),
        _priority_sort_key(task, scale),
        _overdue_sort_key(task, now),
        _due_sort_key(task),
    )


def compare(
    a: Task,
    b: Task,
    policy: SortPolicy = DEFAULT_SORT_POLICY,
    now: Optional[datetime] = None,
    scale: PriorityScale = DEFAULT_PRIORITY_SCALE,
) -> int:
    """Three-way comparison of two tasks: negative if a goes first."""
    now = now or datetime.utcnow()
    key_a = sort_key(a, policy, now, scale)
    key_b = sort_key(b, policy, now, scale)
    return (key_a > key_b) - (key_a < key_b)


def rank_tasks(
    tasks: Iterable[Task],
    policy: SortPolicy = DEFAULT_SORT_POLICY,
    now: Optional[datetime] = None,
    scale: PriorityScale = DEFAULT_PRIORITY_SCALE,
) -> List[Task]:
    """Filter out completed single tasks and sort the rest.

    Sorting is stable, so ties keep their input order.

    Args:
        tasks: Tasks to rank
        policy: Ordering strategy
        now: Instant used to decide overdue-ness (defaults to now)
        scale: Priority direction

    Returns:
        List of tasks, most pressing first
    """
    now = now or datetime.utcnow()
    candidates = [task for task in tasks if is_candidate(task)]
    return sorted(candidates, key=cmp_to_key(lambda a, b: compare(a, b, policy, now, scale)))


def select_current(
    tasks: Iterable[Task],
    policy: SortPolicy = DEFAULT_SORT_POLICY,
    now: Optional[datetime] = None,
    scale: PriorityScale = DEFAULT_PRIORITY_SCALE,
    include_deferred: bool = False,
) -> Optional[Task]:
    """Select the single task to show the user right now.

    Deferred tasks are not offered unless include_deferred is set; they are
    still ranked (last) by rank_tasks for list views.
    """
    ranked = rank_tasks(tasks, policy, now, scale)
    if not include_deferred:
        ranked = [task for task in ranked if not task.deferred]
    return ranked[0] if ranked else None


def filter_by_view(tasks: Iterable[Task], view: TaskView = TaskView.ACTIVE) -> List[Task]:
    """Select the tasks shown under a list view."""
    view = TaskView(view)
    if view == TaskView.ACTIVE:
        return [task for task in tasks if not task.completed and not task.deferred]
    if view == TaskView.COMPLETED:
        return [task for task in tasks if task.completed]
    if view == TaskView.DEFERRED:
        return [task for task in tasks if task.deferred]
    return list(tasks)
