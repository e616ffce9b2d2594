"""Completion/deferral state machine for FocusFlow.

Each transition takes a task and returns the updated copy; nothing here
performs I/O. Transitions are idempotent at the record level (completing an
already-completed single task just overwrites the same fields) and are not
guarded against two callers applying them concurrently.

    Active -> Completed                  complete (single)
    Active -> Active                     complete (habit, next cycle)
    Active -> Deferred                   defer
    Active -> AwaitingReflection         request_reflection
    * -> AwaitingPriorityRecheck         decline_with_reflection
    AwaitingPriorityRecheck -> Completed resolve_priority_recheck("changed")
    AwaitingPriorityRecheck -> Deferred  resolve_priority_recheck("avoiding")
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from focusflow.errors import ReflectionTooShort
from focusflow.models.constants import (
    MAX_PRIORITY,
    MIN_PRIORITY,
    REFLECTION_MIN_CHARS,
    REFLECTION_MIN_WORDS,
)
from focusflow.models.task import Task, TaskKind, TaskState
from focusflow.recurrence.next_due import next_due_at
from focusflow.recurrence.temporal import DueTimePolicy, resolve_deadline

logger = logging.getLogger(__name__)

PRIORITY_CHANGED_REASON = "priority_changed"


class RecheckAnswer(str, Enum):
    """Answers to "has the priority of this task changed?"."""
    CHANGED = "changed"
    AVOIDING = "avoiding"


@dataclass(frozen=True)
class ReflectionGate:
    """Minimum size of a reflection. A zero threshold disables that check."""
    min_chars: int = 0
    min_words: int = 0

    def check(self, text: str) -> None:
        """Raise ReflectionTooShort if text does not pass the gate."""
        stripped = (text or "").strip()
        if self.min_chars and len(stripped) < self.min_chars:
            raise ReflectionTooShort(unit="characters", required=self.min_chars, actual=len(stripped))
        words = len(stripped.split())
        if self.min_words and words < self.min_words:
            raise ReflectionTooShort(unit="words", required=self.min_words, actual=words)


DEFAULT_REFLECTION_GATE = ReflectionGate(min_chars=REFLECTION_MIN_CHARS, min_words=REFLECTION_MIN_WORDS)


def complete(task: Task, now: Optional[datetime] = None) -> Task:
    """Mark a task done.

    Habits move to their next cycle, computed from the completion instant
    (not from the previous due instant). Single tasks become terminal.
    """
    now = now or datetime.utcnow()
    if task.kind == TaskKind.HABIT:
        logger.debug(f"Habit {task.id} completed; rescheduling from {now.isoformat()}")
        return task.model_copy(
            update={
                "last_completed_at": now,
                "next_due_at": next_due_at(task.recurrence_rule, now),
                "deferred": False,
                "deferred_at": None,
                "state": TaskState.ACTIVE,
                "updated_at": now,
            }
        )
    return task.model_copy(
        update={
            "completed": True,
            "completed_at": now,
            "state": TaskState.COMPLETED,
            "updated_at": now,
        }
    )


def defer(task: Task, now: Optional[datetime] = None) -> Task:
    """Flag a task as not-now. Due instants are left alone."""
    now = now or datetime.utcnow()
    return task.model_copy(
        update={
            "deferred": True,
            "deferred_at": now,
            "state": TaskState.DEFERRED,
            "updated_at": now,
        }
    )


def request_reflection(task: Task, now: Optional[datetime] = None) -> Task:
    """User said "I don't want to do this": ask them why before anything else."""
    now = now or datetime.utcnow()
    return task.model_copy(update={"state": TaskState.AWAITING_REFLECTION, "updated_at": now})


def decline_with_reflection(
    task: Task,
    text: str,
    gate: Optional[ReflectionGate] = None,
    now: Optional[datetime] = None,
) -> Task:
    """Store the user's reflection and move on to the priority recheck.

    Raises:
        ReflectionTooShort: if text does not meet the gate; no transition happens
    """
    gate = gate or DEFAULT_REFLECTION_GATE
    gate.check(text)
    now = now or datetime.utcnow()
    return task.model_copy(
        update={
            "reflection": text.strip(),
            "reflection_date": now,
            "state": TaskState.AWAITING_PRIORITY_RECHECK,
            "updated_at": now,
        }
    )


def resolve_priority_recheck(task: Task, answer: str, now: Optional[datetime] = None) -> Task:
    """Apply the answer to the priority recheck.

    "changed" closes the task with an annotated reason (a habit closes its
    current cycle instead), "avoiding" defers it. Any other answer is
    rejected: the task comes back unchanged.
    """
    try:
        parsed = RecheckAnswer((answer or "").strip().lower())
    except ValueError:
        logger.warning(f"Rejected priority recheck answer {str(answer)[:20]!r} for task {task.id}")
        return task

    now = now or datetime.utcnow()
    if parsed == RecheckAnswer.AVOIDING:
        return defer(task, now)

    if task.kind == TaskKind.HABIT:
        done = complete(task, now)
    else:
        done = task.model_copy(
            update={
                "completed": True,
                "completed_at": now,
                "state": TaskState.COMPLETED,
                "updated_at": now,
            }
        )
    return done.model_copy(update={"completion_reason": PRIORITY_CHANGED_REASON})


def update_priority_deadline(
    task: Task,
    priority: int,
    deadline_phrase: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Task:
    """Set a new priority and, for single tasks, a new deadline.

    The priority is clamped to [1,5]. Day-granular deadline phrases land at
    09:00 here ("tomorrow" means tomorrow morning). A blank or unresolvable
    phrase keeps the current deadline.
    """
    now = now or datetime.utcnow()
    update = {
        "priority": max(MIN_PRIORITY, min(MAX_PRIORITY, int(priority))),
        "updated_at": now,
    }
    if task.kind == TaskKind.SINGLE and deadline_phrase and deadline_phrase.strip():
        deadline = resolve_deadline(deadline_phrase, now, DueTimePolicy.START_OF_DAY)
        if deadline is not None:
            update["deadline"] = deadline
            update["next_due_at"] = deadline
        else:
            logger.debug(f"Deadline phrase for task {task.id} could not be resolved. Keeping current deadline.")
    if task.state == TaskState.AWAITING_PRIORITY_RECHECK:
        update["state"] = TaskState.ACTIVE
    return task.model_copy(update=update)
