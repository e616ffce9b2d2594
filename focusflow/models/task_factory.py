"""Task creation factory for FocusFlow.

This module centralizes the default field values stamped onto every task so
the normalizer and the optimistic-create path agree on them.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from focusflow.errors import MissingTitle
from focusflow.models.constants import DEFAULT_PRIORITY
from focusflow.models.task import Task, TaskKind, TaskState


def create_task_defaults(now: datetime) -> Dict[str, Any]:
    """Get the unconditional default values for a freshly normalized task.

    Args:
        now: Instant used as created_at

    Returns:
        Dictionary of field values that normalization always resets
    """
    return {
        "created_at": now,
        "updated_at": now,
        "state": TaskState.ACTIVE,
        "completed": False,
        "deferred": False,
        "deferred_at": None,
        "reflection": None,
        "reflection_date": None,
        "completion_reason": None,
        "completed_at": None,
        "last_completed_at": None,
        "pending": False,
    }


def create_pending_task(raw_text: str, now: Optional[datetime] = None, priority: int = DEFAULT_PRIORITY) -> Task:
    """Create the minimally-normalized record written before enrichment.

    The raw text doubles as the title so the task is displayable right away.

    Raises:
        MissingTitle: if the text is blank
    """
    now = now or datetime.utcnow()
    title = (raw_text or "").strip()
    if not title:
        raise MissingTitle()

    defaults = create_task_defaults(now)
    defaults["pending"] = True
    return Task(
        title=title,
        raw_text=raw_text,
        kind=TaskKind.SINGLE,
        priority=priority,
        **defaults,
    )
