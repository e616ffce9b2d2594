"""Task normalization for FocusFlow.

Turns captured free text, optionally pre-processed into a draft by the
language-model collaborator, into a fully-populated, internally consistent
Task. Drafts are untrusted: each field is validated on its own and replaced
by a default (and logged) when it is missing or malformed.

Pure function over its inputs and the current instant; callers persist.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Union

from focusflow.engine.ranking import DEFAULT_PRIORITY_SCALE, PriorityScale, to_scale
from focusflow.errors import MissingTitle
from focusflow.models.constants import DEFAULT_PRIORITY, MAX_PRIORITY, MIN_PRIORITY
from focusflow.models.draft import TaskDraft
from focusflow.models.task import Task, TaskKind
from focusflow.models.task_factory import create_task_defaults
from focusflow.recurrence.deterministic_parser import detect_frequency, parse_recurrence_rule, parse_task_text
from focusflow.recurrence.next_due import next_due_at
from focusflow.recurrence.temporal import DueTimePolicy, resolve_deadline

logger = logging.getLogger(__name__)


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    value = value.strip()
    return value or None


def coerce_priority(value: Any) -> int:
    """Validate a draft priority; anything missing or outside [1,5] becomes the default."""
    if value is None:
        return DEFAULT_PRIORITY
    if isinstance(value, bool):
        logger.warning(f"Invalid draft priority {value!r}. Using default {DEFAULT_PRIORITY}.")
        return DEFAULT_PRIORITY
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid draft priority {str(value)[:20]!r}. Using default {DEFAULT_PRIORITY}.")
        return DEFAULT_PRIORITY
    if not number.is_integer() or not MIN_PRIORITY <= number <= MAX_PRIORITY:
        logger.warning(f"Out-of-range draft priority {value!r}. Using default {DEFAULT_PRIORITY}.")
        return DEFAULT_PRIORITY
    return int(number)


def coerce_kind(value: Any) -> TaskKind:
    """Validate a draft kind; anything missing or unknown becomes single."""
    if value is None:
        return TaskKind.SINGLE
    try:
        return TaskKind(str(value).strip().lower())
    except ValueError:
        logger.warning(f"Invalid draft kind {str(value)[:20]!r}. Using '{TaskKind.SINGLE.value}'.")
        return TaskKind.SINGLE


def _as_draft(draft: Union[TaskDraft, Dict[str, Any], None]) -> Optional[TaskDraft]:
    if draft is None or isinstance(draft, TaskDraft):
        return draft
    return TaskDraft.model_validate(draft)


def normalize(
    raw_text: str,
    draft: Union[TaskDraft, Dict[str, Any], None] = None,
    *,
    now: Optional[datetime] = None,
    scale: PriorityScale = DEFAULT_PRIORITY_SCALE,
) -> Task:
    """Normalize captured text (and an optional external draft) into a Task.

    Args:
        raw_text: Text the user typed
        draft: Partial fields from a parser; when None the rule-based parser runs
        now: Current instant (injected for determinism)
        scale: Priority scale to store; drafts always rank 1 as most urgent

    Returns:
        Task without an id; storage assigns identity

    Raises:
        MissingTitle: if no title can be derived
    """
    now = now or datetime.utcnow()
    external = _as_draft(draft)
    fields = external if external is not None else parse_task_text(raw_text)

    title = _clean_text(fields.title)
    if title is None:
        raise MissingTitle()

    kind = coerce_kind(fields.kind)
    priority = to_scale(coerce_priority(fields.priority), scale)
    description = _clean_text(fields.description)

    recurrence_rule = None
    deadline = None
    if kind == TaskKind.HABIT:
        frequency = _clean_text(fields.frequency)
        if frequency is None and external is not None:
            # The model said "habit" without saying how often; look at the text ourselves.
            frequency = detect_frequency(raw_text or "")
            logger.warning(f"Draft habit has no frequency. Detected from text: {bool(frequency)}")
        recurrence_rule = parse_recurrence_rule(frequency or "")
        next_due = next_due_at(recurrence_rule, now)
    else:
        phrase = _clean_text(fields.deadline_phrase)
        if phrase is not None:
            deadline = resolve_deadline(phrase, now, DueTimePolicy.END_OF_DAY)
            if deadline is None:
                logger.debug(f"Deadline phrase '{phrase[:50]}' could not be resolved. Leaving deadline empty.")
        next_due = deadline

    return Task(
        title=title,
        description=description,
        raw_text=raw_text,
        kind=kind,
        recurrence_rule=recurrence_rule,
        deadline=deadline,
        next_due_at=next_due,
        priority=priority,
        **create_task_defaults(now),
    )
