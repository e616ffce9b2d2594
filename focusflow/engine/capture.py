"""Optimistic task capture for FocusFlow.

Creating a task is two-phase:

1. capture() writes a pending record right away, titled with the raw text,
   so the user sees it without waiting on any parser.
2. enrich() parses and normalizes the text and patches the same record,
   clearing pending.

The parse is bounded by a timeout and never retried. When it fails the
pending record is the final state for that task. Enrichment that arrives
after the record was deleted or already enriched is a no-op.
"""

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Protocol

from focusflow.database.change_feed import ChangeFeed, TaskChange
from focusflow.database.repository import TaskRepository
from focusflow.engine.normalizer import normalize
from focusflow.engine.ranking import (
    DEFAULT_PRIORITY_SCALE,
    DEFAULT_SORT_POLICY,
    PriorityScale,
    SortPolicy,
    select_current,
    to_scale,
)
from focusflow.engine.transitions import complete
from focusflow.errors import MissingTitle, TaskParseError
from focusflow.models.constants import DEFAULT_PRIORITY, PARSE_TIMEOUT_SEC, TASKS_COLLECTION
from focusflow.models.draft import TaskDraft
from focusflow.models.task import Task, TaskKind, TaskState
from focusflow.models.task_factory import create_pending_task

logger = logging.getLogger(__name__)

# Fields produced by normalization; state-machine fields the user may have
# changed on the pending record are left alone.
ENRICHED_FIELDS = (
    "title",
    "description",
    "kind",
    "recurrence_rule",
    "deadline",
    "next_due_at",
    "priority",
    "pending",
)


class EnrichmentOutcome(str, Enum):
    ENRICHED = "enriched"
    UNENRICHED = "unenriched"
    SKIPPED = "skipped"


class TaskParser(Protocol):
    def parse(self, text: str) -> TaskDraft:
        ...


class TaskCapture:
    """Creates tasks with the pending/enriched protocol."""

    def __init__(
        self,
        repository: TaskRepository,
        parser: Optional[TaskParser] = None,
        timeout_sec: float = PARSE_TIMEOUT_SEC,
        rule_fallback_on_failure: bool = False,
        priority_scale: PriorityScale = DEFAULT_PRIORITY_SCALE,
    ):
        """
        Args:
            repository: Where records are written
            parser: External text-understanding collaborator; None means rule-based only
            timeout_sec: Bound on a single parse call
            rule_fallback_on_failure: Use the rule-based parse when the external parser fails
            priority_scale: Scale that stored priorities follow
        """
        self.repository = repository
        self.parser = parser
        self.timeout_sec = timeout_sec
        self.rule_fallback_on_failure = rule_fallback_on_failure
        self.priority_scale = priority_scale

    def capture(self, raw_text: str, now: Optional[datetime] = None) -> Task:
        """Write the pending record for raw_text.

        Raises:
            MissingTitle: if the text is blank
        """
        pending = create_pending_task(raw_text, now, to_scale(DEFAULT_PRIORITY, self.priority_scale))
        task = self.repository.create(pending)
        logger.info(f"Captured pending task {task.id}")
        return task

    async def _parse(self, raw_text: str) -> Optional[TaskDraft]:
        return await asyncio.wait_for(asyncio.to_thread(self.parser.parse, raw_text), timeout=self.timeout_sec)

    async def enrich(self, task_id: str, raw_text: str, now: Optional[datetime] = None) -> EnrichmentOutcome:
        """Normalize raw_text and patch the pending record.

        Returns:
            ENRICHED if the record was patched, UNENRICHED if parsing or
            normalization failed (record stays pending), SKIPPED if the record
            is gone or was already enriched
        """
        draft = None
        if self.parser is not None:
            try:
                draft = await self._parse(raw_text)
            except (asyncio.TimeoutError, TaskParseError) as e:
                logger.warning(f"Parse failed for task {task_id}: {type(e).__name__}. Leaving it pending.")
                if not self.rule_fallback_on_failure:
                    return EnrichmentOutcome.UNENRICHED
                logger.info(f"Falling back to rule-based parse for task {task_id}")

        try:
            task = normalize(raw_text, draft, now=now, scale=self.priority_scale)
        except MissingTitle:
            logger.warning(f"Draft for task {task_id} has no title. Leaving it pending.")
            return EnrichmentOutcome.UNENRICHED

        current = self.repository.get(task_id)
        if current is None or not current.pending:
            logger.debug(f"Task {task_id} deleted or already enriched. Skipping patch.")
            return EnrichmentOutcome.SKIPPED

        fields = {name: getattr(task, name) for name in ENRICHED_FIELDS}
        if task.kind == TaskKind.HABIT and current.completed:
            fields.update(_habit_cycle_fields(task, current.completed_at or now))
        self.repository.patch(task_id, fields)
        logger.info(f"Enriched task {task_id} as {task.kind}")
        return EnrichmentOutcome.ENRICHED


def _habit_cycle_fields(task: Task, completed_at: datetime) -> dict:
    """Fields that turn a completion made while pending into a habit cycle.

    The pending record is always single, so completing it marks it terminal.
    Once it turns out to be a habit, that completion starts the next cycle.
    """
    cycled = complete(task, completed_at)
    return {
        "completed": False,
        "completed_at": None,
        "completion_reason": None,
        "state": TaskState.ACTIVE,
        "last_completed_at": cycled.last_completed_at,
        "next_due_at": cycled.next_due_at,
    }


def watch_current_task(
    feed: ChangeFeed,
    repository: TaskRepository,
    on_current: Callable[[Optional[Task]], None],
    policy: SortPolicy = DEFAULT_SORT_POLICY,
    scale: PriorityScale = DEFAULT_PRIORITY_SCALE,
) -> Callable[[], None]:
    """Re-select the current task every time the task set changes.

    The selection is recomputed from a fresh read on each change, never
    cached, because overdue-ness depends on the time of evaluation.

    Returns:
        Function that stops watching
    """

    def _on_change(change: TaskChange) -> None:
        on_current(select_current(repository.get_all(), policy, scale=scale))

    return feed.subscribe(TASKS_COLLECTION, _on_change)
