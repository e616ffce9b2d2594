"""Tests for optimistic capture and background enrichment."""

import asyncio
import time
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest

from focusflow.engine.capture import EnrichmentOutcome, TaskCapture, watch_current_task
from focusflow.engine.ranking import PriorityScale, TaskView, filter_by_view, select_current
from focusflow.engine.transitions import complete, defer
from focusflow.errors import ExternalParseFailure, ExternalParseTimeout, MissingTitle
from focusflow.models.draft import TaskDraft
from focusflow.models.task import TaskKind, TaskState

RAW = "Call mom every sunday 9am"


def _parser(draft=None, side_effect=None):
    parser = MagicMock()
    parser.parse.return_value = draft
    parser.parse.side_effect = side_effect
    return parser


class TestCapture:
    def test_writes_pending_record_titled_with_raw_text(self, task_repository, now):
        task = TaskCapture(task_repository).capture(RAW, now)

        assert task.id
        assert task.pending is True
        assert task.title == RAW
        assert task.kind == TaskKind.SINGLE
        assert task_repository.get(task.id).pending is True

    def test_blank_text_is_rejected(self, task_repository):
        with pytest.raises(MissingTitle):
            TaskCapture(task_repository).capture("   ")

        assert task_repository.get_all() == []


class TestEnrich:
    def test_rule_based_enrichment_patches_record(self, task_repository, now):
        capture = TaskCapture(task_repository)
        pending = capture.capture(RAW, now)

        outcome = asyncio.run(capture.enrich(pending.id, RAW, now))

        enriched = task_repository.get(pending.id)
        assert outcome == EnrichmentOutcome.ENRICHED
        assert enriched.pending is False
        assert enriched.title == "Call mom"
        assert enriched.kind == TaskKind.HABIT
        assert enriched.next_due_at == datetime(2024, 1, 7, 9, 0)
        assert enriched.created_at == pending.created_at

    def test_external_draft_is_used(self, task_repository, now):
        parser = _parser(TaskDraft(title="Phone mom", kind="habit", frequency="weekly", priority=1))
        capture = TaskCapture(task_repository, parser=parser)
        pending = capture.capture(RAW, now)

        outcome = asyncio.run(capture.enrich(pending.id, RAW, now))

        enriched = task_repository.get(pending.id)
        assert outcome == EnrichmentOutcome.ENRICHED
        assert enriched.title == "Phone mom"
        assert enriched.priority == 1
        assert enriched.recurrence_rule.frequency == "weekly"
        parser.parse.assert_called_once_with(RAW)

    @pytest.mark.parametrize("error", [ExternalParseFailure("bad json"), ExternalParseTimeout("slow")])
    def test_parse_failure_leaves_record_pending(self, task_repository, now, error):
        capture = TaskCapture(task_repository, parser=_parser(side_effect=error))
        pending = capture.capture(RAW, now)

        outcome = asyncio.run(capture.enrich(pending.id, RAW, now))

        record = task_repository.get(pending.id)
        assert outcome == EnrichmentOutcome.UNENRICHED
        assert record.pending is True
        assert record.title == RAW

    def test_slow_parser_times_out(self, task_repository, now):
        def slow_parse(text):
            time.sleep(0.3)
            return TaskDraft(title="too late")

        parser = MagicMock()
        parser.parse.side_effect = slow_parse
        capture = TaskCapture(task_repository, parser=parser, timeout_sec=0.01)
        pending = capture.capture(RAW, now)

        outcome = asyncio.run(capture.enrich(pending.id, RAW, now))

        assert outcome == EnrichmentOutcome.UNENRICHED
        assert task_repository.get(pending.id).pending is True

    def test_rule_fallback_on_failure(self, task_repository, now):
        capture = TaskCapture(
            task_repository,
            parser=_parser(side_effect=ExternalParseFailure("down")),
            rule_fallback_on_failure=True,
        )
        pending = capture.capture(RAW, now)

        outcome = asyncio.run(capture.enrich(pending.id, RAW, now))

        assert outcome == EnrichmentOutcome.ENRICHED
        assert task_repository.get(pending.id).title == "Call mom"

    def test_draft_without_title_leaves_record_pending(self, task_repository, now):
        capture = TaskCapture(task_repository, parser=_parser(TaskDraft(kind="single")))
        pending = capture.capture(RAW, now)

        assert asyncio.run(capture.enrich(pending.id, RAW, now)) == EnrichmentOutcome.UNENRICHED
        assert task_repository.get(pending.id).pending is True

    def test_deleted_record_is_skipped(self, task_repository, now):
        capture = TaskCapture(task_repository)
        pending = capture.capture(RAW, now)
        task_repository.delete(pending.id)

        assert asyncio.run(capture.enrich(pending.id, RAW, now)) == EnrichmentOutcome.SKIPPED
        assert task_repository.get_all() == []

    def test_second_enrichment_is_a_no_op(self, task_repository, now):
        capture = TaskCapture(task_repository)
        pending = capture.capture(RAW, now)

        asyncio.run(capture.enrich(pending.id, RAW, now))
        task_repository.patch(pending.id, {"title": "Edited by user"})

        assert asyncio.run(capture.enrich(pending.id, RAW, now)) == EnrichmentOutcome.SKIPPED
        assert task_repository.get(pending.id).title == "Edited by user"

    def test_user_actions_on_pending_record_survive_enrichment(self, task_repository, now):
        capture = TaskCapture(task_repository)
        pending = capture.capture(RAW, now)
        task_repository.update(defer(pending, now))

        asyncio.run(capture.enrich(pending.id, RAW, now))

        enriched = task_repository.get(pending.id)
        assert enriched.pending is False
        assert enriched.deferred is True
        assert enriched.deferred_at == now

    def test_completion_while_pending_starts_next_habit_cycle(self, task_repository, now):
        raw = "Water plants every day"
        capture = TaskCapture(task_repository)
        pending = capture.capture(raw, now)
        done_at = now + timedelta(minutes=5)
        task_repository.update(complete(pending, done_at))

        outcome = asyncio.run(capture.enrich(pending.id, raw, now + timedelta(minutes=6)))

        assert outcome == EnrichmentOutcome.ENRICHED
        enriched = task_repository.get(pending.id)
        assert enriched.kind == TaskKind.HABIT
        assert enriched.completed is False
        assert enriched.completed_at is None
        assert enriched.state == TaskState.ACTIVE
        assert enriched.last_completed_at == done_at
        assert enriched.next_due_at == datetime(2024, 1, 2, 9, 0)
        tasks = task_repository.get_all()
        assert select_current(tasks).id == pending.id
        assert [t.id for t in filter_by_view(tasks, TaskView.ACTIVE)] == [pending.id]

    def test_completed_single_stays_completed(self, task_repository, now):
        raw = "Buy milk tomorrow"
        capture = TaskCapture(task_repository)
        pending = capture.capture(raw, now)
        task_repository.update(complete(pending, now))

        asyncio.run(capture.enrich(pending.id, raw, now))

        enriched = task_repository.get(pending.id)
        assert enriched.kind == TaskKind.SINGLE
        assert enriched.completed is True
        assert enriched.completed_at == now

    @pytest.mark.parametrize(
        "scale, expected",
        [(PriorityScale.ONE_IS_HIGHEST, 2), (PriorityScale.FIVE_IS_HIGHEST, 4)],
    )
    def test_priorities_follow_configured_scale(self, task_repository, now, scale, expected):
        capture = TaskCapture(task_repository, priority_scale=scale)
        pending = capture.capture("Buy milk", now)
        assert pending.priority == expected

        asyncio.run(capture.enrich(pending.id, "Buy milk asap", now))

        assert task_repository.get(pending.id).priority == (1 if scale == PriorityScale.ONE_IS_HIGHEST else 5)


class TestWatchCurrentTask:
    def test_reselects_on_every_change(self, task_repository, change_feed, sample_task_base):
        from focusflow.models.task import Task

        seen = []
        unsubscribe = watch_current_task(change_feed, task_repository, seen.append)

        low = task_repository.create(Task(**{**sample_task_base, "title": "low", "priority": 4}))
        high = task_repository.create(Task(**{**sample_task_base, "title": "high", "priority": 1}))
        task_repository.delete(high.id)
        unsubscribe()
        task_repository.delete(low.id)

        assert [t.title if t else None for t in seen] == ["low", "high", "low"]

    def test_empty_set_selects_nothing(self, task_repository, change_feed, sample_task):
        seen = []
        watch_current_task(change_feed, task_repository, seen.append)

        created = task_repository.create(sample_task)
        task_repository.delete(created.id)

        assert seen[-1] is None
