"""Data models for FocusFlow."""

from focusflow.models.task import Task, TaskKind, TaskState
from focusflow.models.recurrence import RecurrenceRule, RecurrenceKind, IntervalUnit
from focusflow.models.draft import TaskDraft

__all__ = [
    "Task",
    "TaskKind",
    "TaskState",
    "RecurrenceRule",
    "RecurrenceKind",
    "IntervalUnit",
    "TaskDraft",
]
