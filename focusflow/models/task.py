"""Task data model for FocusFlow."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from focusflow.models.constants import DEFAULT_PRIORITY, MAX_PRIORITY, MIN_PRIORITY
from focusflow.models.recurrence import RecurrenceRule


class TaskKind(str, Enum):
    """Task kind enumeration."""
    SINGLE = "single"
    HABIT = "habit"


class TaskState(str, Enum):
    """Position of a task in the completion/deferral state machine."""
    ACTIVE = "active"
    COMPLETED = "completed"
    DEFERRED = "deferred"
    AWAITING_REFLECTION = "awaiting_reflection"
    AWAITING_PRIORITY_RECHECK = "awaiting_priority_recheck"


class Task(BaseModel):
    """Canonical Task model."""

    id: Optional[str] = Field(None, description="Identifier assigned by storage (never by the engine)")
    title: str = Field(..., min_length=1, description="Normalized action phrase")
    description: Optional[str] = Field(None, description="Free text, no semantic processing")
    raw_text: Optional[str] = Field(None, description="Text the user originally typed")
    kind: TaskKind = Field(TaskKind.SINGLE, description="single or habit")
    recurrence_rule: Optional[RecurrenceRule] = Field(None, description="Present iff kind == habit")
    deadline: Optional[datetime] = Field(None, description="Absolute deadline (single tasks only)")
    next_due_at: Optional[datetime] = Field(None, description="Due instant read by prioritization")
    priority: int = Field(DEFAULT_PRIORITY, ge=MIN_PRIORITY, le=MAX_PRIORITY, description="1..5")
    state: TaskState = Field(TaskState.ACTIVE, description="State machine position")
    completed: bool = Field(False, description="Set only by the state machine")
    deferred: bool = Field(False, description="Set only by the state machine")
    deferred_at: Optional[datetime] = None
    reflection: Optional[str] = Field(None, description="Why the user declined the task")
    reflection_date: Optional[datetime] = None
    completion_reason: Optional[str] = Field(None, description="Annotation when completion was not a plain 'done'")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Creation timestamp")
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    last_completed_at: Optional[datetime] = None
    pending: bool = Field(False, description="Saved but not yet normalized")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True

    @model_validator(mode="after")
    def _kind_matches_rule(self):
        if self.kind == TaskKind.HABIT and self.recurrence_rule is None:
            raise ValueError("habit tasks require a recurrence_rule")
        if self.kind == TaskKind.SINGLE and self.recurrence_rule is not None:
            raise ValueError("single tasks must not carry a recurrence_rule")
        return self

    @property
    def is_habit(self) -> bool:
        return self.kind == TaskKind.HABIT

    @property
    def frequency(self) -> Optional[str]:
        return self.recurrence_rule.frequency if self.recurrence_rule else None
