"""SQLAlchemy database models for FocusFlow."""

from datetime import datetime
from typing import Type, TypeVar, Union
import uuid

from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String, Text

from focusflow.database.database import Base
from focusflow.models.constants import DEFAULT_PRIORITY
from focusflow.models.recurrence import RecurrenceRule
from focusflow.models.task import Task, TaskKind, TaskState

T = TypeVar('T')


def enum_to_value(enum_obj: Union[str, T]) -> str:
    """Convert enum to string value (handles both enum and string).

    Args:
        enum_obj: Enum instance or string value

    Returns:
        String value of the enum, or the string itself if already a string
    """
    if hasattr(enum_obj, 'value'):
        return enum_obj.value
    return str(enum_obj)


def value_to_enum(value: str, enum_class: Type[T], default: T) -> T:
    """Convert string to enum with fallback to default.

    Args:
        value: String value to convert
        enum_class: Enum class to convert to
        default: Default enum value if conversion fails

    Returns:
        Enum instance, or default if conversion fails
    """
    if not value:
        return default
    try:
        return enum_class(value.lower())
    except (ValueError, AttributeError):
        return default


# Columns copied verbatim between TaskDB and Task
_PLAIN_FIELDS = (
    "id",
    "title",
    "description",
    "raw_text",
    "deadline",
    "next_due_at",
    "priority",
    "completed",
    "deferred",
    "deferred_at",
    "reflection",
    "reflection_date",
    "completion_reason",
    "created_at",
    "updated_at",
    "completed_at",
    "last_completed_at",
    "pending",
)


class TaskDB(Base):
    """Database model for Task."""

    __tablename__ = "tasks"

    # Primary key
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))

    # Basic fields
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    raw_text = Column(Text, nullable=True)
    kind = Column(String, nullable=False, default=TaskKind.SINGLE.value, index=True)
    recurrence_rule = Column(JSON, nullable=True)
    priority = Column(Integer, nullable=False, default=DEFAULT_PRIORITY)

    # Due-ness
    deadline = Column(DateTime, nullable=True)
    next_due_at = Column(DateTime, nullable=True, index=True)

    # State machine
    state = Column(String, nullable=False, default=TaskState.ACTIVE.value)
    completed = Column(Boolean, nullable=False, default=False)
    deferred = Column(Boolean, nullable=False, default=False)
    deferred_at = Column(DateTime, nullable=True)
    reflection = Column(Text, nullable=True)
    reflection_date = Column(DateTime, nullable=True)
    completion_reason = Column(String, nullable=True)
    pending = Column(Boolean, nullable=False, default=False)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True, default=datetime.utcnow, onupdate=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)
    last_completed_at = Column(DateTime, nullable=True)

    def to_pydantic(self):
        """Convert database model to Pydantic model."""
        rule = RecurrenceRule.model_validate(self.recurrence_rule) if self.recurrence_rule else None
        return Task(
            kind=value_to_enum(self.kind, TaskKind, TaskKind.SINGLE),
            state=value_to_enum(self.state, TaskState, TaskState.ACTIVE),
            recurrence_rule=rule,
            **{name: getattr(self, name) for name in _PLAIN_FIELDS},
        )

    def apply_fields(self, fields: dict) -> None:
        """Copy Task field values onto this row, converting enums and the rule."""
        for name, value in fields.items():
            if name in ("kind", "state"):
                value = enum_to_value(value)
            elif name == "recurrence_rule":
                if value is not None:
                    value = RecurrenceRule.model_validate(value).model_dump(mode="json")
            elif name not in _PLAIN_FIELDS:
                continue
            setattr(self, name, value)

    @classmethod
    def from_pydantic(cls, task):
        """Create database model from Pydantic model."""
        row = cls()
        row.apply_fields(
            {
                **{name: getattr(task, name) for name in _PLAIN_FIELDS},
                "kind": task.kind,
                "state": task.state,
                "recurrence_rule": task.recurrence_rule,
            }
        )
        return row
