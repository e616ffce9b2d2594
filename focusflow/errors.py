"""Exceptions raised by FocusFlow.

Only two of these are reported to callers as rejections: MissingTitle and
ReflectionTooShort. Everything else describes an external failure that the
capture flow absorbs and logs.
"""


class FocusFlowError(Exception):
    """Base class for FocusFlow errors."""


class MissingTitle(FocusFlowError, ValueError):
    """Normalization cannot proceed without a title."""

    def __init__(self, message: str = "Task title is required"):
        super().__init__(message)


class ReflectionTooShort(FocusFlowError, ValueError):
    """Reflection text did not meet the configured minimum."""

    def __init__(self, *, unit: str, required: int, actual: int):
        super().__init__(f"Reflection needs at least {required} {unit} (got {actual})")
        self.unit = unit
        self.required = required
        self.actual = actual


class TaskParseError(FocusFlowError):
    """The text-understanding collaborator did not produce a draft."""


class ExternalParseTimeout(TaskParseError):
    """The text-understanding collaborator did not answer in time."""


class ExternalParseFailure(TaskParseError):
    """The text-understanding collaborator failed or returned garbage."""
