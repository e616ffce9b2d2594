"""Draft task fields produced by a text parser.

A draft is untrusted: it may come from the language-model collaborator or
from the rule-based parser, and every field is validated independently by
the normalizer. Fields are therefore typed loosely here.
"""

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field


class TaskDraft(BaseModel):
    """Partial task fields, as returned by a parser."""

    title: Optional[Any] = Field(None, validation_alias=AliasChoices("title", "task"))
    description: Optional[Any] = None
    kind: Optional[Any] = Field(None, validation_alias=AliasChoices("kind", "type"))
    frequency: Optional[Any] = None
    deadline_phrase: Optional[Any] = Field(
        None, validation_alias=AliasChoices("deadline_phrase", "deadlinePhrase", "deadline")
    )
    priority: Optional[Any] = None

    class Config:
        """Pydantic configuration."""
        extra = "ignore"
        populate_by_name = True
