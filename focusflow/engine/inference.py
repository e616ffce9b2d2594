"""Language-model assistance for FocusFlow.

Wraps the OpenAI client so callers never see its failures: parsing raises
one of the TaskParseError subclasses, and suggestions fall back to a static
coping strategy.
"""

import logging
from typing import Optional

from focusflow.errors import ExternalParseFailure
from focusflow.integrations.openai_client import OpenAIClient
from focusflow.models.constants import FALLBACK_SUGGESTION
from focusflow.models.draft import TaskDraft

logger = logging.getLogger(__name__)

# Initialize OpenAI client (singleton pattern)
_openai_client: Optional[OpenAIClient] = None


def _get_openai_client(model: Optional[str] = None) -> OpenAIClient:
    """Get or create OpenAI client instance; a different model replaces it."""
    global _openai_client
    if _openai_client is None or (model and _openai_client.model != model):
        _openai_client = OpenAIClient(model=model)
    return _openai_client


class LanguageModelParser:
    """Text-understanding collaborator backed by the OpenAI client."""

    def __init__(self, client: Optional[OpenAIClient] = None):
        self.client = client or _get_openai_client()

    def parse(self, text: str) -> TaskDraft:
        """Parse text into an unvalidated draft.

        Raises:
            TaskParseError: if the model could not be asked or answered garbage
        """
        fields = self.client.parse_task(text)
        try:
            return TaskDraft.model_validate(fields)
        except ValueError as e:
            raise ExternalParseFailure("Draft did not match the expected shape") from e


def get_default_parser(model: Optional[str] = None) -> Optional[LanguageModelParser]:
    """Parser backed by the shared client, or None when no API key is configured."""
    client = _get_openai_client(model)
    return LanguageModelParser(client) if client.available else None


def get_suggestion(
    title: str,
    description: Optional[str] = None,
    client: Optional[OpenAIClient] = None,
    model: Optional[str] = None,
) -> str:
    """Get a motivational suggestion for a task; never fails.

    Returns:
        Model suggestion, or FALLBACK_SUGGESTION if the model is unavailable,
        errors, or answers with nothing
    """
    try:
        suggestion = (client or _get_openai_client(model)).suggest(title, description)
    except Exception as e:
        # Never surfaced to the user
        logger.error(f"Error getting suggestion for '{(title or '')[:50]}': {type(e).__name__}")
        return FALLBACK_SUGGESTION

    if suggestion and suggestion.strip():
        return suggestion.strip()
    logger.debug("Suggestion unavailable. Using fallback coping strategy.")
    return FALLBACK_SUGGESTION
