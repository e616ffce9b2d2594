"""OpenAI API integration for FocusFlow.

This module provides the two language-model collaborators:
- parse_task: free text -> draft task fields (JSON)
- suggest: a short motivational nudge for a task the user is avoiding

Responses are untrusted; drafts are validated by the normalizer.
"""

import os
import json
import logging
from typing import Any, Dict, Optional

from openai import OpenAI, APIError, APITimeoutError
from dotenv import load_dotenv

from focusflow.errors import ExternalParseFailure, ExternalParseTimeout
from focusflow.models.constants import PARSE_TIMEOUT_SEC

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

# gpt-4o-mini is the cheapest model that handles both prompts reliably
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"

PARSE_PROMPT_TEMPLATE = """You convert natural language tasks into structured JSON.

Extract the following fields:
- "title": a clear, concise action phrase, without recurrence, deadline or priority words
- "description": optional extra detail the user gave, or null
- "type": "single" for one-time tasks, "habit" for recurring tasks (look for words like "every", "daily", "weekly", "monthly", "repeat")
- "frequency": for habits, the recurrence as the user said it (e.g. "every 2 weeks", "daily", "every sunday 9am"); null for single tasks
- "deadline": for single tasks, the deadline as the user said it (e.g. "in 1 hour", "tomorrow", "next week", "in 2 days"); do not convert it to a date; null if none
- "priority": an integer from 1 to 5 where 1 is the most urgent. Look for words like "urgent", "important", "low priority", or infer it from the deadline

Task: "{text}"

Respond only with the JSON object, no other text."""

SUGGESTION_PROMPT_TEMPLATE = """The user is avoiding this task: "{task}".
They need help getting started. Provide:
1. A brief, empathetic acknowledgment
2. 2-3 specific, actionable ADHD-friendly strategies to break the task into smaller steps or overcome resistance
3. A motivational nudge that is encouraging but not overwhelming

Keep it concise (3-4 sentences max), practical, and focused on getting started rather than finishing everything."""


def _strip_code_fence(content: str) -> str:
    """Remove markdown code fences some models wrap JSON in."""
    content = content.strip()
    if content.startswith("```json"):
        content = content[7:]
    if content.startswith("```"):
        content = content[3:]
    if content.endswith("```"):
        content = content[:-3]
    return content.strip()


class OpenAIClient:
    """Client for OpenAI API integration."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = PARSE_TIMEOUT_SEC,
    ):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key. If None, reads from OPENAI_API_KEY environment variable.
            model: Model name. If None, reads OPENAI_MODEL or uses the default.
            timeout: Per-request timeout in seconds.

        Note:
            If API key is not provided and not found in environment, the client will still
            initialize but every call fails closed. This allows graceful degradation.
        """
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.model = model or os.getenv("OPENAI_MODEL", DEFAULT_OPENAI_MODEL)
        self.timeout = timeout
        self.client = None

        if self.api_key:
            self.client = OpenAI(api_key=self.api_key, timeout=timeout, max_retries=0)
        else:
            logger.warning("OPENAI_API_KEY not found in environment. Language-model parsing will not be available.")

    @property
    def available(self) -> bool:
        return self.client is not None

    def parse_task(self, text: str) -> Dict[str, Any]:
        """Ask the model for draft task fields.

        Args:
            text: Text the user typed

        Returns:
            Dictionary of draft fields (unvalidated)

        Raises:
            ExternalParseTimeout: if the request timed out
            ExternalParseFailure: if the client is unavailable, the API failed,
                or the response was not a JSON object
        """
        if not self.client:
            raise ExternalParseFailure("OpenAI client not initialized")

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": "You convert natural language tasks into structured JSON. Respond only with valid JSON."},
                    {"role": "user", "content": PARSE_PROMPT_TEMPLATE.format(text=text)},
                ],
                temperature=0.2,  # Parsing should be as deterministic as possible
                max_tokens=300,
                response_format={"type": "json_object"},
            )
        except APITimeoutError as e:
            logger.warning("OpenAI task parse timed out")
            raise ExternalParseTimeout("OpenAI task parse timed out") from e
        except APIError as e:
            error_code = getattr(e, "code", None)
            status_code = getattr(e, "status_code", None)
            # Don't log full error message as it might contain sensitive info
            logger.error(f"OpenAI API error during task parse: {status_code or 'unknown'} ({error_code or 'unknown'})")
            raise ExternalParseFailure(f"OpenAI API error: {status_code or 'unknown'}") from e

        content = _strip_code_fence(response.choices[0].message.content or "")
        try:
            result = json.loads(content)
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse OpenAI JSON response: {e}. Response: {content[:100]}")
            raise ExternalParseFailure("Response was not valid JSON") from e
        if not isinstance(result, dict):
            raise ExternalParseFailure("Response was not a JSON object")

        logger.debug(f"OpenAI parsed task draft with fields: {sorted(result)}")
        return result

    def suggest(self, title: str, description: Optional[str] = None) -> str:
        """Generate a motivational suggestion for a task the user is avoiding.

        Args:
            title: Task title
            description: Optional task description

        Returns:
            Suggestion text, or empty string if:
            - API key is not configured
            - API call fails
            - Title is empty
            - Response is empty
        """
        if not self.client:
            logger.debug("OpenAI client not initialized. Returning empty suggestion.")
            return ""

        if not title or not title.strip():
            logger.debug("Empty title provided. Returning empty suggestion.")
            return ""

        task = f"{title} - {description}" if description else title
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": "You are a helpful assistant specializing in ADHD-friendly strategies and motivation techniques."},
                    {"role": "user", "content": SUGGESTION_PROMPT_TEMPLATE.format(task=task)},
                ],
                temperature=0.7,
                max_tokens=200,
            )
            suggestion = (response.choices[0].message.content or "").strip()
            if not suggestion:
                logger.warning("OpenAI returned empty suggestion")
            return suggestion

        except APIError as e:
            error_code = getattr(e, "code", None)
            status_code = getattr(e, "status_code", None)

            if error_code == "insufficient_quota":
                logger.warning("OpenAI API quota insufficient for suggestions. Please check billing in the OpenAI dashboard.")
            elif status_code == 429:
                logger.warning("OpenAI API rate limit exceeded for suggestions. Please wait before retrying.")
            else:
                logger.error(f"OpenAI API error during suggestion: {status_code or 'unknown'} ({error_code or 'unknown'})")
            return ""
        except Exception as e:
            # Network, parsing, etc.; don't log full message as it might contain sensitive info
            logger.error(f"Error generating suggestion with OpenAI API: {type(e).__name__}")
            return ""
