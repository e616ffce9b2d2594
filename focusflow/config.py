"""Runtime settings for FocusFlow.

Settings come from environment variables (a .env file is honoured). Invalid
values fall back to defaults with a warning so that a typo never prevents
startup.
"""

import os
import logging
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from focusflow.engine.ranking import PriorityScale, SortPolicy
from focusflow.engine.transitions import ReflectionGate
from focusflow.models.constants import PARSE_TIMEOUT_SEC, REFLECTION_MIN_CHARS, REFLECTION_MIN_WORDS

load_dotenv()

logger = logging.getLogger(__name__)


class Settings(BaseModel):
    """Engine settings."""

    sort_policy: SortPolicy = SortPolicy.PRIORITY_FIRST
    priority_scale: PriorityScale = PriorityScale.ONE_IS_HIGHEST
    parse_timeout_sec: float = PARSE_TIMEOUT_SEC
    reflection_min_chars: int = REFLECTION_MIN_CHARS
    reflection_min_words: int = REFLECTION_MIN_WORDS
    rule_fallback_on_parse_failure: bool = False
    openai_model: Optional[str] = None

    @property
    def reflection_gate(self) -> ReflectionGate:
        return ReflectionGate(min_chars=self.reflection_min_chars, min_words=self.reflection_min_words)


def _env_enum(name: str, enum_class, default):
    value = os.getenv(name)
    if not value:
        return default
    try:
        return enum_class(value.strip().lower())
    except ValueError:
        logger.warning(f"Invalid {name}={value!r}. Using {default.value}.")
        return default


def _env_number(name: str, cast, default):
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        number = cast(value)
    except ValueError:
        logger.warning(f"Invalid {name}={value!r}. Using {default}.")
        return default
    if number < 0:
        logger.warning(f"Negative {name}={value!r}. Using {default}.")
        return default
    return number


def load_settings() -> Settings:
    """Read settings from the environment."""
    return Settings(
        sort_policy=_env_enum("SORT_POLICY", SortPolicy, SortPolicy.PRIORITY_FIRST),
        priority_scale=_env_enum("PRIORITY_SCALE", PriorityScale, PriorityScale.ONE_IS_HIGHEST),
        parse_timeout_sec=_env_number("PARSE_TIMEOUT_SEC", float, PARSE_TIMEOUT_SEC),
        reflection_min_chars=_env_number("REFLECTION_MIN_CHARS", int, REFLECTION_MIN_CHARS),
        reflection_min_words=_env_number("REFLECTION_MIN_WORDS", int, REFLECTION_MIN_WORDS),
        rule_fallback_on_parse_failure=os.getenv("RULE_FALLBACK_ON_PARSE_FAILURE", "False").lower() == "true",
        openai_model=os.getenv("OPENAI_MODEL") or None,
    )
