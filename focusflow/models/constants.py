"""Constants for FocusFlow.

This module centralizes the magic numbers and default values used by the
normalization, scheduling and state-machine code.
"""

# Priority (1 = highest urgency under the default scale)
MIN_PRIORITY = 1
MAX_PRIORITY = 5
DEFAULT_PRIORITY = 2

# Time-of-day defaults
DEFAULT_DUE_HOUR = 9
DEFAULT_DUE_MINUTE = 0
END_OF_DAY = (23, 59, 59)

# Relative deadline defaults when a phrase names a unit but no number
DEFAULT_HOURS = 1
DEFAULT_MINUTES = 30

# Reflection gate ("I don't want to do this")
REFLECTION_MIN_CHARS = 500
REFLECTION_MIN_WORDS = 0

# External parser
PARSE_TIMEOUT_SEC = 10.0

# Collection name used by the change feed
TASKS_COLLECTION = "tasks"

FALLBACK_SUGGESTION = (
    "Try the two-minute rule: set a timer for two minutes and do only the very "
    "first step of this task. Starting is the hardest part, and you can stop "
    "when the timer rings."
)
