"""
Constants Package

Field bounds and limits shared by the catalog store and the HTTP layer.
"""

from .validation import (
    MIN_SERVINGS,
    MAX_SERVINGS,
    DEFAULT_SERVINGS,
    MIN_TIME_MINUTES,
    MAX_TIME_MINUTES,
    TIME_STEP_MINUTES,
    DEFAULT_TIME_MINUTES,
    MAX_LENGTHS,
    MAX_IMAGE_BYTES,
    MISSING_NAME,
)
