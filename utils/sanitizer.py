"""
Input Sanitization Module

Cleans user-supplied names and text before they reach the catalog store,
and provides the normalization used for name comparisons and search.
"""

import re
import unicodedata


def sanitize_name(name):
    """
    Clean a record name for storage.

    Removes control characters and strips surrounding whitespace. Inner
    spacing and casing are kept exactly as entered.

    Args:
        name: The name to clean (can be None)

    Returns:
        Cleaned name, possibly empty
    """
    if name is None:
        return ''

    if not isinstance(name, str):
        name = str(name)

    # Remove control characters and null bytes
    name = re.sub(r'[\x00-\x1f\x7f-\x9f]', '', name)

    return name.strip()


def sanitize_text(text):
    """
    Clean free text such as summaries and instructions.

    Preserves newlines and tabs for formatting but drops other control
    characters. Nothing else about the text is changed.

    Args:
        text: The text to clean (can be None)

    Returns:
        Cleaned string
    """
    if text is None:
        return ''

    if not isinstance(text, str):
        text = str(text)

    return re.sub(r'[\x00-\x08\x0b-\x1f\x7f-\x9f]', '', text)


def sanitize_quantity(quantity):
    """Clean a free-text quantity. No format is enforced ("2 cups", "a pinch")."""
    return sanitize_text(quantity)


def normalize_name(name):
    """Comparison key for name uniqueness: trimmed and case-folded."""
    if not name:
        return ''
    return name.strip().casefold()


def fold_for_search(text):
    """
    Comparison key for substring search.

    Case-folds and strips diacritics so "creme" finds "Crème".
    """
    if not text:
        return ''
    decomposed = unicodedata.normalize('NFKD', text.casefold())
    return ''.join(c for c in decomposed if not unicodedata.combining(c))
