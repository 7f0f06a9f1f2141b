"""Input normalization for free-text search fields."""

import re
import unicodedata

# Control characters to remove
CONTROL_CHAR_PATTERN = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

MULTI_WHITESPACE_PATTERN = re.compile(r"\s+")


def normalize_single_line(text: str | None) -> str | None:
    """
    Normalize a single-line text field:
    - Normalizing Unicode to NFC form
    - Removing control characters and newlines
    - Collapsing whitespace and stripping the ends

    Returns None if input is None.
    """
    if text is None:
        return None

    text = unicodedata.normalize("NFC", text)
    text = CONTROL_CHAR_PATTERN.sub("", text)
    text = MULTI_WHITESPACE_PATTERN.sub(" ", text)
    return text.strip()


def is_blank(text: str | None) -> bool:
    """True for None, empty, or whitespace-only strings."""
    return not text or not text.strip()
