"""
Word count derivation for outline content.

Two definitions are in use and are kept apart on purpose:

- ``length``: raw character length of the content. This is what the API
  has always persisted.
- ``stripped``: character count after removing all whitespace. This is
  the live estimate shown while text is being edited.

The persisted definition is chosen by ``Settings.word_count_mode``; the
client's live estimate always uses ``stripped`` and is replaced by the
server's persisted value on the next reload.
"""

import re
from typing import Optional

LENGTH = "length"
STRIPPED = "stripped"

_WHITESPACE = re.compile(r"\s+")


def count_words(content: Optional[str], mode: str = LENGTH) -> int:
    """Count words in ``content`` using the given definition."""
    if not content:
        return 0
    if mode == STRIPPED:
        return len(_WHITESPACE.sub("", content))
    if mode == LENGTH:
        return len(content)
    raise ValueError(f"Unknown word count mode: {mode}")


def live_word_count(content: Optional[str]) -> int:
    """Estimate shown while editing, before the server recomputes it."""
    return count_words(content, STRIPPED)
