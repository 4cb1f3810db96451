"""
Moderation Service - blocked word filter for user generated text.

Words are stored lower-cased in blocked_words; a post or comment is rejected
when any active word appears in it as a whole word.
"""

import re
from typing import Optional

from fastapi import HTTPException

from samrambhak.db.postgres import fetch_all

BLOCKED_CONTENT_MESSAGE = "Your content contains inappropriate language. Please revise and try again."


def find_blocked_word(db, content: Optional[str]) -> Optional[str]:
    """Return the first active blocked word found in `content`, or None."""
    if not content:
        return None
    lowered = content.lower()
    words = fetch_all(db, "SELECT word FROM blocked_words WHERE is_active = TRUE")
    for row in words:
        word = row["word"]
        if re.search(r"(?<!\w)" + re.escape(word) + r"(?!\w)", lowered):
            return word
    return None


def ensure_clean(db, content: Optional[str]) -> None:
    """400 if the text contains an active blocked word."""
    if find_blocked_word(db, content):
        raise HTTPException(status_code=400, detail=BLOCKED_CONTENT_MESSAGE)
