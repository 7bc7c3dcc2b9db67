"""The continuation marker the backend appends to truncated code output.

The marker is a control signal, not content: it must never reach the improved
code shown to (or copied by) the user.
"""

from __future__ import annotations

import re

CONTINUE_MARKER = "[CONTINUE]"

# "[CONTINUE]", "[ continue ]", "[Continue]\n" ... plus whatever whitespace follows.
_MARKER_RE = re.compile(r"\[\s*CONTINUE\s*\]\s*", re.IGNORECASE)


def detect(text: str | None) -> bool:
    """Return True if a continuation marker occurs anywhere in ``text``."""
    if not text:
        return False
    return _MARKER_RE.search(text) is not None


def strip(text: str | None) -> str:
    """Remove every continuation marker (and the whitespace right after it).

    Removal repeats until nothing matches, since deleting one marker can join
    the text around it into a new one ("[CON[CONTINUE]TINUE]").
    """
    if not text:
        return ""
    cleaned = text
    while True:
        stripped = _MARKER_RE.sub("", cleaned)
        if stripped == cleaned:
            return cleaned
        cleaned = stripped
