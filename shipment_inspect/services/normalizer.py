from __future__ import annotations

import re
from typing import Any

"""Header normalization.

normalize_header() reduces a raw header to the key used for every column
comparison: trimmed, non-breaking spaces removed, only [A-Za-z0-9_] kept,
lower-cased. The empty key never matches anything.
"""

__all__ = [
    "normalize_header",
]

_NBSP = " "
_NON_WORD_RE = re.compile(r"[^A-Za-z0-9_]")


def normalize_header(header: Any) -> str:
    """Return the canonical comparison key for a raw header string."""
    if header is None:
        return ""
    text = str(header).strip().replace(_NBSP, "")
    return _NON_WORD_RE.sub("", text).lower()
