"""Identity normalization utilities.

The canonical MP registry and the denormalized summary store mint their own
ids and disagree on casing and spacing ("A Kumar" vs "a   kumar"), so records
are matched on a normalized text key instead of an id.
"""

import re
from typing import Iterable, Optional

KEY_DELIMITER = "|"

_WHITESPACE = re.compile(r"\s+")


def normalize_component(value: Optional[object]) -> str:
    """Trim, lower-case and collapse internal whitespace to single spaces."""
    if value is None:
        return ""
    return _WHITESPACE.sub(" ", str(value).strip().lower())


def join_key(parts: Iterable[Optional[object]]) -> str:
    """Normalize each part and join with the key delimiter."""
    return KEY_DELIMITER.join(normalize_component(p) for p in parts)
