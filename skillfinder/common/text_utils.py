"""Small text helpers shared by the extraction and result-parsing steps."""

import re
from typing import List

# Separators used both in model output and in backend skill strings
LIST_DELIMITERS = re.compile(r"[\n,;|/]")


def split_list(text: str) -> List[str]:
    """Split a delimited string into trimmed, non-empty items (order kept)."""
    if not text:
        return []
    return [part.strip() for part in LIST_DELIMITERS.split(text) if part.strip()]


def unique(items: List[str]) -> List[str]:
    """Drop exact duplicates, keeping first-seen order."""
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result
