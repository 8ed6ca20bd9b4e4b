"""Shared utilities for parsing LLM responses."""

from __future__ import annotations

import json
from typing import Any, Optional


def _strip_fences(text: str) -> str:
    if not text.startswith("```"):
        return text
    lines = text.split("\n")
    lines = [l for l in lines if not l.strip().startswith("```")]
    return "\n".join(lines)


def parse_llm_json(raw: str) -> Optional[Any]:
    """Parse a JSON object or array from an LLM response.

    Tries in order:
    1. Strip markdown code fences, then json.loads
    2. Extract substring between first '{' and last '}', then json.loads
    3. Extract substring between first '[' and last ']', then json.loads
    4. Return None

    Only objects and arrays count as a parse; a bare JSON string or number
    is treated as free text and also yields None.
    """
    if not raw or not raw.strip():
        return None

    text = _strip_fences(raw.strip())

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, (dict, list)):
        return parsed

    for open_ch, close_ch in (("{", "}"), ("[", "]")):
        start = text.find(open_ch)
        end = text.rfind(close_ch) + 1
        if start >= 0 and end > start:
            try:
                parsed = json.loads(text[start:end])
            except json.JSONDecodeError:
                continue
            if isinstance(parsed, (dict, list)):
                return parsed

    return None
