"""Ordered extraction strategies — the first one that yields a value wins.

A strategy takes a model response (str, dict, or anything else) and returns
an optional value. ``first_successful`` composes strategies left to right.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from typing import Any

Strategy = Callable[[Any], Any]

FENCED_BLOCK_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
OUTER_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


def first_successful(*strategies: Strategy) -> Strategy:
    def run(response: Any) -> Any:
        for strategy in strategies:
            value = strategy(response)
            if value is not None:
                return value
        return None

    return run


# ---------------------------------------------------------------------------
# Text → JSON strategies
# ---------------------------------------------------------------------------

def _loads(text: str | None) -> Any:
    if text is None:
        return None
    try:
        return json.loads(text.strip())
    except (json.JSONDecodeError, ValueError):
        return None


def fenced_json(text: str) -> Any:
    match = FENCED_BLOCK_RE.search(text or "")
    return _loads(match.group(1)) if match else None


def whole_json(text: str) -> Any:
    return _loads(text)


def outer_object_json(text: str) -> Any:
    match = OUTER_OBJECT_RE.search(text or "")
    return _loads(match.group(0)) if match else None


parse_json_text = first_successful(fenced_json, whole_json, outer_object_json)


# ---------------------------------------------------------------------------
# Response → blueprint text strategies
# ---------------------------------------------------------------------------

def from_text(response: Any) -> str | None:
    if isinstance(response, str):
        return response.strip()
    return None


def from_path(*keys: str) -> Strategy:
    def run(response: Any) -> str | None:
        value = response
        for key in keys:
            if not isinstance(value, dict):
                return None
            value = value.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    return run


def serialized(key: str | None = None) -> Strategy:
    """Stringify ``response[key]`` (or the whole response) when present."""

    def run(response: Any) -> str | None:
        value = response.get(key) if key is not None and isinstance(response, dict) else response
        if key is not None and not value:
            return None
        if value is None:
            return None
        if isinstance(value, str):
            return value.strip()
        try:
            return json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError):
            return None

    return run


EXPANDED_PROMPT_PATHS: tuple[tuple[str, ...], ...] = (
    ("final_output", "expanded_prompt_text"),
    ("final_output", "expandedPromptText"),
    ("final_output", "expanded_prompt"),
    ("expanded_prompt_text",),
    ("expandedPromptText",),
    ("expanded_prompt", "text"),
    ("expanded_prompt",),
    ("final_prompt",),
)

_extract_expanded_prompt = first_successful(
    from_text,
    *(from_path(*path) for path in EXPANDED_PROMPT_PATHS),
    serialized("final_output"),
    serialized(),
)


def extract_expanded_prompt(response: Any) -> str:
    """Blueprint text from an architect response; "" when nothing usable exists."""
    if response is None or response == "":
        return ""
    return _extract_expanded_prompt(response) or ""
