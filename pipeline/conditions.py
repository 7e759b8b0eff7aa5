"""Condition evaluator — dotted-path lookup plus comparison operators for render steps."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from schemas.prompt_plan import Condition, RenderStep


class _Missing:
    """Marker for a path that did not resolve (distinct from an explicit None)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


def _step_into(value: Any, key: str) -> Any:
    if isinstance(value, Mapping):
        return value.get(key, MISSING)
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        try:
            return value[int(key)]
        except (ValueError, IndexError):
            return MISSING
    return getattr(value, key, MISSING)


def resolve_path(context: Any, path: str | None) -> Any:
    """Resolve ``a.b.c`` against nested mappings/objects; MISSING if any hop is absent."""
    if not path:
        return MISSING
    segments = [seg.strip() for seg in path.split(".")]
    value = context
    for key in segments:
        if not key:
            continue
        if value is MISSING or value is None:
            return MISSING
        value = _step_into(value, key)
    return value


def strict_equals(left: Any, right: Any) -> bool:
    if left is MISSING or right is MISSING:
        return left is right
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right
    return type(left) is type(right) and left == right


def _contains(options: Any, value: Any) -> bool:
    return any(strict_equals(value, item) for item in options)


def evaluate_condition(condition: Condition | Mapping | None, context: Any) -> bool:
    if condition is None:
        return True
    if not isinstance(condition, Condition):
        condition = Condition.model_validate(condition)
    if not condition.field:
        return True

    value = resolve_path(context, condition.field)
    op = condition.operator

    if op == "equals":
        return strict_equals(value, condition.value)
    if op == "notEquals":
        return not strict_equals(value, condition.value)
    if op in ("in", "notIn"):
        if not isinstance(condition.value, (list, tuple)):
            return False
        member = _contains(condition.value, value)
        return member if op == "in" else not member
    if op == "exists":
        return value is not MISSING and value is not None and value != ""
    if op == "falsey":
        return not value
    return bool(value)


def should_include_step(step: RenderStep, context: Any) -> bool:
    """A step with no conditions is always included; otherwise every condition must hold."""
    return all(evaluate_condition(c, context) for c in step.conditions)
