"""Template rendering — ``{{path}}`` substitution and ordered, conditional block assembly.

Rendering never raises: a path that does not resolve, or a value that cannot
be serialized, becomes an empty string so the surrounding prompt text stays
well-formed with partial context.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from pipeline.conditions import MISSING, resolve_path, should_include_step
from schemas.prompt_plan import RenderStep, StepTrace

logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r"\{\{([^}]+)\}\}")
BLOCK_SEPARATOR = "\n\n"


@dataclass
class BlockResult:
    text: str
    trace: list[StepTrace] = field(default_factory=list)


def _stringify(value: Any) -> str:
    if value is MISSING or value is None:
        return ""
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")
    if isinstance(value, (Mapping, list, tuple, bool)):
        try:
            return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
        except (TypeError, ValueError) as exc:
            logger.debug("Placeholder value not serializable: %s", exc)
            return ""
    return str(value)


def render_template(template: str | None, context: Any) -> str:
    if not template:
        return ""
    return PLACEHOLDER_RE.sub(
        lambda match: _stringify(resolve_path(context, match.group(1).strip())),
        template,
    )


def build_blocks(steps: Iterable[RenderStep], context: Any) -> BlockResult:
    """Render included steps in order and join the non-empty ones.

    The trace records every step, included or not.
    """
    trace: list[StepTrace] = []
    rendered: list[str] = []
    for step in steps:
        included = should_include_step(step, context)
        trace.append(StepTrace(id=step.id, channel=step.channel, included=included))
        if not included:
            continue
        text = render_template(step.template, context).strip()
        if text:
            rendered.append(text)
    return BlockResult(text=BLOCK_SEPARATOR.join(rendered), trace=trace)
