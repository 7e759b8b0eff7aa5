"""Intent analyzer — first pipeline stage.

Asks a model what the user actually wants (goal, audience, context,
recommended tone/format/length, type-specific suggestions) and folds the
answer into a fresh Prompt Spec. Any failure degrades to a basic spec
whose primary goal is the raw input.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from pipeline.controls import DEFAULT_CONTROLS
from pipeline.llm import ResponseParseError, parse_json_response
from pipeline.prompt_specs import create_spec, merge_spec
from pipeline.type_specific import fill_type_specific_gaps
from prompts.analysis_system import ANALYSIS_TEMPLATE, SYSTEM_PROMPT, TYPE_HINTS
from schemas.pipeline import PipelineInput
from schemas.prompt_spec import PromptSpec

logger = logging.getLogger(__name__)


def build_analysis_prompt(inputs: PipelineInput) -> str:
    option = DEFAULT_CONTROLS.output_type(inputs.output_type)
    notes = inputs.notes.strip()
    return ANALYSIS_TEMPLATE.format(
        user_input=inputs.user_input,
        notes_block=f"## Additional Notes\n{notes}\n\n" if notes else "",
        output_label=option.label,
        output_context=option.context,
        output_id=inputs.output_type,
        type_hints=TYPE_HINTS.get(inputs.output_type, ""),
    )


def parse_analysis_response(response: Any) -> dict:
    if not isinstance(response, (str, dict)):
        response = json.dumps(response)
    analysis = parse_json_response(response)
    if not isinstance(analysis, dict):
        raise ResponseParseError("Analysis response is not a JSON object")
    return analysis


def _section(analysis: dict, key: str) -> dict:
    value = analysis.get(key)
    return value if isinstance(value, dict) else {}


def build_spec_from_analysis(analysis: dict, inputs: PipelineInput) -> PromptSpec:
    intent = _section(analysis, "intent")
    audience = _section(analysis, "audience")
    context = _section(analysis, "context")
    settings = _section(analysis, "recommended_settings")
    suggestions = {k: v for k, v in _section(analysis, "type_specific_suggestions").items() if v is not None}

    spec = merge_spec(create_spec(inputs.output_type), {
        "generated_at": datetime.now(timezone.utc),
        "intent": {
            "primary_goal": intent.get("primary_goal") or inputs.user_input,
            "success_criteria": intent.get("success_criteria") or [],
            "action_desired": intent.get("action_desired") or "",
            "urgency": intent.get("urgency") or "normal",
        },
        "audience": {
            "primary": audience.get("primary") or "",
            "expertise_level": audience.get("expertise_level") or "general",
            "relationship": audience.get("relationship") or "neutral",
            "expectations": audience.get("expectations") or [],
        },
        "context": {
            "setting": context.get("setting") or "",
            "prior_knowledge": context.get("prior_knowledge") or [],
        },
        "type_specific": suggestions,
        "inferred": {
            "tone": settings.get("tone") or "professional",
            "format": settings.get("format") or "paragraph",
            "length": settings.get("length") or "medium",
            "reasoning": settings.get("reasoning") or {},
        },
    })

    gaps = fill_type_specific_gaps(spec, suggestions)
    if gaps:
        spec = merge_spec(spec, {"type_specific": gaps})
    return spec


def _basic_spec(inputs: PipelineInput) -> PromptSpec:
    return merge_spec(create_spec(inputs.output_type), {
        "generated_at": datetime.now(timezone.utc),
        "intent": {"primary_goal": inputs.user_input},
    })


async def analyze_intent(inputs: PipelineInput, call_llm, *, temperature: float = 0.3) -> PromptSpec:
    prompt = build_analysis_prompt(inputs)
    try:
        response = await call_llm(prompt, SYSTEM_PROMPT, temperature=temperature)
        spec = build_spec_from_analysis(parse_analysis_response(response), inputs)
    except Exception as e:
        logger.warning("Intent analysis failed, using basic spec: %s", e)
        return _basic_spec(inputs)

    logger.info(
        "Intent analyzed: %s / tone=%s format=%s length=%s",
        spec.output_type, spec.inferred.tone, spec.inferred.format, spec.inferred.length,
    )
    return spec
