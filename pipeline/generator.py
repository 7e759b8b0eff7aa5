"""Prompt generator — turns a Prompt Spec into a ready-to-run expanded prompt."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

from pipeline.llm import ResponseParseError, parse_json_response
from prompts.generation_system import SYSTEM_PROMPT, TASK_BLOCK
from schemas.pipeline import GenerationResult
from schemas.prompt_spec import PromptSpec

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """The generation model call failed."""


# ---------------------------------------------------------------------------
# Type-specific instructions
# ---------------------------------------------------------------------------

def _deck(ts: dict) -> list[str]:
    parts = ["For this slide deck:"]
    if ts.get("slide_count"):
        parts.append(f"- Target {ts['slide_count']} slides")
    if ts.get("duration_minutes"):
        parts.append(f"- Designed for {ts['duration_minutes']} minute presentation")
    if ts.get("include_speaker_notes"):
        parts.append("- Include speaker notes for each slide")
    if ts.get("include_visual_suggestions"):
        parts.append("- Include visual/image suggestions for each slide")
    parts.append("- Each slide should have: title, key points (3-5 bullets), visual suggestion, speaker notes")
    return parts


def _code(ts: dict) -> list[str]:
    parts = ["For this code output:"]
    if ts.get("language"):
        parts.append(f"- Use {ts['language']}")
    if ts.get("framework"):
        parts.append(f"- Use {ts['framework']} framework")
    if ts.get("include_tests"):
        parts.append("- Include test cases")
    if ts.get("include_comments"):
        parts.append("- Include inline comments explaining the code")
    parts.append(f"- Error handling level: {ts.get('error_handling') or 'standard'}")
    return parts


def _doc(ts: dict) -> list[str]:
    parts = ["For this document:"]
    if ts.get("document_type"):
        parts.append(f"- Document type: {ts['document_type']}")
    if ts.get("section_structure"):
        parts.append(f"- Include sections: {', '.join(ts['section_structure'])}")
    if ts.get("include_executive_summary"):
        parts.append("- Include an executive summary at the beginning")
    if ts.get("include_toc"):
        parts.append("- Include a table of contents")
    return parts


def _data(ts: dict) -> list[str]:
    parts = ["For this data output:", f"- Output format: {ts.get('output_format') or 'table'}"]
    if ts.get("include_headers"):
        parts.append("- Include column headers")
    if ts.get("include_descriptions"):
        parts.append("- Include field descriptions")
    return parts


def _copy(ts: dict) -> list[str]:
    parts = ["For this marketing copy:"]
    if ts.get("copy_type"):
        parts.append(f"- Copy type: {ts['copy_type']}")
    if ts.get("emotional_appeal"):
        parts.append(f"- Primary emotional appeal: {ts['emotional_appeal']}")
    if ts.get("cta_type"):
        parts.append(f"- Call to action: {ts['cta_type']}")
    return parts


def _comms(ts: dict) -> list[str]:
    parts = [
        "For this communication:",
        f"- Channel: {ts.get('channel') or 'email'}",
        f"- Formality: {ts.get('formality_level') or 'professional'}",
    ]
    if ts.get("action_items"):
        parts.append(f"- Include action items: {', '.join(ts['action_items'])}")
    if ts.get("include_greeting"):
        parts.append("- Include appropriate greeting")
    if ts.get("include_signature"):
        parts.append("- Include signature block")
    return parts


_TYPE_INSTRUCTIONS: dict[str, Callable[[dict], list[str]]] = {
    "deck": _deck,
    "code": _code,
    "doc": _doc,
    "data": _data,
    "copy": _copy,
    "comms": _comms,
}


def type_specific_instructions(output_type: str | None, type_specific: Any) -> str:
    builder = _TYPE_INSTRUCTIONS.get(output_type or "")
    if builder is None:
        return ""
    ts = type_specific.model_dump() if hasattr(type_specific, "model_dump") else dict(type_specific or {})
    return "\n".join(builder(ts))


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

def _bullets(items: list[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


def build_generation_prompt(spec: PromptSpec) -> str:
    intent, audience, quality = spec.intent, spec.audience, spec.quality

    content = []
    if quality.must_include:
        content.append("Must include:\n" + _bullets(quality.must_include))
    if quality.anti_patterns:
        content.append("Must avoid:\n" + _bullets(quality.anti_patterns))

    sections = [
        "You are generating a high-quality, ready-to-use prompt based on a detailed specification.",
        f"## Primary Goal\n{intent.primary_goal}",
        "## Success Criteria\n" + (_bullets(intent.success_criteria) or "- Meets the stated goal effectively"),
        "## Target Audience\n"
        f"- Primary: {audience.primary or 'General audience'}\n"
        f"- Expertise Level: {audience.expertise_level or 'general'}\n"
        f"- Expectations: {', '.join(audience.expectations) or 'Clear, useful output'}",
        "## Tone & Style\n"
        f"- Tone: {spec.inferred.tone or 'professional'}\n"
        f"- Format: {spec.inferred.format or 'paragraph'}\n"
        f"- Length: {spec.constraints.length or 'medium'}",
        "## Content Requirements\n" + "\n\n".join(content) if content else "",
        type_specific_instructions(spec.output_type, spec.type_specific),
        TASK_BLOCK,
    ]
    return "\n\n".join(s for s in sections if s)


def parse_generation_response(response: Any) -> GenerationResult:
    """Whole response becomes the prompt when it is not the expected JSON."""
    try:
        data = parse_json_response(response)
    except ResponseParseError:
        data = None

    if isinstance(data, dict) and data.get("expanded_prompt"):
        return GenerationResult(
            expanded_prompt=str(data["expanded_prompt"]),
            structure_summary=str(data.get("structure_summary") or ""),
            key_elements=[str(k) for k in data.get("key_elements") or []],
        )

    logger.warning("Generation response was not the expected JSON; using it verbatim")
    raw = response if isinstance(response, str) else json.dumps(response)
    return GenerationResult(expanded_prompt=raw, structure_summary="", key_elements=[])


async def generate_prompt(spec: PromptSpec, call_llm, *, temperature: float = 0.7) -> GenerationResult:
    prompt = build_generation_prompt(spec)
    try:
        response = await call_llm(prompt, SYSTEM_PROMPT, temperature=temperature)
    except Exception as e:
        logger.error("Prompt generation failed: %s", e)
        raise GenerationError(f"Prompt generation failed: {e}") from e
    return parse_generation_response(response)
