"""Prompt assembler — binds a registry spec plus UI controls into a system/user prompt pair."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pipeline.controls import DEFAULT_CONTROLS
from pipeline.prompt_analyzer import (
    TYPE_INFERENCE_KEYS,
    analyze_prompt,
    generate_inference_report,
    infer_output_type,
    merge_with_inferred,
)
from pipeline.rendering import build_blocks
from prompts.blueprint_specs import PROMPT_SPECS
from schemas.prompt_plan import InferenceSummary, PlanRequest, PromptPlan, RegistrySpec

logger = logging.getLogger(__name__)


class SpecNotFoundError(LookupError):
    """No registry entry (or default) resolved for the requested spec id."""


def _bool_label(value: Any) -> str:
    return "ENABLED" if value else "DISABLED"


def format_list(items: Any, bullet: str = "- ") -> str:
    if not isinstance(items, (list, tuple)) or not items:
        return ""
    return "\n".join(f"{bullet}{item}" for item in items)


def expand_metadata_lists(metadata: Mapping[str, Any]) -> dict[str, Any]:
    """Expose every list-valued metadata key as a ``<key>List`` bullet string."""
    expanded = dict(metadata)
    for key, value in metadata.items():
        if isinstance(value, (list, tuple)):
            expanded[f"{key}List"] = format_list(value)
    return expanded


def resolve_spec(spec_id: str | None, spec_registry: Mapping[str, RegistrySpec] | None = None) -> RegistrySpec:
    registry = spec_registry or PROMPT_SPECS
    spec = (
        registry.get(spec_id or "")
        or registry.get("default")
        or PROMPT_SPECS.get(spec_id or "")
        or PROMPT_SPECS.get("default")
    )
    if spec is None:
        raise SpecNotFoundError(f"No prompt spec found for {spec_id}")
    return spec


def build_context(params: PlanRequest, spec: RegistrySpec) -> dict[str, Any]:
    toggles = params.toggles
    return {
        "userInput": (params.user_input or "").strip(),
        "notes": (params.notes or "").strip(),
        "tone": dict(params.tone or {}),
        "output": dict(params.output_type or {}),
        "format": dict(params.format or {}),
        "length": dict(params.length or {}),
        "contextConstraints": (params.context_constraints or "").strip(),
        "typeSpecific": dict(params.type_specific or {}),
        "toggles": {
            "allowPlaceholders": toggles.allow_placeholders,
            "stripMeta": toggles.strip_meta,
            "aestheticMode": toggles.aesthetic_mode,
            "allowPlaceholdersLabel": _bool_label(toggles.allow_placeholders),
            "stripMetaLabel": _bool_label(toggles.strip_meta),
            "aestheticModeLabel": _bool_label(toggles.aesthetic_mode),
        },
        "spec": expand_metadata_lists(spec.metadata),
    }


def _coerce_request(params: PlanRequest | Mapping[str, Any]) -> PlanRequest:
    if isinstance(params, PlanRequest):
        return params
    return PlanRequest.model_validate(params)


def build_prompt_plan(
    params: PlanRequest | Mapping[str, Any],
    spec_registry: Mapping[str, RegistrySpec] | None = None,
) -> PromptPlan:
    params = _coerce_request(params)
    spec = resolve_spec(params.spec_id, spec_registry)
    context = build_context(params, spec)

    system = build_blocks(spec.system_steps, context)
    user = build_blocks(spec.user_steps, context)

    logger.debug(
        "Prompt plan %s v%d: %d/%d system steps, %d/%d user steps included",
        spec.id, spec.version,
        sum(t.included for t in system.trace), len(system.trace),
        sum(t.included for t in user.trace), len(user.trace),
    )
    return PromptPlan(
        spec_id=spec.id,
        spec_version=spec.version or 1,
        system_prompt=system.text,
        user_prompt=user.text or context["userInput"],
        step_trace=[*system.trace, *user.trace],
        context_snapshot=context,
    )


def build_prompt_plan_with_inference(
    params: PlanRequest | Mapping[str, Any],
    spec_registry: Mapping[str, RegistrySpec] | None = None,
) -> PromptPlan:
    """Like ``build_prompt_plan``, but fills unchosen output type / attributes from the brief text.

    Explicit ``spec_id`` and explicit ``type_specific`` values always win.
    Unless ``strip_meta`` is on, an auto-detected settings note is appended
    to the system prompt.
    """
    params = _coerce_request(params)
    analysis = analyze_prompt(params.user_input)
    output_type, output_source = infer_output_type(params.user_input, params.spec_id)

    relevant = TYPE_INFERENCE_KEYS.get(output_type, ())
    inferred_attrs = {k: v for k, v in analysis.inferred.items() if k in relevant}
    merged = merge_with_inferred(params.type_specific, inferred_attrs)

    update = {"spec_id": output_type, "type_specific": merged.values}
    if params.output_type is None:
        update["output_type"] = DEFAULT_CONTROLS.output_type(output_type).model_dump()
    resolved = params.model_copy(update=update)
    plan = build_prompt_plan(resolved, spec_registry)

    sources = dict(merged.sources)
    confidence = {k: v for k, v in analysis.confidence.items() if k in inferred_attrs}
    if output_source == "inferred":
        sources = {"output_type": "inferred", **sources}
        confidence["output_type"] = analysis.confidence.get("output_type", 0.0)

    system_prompt = plan.system_prompt
    if not params.toggles.strip_meta:
        report = generate_inference_report(sources, confidence)
        if report:
            system_prompt = f"{system_prompt}\n{report}" if system_prompt else report.lstrip("\n")

    logger.info(
        "Inference: output_type=%s (%s), attributes=%s",
        output_type, output_source, sources,
    )
    return plan.model_copy(update={
        "system_prompt": system_prompt,
        "inference": InferenceSummary(
            output_type=output_type,
            output_type_source=output_source,
            values=merged.values,
            sources=merged.sources,
            confidence=confidence,
        ),
    })
