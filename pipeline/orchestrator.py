"""Pipeline orchestrator — analysis → overrides → validation → generation → quality."""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from pipeline.generator import generate_prompt
from pipeline.intent_analyzer import analyze_intent
from pipeline.prompt_specs import create_spec, merge_spec, validate_spec
from schemas.pipeline import GenerationResult, PipelineInput, PipelineOptions, PipelineResult
from schemas.prompt_spec import PromptSpec

logger = logging.getLogger(__name__)
console = Console()

_PASSTHROUGH_SECTIONS = ("intent", "audience", "context", "quality")


def apply_overrides(spec: PromptSpec, overrides: Mapping[str, Any] | None) -> PromptSpec:
    """Fold caller choices into the spec.

    ``tone`` / ``format`` land in ``inferred``, ``length`` in
    ``constraints``; ``type_specific`` and whole sections pass through
    ``merge_spec``.
    """
    if not overrides:
        return spec

    updates: dict[str, Any] = {}
    inferred = {k: overrides[k] for k in ("tone", "format") if overrides.get(k)}
    if inferred:
        updates["inferred"] = inferred
    if overrides.get("length"):
        updates["constraints"] = {"length": overrides["length"]}

    type_specific = overrides.get("type_specific") or overrides.get("typeSpecific")
    if type_specific:
        updates["type_specific"] = type_specific

    for section in _PASSTHROUGH_SECTIONS:
        if overrides.get(section):
            updates[section] = overrides[section]
    if overrides.get("constraints"):
        updates["constraints"] = {**updates.get("constraints", {}), **overrides["constraints"]}

    return merge_spec(spec, updates)


def _coerce(inputs, options) -> tuple[PipelineInput, PipelineOptions]:
    if not isinstance(inputs, PipelineInput):
        inputs = PipelineInput.model_validate(inputs)
    if not isinstance(options, PipelineOptions):
        options = PipelineOptions.model_validate(options or {})
    return inputs, options


async def _assess_quality(spec: PromptSpec, generation: GenerationResult) -> dict | None:
    # Extension point: no scorer is wired into the single-prompt pipeline yet.
    return None


async def run_pipeline(
    inputs: PipelineInput | Mapping[str, Any],
    call_llm,
    options: PipelineOptions | Mapping[str, Any] | None = None,
) -> PipelineResult:
    """Run the full pipeline.

    Validation problems are logged, never fatal. A generation failure
    raises GenerationError.
    """
    inputs, options = _coerce(inputs, options)
    start = time.time()

    # Step 1: Analysis (or use existing spec)
    if options.existing_spec is not None:
        spec = options.existing_spec
        logger.info("Using caller-supplied spec; analysis skipped")
    elif options.skip_analysis:
        spec = merge_spec(create_spec(inputs.output_type), {
            "generated_at": datetime.now(timezone.utc),
            "intent": {"primary_goal": inputs.user_input},
        })
    else:
        spec = await analyze_intent(inputs, call_llm, temperature=options.analysis_temperature)

    # Step 2: User overrides
    spec = apply_overrides(spec, options.user_overrides)

    # Step 3: Validation
    validation = validate_spec(spec)
    if not validation.valid:
        logger.warning("Spec validation errors (continuing): %s", validation.errors)
    for warning in validation.warnings:
        logger.warning("Spec warning: %s", warning)

    # Step 4: Generation
    generation = await generate_prompt(spec, call_llm, temperature=options.generation_temperature)

    # Step 5: Quality
    quality = None
    if not options.skip_quality:
        quality = await _assess_quality(spec, generation)

    logger.info("Pipeline completed in %.1fs (%d chars)", time.time() - start, len(generation.expanded_prompt))
    return PipelineResult(
        spec=spec,
        expanded_prompt=generation.expanded_prompt,
        structure=generation.structure_summary,
        key_elements=generation.key_elements,
        reasoning=dict(spec.inferred.reasoning),
        quality=quality,
        validation=validation,
    )


async def run_analysis_only(
    inputs: PipelineInput | Mapping[str, Any],
    call_llm,
    options: PipelineOptions | Mapping[str, Any] | None = None,
) -> PromptSpec:
    inputs, options = _coerce(inputs, options)
    return await analyze_intent(inputs, call_llm, temperature=options.analysis_temperature)


async def run_generation_only(
    spec: PromptSpec,
    call_llm,
    options: PipelineOptions | Mapping[str, Any] | None = None,
) -> GenerationResult:
    if not isinstance(options, PipelineOptions):
        options = PipelineOptions.model_validate(options or {})
    return await generate_prompt(spec, call_llm, temperature=options.generation_temperature)


def print_result(result: PipelineResult):
    """Pretty-print a pipeline result."""
    table = Table(title="Inferred Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_column("Reasoning")
    table.add_row("tone", result.spec.inferred.tone or "-", result.reasoning.get("tone", ""))
    table.add_row("format", result.spec.inferred.format or "-", result.reasoning.get("format", ""))
    table.add_row("length", result.spec.constraints.length or "-", result.reasoning.get("length", ""))
    console.print(table)

    if result.validation.errors or result.validation.warnings:
        lines = [f"[red]ERROR[/red] {e}" for e in result.validation.errors]
        lines += [f"[yellow]WARN[/yellow] {w}" for w in result.validation.warnings]
        console.print(Panel("\n".join(lines), title="Validation", border_style="yellow"))

    console.print(
        Panel(
            result.expanded_prompt,
            title=f"Expanded Prompt ({result.spec.output_type})",
            subtitle=result.structure or None,
            border_style="cyan",
        )
    )
