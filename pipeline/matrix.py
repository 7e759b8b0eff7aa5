"""Matrix experiment runner — one brief fanned out across tone × length × format.

Each cell runs three phases:
  1. Architect: build the prompt plan for the combo, append the JSON
     contract, call the architect model, extract the blueprint text.
  2. Executor: feed the blueprint (no system prompt) to the execution model.
  3. Judge: score the executed output, single or dual panel.

Cells run strictly one after another so progress can be awaited between
them and a cancellation check before each cell stops the loop without
discarding finished results.
"""

from __future__ import annotations

import inspect
import itertools
import logging
import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

import config
from pipeline.assembler import build_prompt_plan
from pipeline.cancellation import CancellationLike, is_cancelled
from pipeline.controls import DEFAULT_CONTROLS, ControlCatalog
from pipeline.extraction import extract_expanded_prompt
from pipeline.judge import baseline_attachments, build_judge_prompt, evaluate_output, zero_score_evaluation
from pipeline.llm import ResponseParseError, call_model, parse_json_response
from prompts.architect_contract import with_contract
from schemas.experiment import (
    Combo,
    ExperimentCellResult,
    ExperimentToggles,
    ModelSettings,
)
from schemas.prompt_plan import PlanRequest, PlanToggles, RegistrySpec

logger = logging.getLogger(__name__)

CallLLM = Callable[..., Awaitable[Any]]
ProgressCallback = Callable[[int, int, ExperimentCellResult], Any]

MATRIX_AXES = ("tones", "lengths", "formats")


class MatrixTooLargeError(ValueError):
    """The requested matrix has more cells than the configured cap."""

    def __init__(self, cells: int, cap: int):
        self.cells = cells
        self.cap = cap
        super().__init__(f"Matrix has {cells} cells; the limit is {cap}")


# ---------------------------------------------------------------------------
# Combos
# ---------------------------------------------------------------------------

def cartesian_product(arrays: Sequence[Sequence[Any]] | None) -> list[tuple]:
    """All combinations, first axis outermost. Any empty axis yields []."""
    if not arrays:
        return []
    if any(not isinstance(arr, (list, tuple)) or not arr for arr in arrays):
        return []
    return list(itertools.product(*arrays))


def _unique(values: Sequence[str]) -> list[str]:
    return list(dict.fromkeys(values))


def build_matrix_combos(matrix_config: Mapping[str, Any]) -> list[Combo]:
    if not isinstance(matrix_config, Mapping):
        raise TypeError("Config object is required")

    axes = [matrix_config.get(axis, []) for axis in MATRIX_AXES]
    if any(not isinstance(values, (list, tuple)) for values in axes):
        raise TypeError("All config properties (tones, lengths, formats) must be arrays")

    product = cartesian_product([_unique(values) for values in axes])
    return [Combo(tone=tone, length=length, format=fmt) for tone, length, fmt in product]


# ---------------------------------------------------------------------------
# One cell
# ---------------------------------------------------------------------------

def _architect_request(
    combo: Combo,
    prompt: str,
    output_type: str,
    toggles: ExperimentToggles,
    type_specific: Mapping[str, Any] | None,
    controls: ControlCatalog,
) -> PlanRequest:
    return PlanRequest(
        spec_id=output_type,
        user_input=prompt,
        tone=controls.tone(combo.tone).model_dump(),
        output_type=controls.output_type(output_type).model_dump(),
        format=controls.format(combo.format).model_dump(),
        length=controls.length(combo.length).model_dump(),
        toggles=PlanToggles(**toggles.model_dump()),
        type_specific=dict(type_specific or {}),
    )


def _decode_architect_response(response: Any) -> Any:
    if not isinstance(response, str):
        return response
    try:
        return parse_json_response(response)
    except ResponseParseError:
        return response


async def run_experiment_cell(
    combo: Combo,
    prompt: str,
    output_type: str,
    call_llm: CallLLM,
    toggles: ExperimentToggles | None = None,
    models: ModelSettings | None = None,
    *,
    type_specific: Mapping[str, Any] | None = None,
    controls: ControlCatalog = DEFAULT_CONTROLS,
    spec_registry: Mapping[str, RegistrySpec] | None = None,
    cancellation: CancellationLike = None,
) -> ExperimentCellResult:
    """Run architect → executor → judge for one combo.

    Architect failures propagate. Executor failures are recorded on
    ``execution_error``; judge failures become a zero-score evaluation.
    """
    toggles = toggles or ExperimentToggles()
    models = models or ModelSettings()

    # Phase 1: Architect
    plan = build_prompt_plan(
        _architect_request(combo, prompt, output_type, toggles, type_specific, controls),
        spec_registry,
    )
    response = await call_llm(plan.user_prompt or prompt, with_contract(plan.system_prompt))
    blueprint = extract_expanded_prompt(_decode_architect_response(response))
    result = ExperimentCellResult(config=combo, blueprint_result=blueprint)

    if not (models.execution_model and models.api_keys and blueprint):
        return result

    # Phase 2: Executor
    try:
        execution = await call_model(
            models.execution_model,
            blueprint,
            "",
            models.api_keys,
            temperature=config.get_role_llm_config("executor")["temperature"],
            cancellation=cancellation,
        )
    except Exception as e:
        logger.warning("Executor failed for %s: %s", combo, e)
        result.execution_error = str(e)
        return result
    result.execution_result = execution
    result.execution_model_id = models.execution_model

    if not (models.enable_judge and models.judge_model):
        return result

    # Phase 3: Judge
    baselines = models.baselines.get(output_type, [])
    judge_prompt = build_judge_prompt(
        prompt=prompt,
        output_type=controls.output_type(output_type),
        tone=controls.tone(combo.tone),
        length=controls.length(combo.length),
        fmt=controls.format(combo.format),
        blueprint=blueprint,
        output=execution,
        baselines=baselines,
    )
    try:
        result.evaluation = await evaluate_output(
            model_id=models.judge_model,
            credentials=models.api_keys,
            judge_prompt=judge_prompt,
            options=models.judge_options,
            attachments=baseline_attachments(baselines),
            cancellation=cancellation,
        )
    except Exception as e:
        logger.warning("Judge failed for %s: %s", combo, e)
        result.evaluation = zero_score_evaluation(str(e), models.judge_options)
    result.judge_model_id = models.judge_model
    return result


# ---------------------------------------------------------------------------
# Full matrix
# ---------------------------------------------------------------------------

async def _notify(on_progress: ProgressCallback | None, completed: int, total: int, last: ExperimentCellResult):
    if on_progress is None:
        return
    outcome = on_progress(completed, total, last)
    if inspect.isawaitable(outcome):
        await outcome


async def run_matrix_experiment(
    *,
    prompt: str,
    matrix_config: Mapping[str, Any],
    output_type: str,
    call_llm: CallLLM,
    toggles: ExperimentToggles | Mapping[str, Any] | None = None,
    models: ModelSettings | Mapping[str, Any] | None = None,
    on_progress: ProgressCallback | None = None,
    cancellation_token: CancellationLike = None,
    type_specific: Mapping[str, Any] | None = None,
    controls: ControlCatalog = DEFAULT_CONTROLS,
    spec_registry: Mapping[str, RegistrySpec] | None = None,
    max_cells: int | None = None,
) -> list[ExperimentCellResult]:
    """Run every combo of ``matrix_config`` and return one result per attempted cell."""
    combos = build_matrix_combos(matrix_config)
    if not combos:
        return []

    cap = config.MATRIX_MAX_CELLS if max_cells is None else max_cells
    if len(combos) > cap:
        raise MatrixTooLargeError(len(combos), cap)

    toggles = ExperimentToggles.model_validate(toggles or {}) if not isinstance(toggles, ExperimentToggles) else toggles
    models = ModelSettings.model_validate(models or {}) if not isinstance(models, ModelSettings) else models

    logger.info("Matrix run: %d cells for output type '%s'", len(combos), output_type)
    start = time.time()
    results: list[ExperimentCellResult] = []
    for index, combo in enumerate(combos):
        if is_cancelled(cancellation_token):
            logger.info("Matrix run cancelled after %d/%d cells", index, len(combos))
            break
        try:
            result = await run_experiment_cell(
                combo,
                prompt,
                output_type,
                call_llm,
                toggles,
                models,
                type_specific=type_specific,
                controls=controls,
                spec_registry=spec_registry,
                cancellation=cancellation_token,
            )
        except Exception as e:
            logger.exception("Architect failed for %s", combo)
            result = ExperimentCellResult(config=combo, blueprint_result="", error=str(e) or "Unknown error")
        results.append(result)
        await _notify(on_progress, len(results), len(combos), result)

    logger.info("Matrix run finished: %d/%d cells in %.1fs", len(results), len(combos), time.time() - start)
    return results
