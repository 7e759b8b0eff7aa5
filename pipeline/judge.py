"""Output judge — scores an executed blueprint on four dimensions.

Single mode issues one evaluator call. Dual mode runs a strict/accuracy
judge and a style/readability judge concurrently, averages their
dimension scores, and keeps both judges' justifications side by side.
Baseline examples (human-scored) are rendered lowest score first so the
judge can anchor its scale.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

import config
from pipeline.cancellation import CancellationLike
from pipeline.controls import ControlOption, OutputTypeOption
from pipeline.llm import ApiKeys, Attachment, ResponseParseError, call_model, parse_json_response
from prompts.judge_system import SINGLE_JUDGE_PROMPT, STRICT_JUDGE_PROMPT, STYLE_JUDGE_PROMPT
from schemas.experiment import BaselineExample, JudgeEvaluation, JudgeOptions

logger = logging.getLogger(__name__)

JUDGE_DIMENSIONS = ("instructionAdherence", "taskQuality", "structureFormat", "toneAudience")

RUBRIC_MODIFIERS = {
    "lenient": (
        "RUBRIC ENFORCEMENT: LENIENT. Focus on whether the overall intent was met. "
        "Minor omissions or small format deviations cost at most one point."
    ),
    "standard": (
        "RUBRIC ENFORCEMENT: STANDARD. Apply the scoring guide as written, "
        "balancing requirement coverage against overall usefulness."
    ),
    "strict": (
        "RUBRIC ENFORCEMENT: STRICT. Every missed requirement, format deviation, or tone slip "
        "must lower the relevant score. Reserve 9-10 for outputs with no defects."
    ),
}

# (attribution tag, persona prompt) for dual-judge mode
JUDGE_PANEL = (
    ("Strict", STRICT_JUDGE_PROMPT),
    ("Style", STYLE_JUDGE_PROMPT),
)

_MIME_BY_KIND = {"image": "image/png", "text": "text/plain", "pdf": "application/pdf"}


def judge_system_prompt(persona_prompt: str, rubric_enforcement: str) -> str:
    modifier = RUBRIC_MODIFIERS.get(rubric_enforcement, RUBRIC_MODIFIERS["standard"])
    return f"{persona_prompt}\n\n{modifier}"


def _render_baselines(baselines: list[BaselineExample]) -> str:
    if not baselines:
        return ""
    lines = ["## Calibration Examples (human-scored, lowest to highest):"]
    for i, example in enumerate(sorted(baselines, key=lambda b: b.score), 1):
        lines.append(f"### Example {i}: {example.label or 'Baseline'} (score: {example.score:g}/10)")
        if example.content:
            lines.append(example.content)
        elif example.file_url:
            lines.append(f"[Attached file: {example.file_url}]")
        lines.append("")
    return "\n".join(lines).rstrip()


def baseline_attachments(baselines: list[BaselineExample]) -> list[Attachment]:
    attachments = []
    for example in sorted(baselines, key=lambda b: b.score):
        if not example.file_url:
            continue
        content_type = example.content_type
        if "/" not in content_type:
            content_type = _MIME_BY_KIND.get(content_type, "text/plain")
        attachments.append(Attachment(url=example.file_url, content_type=content_type, label=example.label))
    return attachments


def build_judge_prompt(
    *,
    prompt: str,
    output_type: OutputTypeOption,
    tone: ControlOption,
    length: ControlOption,
    fmt: ControlOption,
    blueprint: str,
    output: str,
    baselines: list[BaselineExample] | None = None,
) -> str:
    sections = [
        f"## Original User Request:\n{prompt}",
        f"## Output Type: {output_type.label} ({output_type.context})\n"
        f"## Tone: {tone.label} | Length: {length.label} | Format: {fmt.label}",
        f"## Blueprint (Expanded Prompt):\n{blueprint}",
        f"## Generated Output:\n{output}",
    ]
    calibration = _render_baselines(list(baselines or []))
    if calibration:
        sections.append(calibration)
    sections.append(
        "## Task:\n"
        "Evaluate the quality of the Generated Output for this specific output type. "
        "Consider whether it follows the Blueprint, effectively addresses the Original User Request, "
        f"and provides genuine value as a {output_type.label.lower()}. Return your evaluation as JSON."
    )
    return "\n\n".join(sections)


def _score(value: Any) -> float:
    if isinstance(value, Mapping):
        value = value.get("score")
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return min(10.0, max(0.0, number))


def _mean(values) -> float:
    values = list(values)
    return round(sum(values) / len(values), 1) if values else 0.0


def parse_judge_evaluation(
    response: Any,
    *,
    dual_judge: bool = False,
    rubric_enforcement: str = "standard",
) -> JudgeEvaluation:
    """Normalize a judge reply; raises ResponseParseError when it is not a JSON object."""
    data = parse_json_response(response)
    if not isinstance(data, dict):
        raise ResponseParseError("Judge response is not a JSON object")

    raw_dims = data.get("dimensions") or {}
    dimensions = {dim: _score(raw_dims.get(dim)) for dim in JUDGE_DIMENSIONS}

    raw_just = data.get("justifications") or {}
    justifications = {}
    for dim in JUDGE_DIMENSIONS:
        text = raw_just.get(dim)
        if text is None and isinstance(raw_dims.get(dim), Mapping):
            text = raw_dims[dim].get("feedback")
        justifications[dim] = str(text or "")

    composite = data.get("composite")
    if composite is None or isinstance(composite, bool):
        composite = _mean(dimensions.values())
    else:
        composite = round(_score(composite), 1)

    return JudgeEvaluation(
        dimensions=dimensions,
        justifications=justifications,
        composite=composite,
        summary=str(data.get("summary") or data.get("critique") or ""),
        dual_judge=dual_judge,
        rubric_enforcement=rubric_enforcement,
    )


def average_evaluations(
    panel: list[tuple[str, JudgeEvaluation]],
    rubric_enforcement: str = "standard",
) -> JudgeEvaluation:
    """Arithmetic mean per dimension; composite recomputed from the averaged dimensions."""
    dimensions = {
        dim: round(sum(ev.dimensions.get(dim, 0.0) for _, ev in panel) / len(panel), 2)
        for dim in JUDGE_DIMENSIONS
    }
    justifications = {
        dim: " | ".join(f"[{tag}] {ev.justifications.get(dim, '')}" for tag, ev in panel)
        for dim in JUDGE_DIMENSIONS
    }
    summary = " | ".join(f"[{tag}] {ev.summary}" for tag, ev in panel if ev.summary)
    return JudgeEvaluation(
        dimensions=dimensions,
        justifications=justifications,
        composite=_mean(dimensions.values()),
        summary=summary,
        dual_judge=True,
        rubric_enforcement=rubric_enforcement,
    )


def zero_score_evaluation(message: str, options: JudgeOptions | None = None) -> JudgeEvaluation:
    options = options or JudgeOptions()
    return JudgeEvaluation(
        dimensions={dim: 0.0 for dim in JUDGE_DIMENSIONS},
        justifications={dim: "" for dim in JUDGE_DIMENSIONS},
        composite=0.0,
        summary=f"Judge error: {message}",
        dual_judge=options.dual_judge,
        rubric_enforcement=options.rubric_enforcement,
    )


async def evaluate_output(
    *,
    model_id: str,
    credentials: ApiKeys | Mapping[str, str] | None,
    judge_prompt: str,
    options: JudgeOptions | None = None,
    attachments: list[Attachment] | None = None,
    cancellation: CancellationLike = None,
    temperature: float | None = None,
) -> JudgeEvaluation:
    """Run the single judge or the two-judge panel. Exceptions propagate to the caller.

    ``temperature`` defaults to the judge role's configured value.
    """
    options = options or JudgeOptions()
    if temperature is None:
        temperature = config.get_role_llm_config("judge")["temperature"]
    rubric = options.rubric_enforcement

    async def _ask(persona_prompt: str, dual: bool) -> JudgeEvaluation:
        response = await call_model(
            model_id,
            judge_prompt,
            judge_system_prompt(persona_prompt, rubric),
            credentials,
            attachments,
            json_mode=True,
            temperature=temperature,
            cancellation=cancellation,
        )
        return parse_judge_evaluation(response, dual_judge=dual, rubric_enforcement=rubric)

    if not options.dual_judge:
        evaluation = await _ask(SINGLE_JUDGE_PROMPT, False)
        logger.info("Judge [%s]: composite %.1f", model_id, evaluation.composite)
        return evaluation

    # Both judges run to completion before a failure is raised
    results = await asyncio.gather(
        *(_ask(persona, True) for _, persona in JUDGE_PANEL), return_exceptions=True
    )
    for result in results:
        if isinstance(result, BaseException):
            raise result
    panel = [(tag, result) for (tag, _), result in zip(JUDGE_PANEL, results)]
    evaluation = average_evaluations(panel, rubric)
    logger.info(
        "Dual judge [%s]: %s -> composite %.1f",
        model_id,
        ", ".join(f"{tag}={ev.composite:.1f}" for tag, ev in panel),
        evaluation.composite,
    )
    return evaluation
