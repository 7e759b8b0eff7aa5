"""Prompt Blueprint Lab — Entry Point.

Usage:
    # Render the system/user prompt pair for a brief (no model calls)
    python main.py plan "write an email announcing the new office" --format email

    # Let pattern inference pick the output type and attributes
    python main.py plan "pitch deck for our seed round" --infer

    # Analysis -> generation pipeline
    python main.py pipeline "quarterly board update" --output-type deck

    # Matrix experiment: every tone x length x format cell
    python main.py matrix --input experiment.json --save
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

import config
from pipeline.assembler import build_prompt_plan, build_prompt_plan_with_inference
from pipeline.cancellation import CancellationToken
from pipeline.controls import DEFAULT_CONTROLS
from pipeline.llm import ApiKeys, make_model_caller
from pipeline.matrix import run_matrix_experiment
from pipeline.orchestrator import print_result, run_pipeline
from schemas.experiment import ExperimentCellResult, ModelSettings
from schemas.pipeline import PipelineInput, PipelineOptions

console = Console()


def setup_logging():
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL),
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _read_json(path_str: str) -> dict:
    path = Path(path_str)
    if not path.exists():
        console.print(f"[red]Input file not found: {path}[/red]")
        sys.exit(1)
    return json.loads(path.read_text())


def _brief(args: argparse.Namespace) -> str:
    brief = args.brief or ""
    if not brief.strip():
        console.print("[red]A brief is required[/red]")
        sys.exit(1)
    return brief


# ---------------------------------------------------------------------------
# plan
# ---------------------------------------------------------------------------

def run_plan_cmd(args: argparse.Namespace):
    request = {
        "spec_id": args.output_type,
        "user_input": _brief(args),
        "notes": args.notes or "",
        "context_constraints": args.constraints or "",
        "tone": DEFAULT_CONTROLS.tone(args.tone).model_dump(),
        "format": DEFAULT_CONTROLS.format(args.format).model_dump(),
        "length": DEFAULT_CONTROLS.length(args.length).model_dump(),
        "toggles": {"strip_meta": args.strip_meta},
    }
    if args.output_type:
        request["output_type"] = DEFAULT_CONTROLS.output_type(args.output_type).model_dump()

    if args.infer:
        plan = build_prompt_plan_with_inference(request)
    else:
        request["spec_id"] = args.output_type or "doc"
        plan = build_prompt_plan(request)

    console.print(Panel(plan.system_prompt, title=f"System Prompt ({plan.spec_id} v{plan.spec_version})", border_style="cyan"))
    console.print(Panel(plan.user_prompt, title="User Prompt", border_style="green"))

    table = Table(title="Step Trace")
    table.add_column("Step", style="cyan")
    table.add_column("Channel")
    table.add_column("Included", style="bold")
    for step in plan.step_trace:
        table.add_row(step.id, step.channel, "[green]yes[/green]" if step.included else "[dim]no[/dim]")
    console.print(table)

    if plan.inference:
        console.print(f"Output type: [bold]{plan.inference.output_type}[/bold] ({plan.inference.output_type_source})")


# ---------------------------------------------------------------------------
# pipeline
# ---------------------------------------------------------------------------

def run_pipeline_cmd(args: argparse.Namespace):
    role = config.get_role_llm_config("generation")
    model = args.model or role["model"]
    call_llm = make_model_caller(model, ApiKeys.from_env())

    overrides = {k: getattr(args, k) for k in ("tone", "format", "length") if getattr(args, k)}
    result = asyncio.run(
        run_pipeline(
            PipelineInput(user_input=_brief(args), notes=args.notes or "", output_type=args.output_type or "doc"),
            call_llm,
            PipelineOptions(
                skip_analysis=args.skip_analysis,
                user_overrides=overrides,
                analysis_temperature=config.get_role_llm_config("analysis")["temperature"],
                generation_temperature=role["temperature"],
            ),
        )
    )
    print_result(result)


# ---------------------------------------------------------------------------
# matrix
# ---------------------------------------------------------------------------

def _print_matrix(results: list[ExperimentCellResult]):
    table = Table(title="Matrix Results")
    table.add_column("Tone", style="cyan")
    table.add_column("Length", style="cyan")
    table.add_column("Format", style="cyan")
    table.add_column("Blueprint", style="green")
    table.add_column("Execution")
    table.add_column("Score", style="bold")

    for r in results:
        if r.error:
            blueprint = f"[red]FAILED: {r.error[:50]}[/red]"
        else:
            blueprint = f"{len(r.blueprint_result)} chars"
        if r.execution_error:
            execution = f"[red]{r.execution_error[:50]}[/red]"
        elif r.execution_result is not None:
            execution = f"{len(r.execution_result)} chars"
        else:
            execution = "[dim]skipped[/dim]"
        score = f"{r.evaluation.composite:.1f}" if r.evaluation else "-"
        table.add_row(r.config.tone, r.config.length, r.config.format, blueprint, execution, score)

    console.print(table)


def _save_results(results: list[ExperimentCellResult], output_type: str) -> Path:
    config.OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    path = config.OUTPUT_DIR / f"matrix_{output_type}_{datetime.now():%Y%m%d_%H%M%S}.json"
    path.write_text(json.dumps([r.model_dump(mode="json") for r in results], indent=2))
    return path


async def _run_matrix(experiment: dict, architect_model: str) -> list[ExperimentCellResult]:
    keys = ApiKeys.from_env()
    token = CancellationToken()
    call_llm = make_model_caller(
        architect_model,
        keys,
        cancellation=token,
        default_temperature=config.get_role_llm_config("architect")["temperature"],
    )

    models = ModelSettings.model_validate(experiment.get("models") or {})
    if models.api_keys is None:
        models = models.model_copy(update={"api_keys": keys})

    def on_progress(completed: int, total: int, last: ExperimentCellResult):
        status = "[red]error[/red]" if last.error else "[green]ok[/green]"
        console.print(f"  [{completed}/{total}] {last.config.tone} / {last.config.length} / {last.config.format}: {status}")

    def on_interrupt():
        if not token.cancelled:
            console.print("[yellow]Interrupted: finishing the current cell, then stopping[/yellow]")
        token.cancel()

    # Ctrl-C stops after the in-flight cell so finished cells are still saved
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, on_interrupt)
        installed = True
    except (NotImplementedError, RuntimeError):
        installed = False

    try:
        return await run_matrix_experiment(
            prompt=experiment["prompt"],
            matrix_config=experiment["matrix"],
            output_type=experiment.get("output_type", "doc"),
            call_llm=call_llm,
            toggles=experiment.get("toggles"),
            models=models,
            on_progress=on_progress,
            cancellation_token=token,
            type_specific=experiment.get("type_specific"),
        )
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


def run_matrix_cmd(args: argparse.Namespace):
    if args.input:
        experiment = _read_json(args.input)
    else:
        execution_model = args.execution_model
        if args.execute and not execution_model:
            execution_model = config.get_role_llm_config("executor")["model"]
        judge_model = args.judge_model
        if args.judge and not judge_model:
            judge_model = config.get_role_llm_config("judge")["model"]
        experiment = {
            "prompt": _brief(args),
            "output_type": args.output_type or "doc",
            "matrix": {
                "tones": args.tones.split(","),
                "lengths": args.lengths.split(","),
                "formats": args.formats.split(","),
            },
            "models": {
                "execution_model": execution_model,
                "judge_model": judge_model,
                "enable_judge": bool(judge_model),
                "judge_options": {"dual_judge": args.dual_judge, "rubric_enforcement": args.rubric},
            },
        }

    architect_model = args.model or config.get_role_llm_config("architect")["model"]
    results = asyncio.run(_run_matrix(experiment, architect_model))
    _print_matrix(results)

    if args.save:
        path = _save_results(results, experiment.get("output_type", "doc"))
        console.print(f"[green]Saved {len(results)} results to {path}[/green]")


def main():
    parser = argparse.ArgumentParser(
        description="Prompt Blueprint Lab",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # -- plan command --
    plan = subparsers.add_parser("plan", help="Render the prompt plan for a brief (no model calls)")
    _add_brief_args(plan)
    plan.add_argument("--tone", help="Tone id (default: professional)")
    plan.add_argument("--format", help="Format id (default: paragraph)")
    plan.add_argument("--length", help="Length id (default: medium)")
    plan.add_argument("--constraints", help="Context and constraints text")
    plan.add_argument("--infer", action="store_true", help="Infer output type and attributes from the brief")
    plan.add_argument("--strip-meta", action="store_true", help="Omit the auto-detected settings note")

    # -- pipeline command --
    pipe = subparsers.add_parser("pipeline", help="Run analysis -> generation for a brief")
    _add_brief_args(pipe)
    pipe.add_argument("--tone", help="Override the inferred tone")
    pipe.add_argument("--format", help="Override the inferred format")
    pipe.add_argument("--length", help="Override the inferred length")
    pipe.add_argument("--model", help="Model id for analysis and generation")
    pipe.add_argument("--skip-analysis", action="store_true", help="Skip intent analysis")

    # -- matrix command --
    matrix = subparsers.add_parser("matrix", help="Run a tone x length x format matrix experiment")
    _add_brief_args(matrix)
    matrix.add_argument("--input", "-i", help="Path to JSON experiment file")
    matrix.add_argument("--tones", default="professional", help="Comma-separated tone ids")
    matrix.add_argument("--lengths", default="medium", help="Comma-separated length ids")
    matrix.add_argument("--formats", default="paragraph", help="Comma-separated format ids")
    matrix.add_argument("--model", help="Architect model id")
    matrix.add_argument("--execution-model", help="Model that runs each blueprint")
    matrix.add_argument("--execute", action="store_true", help="Run each blueprint on the configured executor model")
    matrix.add_argument("--judge-model", help="Model that scores each output (enables judging)")
    matrix.add_argument("--judge", action="store_true", help="Score each output with the configured judge model")
    matrix.add_argument("--dual-judge", action="store_true", help="Average a strict and a style judge")
    matrix.add_argument("--rubric", default="standard", choices=["lenient", "standard", "strict"])
    matrix.add_argument("--save", action="store_true", help=f"Write JSON results to {config.OUTPUT_DIR}")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(0)

    setup_logging()

    console.print(
        Panel(
            "[bold]PROMPT BLUEPRINT LAB[/bold]\n"
            "Brief -> Blueprint -> Output -> Score",
            border_style="bright_magenta",
        )
    )

    if args.command == "plan":
        run_plan_cmd(args)
    elif args.command == "pipeline":
        run_pipeline_cmd(args)
    elif args.command == "matrix":
        run_matrix_cmd(args)


def _add_brief_args(parser: argparse.ArgumentParser):
    """Add common brief arguments to a subparser."""
    parser.add_argument("brief", nargs="?", help="The raw user brief")
    parser.add_argument("--output-type", "-t", choices=["deck", "doc", "data", "code", "copy", "comms"])
    parser.add_argument("--notes", "-n", help="Additional notes")


if __name__ == "__main__":
    main()
