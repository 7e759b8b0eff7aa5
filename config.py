"""Blueprint lab configuration — provider keys, per-role model assignments, limits."""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
ROOT_DIR = Path(__file__).parent
OUTPUT_DIR = ROOT_DIR / os.getenv("OUTPUT_DIR", "outputs")

# ---------------------------------------------------------------------------
# LLM Provider API Keys
# ---------------------------------------------------------------------------
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY", "")

# ---------------------------------------------------------------------------
# Model names (centralized so they're easy to update)
# ---------------------------------------------------------------------------
GOOGLE_FLASH = "gemini-2.5-flash"
GOOGLE_PRO = "gemini-2.5-pro"
OPENAI_FRONTIER = "gpt-4o"
OPENAI_MINI = "gpt-4o-mini"
ANTHROPIC_FRONTIER = "claude-sonnet-4-20250514"
ANTHROPIC_FAST = "claude-3-5-haiku-20241022"

# ---------------------------------------------------------------------------
# Request limits
# ---------------------------------------------------------------------------

# Every outbound model call is cancelled after this many seconds.
REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30"))
MAX_OUTPUT_TOKENS = int(os.getenv("MAX_OUTPUT_TOKENS", "4096"))

# Upper bound on tone x length x format cells in one matrix run.
MATRIX_MAX_CELLS = int(os.getenv("MATRIX_MAX_CELLS", "60"))

# ---------------------------------------------------------------------------
# Per-Role Model Assignments
#
# Roles: "architect" (blueprint), "executor" (runs the blueprint),
#        "judge" (scores output), "analysis" / "generation" (split pipeline).
# Override any role via env: ARCHITECT_MODEL=claude-sonnet-4-20250514
# ---------------------------------------------------------------------------

DEFAULT_MODEL = os.getenv("DEFAULT_MODEL", GOOGLE_FLASH)

ARCHITECT_MODEL = os.getenv("ARCHITECT_MODEL", GOOGLE_FLASH)
EXECUTION_MODEL = os.getenv("EXECUTION_MODEL", OPENAI_MINI)
JUDGE_MODEL = os.getenv("JUDGE_MODEL", ANTHROPIC_FRONTIER)

ROLE_LLM_CONFIG: dict[str, dict] = {
    # Architect: expands the brief into a blueprint, JSON contract response
    "architect": {
        "model": ARCHITECT_MODEL,
        "temperature": 0.7,
    },
    # Executor: runs the blueprint as-is, no system prompt
    "executor": {
        "model": EXECUTION_MODEL,
        "temperature": 0.7,
    },
    # Judge: scoring must be stable across cells
    "judge": {
        "model": JUDGE_MODEL,
        "temperature": 0.2,
    },
    # Split pipeline: intent analysis is deterministic-leaning, generation is not
    "analysis": {
        "model": os.getenv("ANALYSIS_MODEL", DEFAULT_MODEL),
        "temperature": 0.3,
    },
    "generation": {
        "model": os.getenv("GENERATION_MODEL", DEFAULT_MODEL),
        "temperature": 0.7,
    },
}


def get_role_llm_config(role: str) -> dict:
    """Return the LLM config for a pipeline role, with defaults."""
    defaults = {
        "model": DEFAULT_MODEL,
        "temperature": 0.7,
        "max_tokens": MAX_OUTPUT_TOKENS,
    }
    role_conf = ROLE_LLM_CONFIG.get(role, {})
    return {**defaults, **role_conf}


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
