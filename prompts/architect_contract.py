"""Prompt Architect — JSON response contract appended to every matrix-cell system prompt."""

ARCHITECT_JSON_CONTRACT = """CRITICAL JSON RESPONSE CONTRACT:
You MUST return a complete JSON object with ALL THREE sections below.

REQUIRED STRUCTURE:
{
  "analysis": {
    "detected_domain": string,
    "input_quality_score": integer,
    "is_vague_or_short": boolean
  },
  "reverse_prompting": {
    "was_triggered": boolean,
    "refined_task_text": string,
    "reasoning": string
  },
  "final_output": {
    "expanded_prompt_text": string,
    "enrichment_attributes_used": string[]
  }
}

CRITICAL: The "expanded_prompt_text" field must contain the final expanded prompt. This field cannot be empty."""


def with_contract(system_prompt: str) -> str:
    if not system_prompt:
        return ARCHITECT_JSON_CONTRACT
    return f"{system_prompt}\n\n{ARCHITECT_JSON_CONTRACT}"
