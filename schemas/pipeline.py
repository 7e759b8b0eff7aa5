"""Schemas for the analysis → generation pipeline."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from pipeline.prompt_specs import ValidationResult
from schemas.prompt_spec import PromptSpec

OutputTypeId = Literal["deck", "doc", "data", "code", "copy", "comms"]


class PipelineInput(BaseModel):
    user_input: str
    notes: str = ""
    output_type: OutputTypeId = "doc"


class PipelineOptions(BaseModel):
    skip_analysis: bool = False
    skip_quality: bool = False
    user_overrides: dict[str, Any] = Field(default_factory=dict)
    analysis_temperature: float = 0.3
    generation_temperature: float = 0.7
    existing_spec: Optional[PromptSpec] = None


class GenerationResult(BaseModel):
    expanded_prompt: str = ""
    structure_summary: str = ""
    key_elements: list[str] = Field(default_factory=list)


class PipelineResult(BaseModel):
    spec: PromptSpec
    expanded_prompt: str
    structure: str = ""
    key_elements: list[str] = Field(default_factory=list)
    reasoning: dict[str, str] = Field(default_factory=dict)
    quality: Optional[dict[str, Any]] = None
    validation: ValidationResult
