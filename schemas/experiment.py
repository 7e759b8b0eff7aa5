"""Schemas for matrix experiments — combos, judge settings, cell results."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from pipeline.llm import ApiKeys

RubricEnforcement = Literal["lenient", "standard", "strict"]


class Combo(BaseModel):
    """One matrix cell: a tone × length × format choice."""

    model_config = ConfigDict(frozen=True)

    tone: str
    length: str
    format: str


class BaselineExample(BaseModel):
    """A human-scored calibration example shown to the judge."""

    score: float = Field(ge=0, le=10)
    label: str = ""
    content: str = ""
    content_type: str = "text"
    file_url: Optional[str] = None


class JudgeOptions(BaseModel):
    dual_judge: bool = False
    rubric_enforcement: RubricEnforcement = "standard"


class ModelSettings(BaseModel):
    execution_model: Optional[str] = None
    judge_model: Optional[str] = None
    enable_judge: bool = False
    api_keys: Optional[ApiKeys] = None
    baselines: dict[str, list[BaselineExample]] = Field(
        default_factory=dict,
        description="Calibration examples keyed by output type",
    )
    judge_options: JudgeOptions = Field(default_factory=JudgeOptions)


class ExperimentToggles(BaseModel):
    allow_placeholders: bool = False
    strip_meta: bool = True
    aesthetic_mode: bool = False


class JudgeEvaluation(BaseModel):
    dimensions: dict[str, float] = Field(default_factory=dict)
    justifications: dict[str, str] = Field(default_factory=dict)
    composite: float = 0.0
    summary: str = ""
    dual_judge: bool = False
    rubric_enforcement: RubricEnforcement = "standard"


class ExperimentCellResult(BaseModel):
    config: Combo
    blueprint_result: str = ""
    execution_result: Optional[str] = None
    execution_model_id: Optional[str] = None
    evaluation: Optional[JudgeEvaluation] = None
    judge_model_id: Optional[str] = None
    execution_error: Optional[str] = None
    error: Optional[str] = None
