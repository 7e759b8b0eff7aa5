"""Schemas for conditional render steps, legacy spec registry entries, and prompt plans."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


Channel = Literal["system", "user"]
Operator = Literal["equals", "notEquals", "in", "notIn", "exists", "truthy", "falsey"]

_OPERATOR_ALIASES = {
    "==": "equals",
    "!=": "notEquals",
}


class Condition(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str | None = None
    operator: Operator = "truthy"
    value: Any = None

    @field_validator("operator", mode="before")
    @classmethod
    def _normalize_operator(cls, value: Any) -> Any:
        if value is None:
            return "truthy"
        return _OPERATOR_ALIASES.get(value, value)


class RenderStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    channel: Channel
    template: str = ""
    conditions: tuple[Condition, ...] = ()


class RegistrySpec(BaseModel):
    """One entry of the step-based blueprint registry."""

    model_config = ConfigDict(frozen=True)

    id: str
    version: int = 1
    metadata: dict[str, Any] = Field(default_factory=dict)
    system_steps: tuple[RenderStep, ...] = ()
    user_steps: tuple[RenderStep, ...] = ()


class StepTrace(BaseModel):
    id: str
    channel: Channel
    included: bool


class PlanToggles(BaseModel):
    allow_placeholders: bool = False
    strip_meta: bool = False
    aesthetic_mode: bool = False


class PlanRequest(BaseModel):
    """Inputs for building a prompt plan; control descriptors are plain dicts."""

    spec_id: str | None = None
    user_input: str = ""
    tone: dict[str, Any] | None = None
    output_type: dict[str, Any] | None = None
    format: dict[str, Any] | None = None
    length: dict[str, Any] | None = None
    notes: str = ""
    context_constraints: str = ""
    toggles: PlanToggles = Field(default_factory=PlanToggles)
    type_specific: dict[str, Any] = Field(default_factory=dict)


class InferenceSummary(BaseModel):
    output_type: str
    output_type_source: Literal["explicit", "inferred", "default"]
    values: dict[str, Any] = Field(default_factory=dict)
    sources: dict[str, Literal["explicit", "inferred"]] = Field(default_factory=dict)
    confidence: dict[str, float] = Field(default_factory=dict)


class PromptPlan(BaseModel):
    spec_id: str
    spec_version: int = 1
    system_prompt: str
    user_prompt: str
    step_trace: list[StepTrace] = Field(default_factory=list)
    context_snapshot: dict[str, Any] = Field(default_factory=dict)
    inference: InferenceSummary | None = None
