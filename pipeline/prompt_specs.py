"""Prompt Spec factories, merge, and validation.

Specs are never mutated in place: ``merge_spec`` returns a new spec built
from a deep copy of the input with the updates folded in section by section.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from pipeline.type_specific import TYPE_VALIDATORS
from schemas.prompt_spec import (
    SCHEMA_VERSION,
    VALID_EXPERTISE,
    VALID_LENGTHS,
    VALID_OUTPUT_TYPES,
    VALID_URGENCY,
    Audience,
    Constraints,
    Inferred,
    Intent,
    PromptSpec,
    QualityCriteria,
    SpecContext,
    TYPE_SPECIFIC_MODELS,
    type_specific_model,
)

logger = logging.getLogger(__name__)

MERGEABLE_SECTIONS = ("intent", "audience", "context", "constraints", "quality", "type_specific")
_SCALAR_FIELDS = ("version", "output_type", "generated_at")
_CAMEL_KEYS = {
    "typeSpecific": "type_specific",
    "outputType": "output_type",
    "generatedAt": "generated_at",
}
_SECTION_MODELS: dict[str, type[BaseModel]] = {
    "intent": Intent,
    "audience": Audience,
    "context": SpecContext,
    "constraints": Constraints,
    "quality": QualityCriteria,
}


class ValidationResult(BaseModel):
    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

def create_intent() -> Intent:
    return Intent()


def create_audience() -> Audience:
    return Audience()


def create_context() -> SpecContext:
    return SpecContext()


def create_constraints() -> Constraints:
    return Constraints()


def create_quality() -> QualityCriteria:
    return QualityCriteria()


def create_inferred() -> Inferred:
    return Inferred()


def create_base_spec(output_type: str) -> PromptSpec:
    """Zero-valued spec for ``output_type``; type_specific is the variant's defaults."""
    return PromptSpec(
        version=SCHEMA_VERSION,
        output_type=output_type,
        intent=create_intent(),
        audience=create_audience(),
        context=create_context(),
        constraints=create_constraints(),
        quality=create_quality(),
        inferred=create_inferred(),
    )


def create_spec(output_type: str) -> PromptSpec:
    if output_type not in TYPE_SPECIFIC_MODELS:
        raise ValueError(
            f"Unknown output type: {output_type!r}. Must be one of: {', '.join(VALID_OUTPUT_TYPES)}"
        )
    return create_base_spec(output_type)


def clone_spec(spec: PromptSpec) -> PromptSpec:
    return spec.model_copy(deep=True)


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------

def _as_dict(value: Any) -> dict | None:
    if isinstance(value, BaseModel):
        return value.model_dump(exclude_unset=True)
    if isinstance(value, Mapping):
        return dict(value)
    return None


def _normalize_updates(updates: Mapping | BaseModel | None) -> dict:
    if not updates:
        return {}
    if isinstance(updates, BaseModel):
        updates = updates.model_dump(exclude_unset=True)
    return {_CAMEL_KEYS.get(key, key): value for key, value in updates.items()}


def _fold_section(name: str, model: type[BaseModel], current: dict, updates: dict, extra: dict | None = None) -> dict:
    """Shallow-merge ``updates`` over ``current``, keeping the old value of any key ``model`` rejects."""
    merged = {**current, **updates}
    try:
        model.model_validate({**merged, **(extra or {})})
        return merged
    except ValidationError as exc:
        rejected = {str(err["loc"][0]) for err in exc.errors() if err["loc"]}

    for key in sorted(rejected):
        logger.warning("Dropping %s.%s=%r: value does not fit the section", name, key, merged.get(key))
        if key in current:
            merged[key] = current[key]
        else:
            merged.pop(key, None)
    return merged


def merge_spec(spec: PromptSpec, updates: Mapping | None = None) -> PromptSpec:
    """Fold partial ``updates`` into a copy of ``spec``.

    Each section present in ``updates`` is shallow-merged (omitted fields are
    kept, present ones overwrite). ``inferred.reasoning`` merges key-wise.
    ``version``, ``output_type`` and ``generated_at`` overwrite when given.
    Fields whose values don't fit their section are dropped with a logged
    warning; the rest of the update still applies.
    """
    data = spec.model_dump()
    patch = _normalize_updates(updates)

    for key in _SCALAR_FIELDS:
        if patch.get(key) is not None:
            data[key] = patch[key]
    output_type = data.get("output_type")

    for section in MERGEABLE_SECTIONS:
        if not patch.get(section):
            continue
        section_updates = _as_dict(patch[section])
        if section_updates is None:
            logger.warning("Ignoring %s update: expected an object, got %s", section, type(patch[section]).__name__)
            continue
        if section == "type_specific":
            data[section] = _fold_section(
                section, type_specific_model(output_type), data[section], section_updates,
                extra={"output_type": output_type},
            )
        else:
            data[section] = _fold_section(section, _SECTION_MODELS[section], data[section], section_updates)

    inferred_updates = _as_dict(patch.get("inferred") or {})
    if inferred_updates:
        reasoning = inferred_updates.get("reasoning")
        if isinstance(reasoning, Mapping):
            inferred_updates["reasoning"] = {**data["inferred"].get("reasoning", {}), **reasoning}
        data["inferred"] = _fold_section("inferred", Inferred, data["inferred"], inferred_updates)

    return PromptSpec.model_validate(data)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _section(data: Mapping, name: str) -> Mapping | None:
    value = data.get(name)
    return value if isinstance(value, Mapping) else None


def _validate_type_specific(output_type: str, raw: Any) -> list[str]:
    validator = TYPE_VALIDATORS.get(output_type)
    if validator is None:
        return []
    model = TYPE_SPECIFIC_MODELS[output_type]
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()
    try:
        variant = model.model_validate({**(raw or {}), "output_type": output_type})
    except ValidationError as exc:
        return [
            f"type_specific.{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        ]
    return validator(variant)


def validate_spec(spec: PromptSpec | Mapping | None) -> ValidationResult:
    """Errors block validity; version drift, unknown enum values and type checks only warn."""
    errors: list[str] = []
    warnings: list[str] = []

    if spec is None:
        return ValidationResult(valid=False, errors=["Spec is missing"])

    data = spec.model_dump() if isinstance(spec, BaseModel) else _normalize_updates(spec)

    version = data.get("version")
    if not version:
        errors.append("Missing version")
    elif version != SCHEMA_VERSION:
        warnings.append(f"Spec version {version} differs from current {SCHEMA_VERSION}")

    output_type = data.get("output_type")
    if not output_type:
        errors.append("Missing outputType")
    elif output_type not in VALID_OUTPUT_TYPES:
        errors.append(
            f"Invalid outputType: {output_type}. Must be one of: {', '.join(VALID_OUTPUT_TYPES)}"
        )

    intent = _section(data, "intent")
    if intent is None:
        errors.append("Missing intent object")
    else:
        if not intent.get("primary_goal"):
            errors.append("Missing intent.primary_goal")
        urgency = intent.get("urgency")
        if urgency and urgency not in VALID_URGENCY:
            warnings.append(f"Invalid urgency: {urgency}")

    audience = _section(data, "audience")
    if audience and audience.get("expertise_level") and audience["expertise_level"] not in VALID_EXPERTISE:
        warnings.append(f"Invalid expertise_level: {audience['expertise_level']}")

    constraints = _section(data, "constraints")
    if constraints and constraints.get("length") and constraints["length"] not in VALID_LENGTHS:
        warnings.append(f"Invalid length: {constraints['length']}")

    if output_type in VALID_OUTPUT_TYPES:
        warnings.extend(_validate_type_specific(output_type, data.get("type_specific")))

    return ValidationResult(valid=not errors, errors=errors, warnings=warnings)


def is_minimally_valid(spec: PromptSpec | Mapping | None) -> bool:
    """Cheap check: version, output type and a non-empty primary goal."""
    if spec is None:
        return False
    if isinstance(spec, PromptSpec):
        return bool(spec.version and spec.output_type and spec.intent.primary_goal)
    data = _normalize_updates(spec)
    intent = data.get("intent") or {}
    return bool(data.get("version") and data.get("output_type") and intent.get("primary_goal"))


def format_validation_result(result: ValidationResult) -> str:
    if result.valid and not result.warnings:
        return "Spec is valid"
    parts: list[str] = []
    if not result.valid:
        parts.append(f"Errors ({len(result.errors)}):")
        parts.extend(f"  - {e}" for e in result.errors)
    if result.warnings:
        parts.append(f"Warnings ({len(result.warnings)}):")
        parts.extend(f"  - {w}" for w in result.warnings)
    return "\n".join(parts)
