from __future__ import annotations

import unittest

from pipeline.prompt_specs import (
    clone_spec,
    create_spec,
    format_validation_result,
    is_minimally_valid,
    merge_spec,
    validate_spec,
)
from pipeline.type_specific import (
    fill_type_specific_gaps,
    get_cta_suggestions,
    infer_language_from_framework,
    recommend_error_handling,
    recommend_formality,
    recommend_sections,
    recommend_visual_style,
    should_include_executive_summary,
)
from schemas.prompt_spec import (
    SCHEMA_VERSION,
    CodeTypeSpecific,
    DeckTypeSpecific,
    GenericTypeSpecific,
    PromptSpec,
)


def fixture_code_spec() -> PromptSpec:
    return merge_spec(create_spec("code"), {
        "intent": {"primary_goal": "Add a health-check endpoint"},
        "type_specific": {"language": "python", "framework": "fastapi"},
    })


class FactoryTests(unittest.TestCase):
    def test_create_spec_fills_type_defaults(self):
        spec = create_spec("deck")
        self.assertEqual(spec.version, SCHEMA_VERSION)
        self.assertIsInstance(spec.type_specific, DeckTypeSpecific)
        self.assertEqual(spec.type_specific.deck_type, "internal")
        self.assertTrue(spec.type_specific.include_speaker_notes)
        self.assertEqual(spec.intent.urgency, "normal")
        self.assertEqual(spec.audience.relationship, "neutral")
        self.assertEqual(spec.constraints.length, "medium")

    def test_create_spec_rejects_unknown_type(self):
        with self.assertRaises(ValueError):
            create_spec("poster")

    def test_unknown_output_type_loads_as_generic(self):
        spec = PromptSpec.model_validate({"outputType": "poster", "typeSpecific": {"size": "A2"}})
        self.assertIsInstance(spec.type_specific, GenericTypeSpecific)
        self.assertEqual(spec.type_specific.model_dump()["size"], "A2")


class MergeSpecTests(unittest.TestCase):
    def test_empty_update_is_identity(self):
        spec = fixture_code_spec()
        self.assertEqual(merge_spec(spec, {}), spec)
        self.assertEqual(merge_spec(spec, None), spec)

    def test_sections_merge_shallowly_without_mutating_input(self):
        spec = fixture_code_spec()
        merged = merge_spec(spec, {"intent": {"urgency": "high"}, "typeSpecific": {"include_tests": True}})

        self.assertEqual(merged.intent.primary_goal, "Add a health-check endpoint")
        self.assertEqual(merged.intent.urgency, "high")
        self.assertIsInstance(merged.type_specific, CodeTypeSpecific)
        self.assertTrue(merged.type_specific.include_tests)
        self.assertEqual(merged.type_specific.framework, "fastapi")
        self.assertEqual(spec.intent.urgency, "normal")
        self.assertFalse(spec.type_specific.include_tests)

    def test_reasoning_merges_key_wise(self):
        spec = merge_spec(create_spec("doc"), {"inferred": {"tone": "casual", "reasoning": {"tone": "peer audience"}}})
        merged = merge_spec(spec, {"inferred": {"reasoning": {"format": "scannable"}}})
        self.assertEqual(merged.inferred.reasoning, {"tone": "peer audience", "format": "scannable"})
        self.assertEqual(merged.inferred.tone, "casual")

    def test_extra_type_specific_keys_are_kept(self):
        merged = merge_spec(create_spec("deck"), {"type_specific": {"duration_minutes": 20}})
        self.assertEqual(merged.type_specific.model_dump()["duration_minutes"], 20)

    def test_ill_typed_fields_are_dropped_not_raised(self):
        spec = merge_spec(create_spec("deck"), {"type_specific": {"slide_count": 10}})
        with self.assertLogs("pipeline.prompt_specs", level="WARNING"):
            merged = merge_spec(spec, {
                "intent": {"primary_goal": "Win seed funding", "success_criteria": "a yes"},
                "type_specific": {"slide_count": "10-12", "deck_type": "pitch"},
            })

        self.assertEqual(merged.intent.primary_goal, "Win seed funding")
        self.assertEqual(merged.intent.success_criteria, [])
        self.assertEqual(merged.type_specific.slide_count, 10)
        self.assertEqual(merged.type_specific.deck_type, "pitch")

    def test_non_object_section_update_is_ignored(self):
        with self.assertLogs("pipeline.prompt_specs", level="WARNING"):
            merged = merge_spec(create_spec("doc"), {"audience": "executives", "intent": {"primary_goal": "x"}})
        self.assertEqual(merged.audience.primary, "")
        self.assertEqual(merged.intent.primary_goal, "x")

    def test_clone_is_independent(self):
        spec = fixture_code_spec()
        clone = clone_spec(spec)
        clone.intent.success_criteria.append("returns 200")
        self.assertEqual(spec.intent.success_criteria, [])


class ValidateSpecTests(unittest.TestCase):
    def test_missing_spec(self):
        result = validate_spec(None)
        self.assertFalse(result.valid)
        self.assertEqual(result.errors, ["Spec is missing"])

    def test_errors_for_missing_required_fields(self):
        result = validate_spec({"outputType": "poster", "intent": {}})
        self.assertFalse(result.valid)
        self.assertIn("Missing version", result.errors)
        self.assertIn("Missing intent.primary_goal", result.errors)
        self.assertTrue(any(e.startswith("Invalid outputType: poster") for e in result.errors))

    def test_enum_and_version_drift_only_warn(self):
        spec = merge_spec(create_spec("doc"), {
            "version": "0.9.0",
            "intent": {"primary_goal": "Summarize Q3", "urgency": "whenever"},
            "audience": {"expertise_level": "guru"},
            "constraints": {"length": "epic"},
        })
        result = validate_spec(spec)
        self.assertTrue(result.valid)
        self.assertIn("Invalid urgency: whenever", result.warnings)
        self.assertIn("Invalid expertise_level: guru", result.warnings)
        self.assertIn("Invalid length: epic", result.warnings)
        self.assertTrue(any("0.9.0" in w for w in result.warnings))

    def test_type_validators_contribute_warnings(self):
        deck = merge_spec(create_spec("deck"), {"intent": {"primary_goal": "x"}, "type_specific": {"slide_count": 120}})
        warnings = validate_spec(deck).warnings
        self.assertIn("Slide count over 100 may be too long for most presentations", warnings)
        self.assertIn("Consider breaking into multiple presentations", warnings)

        comms = merge_spec(create_spec("comms"), {
            "intent": {"primary_goal": "x"},
            "type_specific": {"channel": "letter", "include_signature": False, "response_urgency": "asap"},
        })
        warnings = validate_spec(comms).warnings
        self.assertIn("Letters typically include a signature", warnings)
        self.assertIn("Letters are not suitable for urgent communications", warnings)

    def test_code_framework_mismatch(self):
        spec = merge_spec(fixture_code_spec(), {"type_specific": {"framework": "rails"}})
        self.assertIn('Framework "rails" may not be common for python', validate_spec(spec).warnings)

    def test_structural_type_specific_problem_is_a_warning(self):
        raw = fixture_code_spec().model_dump()
        raw["type_specific"]["include_tests"] = "sometimes"
        result = validate_spec(raw)
        self.assertTrue(result.valid)
        self.assertTrue(any(w.startswith("type_specific.include_tests") for w in result.warnings))

    def test_minimal_validity_and_formatting(self):
        self.assertTrue(is_minimally_valid(fixture_code_spec()))
        self.assertFalse(is_minimally_valid(create_spec("code")))
        self.assertEqual(format_validation_result(validate_spec(fixture_code_spec())), "Spec is valid")
        self.assertIn("Errors (1):", format_validation_result(validate_spec(create_spec("code"))))


class RecommendationTests(unittest.TestCase):
    def test_lookups(self):
        self.assertEqual(recommend_visual_style("investor"), "image-rich")
        self.assertEqual(infer_language_from_framework("Django"), "python")
        self.assertIsNone(infer_language_from_framework("unknownjs"))
        self.assertEqual(recommend_error_handling(False, True), "standard")
        self.assertEqual(recommend_formality("superior"), "formal")
        self.assertEqual(recommend_sections("agenda", "standup")[0], "date_time")
        self.assertEqual(get_cta_suggestions("nope"), get_cta_suggestions("landing"))
        self.assertTrue(should_include_executive_summary("long", "general"))
        self.assertFalse(should_include_executive_summary("medium", "expert"))

    def test_fill_gaps_infers_language_from_framework(self):
        spec = merge_spec(create_spec("code"), {"type_specific": {"framework": "rails"}})
        self.assertEqual(fill_type_specific_gaps(spec), {"language": "ruby"})

    def test_fill_gaps_keeps_provided_values(self):
        spec = merge_spec(create_spec("comms"), {"audience": {"relationship": "superior"}})
        self.assertEqual(fill_type_specific_gaps(spec), {"formality_level": "formal"})
        self.assertEqual(fill_type_specific_gaps(spec, {"formality_level": "casual"}), {})


if __name__ == "__main__":
    unittest.main()
