from __future__ import annotations

import unittest
from unittest.mock import patch

from pipeline.assembler import (
    SpecNotFoundError,
    build_prompt_plan,
    build_prompt_plan_with_inference,
    expand_metadata_lists,
    resolve_spec,
)
from pipeline.controls import DEFAULT_CONTROLS
from pipeline.prompt_analyzer import analyze_prompt, infer_output_type, merge_with_inferred
from prompts.blueprint_specs import PROMPT_SPECS
from schemas.prompt_plan import Condition, RegistrySpec, RenderStep


def fixture_request(**overrides) -> dict:
    request = {
        "spec_id": "doc",
        "user_input": "  Summarize the Q3 incident review  ",
        "tone": DEFAULT_CONTROLS.tone("professional").model_dump(),
        "output_type": DEFAULT_CONTROLS.output_type("doc").model_dump(),
        "format": DEFAULT_CONTROLS.format("email").model_dump(),
        "length": DEFAULT_CONTROLS.length("short").model_dump(),
    }
    request.update(overrides)
    return request


def fixture_registry() -> dict[str, RegistrySpec]:
    return {
        "tiny": RegistrySpec(
            id="tiny",
            version=3,
            metadata={"persona": "Tester", "rules": ["one", "two"]},
            system_steps=(
                RenderStep(id="who", channel="system", template="I am {{spec.persona}}"),
                RenderStep(id="rules", channel="system", template="{{spec.rulesList}}"),
                RenderStep(
                    id="gated",
                    channel="system",
                    template="Tone is {{tone.label}}",
                    conditions=(Condition(field="tone.id", operator="equals", value="casual"),),
                ),
            ),
            user_steps=(RenderStep(id="empty", channel="user", template="{{nothing}}"),),
        )
    }


class BuildPromptPlanTests(unittest.TestCase):
    def test_doc_plan_with_email_format(self):
        plan = build_prompt_plan(fixture_request())

        self.assertEqual(plan.spec_id, "doc")
        self.assertIn("You are Expert Prompt Architect Engine.", plan.system_prompt)
        self.assertIn("FORMAT STRUCTURAL REQUIREMENTS (Email)", plan.system_prompt)
        self.assertNotIn("FORMAT STRUCTURAL REQUIREMENTS (Table)", plan.system_prompt)
        self.assertIn("- Allow Placeholders: DISABLED", plan.system_prompt)
        self.assertIn("- Detail Level: Concise", plan.system_prompt)
        self.assertEqual(plan.user_prompt, "USER BRIEF:\nSummarize the Q3 incident review")

        included = {t.id: t.included for t in plan.step_trace}
        self.assertFalse(included["user-notes"])
        self.assertFalse(included["context-constraints"])
        self.assertTrue(included["guardrails"])

    def test_notes_and_constraints_steps(self):
        plan = build_prompt_plan(fixture_request(notes=" keep it blameless ", context_constraints="No names"))
        self.assertIn("ADDITIONAL NOTES:\nkeep it blameless", plan.user_prompt)
        self.assertIn("CONTEXT & CONSTRAINTS:\nNo names", plan.system_prompt)

    def test_unknown_spec_falls_back_to_default(self):
        plan = build_prompt_plan(fixture_request(spec_id="poster"))
        self.assertEqual(plan.spec_id, "doc")

    def test_custom_registry_and_user_prompt_fallback(self):
        plan = build_prompt_plan(fixture_request(spec_id="tiny"), fixture_registry())

        self.assertEqual(plan.spec_version, 3)
        self.assertEqual(plan.system_prompt, "I am Tester\n\n- one\n- two")
        self.assertEqual(plan.user_prompt, "Summarize the Q3 incident review")
        self.assertEqual([t.included for t in plan.step_trace], [True, True, False, True])

    def test_registry_without_match_or_default_uses_builtin(self):
        plan = build_prompt_plan(fixture_request(spec_id="deck"), fixture_registry())
        self.assertEqual(plan.spec_id, "deck")

    def test_spec_not_found(self):
        with patch.dict(PROMPT_SPECS, clear=True):
            with self.assertRaises(SpecNotFoundError):
                resolve_spec("anything")

    def test_metadata_lists_expand(self):
        expanded = expand_metadata_lists({"items": ["a", "b"], "name": "x"})
        self.assertEqual(expanded["itemsList"], "- a\n- b")
        self.assertEqual(expanded["name"], "x")

    def test_type_specific_steps_follow_context(self):
        plan = build_prompt_plan(fixture_request(
            spec_id="deck",
            type_specific={"deck_type": "investor", "slide_count": 12, "include_speaker_notes": True},
        ))
        self.assertIn("INVESTOR NARRATIVE", plan.system_prompt)
        self.assertIn("Target slide count: 12", plan.system_prompt)
        self.assertNotIn("SALES NARRATIVE", plan.system_prompt)


class InferenceTests(unittest.TestCase):
    def test_analyze_prompt_scores_earlier_and_repeated_matches_higher(self):
        analysis = analyze_prompt("Build an investor pitch deck for our seed round")
        self.assertEqual(analysis.inferred["output_type"], "deck")
        self.assertEqual(analysis.inferred["deck_type"], "investor")
        self.assertLessEqual(analysis.confidence["deck_type"], 1.0)

    def test_empty_text_infers_nothing(self):
        self.assertEqual(analyze_prompt("").inferred, {})
        self.assertEqual(infer_output_type(None), ("doc", "default"))

    def test_explicit_output_type_wins(self):
        self.assertEqual(infer_output_type("slides please", "code"), ("code", "explicit"))

    def test_explicit_values_override_inferred(self):
        merged = merge_with_inferred({"deck_type": "board", "slide_count": None}, {"deck_type": "investor"})
        self.assertEqual(merged.values, {"deck_type": "board"})
        self.assertEqual(merged.sources, {"deck_type": "explicit"})

    def test_plan_with_inference_picks_type_and_reports(self):
        plan = build_prompt_plan_with_inference({"user_input": "Write an investor pitch deck for our seed round"})

        self.assertEqual(plan.spec_id, "deck")
        self.assertEqual(plan.inference.output_type, "deck")
        self.assertEqual(plan.inference.output_type_source, "inferred")
        self.assertEqual(plan.inference.values["deck_type"], "investor")
        self.assertIn("INVESTOR NARRATIVE", plan.system_prompt)
        self.assertIn("[AUTO-DETECTED SETTINGS", plan.system_prompt)
        self.assertIn("Output Type: Deck", plan.system_prompt)

    def test_strip_meta_suppresses_report(self):
        plan = build_prompt_plan_with_inference({
            "user_input": "Write an investor pitch deck",
            "toggles": {"strip_meta": True},
        })
        self.assertNotIn("AUTO-DETECTED", plan.system_prompt)

    def test_explicit_spec_and_attributes_win(self):
        plan = build_prompt_plan_with_inference({
            "spec_id": "deck",
            "user_input": "Quarterly investor deck",
            "type_specific": {"deck_type": "board"},
        })
        self.assertEqual(plan.inference.output_type_source, "explicit")
        self.assertEqual(plan.inference.values["deck_type"], "board")
        self.assertEqual(plan.inference.sources["deck_type"], "explicit")
        self.assertIn("BOARD NARRATIVE", plan.system_prompt)


if __name__ == "__main__":
    unittest.main()
