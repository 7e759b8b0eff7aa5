from __future__ import annotations

import unittest

from pipeline.conditions import MISSING, evaluate_condition, resolve_path, should_include_step
from pipeline.rendering import build_blocks, render_template
from schemas.prompt_plan import Condition, RenderStep


def _step(step_id: str, template: str, *conditions: Condition) -> RenderStep:
    return RenderStep(id=step_id, channel="system", template=template, conditions=conditions)


class ResolvePathTests(unittest.TestCase):
    def test_nested_mapping_and_sequence(self):
        ctx = {"a": {"b": [10, {"c": "deep"}]}}
        self.assertEqual(resolve_path(ctx, "a.b.0"), 10)
        self.assertEqual(resolve_path(ctx, "a.b.1.c"), "deep")

    def test_missing_and_none_intermediates_short_circuit(self):
        self.assertIs(resolve_path({"a": None}, "a.b"), MISSING)
        self.assertIs(resolve_path({}, "a.b.c"), MISSING)
        self.assertIs(resolve_path({"a": [1]}, "a.5"), MISSING)

    def test_segments_are_trimmed_and_empty_ones_dropped(self):
        self.assertEqual(resolve_path({"a": {"b": 1}}, " a .. b "), 1)

    def test_attribute_objects(self):
        cond = Condition(field="x", value=3)
        self.assertEqual(resolve_path({"c": cond}, "c.value"), 3)


class EvaluateConditionTests(unittest.TestCase):
    def test_exists_on_empty_mapping_path_is_false(self):
        self.assertFalse(evaluate_condition({"field": "a.b", "operator": "exists"}, {"a": {}}))

    def test_exists_rejects_none_and_empty_string(self):
        self.assertFalse(evaluate_condition({"field": "a", "operator": "exists"}, {"a": None}))
        self.assertFalse(evaluate_condition({"field": "a", "operator": "exists"}, {"a": ""}))
        self.assertTrue(evaluate_condition({"field": "a", "operator": "exists"}, {"a": 0}))

    def test_default_operator_is_truthy(self):
        self.assertFalse(evaluate_condition({"field": "a.b"}, {"a": {"b": 0}}))
        self.assertTrue(evaluate_condition({"field": "a.b"}, {"a": {"b": "yes"}}))

    def test_falsey_treats_missing_as_falsey(self):
        self.assertTrue(evaluate_condition({"field": "nope", "operator": "falsey"}, {}))

    def test_equals_is_strict(self):
        ctx = {"a": "x", "flag": True, "n": 1}
        self.assertTrue(evaluate_condition({"field": "a", "operator": "equals", "value": "x"}, ctx))
        self.assertFalse(evaluate_condition({"field": "flag", "operator": "equals", "value": 1}, ctx))
        self.assertFalse(evaluate_condition({"field": "n", "operator": "equals", "value": "1"}, ctx))
        self.assertTrue(evaluate_condition({"field": "n", "operator": "equals", "value": 1.0}, ctx))

    def test_legacy_operator_aliases(self):
        ctx = {"format": {"id": "email"}}
        self.assertTrue(evaluate_condition({"field": "format.id", "operator": "==", "value": "email"}, ctx))
        self.assertTrue(evaluate_condition({"field": "format.id", "operator": "!=", "value": "table"}, ctx))

    def test_in_requires_a_list(self):
        ctx = {"t": "deck"}
        self.assertTrue(evaluate_condition({"field": "t", "operator": "in", "value": ["deck", "doc"]}, ctx))
        self.assertFalse(evaluate_condition({"field": "t", "operator": "in", "value": "deck"}, ctx))
        self.assertFalse(evaluate_condition({"field": "t", "operator": "notIn", "value": "deck"}, ctx))
        self.assertTrue(evaluate_condition({"field": "t", "operator": "notIn", "value": ["code"]}, ctx))

    def test_none_condition_and_missing_field_are_true(self):
        self.assertTrue(evaluate_condition(None, {}))
        self.assertTrue(evaluate_condition({"operator": "exists"}, {}))

    def test_step_conditions_are_anded(self):
        step = _step("s", "x", Condition(field="a"), Condition(field="b", operator="falsey"))
        self.assertTrue(should_include_step(step, {"a": 1, "b": 0}))
        self.assertFalse(should_include_step(step, {"a": 1, "b": 1}))
        self.assertTrue(should_include_step(_step("s", "x"), {}))


class RenderTemplateTests(unittest.TestCase):
    def test_substitution(self):
        self.assertEqual(render_template("Hello {{name}}", {"name": "World"}), "Hello World")

    def test_missing_value_renders_empty(self):
        self.assertEqual(render_template("Hello {{name}}", {}), "Hello ")

    def test_structured_values_render_as_json(self):
        ctx = {"items": ["a", "b"], "obj": {"k": 1}, "on": True}
        self.assertEqual(render_template("{{items}}|{{obj}}|{{on}}", ctx), '["a","b"]|{"k":1}|true')

    def test_unserializable_value_renders_empty(self):
        self.assertEqual(render_template("[{{bad}}]", {"bad": {"x": object()}}), "[]")

    def test_empty_template(self):
        self.assertEqual(render_template(None, {"a": 1}), "")
        self.assertEqual(render_template("", {"a": 1}), "")


class BuildBlocksTests(unittest.TestCase):
    def test_skips_excluded_and_blank_steps_and_traces_all(self):
        steps = [
            _step("one", "First {{a}}"),
            _step("blank", "   {{missing}}  "),
            _step("gated", "Never", Condition(field="off")),
            _step("two", "Second"),
        ]
        result = build_blocks(steps, {"a": "A", "off": False})

        self.assertEqual(result.text, "First A\n\nSecond")
        self.assertEqual([t.id for t in result.trace], ["one", "blank", "gated", "two"])
        self.assertEqual([t.included for t in result.trace], [True, True, False, True])

    def test_is_deterministic(self):
        steps = [_step("one", "{{a}}"), _step("two", "{{b}}")]
        ctx = {"a": 1, "b": [1, 2]}
        self.assertEqual(build_blocks(steps, ctx), build_blocks(steps, ctx))


if __name__ == "__main__":
    unittest.main()
