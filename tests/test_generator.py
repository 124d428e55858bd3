"""Tests for content generation across marker kinds and strategies."""

import pytest
import yaml

from guardgen.errors import (
    ConditionError,
    GeneratorFunctionError,
    MissingDataSourceError,
    MissingParameterError,
    NoContentSourceError,
)
from guardgen.generator import ContentGenerator, dedupe
from guardgen.languages import profile_for
from guardgen.model import ModelSnapshot
from guardgen.parser import parse, scaffold
from guardgen.render import PlaceholderRenderer, format_value, placeholders

TS = profile_for("ts")


def region(kind, attrs=None, body="", indent="", baseline=None):
    """Parse a single marked block and return its region."""
    text = scaffold(TS, kind, "m", body, indent=indent)
    baselines = {"m": baseline} if baseline is not None else None
    return parse(text, TS, specs={"m": attrs or {}}, baselines=baselines).region("m")


@pytest.fixture
def gen():
    return ContentGenerator()


class TestRender:
    def test_format_value(self):
        assert format_value(["a", "b"]) == "a, b"
        assert format_value(True) == "true"
        assert format_value(None) == "null"
        assert format_value({"k": 1}) == "k: 1"
        assert format_value(3) == "3"

    def test_placeholders_in_order(self):
        assert placeholders("{{b}} {{ a.x }} {{b}}") == ["b", "a.x"]

    def test_render_missing(self):
        with pytest.raises(MissingParameterError, match="'nope'"):
            PlaceholderRenderer().render("{{nope}}", ModelSnapshot({}).get)

    def test_render_leaves_other_braces(self):
        out = PlaceholderRenderer().render("fn() { {{name}} }", ModelSnapshot({"name": "x"}).get)
        assert out == "fn() { x }"


class TestGenerated:
    def test_replace_static(self, gen):
        r = region("generated", {"static": "const x = 1;"}, body="old\n")
        assert gen.generate(r, ModelSnapshot()) == "const x = 1;\n"

    def test_replace_indents_to_marker_column(self, gen):
        r = region("generated", {"template": "{{fields}}"}, indent="  ")
        assert gen.generate(r, ModelSnapshot({"fields": ["a", "b"]})) == "  a, b\n"

    def test_newline_style(self, gen):
        r = region("generated", {"static": "a\nb"})
        assert gen.generate(r, ModelSnapshot(), newline="\r\n") == "a\r\nb\r\n"

    def test_key_source(self, gen):
        r = region("generated", {"key": "count"})
        assert gen.generate(r, ModelSnapshot({"count": 4})) == "4\n"

    def test_key_source_missing(self, gen):
        r = region("generated", {"key": "count"})
        with pytest.raises(MissingParameterError) as exc:
            gen.generate(r, ModelSnapshot())
        assert exc.value.marker_id == "m"

    def test_merge_dedupes(self, gen):
        r = region("generated", {"strategy": "merge", "static": "b\nc"}, body="a\nb\n")
        assert gen.generate(r, ModelSnapshot()) == "a\nb\nc\n"

    def test_if_empty_fills_blank(self, gen):
        r = region("generated", {"strategy": "if_empty", "static": "x"}, body="   \n")
        assert gen.generate(r, ModelSnapshot()) == "x\n"

    def test_if_empty_keeps_user_content(self, gen):
        r = region("generated", {"strategy": "IfEmpty", "static": "x"}, body="mine\n")
        assert gen.generate(r, ModelSnapshot()) == "mine\n"

    def test_if_empty_refreshes_own_output(self, gen):
        r = region("generated", {"strategy": "if_empty", "static": "new"}, body="old\n", baseline="old\n")
        assert gen.generate(r, ModelSnapshot()) == "new\n"

    def test_append_is_idempotent(self, gen):
        r = region("generated", {"strategy": "append", "static": "z"}, body="a\n")
        assert gen.generate(r, ModelSnapshot()) == "a\nz\n"
        r = region("generated", {"strategy": "append", "static": "z"}, body="a\nz\n")
        assert gen.generate(r, ModelSnapshot()) == "a\nz\n"

    def test_prepend_is_idempotent(self, gen):
        r = region("generated", {"strategy": "prepend", "static": "z"}, body="a\n")
        assert gen.generate(r, ModelSnapshot()) == "z\na\n"
        r = region("generated", {"strategy": "prepend", "static": "z"}, body="z\na\n")
        assert gen.generate(r, ModelSnapshot()) == "z\na\n"

    def test_no_source(self, gen):
        with pytest.raises(NoContentSourceError):
            gen.generate(region("generated"), ModelSnapshot())

    def test_empty_result(self, gen):
        r = region("generated", {"static": ""}, body="x\n")
        assert gen.generate(r, ModelSnapshot()) == ""


class TestFunctions:
    def test_function_lines(self):
        gen = ContentGenerator(functions={"cols": lambda m: [f"col {c}" for c in m.get("cols")]})
        r = region("generated", {"function": "cols"})
        assert gen.generate(r, ModelSnapshot({"cols": [1, 2]})) == "col 1\ncol 2\n"

    def test_register_function(self, gen):
        gen.register_function("hello", lambda m: "hi")
        assert gen.function_names == ["hello"]
        assert gen.generate(region("generated", {"function": "hello"}), ModelSnapshot()) == "hi\n"

    def test_unknown_function(self, gen):
        with pytest.raises(GeneratorFunctionError, match="No generator function"):
            gen.generate(region("generated", {"function": "nope"}), ModelSnapshot())

    def test_function_failure_wrapped(self):
        def boom(model):
            raise RuntimeError("kaput")

        gen = ContentGenerator(functions={"boom": boom})
        with pytest.raises(GeneratorFunctionError, match="kaput"):
            gen.generate(region("generated", {"function": "boom"}), ModelSnapshot())


class TestConditional:
    def test_include_true(self, gen):
        r = region("conditional", {"condition": "auth", "static": "login();"})
        assert gen.generate(r, ModelSnapshot({"auth": True})) == "login();\n"

    def test_include_false_empties(self, gen):
        r = region("conditional", {"condition": "auth", "static": "login();"}, body="login();\n")
        assert gen.generate(r, ModelSnapshot({"auth": False})) == ""

    def test_exclude(self, gen):
        r = region("conditional", {"condition": "auth", "strategy": "exclude", "static": "anon();"})
        assert gen.generate(r, ModelSnapshot({"auth": False})) == "anon();\n"
        assert gen.generate(r, ModelSnapshot({"auth": True})) == ""

    def test_switch(self, gen):
        attrs = {
            "condition": "platform",
            "strategy": "switch",
            "alternatives": {"web": "render({{name}});", "default": "noop();"},
        }
        r = region("conditional", attrs, indent="    ")
        assert gen.generate(r, ModelSnapshot({"platform": "web", "name": "App"})) == "    render(App);\n"
        assert gen.generate(r, ModelSnapshot({"platform": "ios", "name": "App"})) == "    noop();\n"

    def test_switch_on_boolean(self, gen):
        attrs = {"condition": "debug", "strategy": "switch", "alternatives": {"true": "log();", "false": ""}}
        r = region("conditional", attrs)
        assert gen.generate(r, ModelSnapshot({"debug": True})) == "log();\n"
        assert gen.generate(r, ModelSnapshot({"debug": False})) == ""

    def test_switch_on_yaml_boolean_keys(self, gen):
        attrs = yaml.safe_load(
            "condition: flag\n"
            "strategy: switch\n"
            "alternatives:\n"
            "  true: \"ON\"\n"
            "  false: \"OFF\"\n"
            "  null: \"UNSET\"\n"
        )
        r = region("conditional", attrs)
        assert r.marker.alternatives == {"true": "ON", "false": "OFF", "null": "UNSET"}
        assert gen.generate(r, ModelSnapshot({"flag": True})) == "ON\n"
        assert gen.generate(r, ModelSnapshot({"flag": False})) == "OFF\n"
        assert gen.generate(r, ModelSnapshot({"flag": None})) == "UNSET\n"

    def test_switch_without_match(self, gen):
        attrs = {"condition": "platform", "strategy": "switch", "alternatives": {"web": "x"}}
        with pytest.raises(ConditionError, match="no such alternative"):
            gen.generate(region("conditional", attrs), ModelSnapshot({"platform": "ios"}))

    def test_bad_condition(self, gen):
        r = region("conditional", {"condition": "missing.key", "static": "x"})
        with pytest.raises(ConditionError):
            gen.generate(r, ModelSnapshot())


class TestImports:
    def test_keep_existing_appends_missing(self, gen):
        r = region("import", {"strategy": "keep_existing", "imports": ["Y"]}, body="X\n")
        assert gen.generate(r, ModelSnapshot()) == "X\nY\n"

    def test_keep_existing_no_duplicates(self, gen):
        r = region("import", {"strategy": "keep_existing", "imports": ["X", "Y"]}, body="Y\nX\n")
        assert gen.generate(r, ModelSnapshot()) == "Y\nX\n"

    def test_replace(self, gen):
        r = region("import", {"strategy": "replace", "imports": ["Y"]}, body="X\n")
        assert gen.generate(r, ModelSnapshot()) == "Y\n"

    def test_merge_sorted_union(self, gen):
        r = region("import", {"imports": ["b", "a"]}, body="c\na\n")
        assert gen.generate(r, ModelSnapshot()) == "a\nb\nc\n"

    def test_key_list(self, gen):
        r = region("import", {"strategy": "replace", "key": "imports"})
        model = ModelSnapshot({"imports": ["import a", "import b", "import a"]})
        assert gen.generate(r, model) == "import a\nimport b\n"

    def test_key_missing(self, gen):
        with pytest.raises(MissingDataSourceError):
            gen.generate(region("import", {"key": "imports"}), ModelSnapshot())

    def test_no_source(self, gen):
        with pytest.raises(NoContentSourceError):
            gen.generate(region("import"), ModelSnapshot())


class TestTemplate:
    def test_parameters(self, gen):
        attrs = {
            "body": "const {{name}} = {{value}};",
            "parameters": {"name": "component.name", "value": {"default": 0}},
        }
        r = region("template", attrs)
        assert gen.generate(r, ModelSnapshot({"component": {"name": "x"}})) == "const x = 0;\n"

    def test_parameter_literal_value(self, gen):
        r = region("template", {"body": "{{n}}", "parameters": {"n": 5}})
        assert gen.generate(r, ModelSnapshot()) == "5\n"

    def test_required_parameter_missing(self, gen):
        r = region("template", {"body": "{{n}}", "parameters": {"n": "missing.key"}})
        with pytest.raises(MissingParameterError, match="'n'"):
            gen.generate(r, ModelSnapshot())

    def test_optional_parameter_blank(self, gen):
        r = region("template", {"body": "[{{n}}]", "parameters": {"n": {"key": "x", "required": False}}})
        assert gen.generate(r, ModelSnapshot()) == "[]\n"

    def test_iteration_separator(self, gen):
        r = region("template", {"body": "{{item}}", "iterate": {"over": "items", "separator": ",\n"}})
        out = gen.generate(r, ModelSnapshot({"items": ["a", "b", "c"]}))
        assert out == "a,\nb,\nc\n"
        assert out.count(",\n") == 2

    def test_iteration_vars(self, gen):
        attrs = {"body": "{{i}}={{col.name}}", "iterate": {"over": "cols", "as": "col", "index": "i"}}
        out = gen.generate(region("template", attrs), ModelSnapshot({"cols": [{"name": "a"}, {"name": "b"}]}))
        assert out == "0=a\n1=b\n"

    def test_iteration_over_mapping(self, gen):
        r = region("template", {"body": "{{item.key}}: {{item.value}}", "iterate": "env"})
        assert gen.generate(r, ModelSnapshot({"env": {"A": 1, "B": 2}})) == "A: 1\nB: 2\n"

    def test_iteration_empty_list(self, gen):
        r = region("template", {"body": "{{item}}", "iterate": "items"}, body="stale\n")
        assert gen.generate(r, ModelSnapshot({"items": []})) == ""

    def test_iteration_missing_source(self, gen):
        r = region("template", {"body": "{{item}}", "iterate": "items"})
        with pytest.raises(MissingDataSourceError):
            gen.generate(r, ModelSnapshot())

    def test_iteration_not_a_list(self, gen):
        r = region("template", {"body": "{{item}}", "iterate": "items"})
        with pytest.raises(MissingDataSourceError, match="not a list"):
            gen.generate(r, ModelSnapshot({"items": 3}))


class TestGuard:
    def test_guard_rejected(self, gen):
        with pytest.raises(TypeError):
            gen.generate(region("guard"), ModelSnapshot())


def test_dedupe_keeps_blank_lines():
    assert dedupe(["a", "", "a", "", "b"]) == ["a", "", "", "b"]
