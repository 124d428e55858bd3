"""Tests for condition expressions."""

import pytest

from guardgen.conditions import evaluate, referenced_keys
from guardgen.errors import ConditionError
from guardgen.model import ModelSnapshot

MODEL = ModelSnapshot({
    "platform": "web",
    "features": ["auth", "billing"],
    "settings": {"readonly": False, "retries": 3},
    "screens": [1, 2, 3],
})


class TestEvaluate:
    @pytest.mark.parametrize("expr,expected", [
        ('platform == "web"', True),
        ('platform != "web"', False),
        ('"auth" in features', True),
        ('"admin" not in features', True),
        ("not settings.readonly", True),
        ("settings.retries >= 3 and len(screens) > 2", True),
        ("settings.readonly or settings.retries < 0", False),
        ("true", True),
        ("null is None", True),
        ("-settings.retries < 0", True),
        ('platform in ["web", "ios"]', True),
        ("1 < settings.retries < 5", True),
    ])
    def test_expressions(self, expr, expected):
        assert evaluate(expr, MODEL) is expected

    def test_returns_values(self):
        assert evaluate("platform", MODEL) == "web"
        assert evaluate("settings.readonly or platform", MODEL) == "web"

    def test_unknown_key(self):
        with pytest.raises(ConditionError, match="Unknown model key 'missing'"):
            evaluate("missing", MODEL)

    def test_syntax_error(self):
        with pytest.raises(ConditionError, match="Invalid condition"):
            evaluate("platform ==", MODEL)

    @pytest.mark.parametrize("expr", [
        "__import__('os')",
        "features[0]",
        "[x for x in features]",
        "platform + 'x'",
        "len(features, 2)",
    ])
    def test_unsupported_constructs(self, expr):
        with pytest.raises(ConditionError):
            evaluate(expr, MODEL)

    def test_type_errors_wrapped(self):
        with pytest.raises(ConditionError, match="Cannot evaluate"):
            evaluate("platform < 3", MODEL)


class TestReferencedKeys:
    def test_dotted_names(self):
        keys = referenced_keys('settings.readonly and platform == "web" or len(screens) > 2')
        assert keys == {"settings.readonly", "platform", "screens"}

    def test_literals_excluded(self):
        assert referenced_keys("true and not null") == set()
