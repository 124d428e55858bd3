"""Condition expressions for conditional markers.

Conditions are a restricted subset of Python expression syntax evaluated
against a model snapshot:

    schema.fields and not settings.readonly
    platform == "web" or len(screens) > 2
    "auth" in features

Bare and dotted names resolve to model keys; ``true``, ``false`` and
``null`` are accepted as literals. Nothing else (calls other than len,
attribute access on values, comprehensions, ...) is allowed.
"""

from __future__ import annotations

import ast
import operator
from typing import Any

from guardgen.errors import ConditionError
from guardgen.model import ModelSnapshot

_LITERAL_NAMES = {"true": True, "false": False, "null": None, "True": True, "False": False, "None": None}

_COMPARE_OPS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
}


def _parse(expression: str) -> ast.Expression:
    try:
        return ast.parse(expression.strip(), mode="eval")
    except SyntaxError as e:
        raise ConditionError(f"Invalid condition '{expression}': {e.msg}") from None


def _dotted_name(node: ast.AST) -> str | None:
    parts = []
    while isinstance(node, ast.Attribute):
        parts.append(node.attr)
        node = node.value
    if not isinstance(node, ast.Name):
        return None
    parts.append(node.id)
    return ".".join(reversed(parts))


def referenced_keys(expression: str) -> set[str]:
    """Model keys a condition reads (its dependency keys)."""
    keys: set[str] = set()

    def visit(node: ast.AST) -> None:
        if isinstance(node, (ast.Name, ast.Attribute)):
            name = _dotted_name(node)
            if name and name not in _LITERAL_NAMES and name != "len":
                keys.add(name)
                return
        for child in ast.iter_child_nodes(node):
            visit(child)

    visit(_parse(expression))
    return keys


def evaluate(expression: str, model: ModelSnapshot) -> Any:
    """Evaluate a condition against a model.

    Raises:
        ConditionError: On syntax errors, unsupported constructs, or
            names missing from the model.
    """
    tree = _parse(expression)
    try:
        return _eval(tree.body, model, expression)
    except ConditionError:
        raise
    except TypeError as e:
        raise ConditionError(f"Cannot evaluate '{expression}': {e}") from None


def _eval(node: ast.AST, model: ModelSnapshot, expr: str) -> Any:
    if isinstance(node, ast.Constant):
        return node.value

    if isinstance(node, (ast.Name, ast.Attribute)):
        name = _dotted_name(node)
        if name is None:
            raise ConditionError(f"Unsupported attribute access in '{expr}'")
        if name in _LITERAL_NAMES:
            return _LITERAL_NAMES[name]
        try:
            return model.get(name)
        except KeyError:
            raise ConditionError(f"Unknown model key '{name}' in condition '{expr}'") from None

    if isinstance(node, ast.BoolOp):
        if isinstance(node.op, ast.And):
            result: Any = True
            for v in node.values:
                result = _eval(v, model, expr)
                if not result:
                    return result
            return result
        result = False
        for v in node.values:
            result = _eval(v, model, expr)
            if result:
                return result
        return result

    if isinstance(node, ast.UnaryOp):
        operand = _eval(node.operand, model, expr)
        if isinstance(node.op, ast.Not):
            return not operand
        if isinstance(node.op, ast.USub):
            return -operand
        raise ConditionError(f"Unsupported operator in '{expr}'")

    if isinstance(node, ast.Compare):
        left = _eval(node.left, model, expr)
        for op, comparator in zip(node.ops, node.comparators):
            right = _eval(comparator, model, expr)
            fn = _COMPARE_OPS.get(type(op))
            if fn is None:
                raise ConditionError(f"Unsupported comparison in '{expr}'")
            if not fn(left, right):
                return False
            left = right
        return True

    if isinstance(node, (ast.List, ast.Tuple)):
        return [_eval(e, model, expr) for e in node.elts]

    if isinstance(node, ast.Call):
        if isinstance(node.func, ast.Name) and node.func.id == "len" and len(node.args) == 1 and not node.keywords:
            return len(_eval(node.args[0], model, expr))
        raise ConditionError(f"Only len() calls are allowed in '{expr}'")

    raise ConditionError(f"Unsupported expression '{ast.dump(node)[:40]}' in '{expr}'")
