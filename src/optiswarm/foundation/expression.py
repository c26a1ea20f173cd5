"""
Arithmetic and boolean expressions over named values.

Expressions are plain Python syntax restricted to numbers, names, the
arithmetic operators, comparisons, ``and``/``or``/``not`` and a few math
functions::

    >>> speed_window = Expression("speed >= 1.1 and speed <= 1.3")
    >>> speed_window({"speed": 1.2})
    True
    >>> Expression("1 / torque")({"torque": 4.0})
    0.25

The text is parsed once; evaluation walks the node tree against a mapping.
"""

from __future__ import annotations

import ast
import math
import operator
from typing import Any, Callable, Mapping

from .exceptions import ConfigurationError

_BINARY: dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Pow: operator.pow,
    ast.Mod: operator.mod,
}

_UNARY: dict[type, Callable[[Any], Any]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
    ast.Not: operator.not_,
}

_COMPARE: dict[type, Callable[[Any, Any], bool]] = {
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
}

FUNCTIONS: dict[str, Callable[..., float]] = {
    "abs": abs,
    "min": min,
    "max": max,
    "sqrt": math.sqrt,
    "exp": math.exp,
    "log": math.log,
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
}


def _names(node: ast.AST, text: str) -> set[str]:
    """Validate the node tree and collect the free names it reads."""
    if isinstance(node, ast.Constant):
        if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
            raise ConfigurationError(f"Only numeric constants are allowed in expression '{text}'.")
        return set()
    if isinstance(node, ast.Name):
        return {node.id}
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY:
        return _names(node.left, text) | _names(node.right, text)
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY:
        return _names(node.operand, text)
    if isinstance(node, ast.BoolOp):
        return set().union(*(_names(v, text) for v in node.values))
    if isinstance(node, ast.Compare) and all(type(op) in _COMPARE for op in node.ops):
        return set().union(_names(node.left, text), *(_names(c, text) for c in node.comparators))
    if (
        isinstance(node, ast.Call)
        and isinstance(node.func, ast.Name)
        and node.func.id in FUNCTIONS
        and not node.keywords
    ):
        return set().union(*(_names(a, text) for a in node.args)) if node.args else set()
    raise ConfigurationError(
        f"Unsupported syntax '{ast.unparse(node)}' in expression '{text}'.",
        suggestion=f"Use numbers, names, arithmetic, comparisons, and/or/not and {', '.join(FUNCTIONS)}",
    )


def _evaluate(node: ast.AST, context: Mapping[str, Any]) -> Any:
    if isinstance(node, ast.Constant):
        return node.value
    if isinstance(node, ast.Name):
        return context[node.id]
    if isinstance(node, ast.BinOp):
        return _BINARY[type(node.op)](_evaluate(node.left, context), _evaluate(node.right, context))
    if isinstance(node, ast.UnaryOp):
        return _UNARY[type(node.op)](_evaluate(node.operand, context))
    if isinstance(node, ast.BoolOp):
        if isinstance(node.op, ast.And):
            return all(_evaluate(v, context) for v in node.values)
        return any(_evaluate(v, context) for v in node.values)
    if isinstance(node, ast.Compare):
        left = _evaluate(node.left, context)
        for op, comparator in zip(node.ops, node.comparators):
            right = _evaluate(comparator, context)
            if not _COMPARE[type(op)](left, right):
                return False
            left = right
        return True
    if isinstance(node, ast.Call):
        return FUNCTIONS[node.func.id](*(_evaluate(a, context) for a in node.args))  # type: ignore[attr-defined]
    raise TypeError(f"Unexpected node {type(node).__name__}")


class Expression:
    """A parsed expression, callable on a name-to-value mapping.

    Parameters
    ----------
    text : str
        Expression source.

    Raises
    ------
    ConfigurationError
        If the text does not parse or uses unsupported syntax.
    """

    def __init__(self, text: str) -> None:
        self.text = str(text).strip()
        try:
            tree = ast.parse(self.text, mode="eval")
        except SyntaxError as exc:
            raise ConfigurationError(f"Invalid expression '{self.text}': {exc.msg}.") from exc
        self._root = tree.body
        self.names = frozenset(_names(self._root, self.text))

    def __call__(self, context: Mapping[str, Any]) -> Any:
        missing = self.names - set(context)
        if missing:
            raise ConfigurationError(
                f"Expression '{self.text}' reads unknown names: {', '.join(sorted(missing))}.",
                details={"available": sorted(context)},
            )
        return _evaluate(self._root, context)

    def __repr__(self) -> str:
        return f"Expression({self.text!r})"


__all__ = ["Expression", "FUNCTIONS"]
