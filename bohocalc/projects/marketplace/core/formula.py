"""
Formula evaluation for parametric calculators.

A formula is a math.js-style expression over the calculator's variable names,
e.g. ``principal * (1 + rate / 100) ^ time``. Running a calculator is a two
step process:

1. ``substitute_variables`` replaces every whole-word occurrence of a variable
   name with its numeric value (``rate`` never matches inside ``interest_rate``).
2. ``evaluate_expression`` parses the numeric expression with SymPy, restricted
   to a whitelist of math functions and constants, and runs it in float
   arithmetic through ``lambdify``.

Only numbers, whitelisted names, arithmetic operators, parentheses and commas
ever reach the parser, which keeps it away from arbitrary Python. No operator
is evaluated while parsing, so a power tower such as ``9^9^9^9`` overflows a
float straight away instead of being expanded exactly by SymPy.
"""

from __future__ import annotations

import ast
import math
import re
from tokenize import TokenError
from typing import Any

import sympy as sp
from sympy.parsing.sympy_parser import (
    EvaluateFalseTransformer,
    convert_xor,
    eval_expr,
    implicit_multiplication,
    standard_transformations,
    stringify_expr,
)
from sympy.utilities.lambdify import implemented_function

from bohocalc.projects.marketplace.core.constants import MAX_FORMULA_LENGTH
from bohocalc.projects.marketplace.core.variables import VariableError, to_number
from bohocalc.utils.formatting import format_number


class FormulaError(ValueError):
    """Raised when a formula is invalid or cannot be evaluated to a real number."""


def _round(value, digits=0.0):
    """math.js round: half away from zero, optional number of decimals (0-15)."""
    if not digits.is_integer() or not 0 <= digits <= 15:
        raise ValueError("round() decimals must be a whole number from 0 to 15")
    factor = 10 ** int(digits)
    rounded = math.floor(abs(value) * factor + 0.5) / factor
    return math.copysign(rounded, value)


def _cbrt(value):
    return math.copysign(abs(value) ** (1 / 3), value)


def _mod(value, divisor):
    # math.js mod takes the sign of the divisor, as Python's % does
    return value % divisor


FUNCTION_IMPLEMENTATIONS = {
    "sqrt": math.sqrt,
    "cbrt": _cbrt,
    "pow": math.pow,
    "abs": abs,
    "exp": math.exp,
    "log": math.log,
    "ln": math.log,
    "log10": math.log10,
    "log2": math.log2,
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "asin": math.asin,
    "acos": math.acos,
    "atan": math.atan,
    "floor": math.floor,
    "ceil": math.ceil,
    "round": _round,
    "min": min,
    "max": max,
    "mod": _mod,
}


def _on_floats(function):
    def call(*args):
        return function(*(float(arg) for arg in args))
    return call


# Prefixed so SymPy never maps them onto its own exact sqrt, log, ...
ALLOWED_FUNCTIONS = {
    name: implemented_function(f"calc_{name}", _on_floats(function))
    for name, function in FUNCTION_IMPLEMENTATIONS.items()
}

ALLOWED_CONSTANTS = {
    "pi": sp.pi,
    "PI": sp.pi,
    "e": sp.E,
    "E": sp.E,
}

ALLOWED_NAMES = {**ALLOWED_FUNCTIONS, **ALLOWED_CONSTANTS}

TRANSFORMATIONS = standard_transformations + (
    implicit_multiplication,
    convert_xor,
)

PARSER_GLOBALS = {
    "Add": sp.Add,
    "Mul": sp.Mul,
    "Pow": sp.Pow,
    "Mod": sp.Mod,
    "Float": sp.Float,
    "Integer": sp.Integer,
    "Symbol": sp.Symbol,
    "Function": sp.Function,
}

TOKEN_RE = re.compile(
    r"(?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
    r"|(?P<name>[A-Za-z_][A-Za-z0-9_]*)"
    r"|(?P<op>\*\*|[-+*/^%(),])"
    r"|(?P<space>\s+)"
)


def tokenize_formula(formula: str) -> list[tuple[str, str]]:
    """Split a formula into (kind, text) tokens; raises FormulaError on any other character."""
    tokens = []
    pos = 0
    while pos < len(formula):
        match = TOKEN_RE.match(formula, pos)
        if match is None:
            raise FormulaError(f"Unexpected character '{formula[pos]}' in formula")
        tokens.append((match.lastgroup, match.group()))
        pos = match.end()
    return tokens


def validate_formula(formula: Any, variable_names=()) -> list[str]:
    """
    Check that a formula only uses known names and well-formed tokens.

    Args:
        formula: The formula text
        variable_names: Names of the calculator's variables

    Returns:
        Names referenced by the formula, in order of first appearance

    Raises:
        FormulaError: With a message suitable for the API response
    """
    if not isinstance(formula, str) or not formula.strip():
        raise FormulaError("Formula is required")
    if len(formula) > MAX_FORMULA_LENGTH:
        raise FormulaError(f"Formula must be {MAX_FORMULA_LENGTH} characters or less")

    variable_names = set(variable_names)
    clashes = sorted(variable_names & set(ALLOWED_FUNCTIONS))
    if clashes:
        raise FormulaError(f"Variable name '{clashes[0]}' clashes with a built-in function")

    referenced = []
    depth = 0
    previous_kind = previous_text = None
    for kind, text in tokenize_formula(formula):
        if text == "/" and previous_text == "/":
            raise FormulaError("Unexpected '//' in formula")
        if kind == "name":
            if text not in variable_names and text not in ALLOWED_NAMES:
                raise FormulaError(f"Unknown name '{text}' in formula")
            if previous_kind == "number":
                raise FormulaError(f"Use an explicit '*' before '{text}'")
            if text not in referenced:
                referenced.append(text)
        elif text == "(":
            depth += 1
        elif text == ")":
            depth -= 1
            if depth < 0:
                raise FormulaError("Unbalanced parentheses in formula")
        previous_kind, previous_text = kind, text
    if depth != 0:
        raise FormulaError("Unbalanced parentheses in formula")
    return referenced


def resolve_inputs(variables, inputs=None) -> dict[str, float]:
    """
    Numeric value for every variable: the supplied input, else the descriptor's
    default, else 0.
    """
    inputs = inputs or {}
    if not isinstance(inputs, dict):
        raise FormulaError("Inputs must be an object")

    values = {}
    for variable in variables:
        name = variable["name"]
        raw = inputs.get(name, variable.get("defaultValue", 0))
        if raw is None or raw == "":
            values[name] = 0.0
            continue
        try:
            values[name] = to_number(raw, variable.get("label") or name)
        except VariableError as e:
            raise FormulaError(str(e)) from None
    return values


def substitute_variables(formula: str, values: dict[str, float]) -> str:
    """
    Replace whole-word occurrences of each variable with its value.
    A single pass over the formula, so substituted text is never rescanned.
    Negative values are parenthesised: x^2 with x=-3 becomes (-3)^2.
    """
    if not values:
        return formula
    names = sorted(values, key=len, reverse=True)
    pattern = re.compile(r"\b(" + "|".join(re.escape(name) for name in names) + r")\b")

    def _replace(match):
        text = format_number(values[match.group(1)])
        return f"({text})" if text.startswith("-") else text

    return pattern.sub(_replace, formula)


def _as_float_literals(expression: str) -> str:
    """Rewrite integer literals as floats so evaluation stays in fixed precision."""
    parts = []
    for kind, text in tokenize_formula(expression):
        if kind == "number" and text.isdigit():
            text = text + ".0"
        parts.append(text)
    return "".join(parts)


class _HoldOperators(EvaluateFalseTransformer):
    """Turn every operator, ``%`` and unary minus included, into an unevaluated SymPy node."""

    operators = {**EvaluateFalseTransformer.operators, ast.Mod: "Mod"}

    def visit_UnaryOp(self, node):
        operand = self.visit(node.operand)
        if not isinstance(node.op, ast.USub):
            return operand
        return ast.Call(
            func=ast.Name(id="Mul", ctx=ast.Load()),
            args=[ast.UnaryOp(op=ast.USub(), operand=ast.Constant(1)), operand],
            keywords=[ast.keyword(arg="evaluate", value=ast.Constant(value=False))],
        )


def parse_held(expression: str) -> sp.Expr:
    """Parse a numeric expression into a SymPy tree without evaluating any operator."""
    local_dict = dict(ALLOWED_NAMES)
    global_dict = dict(PARSER_GLOBALS)
    code = stringify_expr(_as_float_literals(expression), local_dict, global_dict, TRANSFORMATIONS)
    tree = ast.fix_missing_locations(_HoldOperators().visit(ast.parse(code.strip(), mode="eval")))
    return eval_expr(compile(tree, "<formula>", "eval"), local_dict, global_dict)


EVALUATION_ERRORS = (
    SyntaxError, TokenError, TypeError, ValueError, AttributeError,
    ZeroDivisionError, OverflowError, sp.SympifyError,
)


def evaluate_expression(expression: str) -> float:
    """Evaluate a numeric expression (no free variables) to a finite real number."""
    validate_formula(expression)
    try:
        expr = parse_held(expression)
    except EVALUATION_ERRORS as e:
        raise FormulaError(f"Could not evaluate formula: {e}") from e
    if expr.free_symbols:
        raise FormulaError("Formula still contains unknown names")

    # Plain float arithmetic: 9.0 ** 387420489.0 raises OverflowError at once
    try:
        value = sp.lambdify((), expr, modules="math")()
    except EVALUATION_ERRORS as e:
        raise FormulaError(f"Could not evaluate formula: {e}") from e

    if isinstance(value, complex):
        raise FormulaError("Result is not a real number")
    result = float(value)
    if math.isnan(result):
        raise FormulaError("Result is undefined")
    if math.isinf(result):
        raise FormulaError("Result is too large")
    return result


def evaluate_formula(formula: str, variables, inputs=None) -> float:
    """Substitute inputs into a calculator formula and evaluate it."""
    names = [variable["name"] for variable in variables]
    validate_formula(formula, names)
    values = resolve_inputs(variables, inputs)
    return evaluate_expression(substitute_variables(formula, values))
