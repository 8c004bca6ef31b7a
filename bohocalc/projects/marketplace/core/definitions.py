"""
Validation of calculator definitions submitted for create/update.
"""

from bohocalc.projects.marketplace.core.constants import (
    MAX_DESCRIPTION_LENGTH,
    MAX_NAME_LENGTH,
)
from bohocalc.projects.marketplace.core.formula import FormulaError, validate_formula
from bohocalc.projects.marketplace.core.variables import (
    VariableError,
    normalize_category,
    normalize_variables,
)
from bohocalc.utils.formatting import format_number


class DefinitionError(ValueError):
    """Raised when a submitted calculator definition is invalid."""


def _text(data, field, max_length, required=False):
    value = data.get(field)
    if value is None:
        value = ""
    if not isinstance(value, str):
        raise DefinitionError(f"{field.capitalize()} must be text")
    value = value.strip()
    if required and not value:
        raise DefinitionError("Please fill in all required fields")
    if len(value) > max_length:
        raise DefinitionError(f"{field.capitalize()} must be {max_length} characters or less")
    return value


def _flag(data, field, default):
    value = data.get(field, default)
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def clean_definition(data, existing=None):
    """
    Validate a create (existing=None) or update payload.

    For updates, fields missing from the payload keep the existing calculator's
    values, and the formula is re-validated against the resulting variables.

    Returns:
        dict: Column values ready to assign to a Calculator
    """
    if not isinstance(data, dict):
        raise DefinitionError("Invalid request body")

    def _has(field):
        return existing is None or field in data

    fields = {}
    if _has("name"):
        fields["name"] = _text(data, "name", MAX_NAME_LENGTH, required=True)
    if _has("description"):
        fields["description"] = _text(data, "description", MAX_DESCRIPTION_LENGTH)
    if _has("category"):
        fields["category"] = normalize_category(data.get("category"))
    if _has("is_public"):
        fields["is_public"] = _flag(data, "is_public", True)
    if _has("is_anonymous"):
        fields["is_anonymous"] = _flag(data, "is_anonymous", False)

    try:
        if _has("variables"):
            fields["variables"] = normalize_variables(data.get("variables"))
        variables = fields.get("variables", existing.variables if existing else [])

        if _has("formula"):
            formula = data.get("formula")
            if not isinstance(formula, str) or not formula.strip():
                raise DefinitionError("Please fill in all required fields")
            fields["formula"] = formula.strip()
        formula = fields.get("formula", existing.formula if existing else "")

        validate_formula(formula, [v["name"] for v in variables])
    except (VariableError, FormulaError) as e:
        raise DefinitionError(str(e)) from e

    return fields


def history_expression(calculator, values):
    """'<name>: <label>=<value>, ...' for saving a run to the history."""
    parts = [
        f"{variable.get('label') or variable['name']}={format_number(values[variable['name']])}"
        for variable in calculator.variables or []
    ]
    return f"{calculator.name}: {', '.join(parts)}"
