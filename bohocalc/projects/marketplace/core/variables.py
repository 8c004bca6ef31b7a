"""
Variable descriptors for parametric calculators.

Wire form (also the stored JSON form):
    {"name": "principal", "label": "Principal Amount", "type": "number",
     "defaultValue": 1000, "unit": "$"}
"""

import math
import re

from bohocalc.projects.marketplace.core.constants import (
    CATEGORIES,
    DEFAULT_CATEGORY,
    MAX_LABEL_LENGTH,
    MAX_UNIT_LENGTH,
    MAX_VARIABLES,
)

VAR_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
VARIABLE_TYPES = ("number",)


class VariableError(ValueError):
    """Raised when a variable descriptor is malformed."""


def to_number(value, field="value"):
    """Coerce a JSON scalar to a finite float. Booleans and non-numeric strings are rejected."""
    if isinstance(value, bool) or value is None:
        raise VariableError(f"Invalid number for {field}")
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            number = float(value.strip())
        except ValueError:
            raise VariableError(f"Invalid number for {field}") from None
    else:
        raise VariableError(f"Invalid number for {field}")
    if not math.isfinite(number):
        raise VariableError(f"Invalid number for {field}")
    return number


def _clean_number(number):
    """Store integral floats as ints so 1000.0 round-trips as 1000."""
    return int(number) if number.is_integer() else number


def normalize_variable(raw, index=0):
    """Validate one descriptor and return it in canonical form."""
    if not isinstance(raw, dict):
        raise VariableError(f"Variable {index + 1} must be an object")

    name = raw.get("name")
    if not isinstance(name, str) or not VAR_NAME_RE.match(name.strip()):
        raise VariableError(
            f"Variable {index + 1} needs a name made of letters, digits and underscores"
        )
    name = name.strip()

    label = raw.get("label")
    label = label.strip() if isinstance(label, str) and label.strip() else name
    if len(label) > MAX_LABEL_LENGTH:
        raise VariableError(f"Label for {name} must be {MAX_LABEL_LENGTH} characters or less")

    var_type = raw.get("type") or "number"
    if var_type not in VARIABLE_TYPES:
        raise VariableError(f"Unsupported type for {name}: {var_type}")

    default = raw.get("defaultValue", 0)
    default = 0.0 if default in (None, "") else to_number(default, f"{name} default")

    unit = raw.get("unit") or ""
    if not isinstance(unit, str):
        raise VariableError(f"Unit for {name} must be text")
    unit = unit.strip()
    if len(unit) > MAX_UNIT_LENGTH:
        raise VariableError(f"Unit for {name} must be {MAX_UNIT_LENGTH} characters or less")

    return {
        "name": name,
        "label": label,
        "type": var_type,
        "defaultValue": _clean_number(default),
        "unit": unit,
    }


def normalize_variables(raw_list):
    """Validate an ordered list of descriptors; names must be unique."""
    if raw_list is None:
        return []
    if not isinstance(raw_list, list):
        raise VariableError("Variables must be a list")
    if len(raw_list) > MAX_VARIABLES:
        raise VariableError(f"At most {MAX_VARIABLES} variables are allowed")

    variables = []
    seen = set()
    for index, raw in enumerate(raw_list):
        variable = normalize_variable(raw, index)
        if variable["name"] in seen:
            raise VariableError(f"Duplicate variable name: {variable['name']}")
        seen.add(variable["name"])
        variables.append(variable)
    return variables


def normalize_category(value):
    """Match a category case-insensitively; anything unknown becomes 'Other'."""
    if isinstance(value, str):
        for category in CATEGORIES:
            if category.lower() == value.strip().lower():
                return category
    return DEFAULT_CATEGORY
