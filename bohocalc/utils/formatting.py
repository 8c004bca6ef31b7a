"""Number formatting shared by the calculator and the formula evaluator."""

import math
from decimal import Decimal

# Browsers switch to exponent notation outside [1e-6, 1e21)
FIXED_NOTATION_MIN = 1e-6
FIXED_NOTATION_MAX = 1e21


def format_number(value):
    """
    Render a number the way a browser prints it: integral values without a
    fractional part, shortest round-trip digits otherwise, and
    'Infinity' / '-Infinity' / 'NaN' for non-finite values.

    Examples: 5.0 -> '5', 2.5 -> '2.5', 1e-05 -> '0.00001', 1e-07 -> '1e-7',
    1/0 -> 'Infinity'
    """
    value = float(value)
    if math.isnan(value):
        return 'NaN'
    if math.isinf(value):
        return 'Infinity' if value > 0 else '-Infinity'
    if value.is_integer() and abs(value) < FIXED_NOTATION_MAX:
        return str(int(value))

    text = repr(value)
    if 'e' not in text:
        return text
    if FIXED_NOTATION_MIN <= abs(value) < FIXED_NOTATION_MAX:
        # repr already holds the shortest round-trip digits; only the notation changes
        return format(Decimal(text), 'f')
    mantissa, exponent = text.split('e')
    exponent = int(exponent)
    sign = '+' if exponent > 0 else '-'
    return f"{mantissa}e{sign}{abs(exponent)}"


def parse_number(text):
    """Parse a displayed number; anything unparsable becomes NaN."""
    try:
        return float(text)
    except (TypeError, ValueError):
        return float('nan')
