"""
Calculator tools.

Pure arithmetic over two numeric operands. Operand extraction from free
text happens upstream in the calculation handler.
"""

from typing import Union

Number = Union[int, float]

# Decimal places kept when rendering float results
FLOAT_PLACES = 10


def add(a: Number, b: Number) -> Number:
    """Return a + b."""
    return a + b


def multiply(a: Number, b: Number) -> Number:
    """Return a * b."""
    return a * b


def format_number(value: Number) -> str:
    """Render integral values without a trailing '.0', floats rounded to FLOAT_PLACES."""
    if isinstance(value, float):
        value = round(value, FLOAT_PLACES)
        if value.is_integer():
            return str(int(value))
    return str(value)
