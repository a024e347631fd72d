"""Strict integer parsing for flow log and reference table fields."""

import re

# Optional sign and ASCII digits only. int() alone would also accept
# "4_43", surrounding whitespace and non-ASCII digits.
_INTEGER_RE = re.compile(r"[+-]?[0-9]+")


def parse_int(value: str) -> int:
    """Parse a plain decimal integer.

    Args:
        value: Field text, already stripped of surrounding whitespace.

    Returns:
        The integer value.

    Raises:
        ValueError: If value is not an optional sign followed by digits.
    """
    if not _INTEGER_RE.fullmatch(value):
        raise ValueError(f"invalid integer: {value!r}")
    return int(value)
