# fiscal/services/sequence_codec.py
"""
Fixed-width fiscal number codec.

A fiscal number such as ``B01000000001`` is a 3 character prefix followed by
a zero padded numeric suffix. Values of the same prefix and width compare
lexicographically in the same order as their numeric suffixes.
"""
from typing import NamedTuple

from fiscal.exceptions import FormatError, SequenceOverflow

PREFIX_LENGTH = 3


class ParsedNumber(NamedTuple):
    prefix: str
    numeric: int
    width: int


def parse(value) -> ParsedNumber:
    if not isinstance(value, str):
        raise FormatError(f"Fiscal number must be a string, got {type(value).__name__}.")

    prefix, suffix = value[:PREFIX_LENGTH], value[PREFIX_LENGTH:]
    if len(prefix) < PREFIX_LENGTH or not suffix:
        raise FormatError(f"Fiscal number {value!r} is too short.")

    # isdigit() alone accepts non-ASCII digits
    if not (suffix.isascii() and suffix.isdigit()):
        raise FormatError(f"Fiscal number {value!r} has a non-numeric suffix.")

    return ParsedNumber(prefix=prefix, numeric=int(suffix), width=len(suffix))


def render(prefix: str, numeric: int, width: int) -> str:
    digits = str(numeric)
    if numeric < 0 or len(digits) > width:
        raise SequenceOverflow(f"{numeric} does not fit in {width} digits after {prefix!r}.")
    return prefix + digits.zfill(width)


def increment(value: str) -> str:
    """Return the number following ``value``; raises SequenceOverflow at the width limit."""
    parsed = parse(value)
    return render(parsed.prefix, parsed.numeric + 1, parsed.width)


def same_format(a: str, b: str) -> bool:
    pa, pb = parse(a), parse(b)
    return pa.prefix == pb.prefix and pa.width == pb.width


def ensure_same_format(a: str, b: str) -> None:
    if not same_format(a, b):
        raise FormatError(f"Fiscal numbers {a!r} and {b!r} do not share prefix and width.")


def compare(a: str, b: str) -> int:
    ensure_same_format(a, b)
    return (a > b) - (a < b)


def distance(a: str, b: str) -> int:
    """Numeric ``b - a`` for two values of the same format."""
    ensure_same_format(a, b)
    return parse(b).numeric - parse(a).numeric
