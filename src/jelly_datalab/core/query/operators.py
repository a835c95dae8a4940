"""Filter operator semantics.

Every in-process evaluation of a filter (local provider, client-side derived
filters) goes through ``matches`` so that all paths agree on what a filter
means:

- eq: equality; exact numeric equality when both sides are numbers (a numeric
  string on one side is coerced), otherwise case-sensitive comparison of the
  canonical string forms
- contains: case-insensitive substring match on the canonical string form
- gte / lte: numeric comparison; values that do not coerce to a number never
  match

Row values are checked here, where they are consumed, not when rows are stored.
"""

from __future__ import annotations

import math
import re
from typing import Any, Iterable, Mapping, Optional, Union

from jelly_datalab.core.enums import FilterOp
from jelly_datalab.core.errors import InvalidQueryError
from .models import DatasetQueryFilter

Number = Union[int, float]

# Plain ASCII decimal notation; "1_000", "inf" and non-ASCII digits do not match.
_NUMBER_RE = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?", re.ASCII)


def is_number(value: Any) -> bool:
    """True for int/float values (booleans are not numbers), excluding NaN."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not (isinstance(value, float) and math.isnan(value))


def coerce_number(value: Any) -> Optional[Number]:
    """Return ``value`` as a number, or None when it does not coerce.

    Examples:
        >>> coerce_number("10")
        10
        >>> coerce_number(" 2.5 ")
        2.5
        >>> coerce_number(True) is None
        True
    """
    if is_number(value):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not _NUMBER_RE.fullmatch(text):
            return None
        try:
            return int(text)
        except ValueError:
            return float(text)
    return None


def to_text(value: Any) -> Optional[str]:
    """Canonical string form of a row or filter value.

    Integral floats render without a fractional part so that ``5.0`` and ``5``
    share one form; booleans render as JSON does.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _require_number(f: DatasetQueryFilter) -> Number:
    bound = coerce_number(f.value)
    if bound is None:
        raise InvalidQueryError(
            f"Filter '{f.field}' ({f.op.value}) needs a numeric value, got {f.value!r}"
        )
    return bound


def _equals(actual: Any, expected: Any) -> bool:
    if actual is None or expected is None:
        return actual is None and expected is None
    if is_number(actual) or is_number(expected):
        a = coerce_number(actual)
        e = coerce_number(expected)
        if a is not None and e is not None:
            return a == e
    return to_text(actual) == to_text(expected)


def matches(data: Mapping[str, Any], f: DatasetQueryFilter) -> bool:
    """Evaluate one filter against a row's data.

    Raises:
        InvalidQueryError: If a range filter carries a non-numeric value.
    """
    actual = data.get(f.field)
    if f.op == FilterOp.EQ:
        return _equals(actual, f.value)
    if f.op == FilterOp.CONTAINS:
        text = to_text(actual)
        if text is None:
            return False
        needle = to_text(f.value) or ""
        return needle.lower() in text.lower()
    bound = _require_number(f)
    number = coerce_number(actual)
    if number is None:
        return False
    if f.op == FilterOp.GTE:
        return number >= bound
    return number <= bound


def matches_all(data: Mapping[str, Any], filters: Iterable[DatasetQueryFilter]) -> bool:
    """True when every filter holds for the row."""
    return all(matches(data, f) for f in filters)
