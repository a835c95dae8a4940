"""Raw request parameters → DatasetQuery.

One naming convention, identical for every dataset and front-end:

    <field>_min=V       → gte filter on <field> (V coerced to a number)
    <field>_max=V       → lte filter on <field> (V coerced to a number)
    <field>_contains=V  → contains filter on <field>
    <field>=V           → eq filter on <field>

``page``, ``pageSize``, ``sortField`` and ``sortDir`` are control parameters
and never become filters.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

from jelly_datalab.core.config import DEFAULT_PAGE, DEFAULT_PAGE_SIZE, RESERVED_PARAMS
from jelly_datalab.core.enums import FilterOp, SortDirection
from jelly_datalab.core.errors import InvalidQueryError
from .models import DatasetQuery, DatasetQueryFilter, SortSpec
from .operators import coerce_number

RawParams = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]

_SUFFIX_OPS = (
    ("_min", FilterOp.GTE),
    ("_max", FilterOp.LTE),
    ("_contains", FilterOp.CONTAINS),
)


def _pairs(params: RawParams) -> List[Tuple[str, str]]:
    items = params.items() if isinstance(params, Mapping) else params
    out: List[Tuple[str, str]] = []
    for key, value in items:
        if isinstance(value, (list, tuple)):
            out.extend((str(key), str(v)) for v in value)
        elif value is not None:
            out.append((str(key), str(value)))
    return out


def _first(pairs: List[Tuple[str, str]], name: str) -> Optional[str]:
    for key, value in pairs:
        if key == name:
            return value
    return None


def _parse_positive_int(name: str, raw: Optional[str], default: int) -> int:
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw.strip())
    except ValueError as e:
        raise InvalidQueryError(f"{name} must be an integer, got {raw!r}") from e


def parse_filter_param(name: str, value: str) -> DatasetQueryFilter:
    """Build the filter a single raw ``name=value`` pair stands for.

    Raises:
        InvalidQueryError: If a range bound does not coerce to a number.

    Examples:
        >>> parse_filter_param("price_min", "10")
        DatasetQueryFilter(field='price', op=<FilterOp.GTE: 'gte'>, value=10)
        >>> parse_filter_param("name_contains", "lap").op
        <FilterOp.CONTAINS: 'contains'>
    """
    for suffix, op in _SUFFIX_OPS:
        field = name[: -len(suffix)]
        if name.endswith(suffix) and field:
            if op in (FilterOp.GTE, FilterOp.LTE):
                number = coerce_number(value)
                if number is None:
                    raise InvalidQueryError(f"{name} must be numeric, got {value!r}")
                return DatasetQueryFilter(field, op, number)
            return DatasetQueryFilter(field, op, value)
    return DatasetQueryFilter(name, FilterOp.EQ, value)


def parse_query_params(params: RawParams) -> DatasetQuery:
    """Parse raw string parameters into a DatasetQuery.

    Each occurrence of a repeated filter parameter contributes its own filter.
    Empty values are ignored. A sort is produced only when both ``sortField``
    and ``sortDir`` are present; any direction other than ``desc`` sorts
    ascending.

    Raises:
        InvalidQueryError: On non-integer or non-positive page/pageSize, or a
            non-numeric range bound.
    """
    pairs = _pairs(params)

    filters: List[DatasetQueryFilter] = []
    for key, value in pairs:
        if key in RESERVED_PARAMS or value == "":
            continue
        filters.append(parse_filter_param(key, value))

    sort: Optional[SortSpec] = None
    sort_field = _first(pairs, "sortField")
    sort_dir = _first(pairs, "sortDir")
    if sort_field and sort_dir:
        direction = SortDirection.DESC if sort_dir == "desc" else SortDirection.ASC
        sort = SortSpec(sort_field, direction)

    return DatasetQuery(
        filters=filters,
        sort=sort,
        page=_parse_positive_int("page", _first(pairs, "page"), DEFAULT_PAGE),
        page_size=_parse_positive_int("pageSize", _first(pairs, "pageSize"), DEFAULT_PAGE_SIZE),
    )
