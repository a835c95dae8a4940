"""Client-side derived filters over a fully materialized row set.

Used when a dataset's rows are already in memory: building filter options
(distinct values), applying the active filters and sorting. ``sort_rows`` is
also the ordering the local provider applies, so both paths order rows the
same way.
"""

from __future__ import annotations

import unicodedata
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
)

from jelly_datalab.core.config import ALL_VALUE, CLIENT_SORT_DIR_PARAM, CLIENT_SORT_KEY_PARAM
from jelly_datalab.core.enums import ColumnType, FilterOp, SortDirection
from .models import DatasetQueryFilter, SortSpec
from .operators import coerce_number, is_number, matches_all, to_text

T = TypeVar("T")


def _identity(row: Any) -> Mapping[str, Any]:
    return row


def collation_key(text: str) -> str:
    """Case-insensitive, accent-aware sort key.

    Decomposes accented characters so that e.g. "É" sorts next to "e" rather
    than after "z".
    """
    decomposed = unicodedata.normalize("NFKD", text)
    base = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    return base.casefold()


def distinct_values(
    rows: Iterable[Mapping[str, Any]], field: str, *, numeric: bool = False
) -> List[Any]:
    """Distinct non-empty values of ``field``.

    Numeric fields yield numbers sorted ascending (values that do not coerce
    are skipped). Other fields yield trimmed strings sorted case-insensitively.
    """
    if numeric:
        numbers = set()
        for row in rows:
            number = coerce_number(row.get(field))
            if number is not None:
                numbers.add(number)
        return sorted(numbers)

    texts = set()
    for row in rows:
        text = to_text(row.get(field))
        if text is None:
            continue
        text = text.strip()
        if text:
            texts.add(text)
    return sorted(texts, key=lambda s: (collation_key(s), s))


def filter_options(rows: Sequence[Mapping[str, Any]], columns: Iterable[Any]) -> Dict[str, List[Any]]:
    """Distinct values for every filterable column, keyed by field."""
    options: Dict[str, List[Any]] = {}
    for column in columns:
        if not column.filterable:
            continue
        options[column.field] = distinct_values(
            rows, column.field, numeric=column.type == ColumnType.NUMBER
        )
    return options


def apply_filters(
    rows: Iterable[T],
    filters: Sequence[DatasetQueryFilter],
    *,
    accessor: Callable[[T], Mapping[str, Any]] = _identity,
) -> List[T]:
    """Rows for which every filter holds, in their original order."""
    if not filters:
        return list(rows)
    return [row for row in rows if matches_all(accessor(row), filters)]


def _is_missing(value: Any, numeric: bool) -> bool:
    if value is None:
        return True
    return numeric and coerce_number(value) is None


def sort_rows(
    rows: Iterable[T],
    field: str,
    direction: SortDirection = SortDirection.ASC,
    *,
    numeric: Optional[bool] = None,
    accessor: Callable[[T], Mapping[str, Any]] = _identity,
) -> List[T]:
    """Stable sort by one field.

    Null or absent values go last when ascending and first when descending.
    Numeric fields compare as numbers; everything else compares by
    ``collation_key`` of its string form. When ``numeric`` is None the field
    counts as numeric if every present value is a number.

    Examples:
        >>> rows = [{"v": None}, {"v": 2}, {"v": 1}]
        >>> [r["v"] for r in sort_rows(rows, "v")]
        [1, 2, None]
        >>> [r["v"] for r in sort_rows(rows, "v", SortDirection.DESC)]
        [None, 2, 1]
    """
    items = list(rows)
    if numeric is None:
        present = [accessor(r).get(field) for r in items]
        present = [v for v in present if v is not None]
        numeric = bool(present) and all(is_number(v) for v in present)

    with_value: List[T] = []
    missing: List[T] = []
    for row in items:
        if _is_missing(accessor(row).get(field), numeric):
            missing.append(row)
        else:
            with_value.append(row)

    if numeric:
        def key(row: T) -> Any:
            return coerce_number(accessor(row).get(field))
    else:
        def key(row: T) -> Any:
            return collation_key(to_text(accessor(row).get(field)) or "")

    descending = SortDirection(direction) == SortDirection.DESC
    ordered = sorted(with_value, key=key, reverse=descending)
    return missing + ordered if descending else ordered + missing


def parse_client_params(
    params: Mapping[str, Any], filterable_fields: Iterable[str]
) -> Tuple[List[DatasetQueryFilter], Optional[SortSpec]]:
    """Read eq filters and sorting for the client-side path.

    Only parameters named after a filterable field become filters; empty
    values and the ``__all__`` sentinel mean "no filter". Sorting is read from
    ``sortKey``/``sortDir``.
    """
    filters: List[DatasetQueryFilter] = []
    for field in filterable_fields:
        raw = params.get(field)
        if raw is None:
            continue
        value = str(raw).strip()
        if value and value != ALL_VALUE:
            filters.append(DatasetQueryFilter(field, FilterOp.EQ, value))

    sort: Optional[SortSpec] = None
    sort_key = str(params.get(CLIENT_SORT_KEY_PARAM) or "").strip()
    if sort_key and sort_key != ALL_VALUE:
        direction = (
            SortDirection.DESC
            if params.get(CLIENT_SORT_DIR_PARAM) == "desc"
            else SortDirection.ASC
        )
        sort = SortSpec(sort_key, direction)
    return filters, sort
