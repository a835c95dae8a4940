"""Query model public API.

Exposes the query/result types, the operator semantics every provider
shares, raw parameter parsing, the dot-path resolver used for API responses
and the client-side derived-filter helpers.
"""

from .models import (
    DatasetQuery,
    DatasetQueryFilter,
    DatasetResult,
    DatasetResultRow,
    RowId,
    SortSpec,
)
from .operators import coerce_number, is_number, matches, matches_all, to_text
from .parse import parse_filter_param, parse_query_params
from .paths import resolve_path
from .derived import (
    apply_filters,
    collation_key,
    distinct_values,
    filter_options,
    parse_client_params,
    sort_rows,
)

__all__ = [
    "DatasetQuery",
    "DatasetQueryFilter",
    "DatasetResult",
    "DatasetResultRow",
    "RowId",
    "SortSpec",
    "coerce_number",
    "is_number",
    "matches",
    "matches_all",
    "to_text",
    "parse_filter_param",
    "parse_query_params",
    "resolve_path",
    "apply_filters",
    "collation_key",
    "distinct_values",
    "filter_options",
    "parse_client_params",
    "sort_rows",
]
