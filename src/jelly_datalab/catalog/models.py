"""Declarative dataset configuration.

A DatasetConfig describes one dataset: how to display its columns, which
filters it offers and, for API-backed datasets, how to talk to the remote
endpoint. Configurations are immutable once loaded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from jelly_datalab.core.config import (
    DEFAULT_HTTP_METHOD,
    DEFAULT_ID_FIELD,
    DEFAULT_PAGE_PARAM,
    DEFAULT_PAGE_SIZE_PARAM,
    DEFAULT_SORT_DIR_PARAM,
    DEFAULT_SORT_FIELD_PARAM,
)
from jelly_datalab.core.enums import ColumnType, FilterType, SourceType
from jelly_datalab.core.errors import ConfigurationError
from jelly_datalab.core.query.models import DatasetQuery

HTTP_METHODS = ("GET", "POST")


@dataclass(frozen=True)
class ColumnFilter:
    type: FilterType = FilterType.NONE
    placeholder: Optional[str] = None


@dataclass(frozen=True)
class ColumnConfig:
    """One column of a dataset.

    Attributes:
        field: JSON key in the row data (e.g. "job_title").
        label: Display label (e.g. "Job Title").
        type: Value type, used for formatting and numeric handling.
        filter: Filter widget, None when the column is not filterable.
        sortable: Whether the column may be sorted on.
        visible: Whether the column is shown by default.
        width: Optional display hint (pixels or CSS length).
    """

    field: str
    label: str
    type: ColumnType = ColumnType.STRING
    filter: Optional[ColumnFilter] = None
    sortable: bool = False
    visible: bool = True
    width: Optional[Union[int, str]] = None

    @property
    def filterable(self) -> bool:
        return self.filter is not None and self.filter.type != FilterType.NONE


@dataclass(frozen=True)
class ApiConfig:
    """How to query a remote dataset and read its responses.

    ``filter_param_map`` translates abstract filter keys (a field name, or
    ``<field>_min`` / ``<field>_max`` for range bounds) to the query-string
    names the remote API expects. ``result_path`` and ``total_path`` are
    dot-separated paths into the JSON body; without ``result_path`` the body
    itself is the row array, without ``total_path`` the total is the number of
    returned rows.
    """

    base_url: str
    method: str = DEFAULT_HTTP_METHOD
    filter_param_map: Dict[str, str] = field(default_factory=dict)
    page_param: str = DEFAULT_PAGE_PARAM
    page_size_param: str = DEFAULT_PAGE_SIZE_PARAM
    sort_field_param: str = DEFAULT_SORT_FIELD_PARAM
    sort_dir_param: str = DEFAULT_SORT_DIR_PARAM
    id_field: str = DEFAULT_ID_FIELD
    result_path: Optional[str] = None
    total_path: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ConfigurationError("apiConfig.baseUrl is required")
        method = str(self.method).upper()
        if method not in HTTP_METHODS:
            raise ConfigurationError(
                f"Unsupported HTTP method {self.method!r}; expected one of {HTTP_METHODS}"
            )
        object.__setattr__(self, "method", method)


@dataclass(frozen=True)
class DatasetConfig:
    """Configuration of one dataset, addressed by slug.

    Raises:
        ConfigurationError: If ``api_config`` is present without
            ``source_type == api`` (or missing with it), or column fields repeat.
    """

    slug: str
    title: str
    source_type: SourceType = SourceType.LOCAL
    columns: List[ColumnConfig] = field(default_factory=list)
    description: Optional[str] = None
    source_url: Optional[str] = None
    api_config: Optional[ApiConfig] = None
    analysis: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.slug:
            raise ConfigurationError("Dataset slug is required")
        if self.source_type == SourceType.API and self.api_config is None:
            raise ConfigurationError(f"API dataset '{self.slug}' is missing apiConfig")
        if self.source_type != SourceType.API and self.api_config is not None:
            raise ConfigurationError(
                f"Dataset '{self.slug}' has apiConfig but sourceType '{self.source_type.value}'"
            )
        seen = set()
        for column in self.columns:
            if column.field in seen:
                raise ConfigurationError(
                    f"Duplicate column field '{column.field}' in dataset '{self.slug}'"
                )
            seen.add(column.field)

    @property
    def fields(self) -> List[str]:
        return [c.field for c in self.columns]

    def column(self, field_name: str) -> Optional[ColumnConfig]:
        for c in self.columns:
            if c.field == field_name:
                return c
        return None

    @property
    def filterable_columns(self) -> List[ColumnConfig]:
        return [c for c in self.columns if c.filterable]

    def is_numeric(self, field_name: str) -> Optional[bool]:
        """Whether a column is declared numeric; None for undeclared fields."""
        c = self.column(field_name)
        return None if c is None else c.type == ColumnType.NUMBER

    def check_query(self, query: DatasetQuery) -> None:
        """Reject filters or sorting on fields this dataset does not declare.

        Datasets declaring no columns accept any field.

        Raises:
            ConfigurationError: Naming the first undeclared field found.
        """
        if not self.columns:
            return
        declared = set(self.fields)
        for f in query.filters:
            if f.field not in declared:
                raise ConfigurationError(
                    f"Dataset '{self.slug}' has no column '{f.field}' to filter on"
                )
        if query.sort is not None and query.sort.field not in declared:
            raise ConfigurationError(
                f"Dataset '{self.slug}' has no column '{query.sort.field}' to sort on"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize back to the camelCase shape used in datasets.yaml."""
        out: Dict[str, Any] = {
            "slug": self.slug,
            "title": self.title,
            "description": self.description,
            "sourceType": self.source_type.value,
            "sourceUrl": self.source_url,
            "analysis": self.analysis,
            "columns": [_column_to_dict(c) for c in self.columns],
        }
        if self.api_config is not None:
            api = self.api_config
            out["apiConfig"] = {
                "baseUrl": api.base_url,
                "method": api.method,
                "filterParamMap": dict(api.filter_param_map),
                "pageParam": api.page_param,
                "pageSizeParam": api.page_size_param,
                "sortFieldParam": api.sort_field_param,
                "sortDirParam": api.sort_dir_param,
                "idField": api.id_field,
                "resultPath": api.result_path,
                "totalPath": api.total_path,
            }
        return out


def _column_to_dict(c: ColumnConfig) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "field": c.field,
        "label": c.label,
        "type": c.type.value,
        "sortable": c.sortable,
        "visible": c.visible,
    }
    if c.filter is not None:
        out["filter"] = {"type": c.filter.type.value}
        if c.filter.placeholder:
            out["filter"]["placeholder"] = c.filter.placeholder
    if c.width is not None:
        out["width"] = c.width
    return out


# ============================================================================
# PARSING FROM PLAIN MAPPINGS (YAML / JSON)
# ============================================================================


def _enum(enum_cls: Any, raw: Any, what: str) -> Any:
    try:
        return enum_cls(str(raw))
    except ValueError as e:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ConfigurationError(f"Invalid {what} {raw!r}; expected one of: {allowed}") from e


def _require(item: Mapping[str, Any], key: str, where: str) -> Any:
    value = item.get(key)
    if value is None or value == "":
        raise ConfigurationError(f"Missing required key '{key}' in {where}")
    return value


def column_from_dict(item: Mapping[str, Any], *, slug: str = "?") -> ColumnConfig:
    where = f"column of dataset '{slug}'"
    field_name = str(_require(item, "field", where))
    raw_filter = item.get("filter")
    column_filter: Optional[ColumnFilter] = None
    if isinstance(raw_filter, Mapping):
        column_filter = ColumnFilter(
            type=_enum(FilterType, raw_filter.get("type", "none"), "filter type"),
            placeholder=raw_filter.get("placeholder"),
        )
    elif isinstance(raw_filter, str):
        column_filter = ColumnFilter(type=_enum(FilterType, raw_filter, "filter type"))
    return ColumnConfig(
        field=field_name,
        label=str(item.get("label") or field_name),
        type=_enum(ColumnType, item.get("type", "string"), "column type"),
        filter=column_filter,
        sortable=bool(item.get("sortable", False)),
        visible=bool(item.get("visible", True)),
        width=item.get("width"),
    )


def api_config_from_dict(item: Mapping[str, Any], *, slug: str = "?") -> ApiConfig:
    raw_map = item.get("filterParamMap") or {}
    if not isinstance(raw_map, Mapping):
        raise ConfigurationError(f"apiConfig.filterParamMap of '{slug}' must be a mapping")
    return ApiConfig(
        base_url=str(_require(item, "baseUrl", f"apiConfig of dataset '{slug}'")),
        method=str(item.get("method") or DEFAULT_HTTP_METHOD),
        filter_param_map={str(k): str(v) for k, v in raw_map.items()},
        page_param=str(item.get("pageParam") or DEFAULT_PAGE_PARAM),
        page_size_param=str(item.get("pageSizeParam") or DEFAULT_PAGE_SIZE_PARAM),
        sort_field_param=str(item.get("sortFieldParam") or DEFAULT_SORT_FIELD_PARAM),
        sort_dir_param=str(item.get("sortDirParam") or DEFAULT_SORT_DIR_PARAM),
        id_field=str(item.get("idField") or DEFAULT_ID_FIELD),
        result_path=item.get("resultPath") or None,
        total_path=item.get("totalPath") or None,
    )


def dataset_from_dict(item: Mapping[str, Any]) -> DatasetConfig:
    """Build a DatasetConfig from its camelCase mapping form.

    Raises:
        ConfigurationError: On missing keys, unknown enum values or violated
            invariants.
    """
    slug = str(_require(item, "slug", "dataset entry"))
    raw_columns = item.get("columns") or []
    if not isinstance(raw_columns, list):
        raise ConfigurationError(f"columns of dataset '{slug}' must be a list")
    raw_api = item.get("apiConfig")
    api_config = None
    if raw_api is not None:
        if not isinstance(raw_api, Mapping):
            raise ConfigurationError(f"apiConfig of dataset '{slug}' must be a mapping")
        api_config = api_config_from_dict(raw_api, slug=slug)
    return DatasetConfig(
        slug=slug,
        title=str(item.get("title") or slug),
        description=item.get("description"),
        source_url=item.get("sourceUrl"),
        source_type=_enum(SourceType, item.get("sourceType", "local"), "sourceType"),
        columns=[column_from_dict(c, slug=slug) for c in raw_columns],
        api_config=api_config,
        analysis=item.get("analysis"),
    )
