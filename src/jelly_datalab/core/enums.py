"""Core enumerations used across the package."""

from __future__ import annotations

from enum import Enum


class SourceType(str, Enum):
    """Where a dataset's rows live.

    Values are strings to ease serialization and CLI interchange.
    """

    LOCAL = "local"
    API = "api"


class ColumnType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"


class FilterType(str, Enum):
    """Filter widget a column offers."""

    NONE = "none"
    SELECT = "select"
    SEARCH = "search"
    RANGE = "range"


class FilterOp(str, Enum):
    EQ = "eq"
    CONTAINS = "contains"
    GTE = "gte"
    LTE = "lte"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


__all__ = ["SourceType", "ColumnType", "FilterType", "FilterOp", "SortDirection"]
