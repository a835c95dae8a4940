"""Query and result data structures shared by every provider.

- DatasetQueryFilter: a single field/operator/value predicate
- SortSpec: one sort field and direction
- DatasetQuery: conjoined filters, optional sort, 1-based pagination
- DatasetResultRow / DatasetResult: the uniform result shape
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from jelly_datalab.core.config import DEFAULT_PAGE, DEFAULT_PAGE_SIZE
from jelly_datalab.core.enums import FilterOp, SortDirection
from jelly_datalab.core.errors import InvalidQueryError

RowId = Union[str, int]


@dataclass(frozen=True)
class DatasetQueryFilter:
    """A single predicate on one field.

    Attributes:
        field: Key into a row's data.
        op: Operator; plain strings ("eq", "gte", ...) are accepted and converted.
        value: String or number, interpreted according to ``op``.

    Examples:
        >>> DatasetQueryFilter("price", "gte", 10)
        DatasetQueryFilter(field='price', op=<FilterOp.GTE: 'gte'>, value=10)
    """

    field: str
    op: FilterOp
    value: Any = None

    def __post_init__(self) -> None:
        if not self.field:
            raise InvalidQueryError("Filter field must be a non-empty string")
        if not isinstance(self.op, FilterOp):
            try:
                object.__setattr__(self, "op", FilterOp(str(self.op)))
            except ValueError as e:
                raise InvalidQueryError(f"Unknown filter operator: {self.op!r}") from e


@dataclass(frozen=True)
class SortSpec:
    field: str
    direction: SortDirection = SortDirection.ASC

    def __post_init__(self) -> None:
        if not self.field:
            raise InvalidQueryError("Sort field must be a non-empty string")
        if not isinstance(self.direction, SortDirection):
            try:
                object.__setattr__(self, "direction", SortDirection(str(self.direction)))
            except ValueError as e:
                raise InvalidQueryError(f"Unknown sort direction: {self.direction!r}") from e

    @property
    def descending(self) -> bool:
        return self.direction == SortDirection.DESC


def _require_positive_int(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidQueryError(f"{name} must be an integer, got {value!r}")
    if value < 1:
        raise InvalidQueryError(f"{name} must be >= 1, got {value}")


@dataclass(frozen=True)
class DatasetQuery:
    """One page request against a dataset.

    Filter order carries no meaning; all filters must hold for a row to match.

    Raises:
        InvalidQueryError: If page or page_size is not a positive integer.
    """

    filters: List[DatasetQueryFilter] = field(default_factory=list)
    sort: Optional[SortSpec] = None
    page: int = DEFAULT_PAGE
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        _require_positive_int("page", self.page)
        _require_positive_int("page_size", self.page_size)

    @property
    def offset(self) -> int:
        """Number of matching rows before the first row of this page."""
        return (self.page - 1) * self.page_size


@dataclass(frozen=True)
class DatasetResultRow:
    id: RowId
    data: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "data": self.data}


@dataclass(frozen=True)
class DatasetResult:
    """A page of rows plus the count of all matching rows.

    ``total`` does not depend on the page; it counts every row matching the
    query's filters.
    """

    rows: List[DatasetResultRow]
    total: int

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the outbound ``{"rows": [...], "total": N}`` shape."""
        return {"rows": [r.to_dict() for r in self.rows], "total": int(self.total)}
