from __future__ import annotations

import asyncio
import logging
from typing import Optional

from jelly_datalab.catalog.models import DatasetConfig
from jelly_datalab.core.query.models import DatasetQuery, DatasetResult, DatasetResultRow
from jelly_datalab.core.query.operators import matches_all
from jelly_datalab.store.row_store import RowStore

logger = logging.getLogger(__name__)


class LocalDatasetProvider:
    """Serve a dataset from the local row store.

    Filters use the shared operator semantics and sorting uses ``sort_rows``,
    so results agree with the client-side derived-filter path. ``total`` is
    the filtered count. Store I/O runs in a worker thread.
    """

    def __init__(
        self, store: RowStore, slug: str, config: Optional[DatasetConfig] = None
    ) -> None:
        self.store = store
        self.slug = slug
        self.config = config

    async def list(self, query: DatasetQuery) -> DatasetResult:
        return await asyncio.to_thread(self._list, query)

    def _list(self, query: DatasetQuery) -> DatasetResult:
        if not self.store.exists(self.slug):
            logger.warning("Dataset %s not found in row store %s", self.slug, self.store.root)
            return DatasetResult(rows=[], total=0)

        filters = list(query.filters)
        where = (lambda data: matches_all(data, filters)) if filters else None
        numeric_sort = None
        if query.sort is not None and self.config is not None:
            numeric_sort = self.config.is_numeric(query.sort.field)

        rows = self.store.find_many(
            self.slug,
            skip=query.offset,
            take=query.page_size,
            where=where,
            order_by=query.sort,
            numeric_sort=numeric_sort,
        )
        total = self.store.count(self.slug, where=where)
        logger.debug(
            "Dataset %s page %d: %d rows of %d", self.slug, query.page, len(rows), total
        )
        return DatasetResult(
            rows=[DatasetResultRow(id=r.id, data=r.data) for r in rows],
            total=total,
        )
