"""Provider resolution and query execution by dataset slug.

Resolution rules:
- slug configured with ``sourceType: api`` → ApiDatasetProvider
- slug configured as local, or not configured at all → LocalDatasetProvider

Unconfigured slugs are allowed: local datasets are discovered by their
presence in the row store and need no registry entry.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx

from jelly_datalab.analysis import run_analysis
from jelly_datalab.catalog.models import DatasetConfig
from jelly_datalab.catalog.registry import DatasetConfigRegistry
from jelly_datalab.core.config import DEFAULT_HTTP_TIMEOUT, DEFAULT_MAX_ROWS, MATERIALIZE_PAGE_SIZE
from jelly_datalab.core.enums import SourceType
from jelly_datalab.core.query import derived
from jelly_datalab.core.query.models import DatasetQuery, DatasetResult, DatasetResultRow
from jelly_datalab.core.query.parse import RawParams, parse_query_params
from jelly_datalab.store.row_store import RowStore
from . import DatasetProvider
from .api import make_api_provider
from .local import LocalDatasetProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Select and run the provider for a dataset.

    Args:
        configs: Dataset configuration registry.
        store: Opened row store used by local datasets.
        client: Optional shared HTTP client handed to API providers.
        http_timeout: Timeout for API providers without a shared client.
    """

    def __init__(
        self,
        configs: DatasetConfigRegistry,
        store: RowStore,
        *,
        client: Optional[httpx.AsyncClient] = None,
        http_timeout: float = DEFAULT_HTTP_TIMEOUT,
    ) -> None:
        self.configs = configs
        self.store = store
        self._client = client
        self._http_timeout = http_timeout

    def config_for(self, slug: str) -> Optional[DatasetConfig]:
        return self.configs.get(slug)

    def resolve(self, slug: str) -> DatasetProvider:
        """Return the provider serving ``slug``.

        Raises:
            ConfigurationError: If the dataset is declared ``api`` without an apiConfig.
        """
        config = self.configs.get(slug)
        if config is not None and config.source_type == SourceType.API:
            logger.debug("Dataset %s → API provider", slug)
            return make_api_provider(config, client=self._client, timeout=self._http_timeout)
        logger.debug("Dataset %s → local provider", slug)
        return LocalDatasetProvider(self.store, slug, config)

    async def list(self, slug: str, query: DatasetQuery) -> DatasetResult:
        """Validate ``query`` against the dataset's columns (when configured) and run it.

        Raises:
            ConfigurationError: If the query filters or sorts on an undeclared field.
            ProviderError: If the provider fails.
        """
        config = self.configs.get(slug)
        if config is not None:
            config.check_query(query)
        return await self.resolve(slug).list(query)

    async def query(self, slug: str, params: RawParams) -> DatasetResult:
        """Parse raw request parameters and run the resulting query."""
        return await self.list(slug, parse_query_params(params))

    async def load_rows(
        self,
        slug: str,
        *,
        page_size: int = MATERIALIZE_PAGE_SIZE,
        max_rows: int = DEFAULT_MAX_ROWS,
    ) -> List[DatasetResultRow]:
        """Materialize a dataset by paging through its provider.

        Stops at the reported total, at an empty page, or at ``max_rows``.
        """
        provider = self.resolve(slug)
        rows: List[DatasetResultRow] = []
        total = 0
        page = 1
        while len(rows) < max_rows:
            result = await provider.list(DatasetQuery(page=page, page_size=page_size))
            rows.extend(result.rows)
            total = result.total
            if not result.rows or len(rows) >= total:
                break
            page += 1
        if total > max_rows:
            logger.warning("Dataset %s truncated to %d rows", slug, max_rows)
        return rows[:max_rows]

    async def filter_options(self, slug: str) -> Dict[str, List[Any]]:
        """Distinct values of every filterable column, computed over the whole dataset.

        Unconfigured datasets have no declared filterable columns and yield ``{}``.
        """
        config = self.configs.get(slug)
        if config is None or not config.filterable_columns:
            return {}
        rows = await self.load_rows(slug)
        return derived.filter_options([r.data for r in rows], config.columns)

    async def load_view(
        self, slug: str, params: Optional[Mapping[str, Any]] = None
    ) -> List[DatasetResultRow]:
        """Materialize a dataset, then filter and sort it in memory.

        ``params`` holds the client-side selections: one equality value per
        filterable column (``__all__`` or empty for no filter), plus
        ``sortKey``/``sortDir``. Parameters naming other fields are ignored.
        """
        rows = await self.load_rows(slug)
        if not params:
            return rows
        config = self.configs.get(slug)
        fields = [c.field for c in config.filterable_columns] if config is not None else []
        filters, sort = derived.parse_client_params(params, fields)
        view = derived.apply_filters(rows, filters, accessor=lambda r: r.data)
        if sort is not None:
            view = derived.sort_rows(
                view,
                sort.field,
                sort.direction,
                numeric=config.is_numeric(sort.field) if config is not None else None,
                accessor=lambda r: r.data,
            )
        logger.debug("Dataset %s view: %d of %d rows", slug, len(view), len(rows))
        return view

    async def analyze(
        self, slug: str, params: Optional[Mapping[str, Any]] = None
    ) -> Dict[str, Any]:
        """Run the dataset's configured analysis over the rows in view.

        Without ``params`` the whole dataset is summarized; see ``load_view``.
        """
        rows = await self.load_view(slug, params)
        return run_analysis([r.data for r in rows], self.configs.get(slug))
