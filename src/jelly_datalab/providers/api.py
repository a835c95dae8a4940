"""Provider for datasets served by a remote HTTP JSON API.

Translation happens in both directions, driven entirely by the dataset's
ApiConfig:

- outbound: pagination, filters and sort become query-string parameters,
  renamed through ``filter_param_map``
- inbound: ``result_path`` / ``total_path`` locate the rows and total in the
  JSON body and ``id_field`` names each row's id
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from jelly_datalab.catalog.models import ApiConfig, DatasetConfig
from jelly_datalab.core.config import DEFAULT_HTTP_TIMEOUT
from jelly_datalab.core.enums import FilterOp, SourceType
from jelly_datalab.core.errors import ApiRequestFailed, ConfigurationError, MalformedResponse
from jelly_datalab.core.query.models import DatasetQuery, DatasetResult, DatasetResultRow
from jelly_datalab.core.query.operators import is_number, to_text
from jelly_datalab.core.query.paths import resolve_path

logger = logging.getLogger(__name__)


class ApiDatasetProvider:
    """Query a remote API described by an ApiConfig.

    Args:
        api_config: Endpoint and parameter-name translation.
        client: Optional shared ``httpx.AsyncClient``. When omitted, each
            ``list`` call opens and closes its own client.
        timeout: Seconds before a request without a shared client gives up.
        slug: Dataset slug, used in log messages only.
    """

    def __init__(
        self,
        api_config: ApiConfig,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        slug: Optional[str] = None,
    ) -> None:
        self.api = api_config
        self._client = client
        self._timeout = timeout
        self._slug = slug or api_config.base_url

    def build_params(self, query: DatasetQuery) -> Dict[str, str]:
        """Translate a query into outbound query-string parameters.

        Range bounds resolve their parameter name in two steps: an explicit
        ``filter_param_map`` entry for ``<field>_min`` / ``<field>_max`` wins,
        otherwise the suffix is appended to the field's own (mapped) name.

        Examples:
            >>> from jelly_datalab.core.query.models import DatasetQueryFilter
            >>> api = ApiConfig("https://x", filter_param_map={"price_min": "minPrice"})
            >>> q = DatasetQuery([DatasetQueryFilter("price", "gte", 10)])
            >>> ApiDatasetProvider(api).build_params(q)
            {'page': '1', 'pageSize': '50', 'minPrice': '10'}
        """
        api = self.api
        mapping = api.filter_param_map
        params: Dict[str, str] = {
            api.page_param: str(query.page),
            api.page_size_param: str(query.page_size),
        }
        for f in query.filters:
            name = mapping.get(f.field) or f.field
            value = to_text(f.value) or ""
            if f.op in (FilterOp.EQ, FilterOp.CONTAINS):
                params[name] = value
            elif f.op == FilterOp.GTE:
                params[mapping.get(f"{f.field}_min") or f"{name}_min"] = value
            elif f.op == FilterOp.LTE:
                params[mapping.get(f"{f.field}_max") or f"{name}_max"] = value
        if query.sort is not None:
            params[api.sort_field_param] = query.sort.field
            params[api.sort_dir_param] = query.sort.direction.value
        return params

    def build_url(self, query: DatasetQuery) -> httpx.URL:
        """Base URL with the query's parameters merged into its query string."""
        return httpx.URL(self.api.base_url).copy_merge_params(self.build_params(query))

    async def _send(self, url: httpx.URL) -> httpx.Response:
        method = self.api.method
        logger.debug("%s %s", method, url)
        try:
            if self._client is not None:
                return await self._client.request(method, url)
            async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
                return await client.request(method, url)
        except httpx.HTTPError as e:
            logger.warning("Request for dataset %s failed: %s", self._slug, e)
            raise ApiRequestFailed(None, str(e) or type(e).__name__) from e

    async def list(self, query: DatasetQuery) -> DatasetResult:
        """Fetch one page from the remote API.

        Raises:
            ApiRequestFailed: On transport failure, timeout or a non-2xx status.
            MalformedResponse: If the body is not JSON or does not fit the config.
        """
        response = await self._send(self.build_url(query))
        if not response.is_success:
            logger.warning(
                "Dataset %s: API answered %d %s",
                self._slug,
                response.status_code,
                response.reason_phrase,
            )
            raise ApiRequestFailed(response.status_code, response.reason_phrase)
        try:
            body = response.json()
        except ValueError as e:
            raise MalformedResponse(f"Response from {self._slug} is not valid JSON: {e}") from e
        return self.parse_response(body)

    def parse_response(self, body: Any) -> DatasetResult:
        """Map a decoded JSON body onto a DatasetResult.

        A ``result_path`` whose intermediate keys are missing yields no rows;
        a path that resolves to something other than a list is malformed. A
        missing or non-numeric total falls back to the number of rows.

        Raises:
            MalformedResponse: If rows are not a list of objects with ids.
        """
        api = self.api
        items = resolve_path(body, api.result_path)
        if items is None:
            items = []
        if not isinstance(items, list):
            where = f"'{api.result_path}'" if api.result_path else "response body"
            raise MalformedResponse(
                f"Expected a list at {where}, got {type(items).__name__}"
            )

        total: int = len(items)
        if api.total_path:
            raw_total = resolve_path(body, api.total_path)
            if is_number(raw_total):
                total = int(raw_total)
            else:
                logger.debug(
                    "Dataset %s: no numeric total at '%s', using row count",
                    self._slug,
                    api.total_path,
                )

        rows: List[DatasetResultRow] = []
        for index, item in enumerate(items):
            if not isinstance(item, dict):
                raise MalformedResponse(
                    f"Row {index} is {type(item).__name__}, expected a JSON object"
                )
            row_id = item.get(api.id_field)
            if row_id is None:
                raise MalformedResponse(f"Row {index} has no '{api.id_field}' field")
            if isinstance(row_id, bool) or not isinstance(row_id, (str, int)):
                row_id = to_text(row_id)
            rows.append(DatasetResultRow(id=row_id, data=item))
        return DatasetResult(rows=rows, total=total)


def make_api_provider(
    config: DatasetConfig,
    *,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_HTTP_TIMEOUT,
) -> ApiDatasetProvider:
    """Build the API provider for an API-backed dataset config.

    Raises:
        ConfigurationError: If the dataset is not API-backed or lacks apiConfig.
    """
    if config.source_type != SourceType.API or config.api_config is None:
        raise ConfigurationError(f"API dataset '{config.slug}' missing apiConfig")
    return ApiDatasetProvider(config.api_config, client=client, timeout=timeout, slug=config.slug)
