"""Tests for provider resolution, query execution and dataset materialization."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List

import httpx
import pytest

from jelly_datalab.catalog.registry import DatasetConfigRegistry
from jelly_datalab.core.errors import ConfigurationError, InvalidQueryError
from jelly_datalab.providers.api import ApiDatasetProvider
from jelly_datalab.providers.local import LocalDatasetProvider
from jelly_datalab.providers.registry import ProviderRegistry
from jelly_datalab.store.row_store import RowStore


def _products_handler(items: List[Dict[str, Any]]):
    """Fake products API paging over ``items`` and honouring minPrice."""

    def handler(request: httpx.Request) -> httpx.Response:
        params = request.url.params
        rows = items
        if "minPrice" in params:
            rows = [r for r in rows if r["price"] >= float(params["minPrice"])]
        page = int(params["page"])
        size = int(params["pageSize"])
        window = rows[(page - 1) * size : page * size]
        return httpx.Response(200, json={"data": {"items": window, "total": len(rows)}})

    return handler


PRODUCTS = [{"id": i, "name": f"Item {i}", "category": "tools", "price": i * 10} for i in range(1, 8)]


def _with_registry(configs, store, coro_fn, handler=None):
    async def go():
        transport = httpx.MockTransport(handler or _products_handler(PRODUCTS))
        async with httpx.AsyncClient(transport=transport) as client:
            return await coro_fn(ProviderRegistry(configs, store, client=client))

    return asyncio.run(go())


class TestResolve:
    def test_api_and_local_datasets(self, configs: DatasetConfigRegistry, store: RowStore):
        registry = ProviderRegistry(configs, store)
        assert isinstance(registry.resolve("products"), ApiDatasetProvider)
        assert isinstance(registry.resolve("cities"), LocalDatasetProvider)

    def test_unconfigured_slug_is_local(self, configs: DatasetConfigRegistry, store: RowStore):
        provider = ProviderRegistry(configs, store).resolve("uploaded-csv")
        assert isinstance(provider, LocalDatasetProvider)
        assert provider.config is None


class TestQuery:
    def test_api_query_translates_params(self, configs, store):
        result = _with_registry(
            configs,
            store,
            lambda r: r.query("products", {"price_min": "50", "pageSize": "2"}),
        )
        assert result.total == 3
        assert [row.id for row in result.rows] == [5, 6]

    def test_local_query(self, configs, city_store):
        result = _with_registry(
            configs,
            city_store,
            lambda r: r.query(
                "cities", {"region": "Europe", "sortField": "population", "sortDir": "desc"}
            ),
        )
        assert result.total == 4
        assert [row.data["city"] for row in result.rows] == ["Atlantis", "Paris", "Lyon", "Évora"]

    def test_unconfigured_local_dataset_accepts_any_field(self, configs, store):
        store.create("uploads", [{"colour": "red"}, {"colour": "blue"}])
        result = _with_registry(configs, store, lambda r: r.query("uploads", {"colour": "red"}))
        assert result.total == 1

    def test_undeclared_field_is_a_configuration_error(self, configs, city_store):
        with pytest.raises(ConfigurationError):
            _with_registry(configs, city_store, lambda r: r.query("cities", {"mayor": "x"}))

    def test_invalid_params(self, configs, city_store):
        with pytest.raises(InvalidQueryError):
            _with_registry(configs, city_store, lambda r: r.query("cities", {"page": "zero"}))


class TestMaterialize:
    def test_load_rows_pages_through_api(self, configs, store):
        rows = _with_registry(configs, store, lambda r: r.load_rows("products", page_size=3))
        assert [row.id for row in rows] == [1, 2, 3, 4, 5, 6, 7]

    def test_load_rows_respects_max_rows(self, configs, city_store):
        rows = _with_registry(
            configs, city_store, lambda r: r.load_rows("cities", page_size=2, max_rows=3)
        )
        assert [row.id for row in rows] == [1, 2, 3]

    def test_filter_options(self, configs, city_store):
        options = _with_registry(configs, city_store, lambda r: r.filter_options("cities"))
        assert set(options) == {"city", "country", "population", "region"}
        assert options["region"] == ["Asia", "Europe"]
        assert options["population"] == sorted(options["population"])

    def test_filter_options_of_unconfigured_dataset(self, configs, city_store):
        assert _with_registry(configs, city_store, lambda r: r.filter_options("other")) == {}

    def test_analyze_uses_configured_analysis(self, configs, store, salary_rows):
        store.create("salaries", salary_rows)
        summary = _with_registry(configs, store, lambda r: r.analyze("salaries"))
        assert summary["kind"] == "salary"
        assert summary["count"] == 4

    def test_analyze_defaults_to_overview(self, configs, city_store):
        summary = _with_registry(configs, city_store, lambda r: r.analyze("cities"))
        assert summary["kind"] == "overview"
        assert summary["numeric"]["population"]["min"] == 56596


class TestView:
    def test_filtered_salary_analysis_counts_matching_rows(self, configs, store, salary_rows):
        store.create("salaries", salary_rows)
        params = {"experience_level": "SE", "job_title": "__all__"}
        summary = _with_registry(configs, store, lambda r: r.analyze("salaries", params))
        assert summary["kind"] == "salary"
        assert summary["count"] == 2
        assert summary["average_salary_usd"] == 140000.0

    def test_view_filters_then_sorts(self, configs, city_store):
        params = {"region": "Europe", "sortKey": "population", "sortDir": "desc"}
        rows = _with_registry(configs, city_store, lambda r: r.load_view("cities", params))
        assert [row.data["city"] for row in rows] == ["Atlantis", "Paris", "Lyon", "Évora"]

    def test_non_filterable_params_are_ignored(self, configs, city_store):
        rows = _with_registry(
            configs, city_store, lambda r: r.load_view("cities", {"mayor": "x", "region": ""})
        )
        assert len(rows) == 7

    def test_unconfigured_dataset_only_sorts(self, configs, store):
        store.create("uploads", [{"a": 2}, {"a": 1}])
        params = {"a": "1", "sortKey": "a"}
        rows = _with_registry(configs, store, lambda r: r.load_view("uploads", params))
        assert [row.data["a"] for row in rows] == [1, 2]
