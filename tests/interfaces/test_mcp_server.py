"""Tests for the MCP server tools."""

from __future__ import annotations

import asyncio

import pytest

from jelly_datalab.catalog.registry import DatasetConfigRegistry
from jelly_datalab.core.config import Settings
from jelly_datalab.interfaces.mcp import server as mcp_server
from jelly_datalab.providers.registry import ProviderRegistry
from jelly_datalab.store.row_store import RowStore


@pytest.fixture
def registry(configs: DatasetConfigRegistry, city_store: RowStore) -> ProviderRegistry:
    return ProviderRegistry(configs, city_store)


def test_server_registers_tools(datasets_yaml, tmp_path):
    settings = Settings(data_root=tmp_path / "rows", datasets_config=datasets_yaml)
    server = mcp_server.create_server(settings)
    names = {tool.name for tool in asyncio.run(server.list_tools())}
    assert names == {
        "list_datasets",
        "get_dataset_schema",
        "query_dataset",
        "get_filter_options",
        "analyze_dataset",
    }


def test_list_datasets(registry: ProviderRegistry):
    result = asyncio.run(mcp_server.list_datasets(registry))
    assert [d["slug"] for d in result["configured"]] == ["cities", "salaries", "products"]
    assert [d["slug"] for d in result["stored"]] == ["cities"]
    assert result["total_datasets"] == 3


def test_get_dataset_schema(registry: ProviderRegistry):
    schema = asyncio.run(mcp_server.get_dataset_schema(registry, "cities"))
    assert [c["field"] for c in schema["columns"]] == ["city", "country", "population", "region"]
    missing = asyncio.run(mcp_server.get_dataset_schema(registry, "nothing"))
    assert missing["error_type"] == "ConfigurationError"


def test_get_dataset_schema_of_unconfigured_stored_dataset(registry: ProviderRegistry):
    registry.store.create("uploads", [{"a": 1}])
    schema = asyncio.run(mcp_server.get_dataset_schema(registry, "uploads"))
    assert schema["sourceType"] == "local"
    assert schema["rowCount"] == 1


def test_query_dataset(registry: ProviderRegistry):
    result = asyncio.run(
        mcp_server.query_dataset(
            registry, "cities", {"country": ["Armenia", "France"], "pageSize": 5}
        )
    )
    # two eq filters on one field are conjoined
    assert result == {"rows": [], "total": 0}

    result = asyncio.run(
        mcp_server.query_dataset(registry, "cities", {"country": "Armenia", "sortField": "city", "sortDir": "asc"})
    )
    assert result["total"] == 2
    assert [r["data"]["city"] for r in result["rows"]] == ["Gyumri", "Yerevan"]


def test_query_dataset_errors_become_payloads(registry: ProviderRegistry):
    bad_range = asyncio.run(mcp_server.query_dataset(registry, "cities", {"population_min": "many"}))
    assert bad_range["error_type"] == "InvalidQueryError"
    undeclared = asyncio.run(mcp_server.query_dataset(registry, "cities", {"mayor": "x"}))
    assert undeclared["error_type"] == "ConfigurationError"
    assert "mayor" in undeclared["error"]


def test_get_filter_options(registry: ProviderRegistry):
    result = asyncio.run(mcp_server.get_filter_options(registry, "cities"))
    assert result["options"]["region"] == ["Asia", "Europe"]


def test_analyze_dataset(registry: ProviderRegistry):
    result = asyncio.run(mcp_server.analyze_dataset(registry, "cities"))
    assert result["summary"]["kind"] == "overview"


def test_analyze_dataset_over_filtered_rows(registry: ProviderRegistry):
    result = asyncio.run(mcp_server.analyze_dataset(registry, "cities", {"country": "France"}))
    assert result["summary"]["count"] == 2


def test_invalid_slug_becomes_payload(registry: ProviderRegistry):
    schema = asyncio.run(mcp_server.get_dataset_schema(registry, "../x"))
    assert schema["error_type"] == "InvalidQueryError"
    result = asyncio.run(mcp_server.query_dataset(registry, "../x"))
    assert result["error_type"] == "InvalidQueryError"
