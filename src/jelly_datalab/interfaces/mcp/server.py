"""
MCP server exposing dataset query tools.

Tools:
 - list_datasets
 - get_dataset_schema
 - query_dataset
 - get_filter_options
 - analyze_dataset

The row store and dataset registry are opened in the server lifespan and
closed when it ends; tools reach them through the request context.
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass
from typing import Any, AsyncIterator, Dict, List, Optional, Union

import httpx
from mcp.server.fastmcp import Context, FastMCP

from jelly_datalab.catalog.registry import DatasetConfigRegistry
from jelly_datalab.core.config import Settings
from jelly_datalab.core.errors import ConfigurationError, DataLabError
from jelly_datalab.providers.registry import ProviderRegistry
from jelly_datalab.store.row_store import RowStore

SERVER_NAME = "jelly-datalab"

logger = logging.getLogger(__name__)

QueryParams = Dict[str, Union[str, int, float, List[str]]]


@dataclass
class AppContext:
    registry: ProviderRegistry


def configure_logging() -> None:
    """Log to stderr; stdout carries the MCP protocol."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def _error(tool: str, e: DataLabError) -> Dict[str, Any]:
    logger.error("Error in %s: %s", tool, e)
    return {"error": str(e), "error_type": type(e).__name__}


def _param_pairs(params: Optional[QueryParams]) -> List[tuple]:
    pairs = []
    for name, value in (params or {}).items():
        values = value if isinstance(value, list) else [value]
        pairs.extend((name, str(v)) for v in values)
    return pairs


# ----------------------------------------------------------------------
# Tool bodies (plain coroutines over a ProviderRegistry)
# ----------------------------------------------------------------------


async def list_datasets(registry: ProviderRegistry) -> Dict[str, Any]:
    """Return configured datasets and the datasets present in the row store."""
    try:
        entries = await asyncio.to_thread(registry.store.list_datasets)
        stored = [asdict(e) for e in entries]
    except DataLabError as e:
        return _error("list_datasets", e)
    configured = [
        {
            "slug": c.slug,
            "title": c.title,
            "description": c.description,
            "sourceType": c.source_type.value,
            "analysis": c.analysis,
        }
        for c in registry.configs.all()
    ]
    return {
        "configured": configured,
        "stored": stored,
        "total_datasets": len({d["slug"] for d in configured} | {d["slug"] for d in stored}),
    }


async def get_dataset_schema(registry: ProviderRegistry, slug: str) -> Dict[str, Any]:
    """Return a dataset's column configuration (camelCase, as in datasets.yaml)."""
    try:
        config = registry.config_for(slug)
        if config is not None:
            return config.to_dict()
        entry = await asyncio.to_thread(registry.store.get_dataset, slug)
        if entry is None:
            raise ConfigurationError(f"Unknown dataset '{slug}'")
        return {
            "slug": slug,
            "title": entry.title,
            "description": entry.description,
            "sourceType": "local",
            "columns": [],
            "rowCount": entry.row_count,
        }
    except DataLabError as e:
        return _error("get_dataset_schema", e)


async def query_dataset(
    registry: ProviderRegistry, slug: str, params: Optional[QueryParams] = None
) -> Dict[str, Any]:
    """Run one query page. ``params`` uses the inbound query parameter names."""
    try:
        result = await registry.query(slug, _param_pairs(params))
    except DataLabError as e:
        return _error("query_dataset", e)
    return result.to_dict()


async def get_filter_options(registry: ProviderRegistry, slug: str) -> Dict[str, Any]:
    try:
        options = await registry.filter_options(slug)
    except DataLabError as e:
        return _error("get_filter_options", e)
    return {"slug": slug, "options": options}


async def analyze_dataset(
    registry: ProviderRegistry, slug: str, params: Optional[Dict[str, str]] = None
) -> Dict[str, Any]:
    """Summarize the rows selected by ``params`` (all rows when omitted)."""
    try:
        summary = await registry.analyze(slug, params)
    except DataLabError as e:
        return _error("analyze_dataset", e)
    return {"slug": slug, "summary": summary}


# ----------------------------------------------------------------------
# Server
# ----------------------------------------------------------------------


def _registry(ctx: Context) -> ProviderRegistry:
    return ctx.request_context.lifespan_context.registry


def create_server(settings: Settings) -> FastMCP:
    """Build the FastMCP server bound to ``settings``."""

    @asynccontextmanager
    async def lifespan(_server: FastMCP) -> AsyncIterator[AppContext]:
        configs = DatasetConfigRegistry.from_file(settings.datasets_config)
        store = RowStore(settings.data_root).open()
        try:
            async with httpx.AsyncClient(
                timeout=settings.http_timeout, follow_redirects=True
            ) as client:
                registry = ProviderRegistry(
                    configs, store, client=client, http_timeout=settings.http_timeout
                )
                logger.info(
                    "Serving %d configured datasets from %s", len(configs), settings.data_root
                )
                yield AppContext(registry=registry)
        finally:
            store.close()

    server = FastMCP(SERVER_NAME, lifespan=lifespan)

    @server.tool("list_datasets")
    async def list_datasets_tool(ctx: Context) -> Dict[str, Any]:
        """Return inventory of configured and stored datasets."""
        return await list_datasets(_registry(ctx))

    @server.tool("get_dataset_schema")
    async def get_dataset_schema_tool(slug: str, ctx: Context) -> Dict[str, Any]:
        """Return the column configuration of a dataset."""
        return await get_dataset_schema(_registry(ctx), slug)

    @server.tool("query_dataset")
    async def query_dataset_tool(
        slug: str, ctx: Context, params: Optional[QueryParams] = None
    ) -> Dict[str, Any]:
        """Query one page of a dataset.

        params: field=value (equals), field_contains, field_min, field_max,
        plus page, pageSize, sortField, sortDir.
        """
        return await query_dataset(_registry(ctx), slug, params)

    @server.tool("get_filter_options")
    async def get_filter_options_tool(slug: str, ctx: Context) -> Dict[str, Any]:
        """Distinct values of every filterable column of a dataset."""
        return await get_filter_options(_registry(ctx), slug)

    @server.tool("analyze_dataset")
    async def analyze_dataset_tool(
        slug: str, ctx: Context, params: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """Summary statistics for a dataset (salary or generic overview).

        params: filterable field=value (__all__ for no filter), plus sortKey,
        sortDir. Only matching rows are summarized.
        """
        return await analyze_dataset(_registry(ctx), slug, params)

    return server


# Transport functions
def run(settings: Optional[Settings] = None) -> None:
    """Run MCP server over stdio."""
    configure_logging()
    settings = settings or Settings.resolve()
    logger.info("Starting MCP server with data root: %s", settings.data_root)
    asyncio.run(create_server(settings).run_stdio_async())


async def _run_http(server: FastMCP, host: str, port: int) -> None:
    """Start HTTP server with explicit uvicorn configuration."""
    import uvicorn

    app = server.streamable_http_app()
    config = uvicorn.Config(app, host=host, port=int(port), log_level="info")
    await uvicorn.Server(config).serve()


def run_http(
    settings: Optional[Settings] = None, *, host: str = "127.0.0.1", port: int = 8765
) -> None:
    """Run MCP server over streamable HTTP."""
    configure_logging()
    settings = settings or Settings.resolve()
    logger.info("Starting HTTP MCP server on %s:%d", host, port)
    logger.info("Data root: %s", settings.data_root)
    asyncio.run(_run_http(create_server(settings), host, port))
