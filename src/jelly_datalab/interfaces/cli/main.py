import argparse
import asyncio
import importlib
import json
import logging
from contextlib import contextmanager
from dataclasses import asdict
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional, Tuple

import colorlog

from jelly_datalab import __version__
from jelly_datalab.catalog.registry import DatasetConfigRegistry
from jelly_datalab.core.config import Settings
from jelly_datalab.core.enums import SortDirection
from jelly_datalab.core.errors import ConfigurationError, DataLabError, ProviderError
from jelly_datalab.providers.registry import ProviderRegistry
from jelly_datalab.store.row_store import RowStore

SORT_DIR_CHOICES = [d.value for d in SortDirection]

# Exit codes
EXIT_OK = 0
EXIT_PROVIDER_ERROR = 1
EXIT_USAGE_ERROR = 2
EXIT_MISSING_DEPENDENCY = 3


def setup_logging(
    verbose: bool = False, warnings_only: bool = False, errors_only: bool = False
) -> None:
    logger = logging.getLogger()
    for h in list(logger.handlers):
        logger.removeHandler(h)
    log_format = (
        "%(asctime)s:%(levelname)s:%(name)s in %(filename)s:%(funcName)s:%(lineno)d: %(message)s"
    )
    log_colors = {
        "DEBUG": "cyan",
        "INFO": "green",
        "WARNING": "yellow",
        "ERROR": "red",
        "CRITICAL": "bold_red",
    }
    stream_handler = colorlog.StreamHandler()
    formatter = colorlog.ColoredFormatter(f"%(log_color)s{log_format}", log_colors=log_colors)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)
    if errors_only:
        logger.setLevel(logging.ERROR)
    elif warnings_only:
        logger.setLevel(logging.WARNING)
    else:
        logger.setLevel(logging.DEBUG if verbose else logging.INFO)


def _settings(args: argparse.Namespace) -> Settings:
    return Settings.resolve(
        data_root=getattr(args, "data_root", None),
        datasets_config=getattr(args, "config", None),
    )


@contextmanager
def _open_registry(args: argparse.Namespace) -> Iterator[ProviderRegistry]:
    """Load the dataset registry and open the row store for one command."""
    settings = _settings(args)
    configs = DatasetConfigRegistry.from_file(settings.datasets_config)
    with RowStore(settings.data_root) as store:
        yield ProviderRegistry(configs, store, http_timeout=settings.http_timeout)


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


def _run(
    args: argparse.Namespace, action: Callable[[ProviderRegistry], Awaitable[Any]]
) -> int:
    """Run ``action`` against a fresh registry and print its JSON result.

    Provider failures exit with 1; configuration, query and usage errors with 2.
    """
    try:
        with _open_registry(args) as registry:
            payload = asyncio.run(action(registry))
    except ProviderError as e:
        logging.error("Dataset provider failed: %s", e)
        return EXIT_PROVIDER_ERROR
    except (DataLabError, FileNotFoundError, ValueError) as e:
        logging.error("%s", e)
        return EXIT_USAGE_ERROR
    _print_json(payload)
    return EXIT_OK


def _parse_param_args(raw: Optional[List[str]]) -> List[Tuple[str, str]]:
    """Split repeated ``-p NAME=VALUE`` arguments into (name, value) pairs."""
    pairs: List[Tuple[str, str]] = []
    for item in raw or []:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise ConfigurationError(f"Expected NAME=VALUE, got {item!r}")
        pairs.append((name, value))
    return pairs


def cmd_datasets(args: argparse.Namespace) -> int:
    """List configured datasets and datasets present in the row store."""

    async def action(registry: ProviderRegistry) -> Dict[str, Any]:
        return {
            "configured": [
                {
                    "slug": c.slug,
                    "title": c.title,
                    "sourceType": c.source_type.value,
                    "analysis": c.analysis,
                }
                for c in registry.configs.all()
            ],
            "stored": [asdict(e) for e in registry.store.list_datasets()],
        }

    return _run(args, action)


def cmd_schema(args: argparse.Namespace) -> int:
    slug = args.slug

    async def action(registry: ProviderRegistry) -> Dict[str, Any]:
        config = registry.config_for(slug)
        if config is not None:
            return config.to_dict()
        entry = registry.store.get_dataset(slug)
        if entry is None:
            raise ConfigurationError(f"Unknown dataset '{slug}'")
        return {"slug": slug, "title": entry.title, "sourceType": "local", "columns": []}

    return _run(args, action)


def cmd_query(args: argparse.Namespace) -> int:
    """Run one query page against a dataset.

    Filter parameters follow the inbound query surface: ``field`` (equals),
    ``field_contains``, ``field_min``, ``field_max``.
    """
    try:
        pairs = _parse_param_args(getattr(args, "param", None))
    except ConfigurationError as e:
        logging.error("%s", e)
        return EXIT_USAGE_ERROR
    if getattr(args, "page", None) is not None:
        pairs.append(("page", str(args.page)))
    if getattr(args, "page_size", None) is not None:
        pairs.append(("pageSize", str(args.page_size)))
    if getattr(args, "sort_field", None):
        pairs.append(("sortField", args.sort_field))
        pairs.append(("sortDir", getattr(args, "sort_dir", None) or SortDirection.ASC.value))
    slug = args.slug
    logging.debug("Query %s with %s", slug, pairs)

    async def action(registry: ProviderRegistry) -> Dict[str, Any]:
        result = await registry.query(slug, pairs)
        return result.to_dict()

    return _run(args, action)


def cmd_options(args: argparse.Namespace) -> int:
    slug = args.slug

    async def action(registry: ProviderRegistry) -> Dict[str, Any]:
        return await registry.filter_options(slug)

    return _run(args, action)


def cmd_analyze(args: argparse.Namespace) -> int:
    """Summarize a dataset, optionally only the rows selected by ``-p`` filters."""
    try:
        params = dict(_parse_param_args(getattr(args, "param", None)))
    except ConfigurationError as e:
        logging.error("%s", e)
        return EXIT_USAGE_ERROR
    slug = args.slug

    async def action(registry: ProviderRegistry) -> Dict[str, Any]:
        return await registry.analyze(slug, params)

    return _run(args, action)


def cmd_mcp_server(args: argparse.Namespace) -> int:
    """Start the MCP server.

    Default: stdio. If --port is set, run HTTP transport at host:port.
    """
    try:
        mcp_server = importlib.import_module("jelly_datalab.interfaces.mcp.server")
    except ImportError as e:
        logging.error("Failed to import MCP server. Ensure 'mcp' is installed. Error: %s", e)
        return EXIT_MISSING_DEPENDENCY
    try:
        settings = _settings(args)
    except ConfigurationError as e:
        logging.error("%s", e)
        return EXIT_USAGE_ERROR
    port = getattr(args, "port", None)
    host = getattr(args, "host", None) or "127.0.0.1"
    try:
        if port:
            logging.info("Starting MCP HTTP server on %s:%s", host, port)
            mcp_server.run_http(settings, host=host, port=int(port))
        else:
            logging.info("Starting MCP stdio server (data root: %s)", settings.data_root)
            mcp_server.run(settings)
    except KeyboardInterrupt:
        pass
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="jelly-datalab",
        description=f"Jelly DataLab dataset query tools (v{__version__})",
    )
    p.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    p.add_argument(
        "--warnings-only",
        action="store_true",
        help="Show only warnings and errors (overrides --verbose)",
    )
    p.add_argument(
        "--errors-only",
        action="store_true",
        help="Show only errors (overrides --warnings-only and --verbose)",
    )
    p.add_argument(
        "--config",
        default=None,
        help="Path to datasets.yaml (defaults to $JELLY_DATALAB_DATASETS_CONFIG or config/datasets.yaml)",
    )
    p.add_argument(
        "--data-root",
        default=None,
        help="Row store directory (defaults to $JELLY_DATALAB_DATA_ROOT or data/store)",
    )

    sub = p.add_subparsers(dest="command", required=True)

    p_datasets = sub.add_parser("datasets", help="List configured and stored datasets")
    p_datasets.set_defaults(func=cmd_datasets)

    p_schema = sub.add_parser("schema", help="Print a dataset's column configuration")
    p_schema.add_argument("slug", help="Dataset slug")
    p_schema.set_defaults(func=cmd_schema)

    p_query = sub.add_parser("query", help="Query one page of a dataset")
    p_query.add_argument("slug", help="Dataset slug")
    p_query.add_argument(
        "-p",
        "--param",
        action="append",
        metavar="NAME=VALUE",
        help=(
            "Filter parameter, repeatable. NAME is a field for equality, "
            "or field_contains / field_min / field_max."
        ),
    )
    p_query.add_argument("--page", type=int, default=None, help="1-based page number")
    p_query.add_argument("--page-size", type=int, default=None, help="Rows per page")
    p_query.add_argument("--sort-field", default=None, help="Field to sort by")
    p_query.add_argument(
        "--sort-dir",
        type=str.lower,
        choices=SORT_DIR_CHOICES,
        default=None,
        help="Sort direction (default asc; used only with --sort-field)",
    )
    p_query.set_defaults(func=cmd_query)

    p_options = sub.add_parser(
        "options", help="Distinct values of a dataset's filterable columns"
    )
    p_options.add_argument("slug", help="Dataset slug")
    p_options.set_defaults(func=cmd_options)

    p_analyze = sub.add_parser("analyze", help="Run the dataset's configured analysis")
    p_analyze.add_argument("slug", help="Dataset slug")
    p_analyze.add_argument(
        "-p",
        "--param",
        action="append",
        metavar="NAME=VALUE",
        help=(
            "Restrict the analysis to matching rows, repeatable. NAME is a filterable "
            "field (value __all__ for no filter), or sortKey / sortDir."
        ),
    )
    p_analyze.set_defaults(func=cmd_analyze)

    p_mcp = sub.add_parser("mcp-server", help="Run MCP server (stdio or HTTP)")
    p_mcp.add_argument(
        "--port",
        default=None,
        help="If set, run streamable HTTP transport on the given port",
    )
    p_mcp.add_argument(
        "--host",
        default=None,
        help="Host to bind for HTTP transport (default 127.0.0.1)",
    )
    p_mcp.set_defaults(func=cmd_mcp_server)

    return p


def main(argv: Optional[list] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(
        verbose=bool(args.verbose),
        warnings_only=bool(getattr(args, "warnings_only", False)),
        errors_only=bool(getattr(args, "errors_only", False)),
    )
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
