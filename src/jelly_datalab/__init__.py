"""Jelly DataLab: one query contract over local and remote datasets.

The package is organised around a small core:

- ``core.query``: the query model, operator semantics and raw parameter parsing
- ``catalog``: declarative dataset configuration loaded from YAML
- ``providers``: local (row store) and remote (HTTP API) implementations
- ``store``: the parquet-backed row store used by local datasets

Front-ends (CLI, MCP server) live under ``interfaces``.
"""

__all__ = [
    "__version__",
]

__version__ = "0.2.0"
