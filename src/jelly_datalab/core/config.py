"""Runtime defaults and settings resolution.

Constants in this module are the single source for defaults used by the
query parser, providers and front-ends. ``Settings`` resolves the few values
that vary per deployment: explicit argument first, then environment, then
the default below.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .errors import ConfigurationError

# ============================================================================
# QUERY DEFAULTS
# ============================================================================

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 50

# Control parameters of the inbound query surface; never parsed as filters
RESERVED_PARAMS = frozenset({"page", "pageSize", "sortField", "sortDir"})

# Client-side path: sorting keys and the "no selection" sentinel
CLIENT_SORT_KEY_PARAM = "sortKey"
CLIENT_SORT_DIR_PARAM = "sortDir"
ALL_VALUE = "__all__"

# Materializing a whole dataset for derived filters and analysis
MATERIALIZE_PAGE_SIZE = 500
DEFAULT_MAX_ROWS = 50_000


# ============================================================================
# API PROVIDER DEFAULTS
# ============================================================================

DEFAULT_HTTP_METHOD = "GET"
DEFAULT_PAGE_PARAM = "page"
DEFAULT_PAGE_SIZE_PARAM = "pageSize"
DEFAULT_SORT_FIELD_PARAM = "sort"
DEFAULT_SORT_DIR_PARAM = "order"
DEFAULT_ID_FIELD = "id"
DEFAULT_HTTP_TIMEOUT = 30.0  # seconds


# ============================================================================
# LOCATIONS
# ============================================================================

DEFAULT_DATA_ROOT = Path("data/store")
DEFAULT_DATASETS_CONFIG = Path("config/datasets.yaml")

ENV_DATA_ROOT = "JELLY_DATALAB_DATA_ROOT"
ENV_DATASETS_CONFIG = "JELLY_DATALAB_DATASETS_CONFIG"
ENV_HTTP_TIMEOUT = "JELLY_DATALAB_HTTP_TIMEOUT"


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings.

    Attributes:
        data_root: Directory holding the row store files.
        datasets_config: Path to the dataset registry YAML.
        http_timeout: Timeout in seconds applied to outbound API requests.
    """

    data_root: Path = DEFAULT_DATA_ROOT
    datasets_config: Path = DEFAULT_DATASETS_CONFIG
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    @classmethod
    def resolve(
        cls,
        *,
        data_root: Optional[Union[str, Path]] = None,
        datasets_config: Optional[Union[str, Path]] = None,
        http_timeout: Optional[float] = None,
    ) -> "Settings":
        """Build settings from explicit values, then environment, then defaults.

        Raises:
            ConfigurationError: If the timeout from the environment is not a
                positive number.
        """
        root = data_root or os.environ.get(ENV_DATA_ROOT) or DEFAULT_DATA_ROOT
        config_path = (
            datasets_config or os.environ.get(ENV_DATASETS_CONFIG) or DEFAULT_DATASETS_CONFIG
        )
        if http_timeout is None:
            raw_timeout = os.environ.get(ENV_HTTP_TIMEOUT)
            if raw_timeout:
                try:
                    http_timeout = float(raw_timeout)
                except ValueError as e:
                    raise ConfigurationError(
                        f"{ENV_HTTP_TIMEOUT} must be a number, got {raw_timeout!r}"
                    ) from e
            else:
                http_timeout = DEFAULT_HTTP_TIMEOUT
        if http_timeout <= 0:
            raise ConfigurationError(f"HTTP timeout must be positive, got {http_timeout}")
        return cls(
            data_root=Path(root),
            datasets_config=Path(config_path),
            http_timeout=float(http_timeout),
        )
