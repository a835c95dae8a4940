from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import yaml

from jelly_datalab.core.errors import ConfigurationError
from .models import DatasetConfig, dataset_from_dict

logger = logging.getLogger(__name__)


class DatasetConfigRegistry:
    """Lookup of dataset configurations by slug.

    Loaded once per process; the registry and its configs are read-only.
    """

    def __init__(self, configs: Iterable[DatasetConfig] = ()) -> None:
        """Index ``configs`` by slug, rejecting duplicates."""
        self._configs: Dict[str, DatasetConfig] = {}
        for config in configs:
            if config.slug in self._configs:
                raise ConfigurationError(f"Duplicate dataset slug: {config.slug}")
            self._configs[config.slug] = config

    @classmethod
    def from_file(cls, config_file: Path) -> "DatasetConfigRegistry":
        """Load and validate the registry from a datasets YAML file."""
        return cls(cls._load_configs(config_file))

    @staticmethod
    def _load_configs(config_file: Path) -> List[DatasetConfig]:
        """Parse YAML into a list of DatasetConfig objects."""
        if not config_file.exists():
            raise FileNotFoundError(f"Datasets config not found: {config_file}")
        try:
            with config_file.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse {config_file}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"{config_file} must contain a mapping at top level")
        entries = data.get("datasets", []) or []
        if not isinstance(entries, list):
            raise ConfigurationError(f"'datasets' in {config_file} must be a list")
        for index, item in enumerate(entries):
            if not isinstance(item, dict):
                raise ConfigurationError(f"Dataset entry {index} in {config_file} must be a mapping")
        configs = [dataset_from_dict(item) for item in entries]
        logger.debug("Loaded %d dataset configs from %s", len(configs), config_file)
        return configs

    def get(self, slug: str) -> Optional[DatasetConfig]:
        """Return the config for ``slug``, or None when it is not registered."""
        return self._configs.get(slug)

    def all(self) -> List[DatasetConfig]:
        """Return all configs in file order."""
        return list(self._configs.values())

    def slugs(self) -> List[str]:
        return list(self._configs)

    def __contains__(self, slug: object) -> bool:
        return slug in self._configs

    def __len__(self) -> int:
        return len(self._configs)
