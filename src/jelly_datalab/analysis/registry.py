"""Analysis strategy table.

Datasets choose their summary widgets through the ``analysis`` key of their
configuration instead of code branching on slugs:

- ANALYSES: analysis kind → summary function
- run_analysis(): pick the function for a dataset and run it over its rows
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from jelly_datalab.catalog.models import DatasetConfig
from jelly_datalab.core.errors import ConfigurationError
from .overview import overview_summary
from .salary import salary_summary

AnalysisFn = Callable[[Sequence[Mapping[str, Any]], Optional[DatasetConfig]], Dict[str, Any]]

DEFAULT_ANALYSIS = "overview"

# Registry of available analyses
ANALYSES: Dict[str, AnalysisFn] = {
    "overview": overview_summary,
    "salary": salary_summary,
}


def analysis_kind(config: Optional[DatasetConfig]) -> str:
    if config is None or not config.analysis:
        return DEFAULT_ANALYSIS
    return config.analysis


def run_analysis(
    rows: Sequence[Mapping[str, Any]], config: Optional[DatasetConfig] = None
) -> Dict[str, Any]:
    """Run the analysis a dataset is configured for.

    Args:
        rows: Row data (the ``data`` mappings, not result rows).
        config: Dataset config; None runs the default overview.

    Raises:
        ConfigurationError: If the configured analysis kind is unknown.
    """
    kind = analysis_kind(config)
    fn = ANALYSES.get(kind)
    if fn is None:
        slug = config.slug if config is not None else "?"
        raise ConfigurationError(
            f"Unknown analysis '{kind}' for dataset '{slug}'. Available: {sorted(ANALYSES)}"
        )
    return fn(rows, config)
