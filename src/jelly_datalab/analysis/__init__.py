"""Dataset analyses (summary widgets), selected per dataset by configuration.

Public API:
    ANALYSES: Analysis kind → summary function
    run_analysis: Run a dataset's configured analysis over its rows

To add an analysis, write a function taking ``(rows, config)`` and returning
a JSON-serializable dict, then register it in ``ANALYSES`` (registry.py).
"""

from __future__ import annotations

from .registry import ANALYSES, DEFAULT_ANALYSIS, analysis_kind, run_analysis

__all__ = ["ANALYSES", "DEFAULT_ANALYSIS", "analysis_kind", "run_analysis"]
