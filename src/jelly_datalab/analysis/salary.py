"""Salary dataset summary.

Expects rows shaped like the salary survey export (``salary_in_usd``,
``job_title``, ``experience_level``, ``remote_ratio``, ``company_location``).
Missing columns simply produce empty breakdowns.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from jelly_datalab.catalog.models import DatasetConfig
from jelly_datalab.core.query.operators import is_number, to_text

TOP_N = 5

_REMOTE_LABELS = {0: "On-site", 50: "Hybrid", 100: "Fully Remote"}


def _numbers(df: pd.DataFrame, column: str) -> pd.Series:
    """Numeric values of a column; non-numbers (including numeric strings) become NaN."""
    if column not in df.columns:
        return pd.Series(index=df.index, dtype="float64")
    return pd.to_numeric(df[column].where(df[column].map(is_number)), errors="coerce")


def _labels(df: pd.DataFrame, column: str) -> pd.Series:
    """Non-empty string values of a column, NaN elsewhere."""
    if column not in df.columns:
        return pd.Series(index=df.index, dtype="object")
    values = df[column].map(lambda v: v if isinstance(v, str) and v else None)
    return values.astype("object")


def _counts(series: pd.Series, key: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    counts = series.dropna().value_counts()
    if limit is not None:
        counts = counts.head(limit)
    return [{key: label, "count": int(n)} for label, n in counts.items()]


def remote_label(ratio: Any) -> Optional[str]:
    """Human label for a remote_ratio value.

    Examples:
        >>> remote_label(50)
        'Hybrid'
        >>> remote_label(20)
        '20% remote'
    """
    if not is_number(ratio):
        return None
    if ratio in _REMOTE_LABELS:
        return _REMOTE_LABELS[ratio]
    return f"{to_text(ratio)}% remote"


def salary_summary(
    rows: Sequence[Mapping[str, Any]], config: Optional[DatasetConfig] = None
) -> Dict[str, Any]:
    """Headline numbers and breakdowns for a salary dataset."""
    df = pd.DataFrame.from_records([dict(r) for r in rows])
    usd = _numbers(df, "salary_in_usd")
    average = round(float(usd.mean()), 2) if usd.notna().any() else None

    remote = (
        df["remote_ratio"].map(remote_label)
        if "remote_ratio" in df.columns
        else pd.Series(dtype="object")
    )

    countries = pd.DataFrame(
        {"country": _labels(df, "company_location"), "salary": usd}
    ).dropna()
    top_countries: List[Dict[str, Any]] = []
    if not countries.empty:
        stats = (
            countries.groupby("country")["salary"]
            .agg(["mean", "count"])
            .sort_values("mean", ascending=False)
            .head(TOP_N)
        )
        top_countries = [
            {
                "country": country,
                "average_salary_usd": round(float(row["mean"]), 2),
                "count": int(row["count"]),
            }
            for country, row in stats.iterrows()
        ]

    return {
        "kind": "salary",
        "count": int(len(df)),
        "average_salary_usd": average,
        "top_job_titles": _counts(_labels(df, "job_title"), "job_title", TOP_N),
        "experience_levels": _counts(_labels(df, "experience_level"), "level"),
        "remote_work": _counts(remote, "label"),
        "top_countries": top_countries,
    }
