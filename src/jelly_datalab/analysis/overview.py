from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from jelly_datalab.catalog.models import DatasetConfig
from jelly_datalab.core.enums import ColumnType
from jelly_datalab.core.query.operators import is_number


def _numeric_columns(df: pd.DataFrame, config: Optional[DatasetConfig]) -> List[str]:
    if config is not None and config.columns:
        return [
            c.field for c in config.columns if c.type == ColumnType.NUMBER and c.field in df.columns
        ]
    out = []
    for column in df.columns:
        present = df[column].dropna()
        if len(present) and present.map(is_number).all():
            out.append(column)
    return out


def overview_summary(
    rows: Sequence[Mapping[str, Any]], config: Optional[DatasetConfig] = None
) -> Dict[str, Any]:
    """Row count plus min/max/mean of every numeric column."""
    df = pd.DataFrame.from_records([dict(r) for r in rows])
    numeric: Dict[str, Dict[str, Optional[float]]] = {}
    for column in _numeric_columns(df, config):
        values = pd.to_numeric(df[column].where(df[column].map(is_number)), errors="coerce")
        if not values.notna().any():
            continue
        numeric[column] = {
            "min": float(values.min()),
            "max": float(values.max()),
            "mean": round(float(values.mean()), 4),
        }
    return {
        "kind": "overview",
        "count": int(len(df)),
        "columns": [str(c) for c in df.columns],
        "numeric": numeric,
    }
