from __future__ import annotations

from typing import Any, Optional


def resolve_path(document: Any, path: Optional[str]) -> Any:
    """Walk a dot-separated key path into a decoded JSON document.

    An empty or missing path returns the document itself. Any missing
    intermediate (absent key, out-of-range index, non-container value)
    yields None instead of raising. Numeric segments index into lists.

    Examples:
        >>> resolve_path({"data": {"items": [1, 2]}}, "data.items")
        [1, 2]
        >>> resolve_path({"data": None}, "data.items") is None
        True
        >>> resolve_path({"pages": [{"n": 3}]}, "pages.0.n")
        3
    """
    if not path:
        return document
    current = document
    for key in path.split("."):
        if isinstance(current, dict):
            current = current.get(key)
        elif isinstance(current, list) and key.isdigit():
            index = int(key)
            current = current[index] if index < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current
