"""Parquet-backed row store for local datasets.

Each dataset lives in two files under the store root:

    {root}/{slug}.parquet     rows: id (Int64), data (Utf8, JSON object text)
    {root}/{slug}.meta.json   metadata card: slug, title, description, source_url, created_at

A ``RowStore`` is an explicit handle: construct it with a root directory,
``open()`` it (or use it as a context manager) and pass it to whatever needs
rows. Using it after ``close()`` raises ``StoreClosedError``.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

import polars as pl

from jelly_datalab.core.errors import InvalidQueryError, StoreClosedError
from jelly_datalab.core.query.derived import sort_rows
from jelly_datalab.core.query.models import SortSpec

logger = logging.getLogger(__name__)

RowPredicate = Callable[[Mapping[str, Any]], bool]

_SLUG_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")
_SCHEMA = {"id": pl.Int64, "data": pl.Utf8}


@dataclass(frozen=True)
class StoredRow:
    id: int
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DatasetEntry:
    slug: str
    title: str
    description: Optional[str]
    source_url: Optional[str]
    created_at: Optional[str]
    row_count: int


def _to_rows(df: pl.DataFrame) -> List[StoredRow]:
    return [
        StoredRow(id=int(r["id"]), data=json.loads(r["data"]) if r["data"] else {})
        for r in df.iter_rows(named=True)
    ]


class RowStore:
    """File-based store of JSON-shaped rows, keyed by dataset slug."""

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)
        self._open = False

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    def open(self) -> "RowStore":
        self.root.mkdir(parents=True, exist_ok=True)
        self._open = True
        logger.debug("Opened row store at %s", self.root)
        return self

    def close(self) -> None:
        if self._open:
            logger.debug("Closed row store at %s", self.root)
        self._open = False

    @property
    def closed(self) -> bool:
        return not self._open

    def __enter__(self) -> "RowStore":
        return self.open()

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _check_open(self) -> None:
        if not self._open:
            raise StoreClosedError(f"Row store at {self.root} is not open")

    # ------------------------------------------------------------------
    # paths and raw I/O
    # ------------------------------------------------------------------

    def _rows_path(self, slug: str) -> Path:
        if not _SLUG_RE.match(slug or ""):
            raise InvalidQueryError(f"Invalid dataset slug: {slug!r}")
        return self.root / f"{slug}.parquet"

    def _meta_path(self, slug: str) -> Path:
        return self._rows_path(slug).with_suffix(".meta.json")

    def _read_frame(self, slug: str) -> pl.DataFrame:
        path = self._rows_path(slug)
        if not path.exists():
            return pl.DataFrame(schema=_SCHEMA)
        return pl.read_parquet(path)

    def _write_frame(self, slug: str, df: pl.DataFrame) -> None:
        path = self._rows_path(slug)
        tmp_path = path.with_suffix(".parquet.tmp")
        df.write_parquet(tmp_path)
        tmp_path.replace(path)

    def _load_rows(self, slug: str) -> List[StoredRow]:
        return _to_rows(self._read_frame(slug).sort("id"))

    # ------------------------------------------------------------------
    # datasets
    # ------------------------------------------------------------------

    def exists(self, slug: str) -> bool:
        self._check_open()
        return self._rows_path(slug).exists()

    def create_dataset(
        self,
        slug: str,
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
        source_url: Optional[str] = None,
    ) -> DatasetEntry:
        """Create (or update the metadata card of) a dataset."""
        self._check_open()
        meta = {
            "slug": slug,
            "title": title or slug,
            "description": description,
            "source_url": source_url,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        existing = self._read_meta(slug)
        if existing.get("created_at"):
            meta["created_at"] = existing["created_at"]
        self._meta_path(slug).write_text(json.dumps(meta, ensure_ascii=False, indent=2), encoding="utf-8")
        if not self._rows_path(slug).exists():
            self._write_frame(slug, pl.DataFrame(schema=_SCHEMA))
        logger.info("Created dataset %s", slug)
        return self._entry(slug)

    def _read_meta(self, slug: str) -> Dict[str, Any]:
        path = self._meta_path(slug)
        if not path.exists():
            return {}
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable metadata card: %s", path)
            return {}

    def _entry(self, slug: str) -> DatasetEntry:
        meta = self._read_meta(slug)
        created_at = meta.get("created_at")
        if not created_at:
            mtime = self._rows_path(slug).stat().st_mtime
            created_at = datetime.fromtimestamp(mtime, tz=timezone.utc).isoformat()
        return DatasetEntry(
            slug=slug,
            title=meta.get("title") or slug,
            description=meta.get("description"),
            source_url=meta.get("source_url"),
            created_at=created_at,
            row_count=self.count(slug),
        )

    def get_dataset(self, slug: str) -> Optional[DatasetEntry]:
        self._check_open()
        if not self._rows_path(slug).exists():
            return None
        return self._entry(slug)

    def list_datasets(self) -> List[DatasetEntry]:
        """All datasets in the store, newest first."""
        self._check_open()
        entries = [
            self._entry(path.stem)
            for path in self.root.glob("*.parquet")
            if _SLUG_RE.match(path.stem)
        ]
        return sorted(entries, key=lambda e: e.created_at or "", reverse=True)

    def delete_dataset(self, slug: str) -> bool:
        self._check_open()
        removed = False
        for path in (self._rows_path(slug), self._meta_path(slug)):
            if path.exists():
                path.unlink()
                removed = True
        if removed:
            logger.info("Deleted dataset %s", slug)
        return removed

    # ------------------------------------------------------------------
    # rows
    # ------------------------------------------------------------------

    def create(self, slug: str, rows: Iterable[Mapping[str, Any]]) -> int:
        """Append rows to a dataset, assigning increasing integer ids.

        The dataset is created when it does not exist yet. Returns the number
        of rows added.
        """
        self._check_open()
        existing = self._read_frame(slug)
        last_id = existing["id"].max() if existing.height else None
        next_id = int(last_id) + 1 if last_id is not None else 1
        texts = [json.dumps(dict(row), ensure_ascii=False) for row in rows]
        if not texts:
            return 0
        added = pl.DataFrame(
            {"id": list(range(next_id, next_id + len(texts))), "data": texts},
            schema=_SCHEMA,
        )
        is_new = not self._rows_path(slug).exists()
        self._write_frame(slug, pl.concat([existing, added]))
        if is_new and not self._meta_path(slug).exists():
            self.create_dataset(slug)
        logger.debug("Added %d rows to %s", len(texts), slug)
        return len(texts)

    def find_many(
        self,
        slug: str,
        *,
        skip: int = 0,
        take: Optional[int] = None,
        where: Optional[RowPredicate] = None,
        order_by: Optional[SortSpec] = None,
        numeric_sort: Optional[bool] = None,
    ) -> List[StoredRow]:
        """Return a window of rows.

        Without ``order_by`` rows come in id order. ``where`` is evaluated on
        each row's data; ``order_by`` follows ``sort_rows`` (``numeric_sort``
        forces or disables numeric comparison).
        """
        self._check_open()
        path = self._rows_path(slug)
        if not path.exists():
            return []

        if where is None and order_by is None:
            return _to_rows(pl.scan_parquet(path).sort("id").slice(skip, take).collect())

        rows = self._load_rows(slug)
        if where is not None:
            rows = [r for r in rows if where(r.data)]
        if order_by is not None:
            rows = sort_rows(
                rows,
                order_by.field,
                order_by.direction,
                numeric=numeric_sort,
                accessor=lambda r: r.data,
            )
        end = None if take is None else skip + take
        return rows[skip:end]

    def count(self, slug: str, where: Optional[RowPredicate] = None) -> int:
        self._check_open()
        path = self._rows_path(slug)
        if not path.exists():
            return 0
        if where is None:
            return int(pl.scan_parquet(path).select(pl.len()).collect().item())
        return sum(1 for r in self._load_rows(slug) if where(r.data))

    def delete(self, slug: str, where: Optional[RowPredicate] = None) -> int:
        """Delete matching rows (all rows when ``where`` is None). Returns the count removed."""
        self._check_open()
        if not self._rows_path(slug).exists():
            return 0
        df = self._read_frame(slug)
        if where is None:
            removed = df.height
            keep = df.clear()
        else:
            keep_ids = [r.id for r in self._load_rows(slug) if not where(r.data)]
            keep = df.filter(pl.col("id").is_in(keep_ids)) if keep_ids else df.clear()
            removed = df.height - keep.height
        self._write_frame(slug, keep)
        logger.debug("Deleted %d rows from %s", removed, slug)
        return removed


def open_store(root: Union[str, Path]) -> RowStore:
    """Return an opened store; use as ``with open_store(root) as store:``."""
    return RowStore(root).open()
