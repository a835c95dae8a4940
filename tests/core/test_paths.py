from __future__ import annotations

from jelly_datalab.core.query import resolve_path


def test_empty_path_returns_document():
    doc = [{"id": 1}]
    assert resolve_path(doc, None) is doc
    assert resolve_path(doc, "") is doc


def test_nested_keys():
    assert resolve_path({"data": {"items": [1, 2]}}, "data.items") == [1, 2]
    assert resolve_path({"meta": {"total": 7}}, "meta.total") == 7


def test_missing_intermediate_yields_none():
    assert resolve_path({"data": None}, "data.items") is None
    assert resolve_path({"data": {}}, "data.items") is None
    assert resolve_path({"data": 5}, "data.items") is None
    assert resolve_path("text", "a") is None


def test_list_indexing():
    doc = {"pages": [{"n": 3}]}
    assert resolve_path(doc, "pages.0.n") == 3
    assert resolve_path(doc, "pages.4.n") is None
    assert resolve_path(doc, "pages.first") is None


def test_falsy_values_are_returned():
    assert resolve_path({"total": 0}, "total") == 0
    assert resolve_path({"items": []}, "items") == []
