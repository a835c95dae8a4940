"""Tests for client-side derived filters: distinct values, filtering and sorting."""

from __future__ import annotations

from types import SimpleNamespace

from jelly_datalab.core.enums import ColumnType, FilterOp, SortDirection
from jelly_datalab.core.query import (
    DatasetQueryFilter,
    apply_filters,
    collation_key,
    distinct_values,
    filter_options,
    parse_client_params,
    sort_rows,
)


def test_collation_key_folds_case_and_accents():
    assert collation_key("Évora") == collation_key("evora")
    assert sorted(["b", "É", "a"], key=collation_key) == ["a", "É", "b"]


class TestDistinctValues:
    def test_strings_are_trimmed_deduplicated_and_sorted(self):
        rows = [{"c": " France"}, {"c": "armenia"}, {"c": "France "}, {"c": ""}, {"c": None}, {}]
        assert distinct_values(rows, "c") == ["armenia", "France"]

    def test_accented_values_sort_with_their_base_letter(self, city_rows):
        cities = distinct_values(city_rows, "city")
        assert cities.index("Évora") < cities.index("Gyumri")

    def test_numeric_values_sort_numerically(self):
        rows = [{"y": 2020}, {"y": "2019"}, {"y": 100}, {"y": "n/a"}, {"y": 2020.0}]
        assert distinct_values(rows, "y", numeric=True) == [100, 2019, 2020]

    def test_numbers_render_as_text_when_not_numeric(self):
        assert distinct_values([{"y": 2020}, {"y": 5.0}], "y") == ["2020", "5"]


def test_filter_options_covers_filterable_columns_only(city_rows):
    columns = [
        SimpleNamespace(field="country", type=ColumnType.STRING, filterable=True),
        SimpleNamespace(field="population", type=ColumnType.NUMBER, filterable=True),
        SimpleNamespace(field="region", type=ColumnType.STRING, filterable=False),
    ]
    options = filter_options(city_rows, columns)
    assert set(options) == {"country", "population"}
    assert options["country"] == ["Armenia", "France", "Georgia", "Portugal"]
    assert options["population"][0] == 56596


def test_apply_filters_keeps_order_and_supports_accessor(city_rows):
    wrapped = [{"data": r} for r in city_rows]
    result = apply_filters(
        wrapped,
        [DatasetQueryFilter("country", FilterOp.EQ, "France")],
        accessor=lambda w: w["data"],
    )
    assert [w["data"]["city"] for w in result] == ["Paris", "Lyon"]
    assert apply_filters(city_rows, []) == city_rows


class TestSortRows:
    def test_missing_values_last_ascending_first_descending(self, city_rows):
        asc = sort_rows(city_rows, "population")
        desc = sort_rows(city_rows, "population", SortDirection.DESC)
        assert asc[-1]["city"] == "Atlantis"
        assert asc[0]["city"] == "Évora"
        assert desc[0]["city"] == "Atlantis"
        assert desc[1]["city"] == "Paris"

    def test_text_sort_is_case_insensitive(self):
        rows = [{"n": "beta"}, {"n": "Alpha"}, {"n": "alpha2"}]
        assert [r["n"] for r in sort_rows(rows, "n")] == ["Alpha", "alpha2", "beta"]

    def test_sort_is_stable(self, city_rows):
        ordered = sort_rows(city_rows, "region")
        assert [r["city"] for r in ordered if r["region"] == "Asia"] == [
            "Yerevan",
            "Gyumri",
            "Tbilisi",
        ]

    def test_nulls_last_ascending_and_first_descending(self):
        rows = [{"v": None}, {"v": 2}, {"v": 1}]
        assert [r["v"] for r in sort_rows(rows, "v")] == [1, 2, None]
        assert [r["v"] for r in sort_rows(rows, "v", SortDirection.DESC)] == [None, 2, 1]

    def test_forced_numeric_sort_of_numeric_strings(self):
        rows = [{"v": "10"}, {"v": "9"}, {"v": "x"}]
        assert [r["v"] for r in sort_rows(rows, "v", numeric=True)] == ["9", "10", "x"]
        assert [r["v"] for r in sort_rows(rows, "v")] == ["10", "9", "x"]


class TestParseClientParams:
    def test_all_sentinel_and_empty_values_mean_no_filter(self):
        filters, sort = parse_client_params(
            {"country": "__all__", "region": " ", "city": "Paris"},
            ["country", "region", "city"],
        )
        assert filters == [DatasetQueryFilter("city", FilterOp.EQ, "Paris")]
        assert sort is None

    def test_only_filterable_fields_become_filters(self):
        filters, _ = parse_client_params({"secret": "x"}, ["country"])
        assert filters == []

    def test_sort_key_and_direction(self):
        _, sort = parse_client_params({"sortKey": "population", "sortDir": "desc"}, [])
        assert sort.field == "population"
        assert sort.direction == SortDirection.DESC
        _, sort = parse_client_params({"sortKey": "population"}, [])
        assert sort.direction == SortDirection.ASC
