"""Tests for the salary and overview analyses and the ANALYSES table."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from jelly_datalab.analysis import ANALYSES, analysis_kind, run_analysis
from jelly_datalab.analysis.overview import overview_summary
from jelly_datalab.analysis.salary import remote_label, salary_summary
from jelly_datalab.catalog.models import ColumnConfig, DatasetConfig
from jelly_datalab.core.enums import ColumnType
from jelly_datalab.core.errors import ConfigurationError


class TestSalarySummary:
    def test_headline_numbers(self, salary_rows):
        summary = salary_summary(salary_rows)
        assert summary["count"] == 4
        assert summary["average_salary_usd"] == 107500.0
        assert summary["top_job_titles"][0] == {"job_title": "Data Scientist", "count": 2}
        assert {e["level"]: e["count"] for e in summary["experience_levels"]} == {
            "SE": 2,
            "MI": 1,
            "EN": 1,
        }

    def test_remote_breakdown(self, salary_rows):
        remote = {e["label"]: e["count"] for e in salary_summary(salary_rows)["remote_work"]}
        assert remote == {"Fully Remote": 2, "On-site": 1, "Hybrid": 1}

    def test_top_countries_by_average_salary(self, salary_rows):
        countries = salary_summary(salary_rows)["top_countries"]
        assert [c["country"] for c in countries] == ["US", "DE", "AM"]
        assert countries[0] == {"country": "US", "average_salary_usd": 140000.0, "count": 2}

    def test_non_numeric_salaries_are_ignored(self):
        rows = [
            {"salary_in_usd": "100000", "company_location": "US"},
            {"salary_in_usd": 50000, "company_location": "FR"},
        ]
        summary = salary_summary(rows)
        assert summary["count"] == 2
        assert summary["average_salary_usd"] == 50000.0
        assert [c["country"] for c in summary["top_countries"]] == ["FR"]

    def test_empty_rows(self):
        summary = salary_summary([])
        assert summary["count"] == 0
        assert summary["average_salary_usd"] is None
        assert summary["top_job_titles"] == []
        assert summary["remote_work"] == []
        assert summary["top_countries"] == []

    @pytest.mark.parametrize(
        "ratio, label",
        [(0, "On-site"), (50, "Hybrid"), (100, "Fully Remote"), (20, "20% remote"), ("x", None)],
    )
    def test_remote_label(self, ratio, label):
        assert remote_label(ratio) == label


class TestOverview:
    def test_infers_numeric_columns_without_config(self, city_rows):
        summary = overview_summary(city_rows)
        assert summary["count"] == 7
        assert set(summary["numeric"]) == {"population"}
        assert summary["numeric"]["population"]["max"] == 2102650

    def test_uses_declared_numeric_columns(self):
        config = DatasetConfig(
            "years",
            "Years",
            columns=[
                ColumnConfig("year", "Year", type=ColumnType.NUMBER),
                ColumnConfig("count", "Count", type=ColumnType.STRING),
            ],
        )
        rows = [{"year": 2020, "count": 1}, {"year": 2022, "count": 3}]
        summary = overview_summary(rows, config)
        assert set(summary["numeric"]) == {"year"}
        assert summary["numeric"]["year"] == {"min": 2020.0, "max": 2022.0, "mean": 2021.0}


class TestRunAnalysis:
    def test_default_kind(self):
        assert analysis_kind(None) == "overview"
        assert analysis_kind(DatasetConfig("a", "A", analysis="salary")) == "salary"

    def test_dispatches_through_table(self):
        config = DatasetConfig("a", "A", analysis="salary")
        fake = MagicMock(return_value={"kind": "fake"})
        with patch.dict(ANALYSES, {"salary": fake}):
            assert run_analysis([{"x": 1}], config) == {"kind": "fake"}
        fake.assert_called_once_with([{"x": 1}], config)

    def test_unknown_kind_raises(self):
        with pytest.raises(ConfigurationError, match="Unknown analysis"):
            run_analysis([], DatasetConfig("a", "A", analysis="astrology"))
