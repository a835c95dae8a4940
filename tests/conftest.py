"""Shared pytest fixtures: sample rows, a temporary row store and dataset configs."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Any, Dict, Iterator, List

import pytest

from jelly_datalab.catalog.registry import DatasetConfigRegistry
from jelly_datalab.store.row_store import RowStore

CITY_ROWS: List[Dict[str, Any]] = [
    {"city": "Yerevan", "country": "Armenia", "population": 1092800, "region": "Asia"},
    {"city": "Gyumri", "country": "Armenia", "population": 112300, "region": "Asia"},
    {"city": "Tbilisi", "country": "Georgia", "population": 1201769, "region": "Asia"},
    {"city": "Paris", "country": "France", "population": 2102650, "region": "Europe"},
    {"city": "Lyon", "country": "France", "population": 522250, "region": "Europe"},
    {"city": "Évora", "country": "Portugal", "population": 56596, "region": "Europe"},
    {"city": "Atlantis", "country": None, "population": None, "region": "Europe"},
]

SALARY_ROWS: List[Dict[str, Any]] = [
    {
        "job_title": "Data Scientist",
        "experience_level": "SE",
        "salary_in_usd": 150000,
        "remote_ratio": 100,
        "company_location": "US",
    },
    {
        "job_title": "Data Scientist",
        "experience_level": "MI",
        "salary_in_usd": 90000,
        "remote_ratio": 0,
        "company_location": "DE",
    },
    {
        "job_title": "Data Engineer",
        "experience_level": "SE",
        "salary_in_usd": 130000,
        "remote_ratio": 50,
        "company_location": "US",
    },
    {
        "job_title": "ML Engineer",
        "experience_level": "EN",
        "salary_in_usd": 60000,
        "remote_ratio": 100,
        "company_location": "AM",
    },
]

DATASETS_YAML = textwrap.dedent(
    """
    datasets:
      - slug: cities
        title: World Cities
        sourceType: local
        columns:
          - field: city
            label: City
            type: string
            filter: {type: search}
            sortable: true
          - field: country
            label: Country
            type: string
            filter: {type: select}
            sortable: true
          - field: population
            label: Population
            type: number
            filter: {type: range}
            sortable: true
          - field: region
            label: Region
            type: string
            filter: {type: select}
      - slug: salaries
        title: Salaries
        sourceType: local
        analysis: salary
        columns:
          - field: job_title
            label: Job Title
            filter: {type: select}
          - field: experience_level
            label: Experience
            filter: {type: select}
          - field: salary_in_usd
            label: Salary (USD)
            type: number
            sortable: true
          - field: remote_ratio
            label: Remote
            type: number
          - field: company_location
            label: Company Location
      - slug: products
        title: Products
        sourceType: api
        columns:
          - field: name
            label: Name
            filter: {type: search}
          - field: category
            label: Category
            filter: {type: select}
          - field: price
            label: Price
            type: number
            filter: {type: range}
            sortable: true
        apiConfig:
          baseUrl: https://api.example.test/products
          filterParamMap:
            name: search
            price_min: minPrice
            price_max: maxPrice
          resultPath: data.items
          totalPath: data.total
    """
)


@pytest.fixture
def store(tmp_path: Path) -> Iterator[RowStore]:
    """An opened, empty row store under tmp_path."""
    with RowStore(tmp_path / "store") as s:
        yield s


@pytest.fixture
def city_store(store: RowStore) -> RowStore:
    """Row store holding the sample cities dataset (ids 1..7 in CITY_ROWS order)."""
    store.create_dataset("cities", title="World Cities")
    store.create("cities", CITY_ROWS)
    return store


@pytest.fixture
def datasets_yaml(tmp_path: Path) -> Path:
    path = tmp_path / "datasets.yaml"
    path.write_text(DATASETS_YAML, encoding="utf-8")
    return path


@pytest.fixture
def configs(datasets_yaml: Path) -> DatasetConfigRegistry:
    return DatasetConfigRegistry.from_file(datasets_yaml)


@pytest.fixture
def city_rows() -> List[Dict[str, Any]]:
    return [dict(r) for r in CITY_ROWS]


@pytest.fixture
def salary_rows() -> List[Dict[str, Any]]:
    return [dict(r) for r in SALARY_ROWS]
