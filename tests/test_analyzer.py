"""
Tests for the Dataset Analyzer.

Tests verify that the analyzer correctly:
    - Counts entries per hierarchy level
    - Lists datasets that are not loaded
    - Finds allow-list entries matching nothing
"""

from formcascade.analyzer import analyze_datasets
from formcascade.config import FormConfig


class StaticData:
    def __init__(self, **data):
        self.data = data

    def get(self, name):
        return self.data.get(name)

    def is_loaded(self, name):
        return name in self.data


def test_inventory(example_data):
    report = analyze_datasets(StaticData(**example_data))

    assert report.total_academic_levels == 2
    assert report.total_faculties == 3
    assert report.total_programs == 6
    assert report.total_periods == 3
    assert report.total_countries == 2
    assert report.total_departments == 2
    assert report.total_cities == 4
    assert report.total_prefixes == 2
    assert report.missing_datasets == []
    assert report.warnings == []


def test_missing_datasets(example_data):
    report = analyze_datasets(StaticData(programs=example_data["programs"]))

    assert report.missing_datasets == ["locations", "prefixes", "periods"]
    assert report.total_countries == 0
    assert any("not loaded" in w for w in report.warnings)


def test_unmatched_allow_list_entries(example_data):
    config = FormConfig(programs=["P1", "P99"], countries=["COL"])

    report = analyze_datasets(StaticData(**example_data), config)

    assert report.unmatched_allow_list == {"programs": ["P99"]}
    assert any("P99" in w for w in report.warnings)
    assert not any("never be offered" in w for w in report.warnings)


def test_allow_list_matching_nothing(example_data):
    config = FormConfig(faculties=["LAW"])

    report = analyze_datasets(StaticData(**example_data), config)

    assert report.unmatched_allow_list == {"faculties": ["LAW"]}
    assert any("never be offered" in w for w in report.warnings)


def test_allow_list_not_checked_without_dataset():
    config = FormConfig(programs=["P1"])
    report = analyze_datasets(StaticData(), config)
    assert report.unmatched_allow_list == {}
