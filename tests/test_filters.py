"""
Tests for configuration filtering.

Covers the three precedence rules:
    1. Own allow-list intersects, preserving order
    2. Descendant allow-list back-projects to upper levels
    3. No allow-list leaves candidates untouched
"""

import logging

import pytest

from formcascade import datasets
from formcascade.chains import build_academic_chain, build_location_chain
from formcascade.config import FormConfig
from formcascade.filters import ConfigFilter
from formcascade.model import CascadeChain, ChainNode, Option


class StaticData:
    """Minimal read-only data store."""

    def __init__(self, **data):
        self.data = data

    def get(self, name):
        return self.data.get(name)


@pytest.fixture
def academic():
    return build_academic_chain()


def level_options(example_data):
    return datasets.academic_levels(example_data["programs"])


class TestOwnAllowList:
    """Rule 1: the level has its own allow-list."""

    def test_intersection_keeps_candidate_order(self, academic, example_data):
        config = FormConfig(programs=["P2", "P1"])
        config_filter = ConfigFilter(config, StaticData(**example_data))
        candidates = datasets.programs_for(example_data["programs"], "PREG", "ENG")

        result = config_filter.filter_level(
            academic, 2, candidates, {"academic_level": "PREG", "faculty": "ENG"}
        )

        assert [o.value for o in result] == ["P1", "P2"]

    def test_own_list_wins_over_descendant_list(self, academic, example_data):
        config = FormConfig(faculties=["MED"], programs=["P4"])
        config_filter = ConfigFilter(config, StaticData(**example_data))
        candidates = datasets.faculties(example_data["programs"], "GRAD")

        result = config_filter.filter_level(academic, 1, candidates, {"academic_level": "GRAD"})

        assert [o.value for o in result] == ["MED"]

    def test_matches_values_not_labels(self, academic):
        config = FormConfig(academic_levels=["Pregrado"])
        config_filter = ConfigFilter(config, StaticData())
        candidates = [Option("PREG", "Pregrado"), Option("GRAD", "Posgrado")]

        assert config_filter.filter_level(academic, 0, candidates, {}) == []


class TestBackProjection:
    """Rule 2: a deeper allow-list restricts upper levels."""

    def test_program_list_selects_its_faculty(self, academic, example_data):
        """programs: [P1] under PREG/ENG leaves exactly [ENG] for PREG."""
        config = FormConfig(programs=["P1"])
        config_filter = ConfigFilter(config, StaticData(**example_data))
        candidates = datasets.faculties(example_data["programs"], "PREG")
        assert [o.value for o in candidates] == ["ENG", "ART"]

        result = config_filter.filter_level(academic, 1, candidates, {"academic_level": "PREG"})

        assert [o.value for o in result] == ["ENG"]

    def test_program_list_selects_its_levels(self, academic, example_data):
        config = FormConfig(programs=["P1", "P5"])
        config_filter = ConfigFilter(config, StaticData(**example_data))

        result = config_filter.filter_level(academic, 0, level_options(example_data), {})

        assert [o.value for o in result] == ["PREG", "GRAD"]

    def test_intermediate_list_applies_on_the_way_down(self, academic, example_data):
        """P1 and P4 are both under ENG; excluding ENG leaves no level."""
        config = FormConfig(faculties=["ART", "MED"], programs=["P1", "P4"])
        config_filter = ConfigFilter(config, StaticData(**example_data))

        result = config_filter.filter_level(academic, 0, level_options(example_data), {})

        assert result == []

    def test_location_city_list(self, example_data):
        chain = build_location_chain()
        config = FormConfig(cities=["05088"])
        config_filter = ConfigFilter(config, StaticData(**example_data))
        countries = datasets.countries(example_data["locations"])

        assert [o.value for o in config_filter.filter_level(chain, 0, countries, {})] == ["COL"]

        departments = datasets.departments(example_data["locations"], "COL")
        result = config_filter.filter_level(chain, 1, departments, {"country": "COL"})
        assert [o.value for o in result] == ["05"]

    def test_missing_dataset_skips_back_projection(self, academic, caplog):
        config = FormConfig(programs=["P1"])
        config_filter = ConfigFilter(config, StaticData())
        candidates = [Option("PREG", "Pregrado"), Option("GRAD", "Posgrado")]

        with caplog.at_level(logging.WARNING):
            result = config_filter.filter_level(academic, 0, candidates, {})

        assert result == candidates
        assert "not loaded" in caplog.text


class TestNoAllowList:
    """Rule 3: nothing configured for the level or below."""

    def test_candidates_unchanged(self, academic, example_data):
        config_filter = ConfigFilter(FormConfig(), StaticData(**example_data))
        candidates = level_options(example_data)

        result = config_filter.filter_level(academic, 0, candidates, {})

        assert result == candidates
        assert result is not candidates

    def test_deeper_list_does_not_affect_lower_levels(self, academic, example_data):
        """The period level sits below the program allow-list."""
        config_filter = ConfigFilter(FormConfig(programs=["P1"]), StaticData(**example_data))
        candidates = datasets.periods_for(example_data["periods"], "PREG")

        result = config_filter.filter_level(
            academic, 3, candidates,
            {"academic_level": "PREG", "faculty": "ENG", "program": "P1"},
        )

        assert result == candidates


class TestRequiredDatasets:
    """Datasets needed before a level can be filtered."""

    def test_own_dataset_only_without_deeper_list(self, academic):
        config_filter = ConfigFilter(FormConfig(), StaticData())
        assert config_filter.required_datasets(academic, 0) == ["programs"]
        assert config_filter.required_datasets(academic, 3) == ["periods"]

    def test_includes_descendants_up_to_restricted_level(self):
        chain = CascadeChain(
            name="split",
            nodes=(
                ChainNode(field="x", dataset="levels", options=lambda d, anc: []),
                ChainNode(field="y", dataset="catalog", options=lambda d, anc: [], allow_list_key="programs"),
                ChainNode(field="z", dataset="calendar", options=lambda d, anc: []),
            ),
        )
        config_filter = ConfigFilter(FormConfig(programs=["P1"]), StaticData())

        assert config_filter.required_datasets(chain, 0) == ["levels", "catalog"]
        assert config_filter.required_datasets(chain, 2) == ["calendar"]

    def test_own_list_needs_no_descendant(self, academic):
        config_filter = ConfigFilter(FormConfig(academic_levels=["PREG"], programs=["P1"]), StaticData())
        assert config_filter.required_datasets(academic, 0) == ["programs"]
