"""
Dataset Analyzer - diagnostics of reference data against a deployment config.

This module provides a lightweight inventory of the loaded datasets:
    - Counts per hierarchy level (countries, departments, programs...)
    - Datasets that are not loaded
    - Allow-list entries that match nothing in the loaded data

IMPORTANT: This is read-only. It never loads, filters or changes anything.
An allow-list entry that matches nothing is the usual cause of a field that
silently never appears, so those entries are the main output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from formcascade import datasets
from formcascade.config import ALLOW_LIST_KEYS, FormConfig
from formcascade.datastore import CORE_DATASETS

# allow-list key -> dataset it is matched against
ALLOW_LIST_DATASETS = {
    "academic_levels": "programs",
    "faculties": "programs",
    "programs": "programs",
    "countries": "locations",
    "departments": "locations",
    "cities": "locations",
}


@dataclass
class DatasetReport:
    """Inventory of loaded reference data and configuration mismatches."""

    total_countries: int = 0
    total_departments: int = 0
    total_cities: int = 0
    total_academic_levels: int = 0
    total_faculties: int = 0
    total_programs: int = 0
    total_periods: int = 0
    total_prefixes: int = 0

    missing_datasets: List[str] = field(default_factory=list)

    # allow-list key -> codes absent from the loaded data
    unmatched_allow_list: Dict[str, List[str]] = field(default_factory=dict)

    warnings: List[str] = field(default_factory=list)

    def add_warning(self, msg: str) -> None:
        """Add a warning to the report."""
        if msg not in self.warnings:
            self.warnings.append(msg)


def _academic_codes(programs) -> Dict[str, Set[str]]:
    codes: Dict[str, Set[str]] = {"academic_levels": set(), "faculties": set(), "programs": set()}
    for level in datasets.academic_levels(programs):
        codes["academic_levels"].add(level.value)
        for faculty in datasets.faculties(programs, level.value):
            codes["faculties"].add(faculty.value)
            codes["programs"].update(
                p.value for p in datasets.programs_for(programs, level.value, faculty.value)
            )
    return codes


def _location_codes(locations) -> Dict[str, Set[str]]:
    codes: Dict[str, Set[str]] = {"countries": set(), "departments": set(), "cities": set()}
    for country in datasets.countries(locations):
        codes["countries"].add(country.value)
        for department in datasets.departments(locations, country.value):
            codes["departments"].add(department.value)
            codes["cities"].update(
                c.value for c in datasets.cities(locations, country.value, department.value)
            )
    return codes


def _period_count(periods) -> int:
    if isinstance(periods, dict):
        return sum(len(v) for v in periods.values() if isinstance(v, dict))
    if isinstance(periods, list):
        return len(periods)
    return 0


def analyze_datasets(
    data_store,
    config: Optional[FormConfig] = None,
    expected: Iterable[str] = CORE_DATASETS,
) -> DatasetReport:
    """
    Analyze the datasets currently loaded in a ReferenceDataStore.

    Args:
        data_store: Store to inspect (only get()/is_loaded() are used)
        config: Deployment config whose allow-lists are checked
        expected: Dataset names that should be loaded

    Returns:
        DatasetReport with counts, mismatches and warnings
    """
    report = DatasetReport()
    config = config or FormConfig()

    report.missing_datasets = [name for name in expected if not data_store.is_loaded(name)]

    # =========================================================================
    # 1. INVENTORY
    # =========================================================================

    known: Dict[str, Set[str]] = {}

    programs = data_store.get("programs")
    if programs is not None:
        known.update(_academic_codes(programs))
        report.total_academic_levels = len(known["academic_levels"])
        report.total_faculties = len(known["faculties"])
        report.total_programs = len(known["programs"])

    locations = data_store.get("locations")
    if locations is not None:
        known.update(_location_codes(locations))
        report.total_countries = len(known["countries"])
        report.total_departments = len(known["departments"])
        report.total_cities = len(known["cities"])

    report.total_periods = _period_count(data_store.get("periods"))

    prefixes = data_store.get("prefixes")
    if isinstance(prefixes, list):
        report.total_prefixes = len(prefixes)

    # =========================================================================
    # 2. ALLOW-LIST MATCHING
    # =========================================================================

    for key in ALLOW_LIST_KEYS:
        allowed = config.allow_list(key)
        if not allowed or key not in known:
            continue
        unmatched = [code for code in allowed if code not in known[key]]
        if unmatched:
            report.unmatched_allow_list[key] = unmatched

    # =========================================================================
    # 3. WARNING FLAGS
    # =========================================================================

    if report.missing_datasets:
        report.add_warning(f"Datasets not loaded: {', '.join(report.missing_datasets)}")

    for key, unmatched in report.unmatched_allow_list.items():
        report.add_warning(
            f"'{ALLOW_LIST_KEYS[key]}' entries not found in {ALLOW_LIST_DATASETS[key]}: "
            f"{', '.join(unmatched)}"
        )
        if len(unmatched) == len(config.allow_list(key)):
            report.add_warning(f"No '{ALLOW_LIST_KEYS[key]}' entry matches: the field will never be offered")

    return report
