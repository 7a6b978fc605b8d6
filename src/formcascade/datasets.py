"""
Dataset accessors: raw reference JSON -> ordered Option lists.

Each function projects one hierarchy level out of a loaded dataset.
They are pure, synchronous, and tolerate missing or partially-shaped data
by returning an empty list.

Known dataset shapes:

    programs (current):  {"PREG": {"ENG": {"Programas": [{"Codigo", "Nombre"}]}}}
    programs (legacy):   {"PREG": [{"Codigo", "Nombre", "facultad"}]}
    periods (current):   {"PREG": {"2025-1": "202510"}}          label -> code
    periods (legacy):    [{"codigo", "nombre", "nivel_academico"}]  ("TODOS" = every level)
    locations:           {"COL": {"nombre", "departamentos": [{"codigo", "nombre",
                                   "ciudades": [{"codigo", "nombre"}]}]}}
    prefixes:            [{"iso2", ...}]

Candidate order always follows the dataset. Nothing is re-sorted.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from formcascade.model import Option

logger = logging.getLogger(__name__)

ACADEMIC_LEVEL_NAMES = {
    "PREG": "Pregrado",
    "GRAD": "Posgrado",
    "ECLE": "Eclesiástico",
    "ETDH": "Técnico",
    "EDCO": "Educación Continua",
}

ALL_LEVELS_MARKER = "TODOS"
DEPARTMENTS_COUNTRY = "COL"


def _first(d: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if d.get(key) not in (None, ""):
            return d[key]
    return None


def _unique(options: List[Option], level: str) -> List[Option]:
    """Drop repeated option values, keeping the first occurrence."""
    seen = set()
    result = []
    for opt in options:
        if opt.value in seen:
            logger.warning(f"Duplicate {level} option '{opt.value}' ignored")
            continue
        seen.add(opt.value)
        result.append(opt)
    return result


def _program_option(program: Dict[str, Any], **extra: Any) -> Optional[Option]:
    code = _first(program, "Codigo", "codigo")
    if code is None:
        return None
    name = _first(program, "Nombre", "nombre") or code
    return Option(value=str(code), label=str(name), metadata=dict(extra))


# =========================================================================
# ACADEMIC HIERARCHY
# =========================================================================


def academic_levels(programs: Any) -> List[Option]:
    if not isinstance(programs, dict):
        return []
    return [
        Option(value=code, label=ACADEMIC_LEVEL_NAMES.get(code, code))
        for code in programs.keys()
    ]


def faculties(programs: Any, level: str) -> List[Option]:
    """Faculties offered under an academic level."""
    if not isinstance(programs, dict):
        return []
    level_data = programs.get(level)

    if isinstance(level_data, dict):
        options = []
        for code, faculty_data in level_data.items():
            label = code
            if isinstance(faculty_data, dict):
                label = _first(faculty_data, "Facultad", "nombre") or code
            options.append(Option(value=code, label=str(label)))
        return _unique(options, "faculty")

    if isinstance(level_data, list):
        options = [
            Option(value=str(p["facultad"]), label=str(p["facultad"]))
            for p in level_data
            if isinstance(p, dict) and p.get("facultad")
        ]
        seen = set()
        distinct = []
        for opt in options:
            if opt.value not in seen:
                seen.add(opt.value)
                distinct.append(opt)
        return distinct

    return []


def programs_for(programs: Any, level: str, faculty: str) -> List[Option]:
    """Programs of one faculty under one academic level."""
    if not isinstance(programs, dict):
        return []
    level_data = programs.get(level)

    if isinstance(level_data, dict):
        faculty_data = level_data.get(faculty)
        if not isinstance(faculty_data, dict):
            return []
        raw = faculty_data.get("Programas") or []
    elif isinstance(level_data, list):
        raw = [p for p in level_data if isinstance(p, dict) and p.get("facultad") == faculty]
    else:
        return []

    options = [_program_option(p) for p in raw if isinstance(p, dict)]
    return _unique([opt for opt in options if opt is not None], "program")


def periods_for(periods: Any, level: str) -> List[Option]:
    """Admission periods open for an academic level."""
    if isinstance(periods, dict):
        level_periods = periods.get(level)
        if not isinstance(level_periods, dict):
            return []
        options = [Option(value=str(code), label=str(name)) for name, code in level_periods.items()]
        return _unique(options, "period")

    if isinstance(periods, list):
        options = []
        for period in periods:
            if not isinstance(period, dict):
                continue
            if period.get("nivel_academico") not in (level, ALL_LEVELS_MARKER):
                continue
            code = _first(period, "codigo", "Codigo")
            if code is None:
                continue
            name = _first(period, "nombre", "Nombre") or code
            options.append(Option(value=str(code), label=str(name)))
        return _unique(options, "period")

    return []


def find_program(programs: Any, code: str) -> Optional[Dict[str, Any]]:
    """
    Locate a program anywhere in the programs dataset.

    Returns:
        dict with keys code, name, level, faculty - or None if not found
    """
    if not isinstance(programs, dict):
        return None
    for level in programs.keys():
        for faculty in faculties(programs, level):
            for program in programs_for(programs, level, faculty.value):
                if program.value == code:
                    return {
                        "code": program.value,
                        "name": program.label,
                        "level": level,
                        "faculty": faculty.value,
                    }
    return None


# =========================================================================
# LOCATION HIERARCHY
# =========================================================================


def countries(locations: Any) -> List[Option]:
    if not isinstance(locations, dict):
        return []
    options = []
    for code, country in locations.items():
        name = country.get("nombre") if isinstance(country, dict) else None
        options.append(Option(value=str(code), label=str(name or code)))
    return options


def _departments_raw(locations: Any, country: str) -> List[Dict[str, Any]]:
    if not isinstance(locations, dict):
        return []
    country_data = locations.get(country)
    if not isinstance(country_data, dict):
        return []
    raw = country_data.get("departamentos") or []
    return [d for d in raw if isinstance(d, dict) and d.get("codigo") is not None]


def departments(locations: Any, country: str) -> List[Option]:
    """Departments of a country. Only Colombia carries departments."""
    options = [
        Option(value=str(d["codigo"]), label=str(d.get("nombre") or d["codigo"]))
        for d in _departments_raw(locations, country)
    ]
    return _unique(options, "department")


def cities(locations: Any, country: str, department: str) -> List[Option]:
    for dept in _departments_raw(locations, country):
        if str(dept["codigo"]) != department:
            continue
        options = [
            Option(value=str(c["codigo"]), label=str(c.get("nombre") or c["codigo"]))
            for c in dept.get("ciudades") or []
            if isinstance(c, dict) and c.get("codigo") is not None
        ]
        return _unique(options, "city")
    return []


# =========================================================================
# PHONE PREFIXES
# =========================================================================


def _prefix_option(prefix: Dict[str, Any]) -> Optional[Option]:
    code = _first(prefix, "phoneCode", "codigo")
    if code is None:
        return None
    name = _first(prefix, "phoneName", "nameES", "nombre")
    label = f"{code} - {name}" if name else str(code)
    return Option(value=str(code), label=label, metadata={"iso2": prefix.get("iso2")})


def phone_codes(prefixes: Any) -> List[Option]:
    """Options of the phone_code select, one per distinct dialing code."""
    if not isinstance(prefixes, list):
        return []
    options = [_prefix_option(p) for p in prefixes if isinstance(p, dict)]
    seen = set()
    distinct = []
    for opt in options:
        # Several countries share +1; the first entry keeps the code
        if opt is not None and opt.value not in seen:
            seen.add(opt.value)
            distinct.append(opt)
    return distinct


def prefix_for_country(prefixes: Any, country: str) -> Optional[Dict[str, Any]]:
    """Phone prefix entry whose iso2 or iso3 matches the country code."""
    if not isinstance(prefixes, list) or not country:
        return None
    for prefix in prefixes:
        if isinstance(prefix, dict) and country in (prefix.get("iso2"), prefix.get("iso3")):
            return prefix
    return None


def phone_code_for_country(prefixes: Any, country: str) -> Optional[str]:
    prefix = prefix_for_country(prefixes, country)
    if prefix is None:
        return None
    option = _prefix_option(prefix)
    return option.value if option is not None else None