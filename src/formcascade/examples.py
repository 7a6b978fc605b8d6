"""
Example reference datasets for demos and offline development.

A small snapshot shaped like the production JSON files: two academic levels,
three faculties, a handful of programs, two countries (only Colombia carries
departments) and phone prefixes.
"""
from typing import Any, Callable, Dict


def build_example_datasets() -> Dict[str, Any]:
    programs = {
        "PREG": {
            "ENG": {
                "Facultad": "Ingeniería",
                "Programas": [
                    {"Codigo": "P1", "Nombre": "Ingeniería de Sistemas"},
                    {"Codigo": "P2", "Nombre": "Ingeniería Civil"},
                ],
            },
            "ART": {
                "Facultad": "Artes",
                "Programas": [
                    {"Codigo": "P3", "Nombre": "Estudios Musicales"},
                ],
            },
        },
        "GRAD": {
            "ENG": {
                "Facultad": "Ingeniería",
                "Programas": [
                    {"Codigo": "P4", "Nombre": "Maestría en Ingeniería Industrial"},
                ],
            },
            "MED": {
                "Facultad": "Medicina",
                "Programas": [
                    {"Codigo": "P5", "Nombre": "Especialización en Pediatría"},
                    {"Codigo": "P6", "Nombre": "Especialización en Cirugía"},
                ],
            },
        },
    }

    periods = {
        "PREG": {"2025-1": "202510", "2025-2": "202530"},
        "GRAD": {"2025-2": "202530"},
    }

    locations = {
        "COL": {
            "nombre": "Colombia",
            "departamentos": [
                {
                    "codigo": "11",
                    "nombre": "Bogotá D.C.",
                    "ciudades": [{"codigo": "11001", "nombre": "Bogotá"}],
                },
                {
                    "codigo": "05",
                    "nombre": "Antioquia",
                    "ciudades": [
                        {"codigo": "05001", "nombre": "Medellín"},
                        {"codigo": "05088", "nombre": "Bello"},
                        {"codigo": "05360", "nombre": "Itagüí"},
                    ],
                },
            ],
        },
        "USA": {"nombre": "Estados Unidos"},
    }

    prefixes = [
        {"iso2": "CO", "iso3": "COL", "nombre": "Colombia", "codigo": "+57"},
        {"iso2": "US", "iso3": "USA", "nombre": "Estados Unidos", "codigo": "+1"},
    ]

    return {
        "programs": programs,
        "periods": periods,
        "locations": locations,
        "prefixes": prefixes,
    }


def example_fetcher(datasets: Dict[str, Any]) -> Callable[[str], Any]:
    """
    Build a fetcher serving `datasets` offline.

    The dataset is picked by the first dataset name contained in the URL
    (use with example_urls()).
    """
    def fetch(url: str) -> Any:
        for name, data in datasets.items():
            if name in url:
                return data
        raise OSError(f"No example dataset for {url}")
    return fetch


def example_urls(datasets: Dict[str, Any]) -> Dict[str, list]:
    """Fallback URL table pointing every dataset at the example fetcher."""
    return {name: [f"example://{name}"] for name in datasets}
