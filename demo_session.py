"""
Demo: Run a form session on the example datasets and print what the user sees.
"""

import asyncio

from formcascade.analyzer import analyze_datasets
from formcascade.config import FormConfig
from formcascade.datastore import ReferenceDataStore, SharedDataRegistry
from formcascade.examples import build_example_datasets, example_fetcher, example_urls
from formcascade.serialization import config_to_yaml
from formcascade.session import FormSession


def print_fields(session, title):
    """Pretty-print the current state of every field."""
    print()
    print("=" * 70)
    print(title)
    print("=" * 70)
    for name in session.store.names:
        state = session.store.get(name)
        shown = "visible" if state.visible else "hidden "
        options = ", ".join(o.value for o in state.options)
        print(f"  {name:<18} {shown}  value={state.value!r:<10} options=[{options}]")
    print()


def print_report(report):
    """Pretty-print a DatasetReport."""
    print("📊 DATASETS")
    print(f"  Academic Levels:       {report.total_academic_levels}")
    print(f"  Faculties:             {report.total_faculties}")
    print(f"  Programs:              {report.total_programs}")
    print(f"  Periods:               {report.total_periods}")
    print(f"  Countries:             {report.total_countries}")
    print(f"  Departments:           {report.total_departments}")
    print(f"  Cities:                {report.total_cities}")
    print(f"  Prefixes:              {report.total_prefixes}")
    print()

    if report.warnings:
        print("⚠️  WARNINGS")
        for i, warning in enumerate(report.warnings, 1):
            print(f"  {i}. {warning}")
    else:
        print("✨ NO WARNINGS - Configuration matches the datasets!")
    print()


async def main():
    datasets = build_example_datasets()
    config = FormConfig.from_dict({"programs": ["P1", "P2", "P9"]})

    data_store = ReferenceDataStore(
        fallback_urls=example_urls(datasets),
        fetcher=example_fetcher(datasets),
        registry=SharedDataRegistry(),
        cache_enabled=False,
    )
    session = FormSession(config, data_store=data_store, extra_fields=["email"])
    await session.initialize()
    print_fields(session, "AFTER INITIALIZE")

    await session.handle_input("type_attendee", "Aspirante")
    print_fields(session, "APPLICANT SELECTED")

    await session.handle_input("program", "P1")
    await session.handle_input("department", "05")
    print_fields(session, "PROGRAM AND DEPARTMENT SELECTED")

    print("Errors:  ", session.validate())
    print("Snapshot:", session.snapshot())

    print_report(analyze_datasets(data_store, config))

    print("Configuration:")
    print(config_to_yaml(config))
    session.destroy()


if __name__ == "__main__":
    asyncio.run(main())
