"""
Tests for serialization of form objects.

These tests ensure lossless JSON/YAML round-trip of configuration and a
stable dict layout for field state.
"""

import json

from formcascade.config import FormConfig
from formcascade.model import FieldSpec, FieldState, Option
from formcascade.serialization import (
    config_from_json,
    config_from_yaml,
    config_to_json,
    config_to_yaml,
    field_state_from_dict,
    field_state_to_dict,
    option_from_dict,
    option_to_dict,
    store_to_json,
)
from formcascade.store import FieldStateStore


def build_sample_config() -> FormConfig:
    return FormConfig(
        academic_levels=["PREG"],
        programs=["P1", "P2"],
        cities=["11001"],
        urls={"programs": "https://example.org/programas.json"},
        cache_expiration_hours=6,
        default_country="COL",
    )


def test_json_roundtrip():
    config = build_sample_config()
    assert config_from_json(config_to_json(config)) == config


def test_yaml_roundtrip():
    config = build_sample_config()
    assert config_from_yaml(config_to_yaml(config)) == config


def test_option_metadata_kept():
    option = Option("P1", "Ingeniería", {"faculty": "ENG"})
    d = option_to_dict(option)
    assert d == {"value": "P1", "label": "Ingeniería", "metadata": {"faculty": "ENG"}}
    assert option_from_dict(d).metadata == {"faculty": "ENG"}


def test_option_without_label():
    assert option_from_dict({"value": 11001}) == Option("11001", "11001")


def test_field_state_dict():
    state = FieldState(
        value="ENG",
        visible=False,
        options=[Option("ENG", "Ingeniería")],
        touched=True,
        validation_error=None,
    )
    d = field_state_to_dict(state)
    assert d["options"] == [{"value": "ENG", "label": "Ingeniería"}]
    assert field_state_from_dict(d) == state


def test_store_dump():
    store = FieldStateStore([FieldSpec(name="country"), FieldSpec(name="city", initial_visible=False)])
    store.set_value("country", "COL")

    dumped = json.loads(store_to_json(store))

    assert list(dumped) == ["country", "city"]
    assert dumped["country"]["value"] == "COL"
    assert dumped["city"]["visible"] is False
