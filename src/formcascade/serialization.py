"""
Serialization helpers for form objects (Option, FieldState, FormConfig).

Provides lossless JSON/YAML round-trip via intermediate dict representation.
Field state dumps are what a UI adapter or a debugging tool receives; the
config helpers write the same shape the hosting page passes in.
"""
from __future__ import annotations

import json
from typing import Any, Dict

import yaml

from formcascade.config import FormConfig, config_from_dict, config_to_dict
from formcascade.model import FieldState, Option


def option_to_dict(o: Option) -> Dict[str, Any]:
    d: Dict[str, Any] = {"value": o.value, "label": o.label}
    if o.metadata:
        d["metadata"] = dict(o.metadata)
    return d


def option_from_dict(d: Dict[str, Any]) -> Option:
    return Option(value=str(d["value"]), label=str(d.get("label", d["value"])), metadata=dict(d.get("metadata") or {}))


def field_state_to_dict(s: FieldState) -> Dict[str, Any]:
    return {
        "value": s.value,
        "visible": s.visible,
        "enabled": s.enabled,
        "options": [option_to_dict(o) for o in s.options],
        "touched": s.touched,
        "validation_error": s.validation_error,
    }


def field_state_from_dict(d: Dict[str, Any]) -> FieldState:
    return FieldState(
        value=d.get("value", ""),
        visible=d.get("visible", True),
        enabled=d.get("enabled", True),
        options=[option_from_dict(o) for o in d.get("options", [])],
        touched=d.get("touched", False),
        validation_error=d.get("validation_error"),
    )


def store_to_dict(store) -> Dict[str, Dict[str, Any]]:
    """Every field of a FieldStateStore, in declaration order."""
    return {name: field_state_to_dict(store.get(name)) for name in store.names}


def store_to_json(store) -> str:
    return json.dumps(store_to_dict(store), ensure_ascii=False)


def config_to_json(c: FormConfig) -> str:
    return json.dumps(config_to_dict(c), sort_keys=True)


def config_from_json(s: str) -> FormConfig:
    d = json.loads(s)
    return config_from_dict(d)


def config_to_yaml(c: FormConfig) -> str:
    return yaml.safe_dump(config_to_dict(c), allow_unicode=True)


def config_from_yaml(s: str) -> FormConfig:
    d = yaml.safe_load(s)
    return config_from_dict(d)
