"""
Deployment configuration for one form instance.

The hosting page describes what a deployment offers with a plain object:

    {
        "academicLevels": [{"code": "PREG"}],
        "faculties": ["ENG"],
        "programs": ["P1", "P2"],
        "countries": ["COL"],
        "departments": [],
        "cities": [],
        "urls": {"programs": "https://example.org/programas.json"},
        "cache": {"enabled": true, "expirationHours": 12},
        "applicantTypes": ["Aspirante"],
        "defaultCountry": "COL",
        "logging": {"level": "INFO"}
    }

Empty or absent allow-lists mean "no restriction for this level".

A FormConfig is passed explicitly into every component that needs it.
There is no process-wide configuration object.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from formcascade.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CACHE_EXPIRATION_HOURS = 12
DEFAULT_APPLICANT_TYPES = ["Aspirante"]
DEFAULT_COUNTRY = "COL"

# FormConfig attribute -> key used by the hosting page
ALLOW_LIST_KEYS = {
    "academic_levels": "academicLevels",
    "faculties": "faculties",
    "programs": "programs",
    "countries": "countries",
    "departments": "departments",
    "cities": "cities",
}


@dataclass
class FormConfig:
    """
    Allow-lists and runtime settings of a deployment.

    Properties:
        academic_levels, faculties, programs, countries, departments, cities:
            Allow-lists of codes. None means unrestricted.

        urls:
            Preferred URL per dataset name, tried before built-in fallbacks

        cache_enabled / cache_expiration_hours:
            Persistent dataset cache settings

        applicant_types:
            Attendee types for which the academic chain is active

        default_country:
            Country preselected at initialization when it is offered

        log_level:
            Level applied to the "formcascade" logger
    """

    academic_levels: Optional[List[str]] = None
    faculties: Optional[List[str]] = None
    programs: Optional[List[str]] = None
    countries: Optional[List[str]] = None
    departments: Optional[List[str]] = None
    cities: Optional[List[str]] = None
    urls: Dict[str, str] = field(default_factory=dict)
    cache_enabled: bool = True
    cache_expiration_hours: float = DEFAULT_CACHE_EXPIRATION_HOURS
    applicant_types: List[str] = field(default_factory=lambda: list(DEFAULT_APPLICANT_TYPES))
    default_country: Optional[str] = DEFAULT_COUNTRY
    log_level: str = "INFO"

    def allow_list(self, key: Optional[str]) -> Optional[List[str]]:
        """
        Return the allow-list stored under `key`.

        Args:
            key: FormConfig attribute name (e.g. "programs") or None

        Returns:
            List of allowed codes, or None when the level is unrestricted
        """
        if key is None:
            return None
        if key not in ALLOW_LIST_KEYS:
            raise ConfigError(f"Unknown allow-list: {key}")
        values = getattr(self, key)
        return list(values) if values else None

    def restricted_keys(self) -> List[str]:
        return [key for key in ALLOW_LIST_KEYS if self.allow_list(key)]

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "FormConfig":
        return config_from_dict(d)

    def to_dict(self) -> Dict[str, Any]:
        return config_to_dict(self)


def _codes(raw: Any, key: str) -> Optional[List[str]]:
    """Normalize an allow-list: accepts codes or {"code": ...} objects."""
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise ConfigError(f"'{key}' must be a list, got {type(raw).__name__}")
    codes: List[str] = []
    for item in raw:
        if isinstance(item, dict):
            code = item.get("code")
            if code is None:
                raise ConfigError(f"Entry of '{key}' has no 'code': {item}")
        else:
            code = item
        if not isinstance(code, (str, int)):
            raise ConfigError(f"Invalid code in '{key}': {code!r}")
        code = str(code).strip()
        if code and code not in codes:
            codes.append(code)
    return codes or None


def config_from_dict(d: Optional[Dict[str, Any]]) -> FormConfig:
    if d is None:
        return FormConfig()
    if not isinstance(d, dict):
        raise ConfigError(f"Configuration must be a mapping, got {type(d).__name__}")

    config = FormConfig()
    for attr, key in ALLOW_LIST_KEYS.items():
        setattr(config, attr, _codes(d.get(key), key))

    urls = d.get("urls") or {}
    if not isinstance(urls, dict):
        raise ConfigError("'urls' must be a mapping of dataset name to URL")
    config.urls = {str(k): str(v) for k, v in urls.items() if v}

    cache = d.get("cache") or {}
    if not isinstance(cache, dict):
        raise ConfigError("'cache' must be a mapping")
    config.cache_enabled = bool(cache.get("enabled", True))
    try:
        config.cache_expiration_hours = float(
            cache.get("expirationHours", DEFAULT_CACHE_EXPIRATION_HOURS)
        )
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid cache.expirationHours: {cache.get('expirationHours')!r}")

    applicant_types = d.get("applicantTypes")
    if applicant_types is not None:
        config.applicant_types = _codes(applicant_types, "applicantTypes") or []

    if "defaultCountry" in d:
        config.default_country = d["defaultCountry"] or None

    logging_section = d.get("logging") or {}
    config.log_level = str(logging_section.get("level", "INFO")).upper()

    return config


def config_to_dict(config: FormConfig) -> Dict[str, Any]:
    d: Dict[str, Any] = {}
    for attr, key in ALLOW_LIST_KEYS.items():
        d[key] = list(getattr(config, attr) or [])
    d["urls"] = dict(config.urls)
    d["cache"] = {
        "enabled": config.cache_enabled,
        "expirationHours": config.cache_expiration_hours,
    }
    d["applicantTypes"] = list(config.applicant_types)
    d["defaultCountry"] = config.default_country
    d["logging"] = {"level": config.log_level}
    return d


def load_config(path: str | Path) -> FormConfig:
    """
    Load a FormConfig from a YAML or JSON file.

    Args:
        path: File path (.json is parsed as JSON, anything else as YAML)

    Returns:
        FormConfig

    Raises:
        FileNotFoundError: If the file doesn't exist
        ConfigError: If the file cannot be parsed or is ill-typed
    """
    config_file = Path(path)
    if not config_file.exists():
        raise FileNotFoundError(f"Form configuration not found: {path}")

    text = config_file.read_text(encoding="utf-8")
    try:
        if config_file.suffix.lower() == ".json":
            raw = json.loads(text)
        else:
            raw = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot parse configuration {path}: {e}")

    config = config_from_dict(raw)
    logger.info(f"Loaded form configuration from {path} (restricted: {config.restricted_keys()})")
    return config


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Apply a level to the package logger and return it."""
    package_logger = logging.getLogger("formcascade")
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ConfigError(f"Unknown log level: {level}")
    package_logger.setLevel(resolved)
    return package_logger
