"""
Field validation that honors visibility.

A field the user cannot see is never validated: its error is cleared and
it is left out of the result. Everything else is checked against a list of
validators; the first failing validator's message is written to the field's
validation_error.

Validators are built by factories and called as validator(value, state),
where state is the field's FieldState (options are needed to check that a
selected value is still offered).
"""

import logging
import re
from re import Pattern
from typing import Callable, Dict, List, Optional, Tuple

from formcascade.chains import (
    ACADEMIC_LEVEL,
    ADMISSION_PERIOD,
    CITY,
    COUNTRY,
    DEPARTMENT,
    FACULTY,
    PROGRAM,
    TYPE_ATTENDEE,
)
from formcascade.model import FieldState, option_values

logger = logging.getLogger(__name__)

ValidationResult = Tuple[bool, str]
Validator = Callable[[str, FieldState], ValidationResult]

NAME_PATTERN: Pattern[str] = re.compile(r"^[a-zA-ZáéíóúÁÉÍÓÚñÑ\s]+$")
EMAIL_PATTERN: Pattern[str] = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN: Pattern[str] = re.compile(r"^\d{7,}$")
DOCUMENT_PATTERN: Pattern[str] = re.compile(r"^[A-Za-z0-9]{6,18}$")


# =========================================================================
# VALIDATOR FACTORIES
# =========================================================================


def required(message: str = "Este campo es obligatorio.") -> Validator:
    def validator(value: str, state: FieldState) -> ValidationResult:
        if value is None or not str(value).strip():
            return False, message
        return True, ""
    return validator


def required_choice(message: str = "Por favor seleccione una opción.") -> Validator:
    def validator(value: str, state: FieldState) -> ValidationResult:
        if not value:
            return False, message
        return True, ""
    return validator


def match_pattern(pattern: Pattern[str], message: str) -> Validator:
    """Empty values pass; pair with required() for mandatory fields."""
    def validator(value: str, state: FieldState) -> ValidationResult:
        if not value:
            return True, ""
        if not pattern.match(value.strip()):
            return False, message
        return True, ""
    return validator


def max_length(limit: int, message: Optional[str] = None) -> Validator:
    message = message or f"Máximo {limit} caracteres."

    def validator(value: str, state: FieldState) -> ValidationResult:
        if value and len(value) > limit:
            return False, message
        return True, ""
    return validator


def one_of_options(message: str = "Seleccione una opción válida.") -> Validator:
    """The value must be one of the options the field currently offers."""
    def validator(value: str, state: FieldState) -> ValidationResult:
        if not value:
            return True, ""
        if value not in option_values(state.options):
            return False, message
        return True, ""
    return validator


CHOICE_RULES: List[Validator] = [required_choice(), one_of_options()]

DEFAULT_RULES: Dict[str, List[Validator]] = {
    TYPE_ATTENDEE: [required_choice()],
    ACADEMIC_LEVEL: CHOICE_RULES,
    FACULTY: CHOICE_RULES,
    PROGRAM: CHOICE_RULES,
    ADMISSION_PERIOD: CHOICE_RULES,
    COUNTRY: CHOICE_RULES,
    DEPARTMENT: CHOICE_RULES,
    CITY: CHOICE_RULES,
}


# =========================================================================
# VALIDATION PASS
# =========================================================================


def validate_field(state: FieldState, validators: List[Validator]) -> Optional[str]:
    for validator in validators:
        ok, message = validator(state.value, state)
        if not ok:
            return message
    return None


def validate_store(store, rules: Dict[str, List[Validator]]) -> Dict[str, str]:
    """
    Validate every ruled field of a FieldStateStore.

    Args:
        store: FieldStateStore to read from and write errors into
        rules: field name -> validators; fields missing from the store are
            skipped

    Returns:
        dict: field name -> message, for visible fields that failed
    """
    errors: Dict[str, str] = {}
    for name, validators in rules.items():
        if not store.has(name):
            continue
        state = store.get(name)
        if not state.visible:
            store.set_validation_error(name, None)
            continue
        error = validate_field(state, validators)
        store.set_validation_error(name, error)
        if error is not None:
            errors[name] = error

    if errors:
        logger.debug(f"Validation failed for: {', '.join(errors)}")
    return errors
