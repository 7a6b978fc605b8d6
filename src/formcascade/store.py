"""
Field State Store - per-form reactive state

Responsibilities:
- Hold one FieldState per declared field (value, visibility, enabled,
  options, touched, validation error)
- Notify subscribers synchronously after every effective change
- Reset every field to its declared initial state

Design principles:
- Single source of truth: UI adapters render from it, validation reads it,
  the cascade writes to it. Nothing reads visibility from anywhere else.
- Dumb container: no cascade or validation logic lives here
- Synchronous and last-write-wins: a cascade started from set_value() sees
  consistent state for every read in the same call stack
- A write that does not change the stored value is a no-op (no notification)
- A failing subscriber is logged and skipped, except for engine errors
  (an UnknownFieldError raised by a subscriber reaches the writer)

One store per form instance. Stores are never shared between forms.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from formcascade.errors import FormCascadeError, UnknownFieldError
from formcascade.model import FieldSpec, FieldState, Option

logger = logging.getLogger(__name__)

WILDCARD = "*"

UPDATABLE = frozenset({"value", "visible", "enabled", "options", "touched", "validation_error"})

Subscriber = Callable[[str, FieldState], None]


class FieldStateStore:
    """Reactive key/value store of FieldState per field name"""

    def __init__(self, specs: Iterable[FieldSpec]):
        """
        Create state for every declared field.

        Args:
            specs: Field declarations (names must be unique)

        Raises:
            ValueError: If a field name is declared twice
        """
        self._specs: Dict[str, FieldSpec] = {}
        for spec in specs:
            if spec.name in self._specs:
                raise ValueError(f"Field declared twice: {spec.name}")
            self._specs[spec.name] = spec

        self._states: Dict[str, FieldState] = {
            name: spec.initial_state() for name, spec in self._specs.items()
        }
        self._subscribers: Dict[str, List[Subscriber]] = {}

        logger.debug(f"Field store created with {len(self._specs)} fields")

    # ========================
    # Private Helpers
    # ========================

    def _state(self, name: str) -> FieldState:
        try:
            return self._states[name]
        except KeyError:
            raise UnknownFieldError(name) from None

    def _notify(self, name: str) -> None:
        snapshot = self._states[name].copy()
        listeners = list(self._subscribers.get(name, [])) + list(self._subscribers.get(WILDCARD, []))
        for callback in listeners:
            try:
                callback(name, snapshot)
            except FormCascadeError:
                raise
            except Exception as e:
                logger.error(f"Subscriber for '{name}' failed: {e}", exc_info=True)

    # ========================
    # Reads
    # ========================

    @property
    def names(self) -> List[str]:
        return list(self._specs.keys())

    def has(self, name: str) -> bool:
        return name in self._specs

    def get(self, name: str) -> FieldState:
        """
        Get field state (copy, safe to modify).

        Raises:
            UnknownFieldError: If the field was never declared
        """
        return self._state(name).copy()

    def values(self) -> Dict[str, str]:
        return {name: state.value for name, state in self._states.items()}

    def snapshot(self) -> Dict[str, str]:
        """
        Values to submit: every visible field, plus hidden fields that hold
        an auto-resolved value.
        """
        return {
            name: state.value
            for name, state in self._states.items()
            if state.visible or state.value != ""
        }

    # ========================
    # Mutators
    # ========================

    def set_value(self, name: str, value: str) -> None:
        state = self._state(name)
        value = "" if value is None else str(value)
        if state.value == value:
            return
        state.value = value
        logger.debug(f"{name} = {value!r}")
        self._notify(name)

    def set_visible(self, name: str, visible: bool) -> None:
        state = self._state(name)
        if state.visible == visible:
            return
        state.visible = visible
        logger.debug(f"{name} visible={visible}")
        self._notify(name)

    def set_enabled(self, name: str, enabled: bool) -> None:
        state = self._state(name)
        if state.enabled == enabled:
            return
        state.enabled = enabled
        self._notify(name)

    def set_options(self, name: str, options: List[Option]) -> None:
        state = self._state(name)
        options = list(options)
        if state.options == options:
            return
        state.options = options
        logger.debug(f"{name} options={[opt.value for opt in options]}")
        self._notify(name)

    def set_touched(self, name: str, touched: bool = True) -> None:
        state = self._state(name)
        if state.touched == touched:
            return
        state.touched = touched
        self._notify(name)

    def set_validation_error(self, name: str, error: Optional[str]) -> None:
        state = self._state(name)
        if state.validation_error == error:
            return
        state.validation_error = error
        self._notify(name)

    def update(self, name: str, **changes: Any) -> None:
        """
        Apply several attribute changes with a single notification.

        Subscribers never see a partial update, e.g. a field already
        visible but still holding the options of its hidden state.

        Args:
            name: Field name
            **changes: Any of value, visible, enabled, options, touched,
                validation_error

        Raises:
            UnknownFieldError: If the field was never declared
            TypeError: If an attribute name is not a FieldState attribute
        """
        state = self._state(name)
        unknown = set(changes) - UPDATABLE
        if unknown:
            raise TypeError(f"Not a field attribute: {', '.join(sorted(unknown))}")

        if "value" in changes:
            changes["value"] = "" if changes["value"] is None else str(changes["value"])
        if "options" in changes:
            changes["options"] = list(changes["options"])

        changed = [attr for attr, new in changes.items() if getattr(state, attr) != new]
        if not changed:
            return
        for attr in changed:
            setattr(state, attr, changes[attr])
        logger.debug(f"{name} updated: {', '.join(changed)}")
        self._notify(name)

    def reset(self) -> None:
        """Restore every field to its declared initial state."""
        for name, spec in self._specs.items():
            initial = spec.initial_state()
            if self._states[name] != initial:
                self._states[name] = initial
                self._notify(name)
        logger.debug("Field store reset")

    # ========================
    # Subscriptions
    # ========================

    def subscribe(self, name: str, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback for one field, or for every field with "*".

        Args:
            name: Field name or WILDCARD
            callback: Called as callback(field_name, state_copy)

        Returns:
            Function that removes the subscription (safe to call twice)

        Raises:
            UnknownFieldError: If name is neither declared nor "*"
        """
        if name != WILDCARD:
            self._state(name)
        self._subscribers.setdefault(name, []).append(callback)

        def unsubscribe() -> None:
            listeners = self._subscribers.get(name, [])
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe
