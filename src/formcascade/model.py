"""
Core Form Model Objects

Defines the fundamental data structures of the cascading form engine.

These are plain data classes representing:
    - Options (selectable values of one field)
    - Field state (what the UI renders for one field)
    - Field specs (the declared schema of a form)
    - Chain nodes and chains (the fixed selection hierarchies)

ARCHITECTURAL RULE:
    These objects:
        - Know nothing about HTML, widgets or CRM payloads
        - Know nothing about where reference data comes from
        - Represent structure, not behavior
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple


@dataclass(frozen=True)
class Option:
    """
    One selectable entry of a select field.

    Properties:
        value:
            Stable code submitted with the form (e.g. "PREG", "11001")
            Unique within one node's option set.

        label:
            Human-readable text shown in the select.

        metadata:
            Extra attributes carried over from the dataset (optional)

    IMPORTANT:
        The label is display text only.
        Lookups, comparisons and allow-lists always use `value`.
    """

    value: str
    label: str
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


def option_values(options: Sequence[Option]) -> List[str]:
    return [opt.value for opt in options]


@dataclass
class FieldState:
    """
    Render state of a single form field.

    Properties:
        value:
            Current selection or text. "" means unset.

        visible:
            Whether the field should be rendered to the user.

        enabled:
            False while the data the field depends on is still loading.

        options:
            Current candidate set (empty for non-select fields)

        touched:
            The user has interacted with the field.

        validation_error:
            Message of the last failed validation, or None.

    INVARIANT:
        visible == False implies value is "" or was set by auto-resolution.
        A hidden field is never left holding a choice among several candidates.
    """

    value: str = ""
    visible: bool = True
    enabled: bool = True
    options: List[Option] = field(default_factory=list)
    touched: bool = False
    validation_error: Optional[str] = None

    def copy(self) -> "FieldState":
        return FieldState(
            value=self.value,
            visible=self.visible,
            enabled=self.enabled,
            options=list(self.options),
            touched=self.touched,
            validation_error=self.validation_error,
        )


@dataclass(frozen=True)
class FieldSpec:
    """
    Declares one field of the form schema.

    Every field a store will ever hold must be declared up front.
    Writing to an undeclared field is a programming error.
    """

    name: str
    initial_value: str = ""
    initial_visible: bool = True

    def initial_state(self) -> FieldState:
        return FieldState(value=self.initial_value, visible=self.initial_visible)


# (dataset, ancestor values) -> candidate options
OptionsAccessor = Callable[[Any, Mapping[str, str]], List[Option]]


@dataclass(frozen=True)
class ChainNode:
    """
    One level of a selection hierarchy.

    Properties:
        field:
            Name of the form field this level drives (e.g. "faculty")

        dataset:
            Name of the reference dataset the options come from

        options:
            Accessor computing raw candidates from the dataset and the
            values of all ancestor levels (keyed by field name)

        allow_list_key:
            Name of the FormConfig allow-list restricting this level,
            or None when the level cannot be restricted by configuration
    """

    field: str
    dataset: str
    options: OptionsAccessor
    allow_list_key: Optional[str] = None


@dataclass(frozen=True)
class ChainGate:
    """
    Precondition for a whole chain.

    The chain is only active while the value of `field` is one of
    `accepted_values`. Example: academic fields only exist for applicants.
    """

    field: str
    accepted_values: Tuple[str, ...]

    def is_open(self, value: str) -> bool:
        return value in self.accepted_values


@dataclass(frozen=True)
class CascadeChain:
    """
    Ordered sequence of dependent selection levels.

    The option set of node k is a function of the values of nodes 0..k-1.

    Example:
        academic_level -> faculty -> program -> admission_period

    INVARIANTS:
        - Field names are unique within a chain
        - The dependency graph is fixed; chains are declared, not computed
    """

    name: str
    nodes: Tuple[ChainNode, ...]
    gate: Optional[ChainGate] = None

    def __post_init__(self):
        names = [node.field for node in self.nodes]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate fields in chain {self.name}: {names}")

    @property
    def fields(self) -> List[str]:
        return [node.field for node in self.nodes]

    def index_of(self, field_name: str) -> Optional[int]:
        """
        Position of a field in the chain.

        Returns:
            Index or None if the field is not part of this chain
        """
        for i, node in enumerate(self.nodes):
            if node.field == field_name:
                return i
        return None

    def descendants(self, index: int) -> List[ChainNode]:
        return list(self.nodes[index + 1:])

    def __len__(self) -> int:
        return len(self.nodes)
