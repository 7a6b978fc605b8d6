"""
The two fixed selection hierarchies of the registration form.

    academic:  academic_level -> faculty -> program -> admission_period
               (only while type_attendee is an applicant type)
    location:  country -> department -> city
               (departments exist only for Colombia)

These are declarations, not rules: the resolver walks them generically.
"""

from typing import Iterable, List, Sequence

from formcascade import datasets
from formcascade.config import DEFAULT_APPLICANT_TYPES
from formcascade.model import CascadeChain, ChainGate, ChainNode, FieldSpec

TYPE_ATTENDEE = "type_attendee"

ACADEMIC_LEVEL = "academic_level"
FACULTY = "faculty"
PROGRAM = "program"
ADMISSION_PERIOD = "admission_period"

COUNTRY = "country"
DEPARTMENT = "department"
CITY = "city"

PHONE_CODE = "phone_code"


def build_academic_chain(applicant_types: Sequence[str] = tuple(DEFAULT_APPLICANT_TYPES)) -> CascadeChain:
    nodes = (
        ChainNode(
            field=ACADEMIC_LEVEL,
            dataset="programs",
            options=lambda data, anc: datasets.academic_levels(data),
            allow_list_key="academic_levels",
        ),
        ChainNode(
            field=FACULTY,
            dataset="programs",
            options=lambda data, anc: datasets.faculties(data, anc[ACADEMIC_LEVEL]),
            allow_list_key="faculties",
        ),
        ChainNode(
            field=PROGRAM,
            dataset="programs",
            options=lambda data, anc: datasets.programs_for(data, anc[ACADEMIC_LEVEL], anc[FACULTY]),
            allow_list_key="programs",
        ),
        ChainNode(
            field=ADMISSION_PERIOD,
            dataset="periods",
            options=lambda data, anc: datasets.periods_for(data, anc[ACADEMIC_LEVEL]),
        ),
    )
    return CascadeChain(
        name="academic",
        nodes=nodes,
        gate=ChainGate(field=TYPE_ATTENDEE, accepted_values=tuple(applicant_types)),
    )


def build_location_chain() -> CascadeChain:
    nodes = (
        ChainNode(
            field=COUNTRY,
            dataset="locations",
            options=lambda data, anc: datasets.countries(data),
            allow_list_key="countries",
        ),
        ChainNode(
            field=DEPARTMENT,
            dataset="locations",
            options=lambda data, anc: datasets.departments(data, anc[COUNTRY]),
            allow_list_key="departments",
        ),
        ChainNode(
            field=CITY,
            dataset="locations",
            options=lambda data, anc: datasets.cities(data, anc[COUNTRY], anc[DEPARTMENT]),
            allow_list_key="cities",
        ),
    )
    return CascadeChain(name="location", nodes=nodes)


def build_default_chains(applicant_types: Sequence[str] = tuple(DEFAULT_APPLICANT_TYPES)) -> List[CascadeChain]:
    return [build_academic_chain(applicant_types), build_location_chain()]


def field_specs(chains: Iterable[CascadeChain], extra_fields: Iterable[str] = ()) -> List[FieldSpec]:
    """
    Store schema for a form: chain fields start hidden and empty, gate
    fields and extra fields start visible.
    """
    specs: List[FieldSpec] = []
    declared = set()

    def declare(spec: FieldSpec) -> None:
        if spec.name not in declared:
            declared.add(spec.name)
            specs.append(spec)

    chains = list(chains)
    for chain in chains:
        if chain.gate is not None:
            declare(FieldSpec(name=chain.gate.field))
    for chain in chains:
        for node in chain.nodes:
            declare(FieldSpec(name=node.field, initial_visible=False))
    for name in extra_fields:
        declare(FieldSpec(name=name))
    return specs
