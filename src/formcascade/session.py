"""
Form Session - one registration form instance

ARCHITECTURAL RULE:
A session owns its FieldStateStore and its CascadeResolver. The reference
datasets are NOT owned: every session of the process shares them through
the ReferenceDataStore registry.

Lifecycle:
    session = FormSession(config)
    await session.initialize()           # load datasets, resolve both chains
    await session.handle_input("type_attendee", "Aspirante")
    await session.handle_input("academic_level", "PREG")
    errors = session.validate()
    payload = session.snapshot()
    session.destroy()

Input routing:
    - gate field of a chain changed    -> that chain is resolved from the root
    - chain field changed              -> that chain is resolved from the next level
    - any other field                  -> stored, nothing cascades

phone_code is filled from the prefixes dataset and follows the chosen
country until the user picks a code.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from formcascade import datasets
from formcascade.chains import COUNTRY, PHONE_CODE, PROGRAM, build_default_chains, field_specs
from formcascade.config import FormConfig, configure_logging
from formcascade.datastore import ReferenceDataStore
from formcascade.filters import ConfigFilter
from formcascade.model import CascadeChain, FieldState, option_values
from formcascade.resolver import CascadeResolver
from formcascade.store import FieldStateStore
from formcascade.validation import DEFAULT_RULES, validate_store

logger = logging.getLogger(__name__)


class FormSession:
    """
    Wires config, reference data, field store and resolver for one form.

    Args:
        config: Deployment configuration (default: unrestricted FormConfig)
        data_store: Shared ReferenceDataStore (default: built from config)
        extra_fields: Plain fields of the form outside the chains
            (name, email, phone...)
        chains: Cascade chains (default: academic and location chains)
    """

    def __init__(
        self,
        config: Optional[FormConfig] = None,
        data_store: Optional[ReferenceDataStore] = None,
        extra_fields: Iterable[str] = (),
        chains: Optional[Iterable[CascadeChain]] = None,
    ):
        self.config = config if config is not None else FormConfig()
        configure_logging(self.config.log_level)

        self.data_store = data_store if data_store is not None else ReferenceDataStore.from_config(self.config)
        self.chains: List[CascadeChain] = (
            list(chains) if chains is not None else build_default_chains(self.config.applicant_types)
        )
        self.store = FieldStateStore(field_specs(self.chains, (PHONE_CODE, *extra_fields)))
        self.config_filter = ConfigFilter(self.config, self.data_store)
        self.resolver = CascadeResolver(self.store, self.data_store, self.config_filter)

        self._unsubscribers: List[Callable[[], None]] = []
        self._destroyed = False

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def initialize(self) -> None:
        """Load the core datasets (tolerating failures) and resolve every chain."""
        if self._destroyed:
            logger.debug("Initialize ignored: session destroyed")
            return
        loaded = await self.data_store.load_all()
        missing = [name for name, data in loaded.items() if data is None]
        await self._resolve_all()
        logger.info(
            f"Form session initialized ({len(self.store.names)} fields"
            + (f", missing datasets: {', '.join(missing)})" if missing else ")")
        )

    async def reset(self) -> None:
        """Restore initial field state, then resolve the chains again."""
        if self._destroyed:
            logger.debug("Reset ignored: session destroyed")
            return
        self.store.reset()
        await self._resolve_all()

    def destroy(self) -> None:
        """
        Stop reacting to input and drop every subscription made through
        this session. Loads already started still complete and fill the
        shared registry.
        """
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        self._destroyed = True
        logger.info("Form session destroyed")

    async def _resolve_all(self) -> None:
        self.store.set_options(PHONE_CODE, datasets.phone_codes(self.data_store.get("prefixes")))
        for chain in self.chains:
            await self.resolver.resolve_chain(chain)
        await self._preselect_default_country()
        self._follow_country_phone_code()

    async def _preselect_default_country(self) -> None:
        default = self.config.default_country
        if not default or not self.store.has(COUNTRY):
            return
        state = self.store.get(COUNTRY)
        if state.value or default not in option_values(state.options):
            return
        self.store.set_value(COUNTRY, default)
        logger.debug(f"Default country {default} preselected")
        await self._cascade_from(COUNTRY)

    # =========================================================================
    # Input
    # =========================================================================

    async def handle_input(self, name: str, value: Any) -> None:
        """
        Apply a user-entered value and re-resolve whatever depends on it.

        Raises:
            UnknownFieldError: If the field is not part of the form
        """
        if self._destroyed:
            logger.debug(f"Input for '{name}' ignored: session destroyed")
            return
        self.store.set_value(name, value)
        self.store.set_touched(name)
        await self._cascade_from(name)

    async def _cascade_from(self, name: str) -> None:
        for chain in self.chains:
            if chain.gate is not None and chain.gate.field == name:
                await self.resolver.resolve_chain(chain)
                continue
            index = chain.index_of(name)
            if index is not None:
                await self.resolver.resolve_node(chain, index + 1)
        self._follow_country_phone_code()

    def _follow_country_phone_code(self) -> None:
        if not self.store.has(COUNTRY):
            return
        state = self.store.get(PHONE_CODE)
        if state.touched:
            return
        country = self.store.get(COUNTRY).value
        code = datasets.phone_code_for_country(self.data_store.get("prefixes"), country)
        if code is not None and code in option_values(state.options):
            self.store.set_value(PHONE_CODE, code)

    def subscribe(self, name: str, callback: Callable[[str, FieldState], None]) -> Callable[[], None]:
        unsubscribe = self.store.subscribe(name, callback)
        self._unsubscribers.append(unsubscribe)
        return unsubscribe

    # =========================================================================
    # Output
    # =========================================================================

    def validate(self, rules: Optional[Dict[str, list]] = None) -> Dict[str, str]:
        """
        Validate visible fields.

        Returns:
            dict: field name -> error message (empty when the form is valid)
        """
        return validate_store(self.store, DEFAULT_RULES if rules is None else rules)

    def snapshot(self) -> Dict[str, str]:
        return self.store.snapshot()

    def program_details(self) -> Optional[Dict[str, Any]]:
        """Level and faculty of the selected program, if one is selected."""
        if not self.store.has(PROGRAM):
            return None
        code = self.store.get(PROGRAM).value
        if not code:
            return None
        return datasets.find_program(self.data_store.get("programs"), code)
