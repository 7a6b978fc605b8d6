"""
Cascade Resolver - decides, level by level, what each chain field offers

For one level of a chain the resolver:
    1. Collapses the level and everything below it when the chain gate is
       closed or the parent level has no value
    2. Loads the dataset the level reads (the field is disabled meanwhile)
    3. Computes raw candidates and narrows them with the ConfigFilter
    4. Applies the decision rule:
           0 candidates  -> hidden, empty, warning logged, stop
           1 candidate   -> hidden, auto-selected, continue with next level
           2+ candidates -> visible; a value no longer offered is cleared;
                            continue with next level

Every write goes through the FieldStateStore. Writes that would not change
the store are skipped, so resolving twice with unchanged ancestors changes
nothing and notifies nobody.

Ordering:
    One lock per resolver (one resolver per form). A pass runs to the end of
    the chain before another pass starts, and level k+1 is only computed
    after level k has been written.

Errors:
    DataUnavailableError is caught here and turned into a collapsed level.
    Empty, single and multiple candidate sets are outcomes, never exceptions.
"""

import asyncio
import logging
from typing import Any, List

from formcascade.errors import DataUnavailableError
from formcascade.filters import ConfigFilter
from formcascade.model import CascadeChain, Option, option_values
from formcascade.store import FieldStateStore

logger = logging.getLogger(__name__)


class CascadeResolver:
    """Resolves chain levels against reference data into a field store"""

    def __init__(self, store: FieldStateStore, data_store, config_filter: ConfigFilter):
        self.store = store
        self.data_store = data_store
        self.config_filter = config_filter
        self._lock = asyncio.Lock()

    # =========================================================================
    # Public API
    # =========================================================================

    async def resolve_chain(self, chain: CascadeChain) -> None:
        await self.resolve_node(chain, 0)

    async def resolve_node(self, chain: CascadeChain, index: int) -> None:
        """
        Resolve the level at `index` and, while levels keep resolving,
        every level below it.

        Args:
            chain: Chain to resolve
            index: First level to resolve (0 = root)
        """
        if not 0 <= index < len(chain):
            return
        async with self._lock:
            i = index
            while i < len(chain):
                if not await self._resolve_one(chain, i):
                    break
                i += 1

    def collapse_from(self, chain: CascadeChain, index: int) -> None:
        """Hide and clear the level at `index` and every level below it."""
        for node in chain.nodes[index:]:
            self.store.update(node.field, visible=False, value="", options=[], validation_error=None)

    # =========================================================================
    # Single level
    # =========================================================================

    def _precondition_met(self, chain: CascadeChain, index: int) -> bool:
        if index == 0:
            if chain.gate is None:
                return True
            gate_value = self.store.get(chain.gate.field).value
            if not chain.gate.is_open(gate_value):
                logger.debug(f"Chain '{chain.name}' closed ({chain.gate.field}={gate_value!r})")
                return False
            return True

        parent = chain.nodes[index - 1].field
        return self.store.get(parent).value != ""

    async def _resolve_one(self, chain: CascadeChain, index: int) -> bool:
        """
        Resolve one level.

        Returns:
            True if the next level should be resolved, False to stop
        """
        node = chain.nodes[index]

        if not self._precondition_met(chain, index):
            self.collapse_from(chain, index)
            return False

        try:
            data = await self._load_for(chain, index)
        except DataUnavailableError as e:
            logger.warning(f"{node.field} unavailable: {e}")
            self.collapse_from(chain, index)
            return False

        # Ancestors may have changed while the dataset was loading
        if not self._precondition_met(chain, index):
            self.collapse_from(chain, index)
            return False

        ancestors = {n.field: self.store.get(n.field).value for n in chain.nodes[:index]}
        candidates = node.options(data, ancestors)
        offered = self.config_filter.filter_level(chain, index, candidates, ancestors)

        if not offered:
            if candidates:
                logger.warning(
                    f"{node.field}: configuration leaves none of {len(candidates)} "
                    f"option(s) for {ancestors}; field hidden"
                )
            else:
                logger.warning(f"{node.field}: no options for {ancestors}; field hidden")
            self._hide(node.field, [], "")
            self.collapse_from(chain, index + 1)
            return False

        if len(offered) == 1:
            only = offered[0]
            self._hide(node.field, offered, only.value)
            logger.debug(f"{node.field}: auto-selected {only.value!r}")
            return True

        self._show(node.field, offered)
        return True

    async def _load_for(self, chain: CascadeChain, index: int) -> Any:
        """
        Make sure every dataset needed by the level is loaded.

        Returns:
            The dataset of the level itself

        Raises:
            DataUnavailableError: If the level's own dataset cannot be loaded
        """
        node = chain.nodes[index]
        needed = self.config_filter.required_datasets(chain, index)
        if all(self.data_store.is_loaded(name) for name in needed):
            return self.data_store.get(node.dataset)

        self.store.set_enabled(node.field, False)
        try:
            for name in needed:
                if self.data_store.is_loaded(name):
                    continue
                try:
                    await self.data_store.load(name)
                except DataUnavailableError:
                    if name == node.dataset:
                        raise
                    logger.warning(f"{node.field}: filter dataset '{name}' unavailable")
        finally:
            self.store.set_enabled(node.field, True)

        return self.data_store.get(node.dataset)

    # =========================================================================
    # Writes (one notification per field, so subscribers never see a
    # visible field with fewer than 2 options or a hidden field with several)
    # =========================================================================

    def _hide(self, name: str, options: List[Option], value: str) -> None:
        self.store.update(name, visible=False, validation_error=None, options=options, value=value)

    def _show(self, name: str, options: List[Option]) -> None:
        current = self.store.get(name).value
        if current and current not in option_values(options):
            logger.debug(f"{name}: {current!r} no longer offered, cleared")
            current = ""
        self.store.update(name, visible=True, options=options, value=current)
