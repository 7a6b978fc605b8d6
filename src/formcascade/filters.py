"""
Configuration filtering of one hierarchy level.

Deployments restrict what a form offers either directly ("offer these
faculties") or through a deeper level ("offer exactly these programs").
Upstream levels must stay correct in the second case, so filtering works
in both directions.

Precedence (first matching rule wins):
    1. The level has its own allow-list     -> intersect with it
    2. A descendant level has an allow-list -> keep a candidate only if some
       descendant path through it reaches an allowed option
    3. Otherwise                            -> candidates unchanged

Candidate order is always preserved.
"""

from __future__ import annotations

import logging
from typing import List, Mapping, Optional, Set

from formcascade.config import FormConfig
from formcascade.model import CascadeChain, Option

logger = logging.getLogger(__name__)


class _DatasetNotLoaded(Exception):
    pass


class ConfigFilter:
    """
    Narrows raw candidates to the options a deployment actually offers.

    Args:
        config: Deployment configuration holding the allow-lists
        data_store: Source of loaded datasets for back-projection (read-only,
            synchronous access through get())
    """

    def __init__(self, config: FormConfig, data_store):
        self.config = config
        self.data_store = data_store

    def _allowed(self, chain: CascadeChain, index: int) -> Optional[Set[str]]:
        values = self.config.allow_list(chain.nodes[index].allow_list_key)
        return set(values) if values else None

    def _deepest_restricted_descendant(self, chain: CascadeChain, index: int) -> Optional[int]:
        for j in range(len(chain) - 1, index, -1):
            if self._allowed(chain, j) is not None:
                return j
        return None

    def required_datasets(self, chain: CascadeChain, index: int) -> List[str]:
        """Datasets that must be loaded to filter the level at `index`."""
        last = index
        if self._allowed(chain, index) is None:
            last = self._deepest_restricted_descendant(chain, index) or index
        names: List[str] = []
        for node in chain.nodes[index:last + 1]:
            if node.dataset not in names:
                names.append(node.dataset)
        return names

    def filter_level(
        self,
        chain: CascadeChain,
        index: int,
        candidates: List[Option],
        ancestors: Mapping[str, str],
    ) -> List[Option]:
        """
        Apply the precedence rules to the candidates of one level.

        Args:
            chain: Chain the level belongs to
            index: Position of the level in the chain
            candidates: Raw options from the dataset, in dataset order
            ancestors: Values of the levels above, keyed by field name

        Returns:
            Filtered options, in candidate order
        """
        node = chain.nodes[index]

        allowed = self._allowed(chain, index)
        if allowed is not None:
            result = [opt for opt in candidates if opt.value in allowed]
            logger.debug(f"{node.field}: allow-list kept {len(result)}/{len(candidates)}")
            return result

        target = self._deepest_restricted_descendant(chain, index)
        if target is None:
            return list(candidates)

        try:
            result = [
                opt for opt in candidates
                if self._reaches_allowed(chain, index + 1, target, {**ancestors, node.field: opt.value})
            ]
        except _DatasetNotLoaded as e:
            logger.warning(
                f"{node.field}: cannot derive filter from '{chain.nodes[target].field}' "
                f"allow-list, dataset '{e}' not loaded; offering all candidates"
            )
            return list(candidates)

        logger.debug(
            f"{node.field}: derived from {chain.nodes[target].field} allow-list, "
            f"kept {len(result)}/{len(candidates)}"
        )
        return result

    def _reaches_allowed(
        self,
        chain: CascadeChain,
        index: int,
        target: int,
        ancestors: Mapping[str, str],
    ) -> bool:
        node = chain.nodes[index]
        data = self.data_store.get(node.dataset)
        if data is None:
            raise _DatasetNotLoaded(node.dataset)

        options = node.options(data, ancestors)
        allowed = self._allowed(chain, index)
        if allowed is not None:
            options = [opt for opt in options if opt.value in allowed]

        if index == target:
            return bool(options)

        return any(
            self._reaches_allowed(chain, index + 1, target, {**ancestors, node.field: opt.value})
            for opt in options
        )
