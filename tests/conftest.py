"""
Shared fixtures: offline reference data, isolated data stores and a small
three-level chain ("a" -> "b" -> "c") over a nested "tree" dataset.

Nothing here touches the network or the process-wide dataset registry.
"""

import threading

import pytest

from formcascade.config import FormConfig
from formcascade.datastore import ReferenceDataStore, SharedDataRegistry
from formcascade.examples import build_example_datasets
from formcascade.filters import ConfigFilter
from formcascade.model import CascadeChain, ChainGate, ChainNode, Option
from formcascade.resolver import CascadeResolver
from formcascade.store import FieldStateStore
from formcascade.chains import field_specs


class RecordingFetcher:
    """Serves datasets for "test://<name>" URLs and records every call."""

    def __init__(self, datasets, failing=()):
        self.datasets = datasets
        self.failing = set(failing)
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, url):
        with self._lock:
            self.calls.append(url)
        name = url.split("://", 1)[-1]
        if name in self.failing or name not in self.datasets:
            raise OSError(f"unreachable: {url}")
        return self.datasets[name]

    def count(self, name):
        return sum(1 for url in self.calls if url.endswith(f"://{name}"))


@pytest.fixture
def recording_fetcher():
    return RecordingFetcher


@pytest.fixture
def example_data():
    return build_example_datasets()


@pytest.fixture
def make_data_store():
    """Factory: isolated ReferenceDataStore serving the given datasets."""

    def make(datasets, failing=(), **kwargs):
        names = set(datasets) | set(failing)
        kwargs.setdefault("cache_enabled", False)
        return ReferenceDataStore(
            fallback_urls={name: [f"test://{name}"] for name in names},
            fetcher=RecordingFetcher(datasets, failing),
            registry=SharedDataRegistry(),
            **kwargs,
        )

    return make


def _tree_levels(data, anc):
    return [Option(value=k, label=k.lower()) for k in data]


def _tree_children(data, anc):
    return [Option(value=k, label=k.lower()) for k in data.get(anc["a"], {})]


def _tree_leaves(data, anc):
    leaves = data.get(anc["a"], {}).get(anc["b"], [])
    return [Option(value=v, label=v.lower()) for v in leaves]


def build_tree_chain(gate=None):
    return CascadeChain(
        name="tree",
        nodes=(
            ChainNode(field="a", dataset="tree", options=_tree_levels, allow_list_key="academic_levels"),
            ChainNode(field="b", dataset="tree", options=_tree_children, allow_list_key="faculties"),
            ChainNode(field="c", dataset="tree", options=_tree_leaves, allow_list_key="programs"),
        ),
        gate=gate,
    )


@pytest.fixture
def tree_chain():
    return build_tree_chain()


@pytest.fixture
def gated_tree_chain():
    return build_tree_chain(gate=ChainGate(field="kind", accepted_values=("yes",)))


@pytest.fixture
def make_resolver(make_data_store):
    """Factory: (resolver, store) for a chain over a "tree" dataset."""

    def make(chain, tree, config=None, failing=()):
        data_store = make_data_store({} if "tree" in failing else {"tree": tree}, failing=failing)
        store = FieldStateStore(field_specs([chain]))
        config_filter = ConfigFilter(config or FormConfig(), data_store)
        return CascadeResolver(store, data_store, config_filter), store

    return make
