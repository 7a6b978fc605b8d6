"""
Reference data loading.

Loads the hierarchical reference datasets (locations, programs, periods,
and phone prefixes) that feed the form.

Load order for a dataset:
    1. Already in memory                     -> returned as is
    2. A load is already in flight           -> the same pending load is awaited
    3. Fresh entry in the persistent cache   -> returned, no network
    4. Candidate URLs, strictly in order     -> first success wins

The in-memory dataset map and the in-flight registry are shared by every
ReferenceDataStore of the process (several forms on one page download each
dataset once). Pass a private SharedDataRegistry to isolate a store.

Failures of single URLs are logged and skipped. Only when every candidate
failed is DataUnavailableError raised; callers treat it as recoverable.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional
from urllib.parse import urlparse
from urllib.request import url2pathname

import requests

from formcascade.cache import DatasetCache
from formcascade.errors import DataUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15

# Most authoritative first
DEFAULT_FALLBACK_URLS: Dict[str, List[str]] = {
    "locations": [
        "https://www.javeriana.edu.co/recursosdb/1372208/10609114/ubicaciones.json",
        "https://cloud.cx.javeriana.edu.co/paises.json",
    ],
    "prefixes": [
        "https://www.javeriana.edu.co/recursosdb/1372208/10609114/codigos_pais.json",
        "https://cloud.cx.javeriana.edu.co/codigos_pais.Json",
    ],
    "programs": [
        "https://www.javeriana.edu.co/recursosdb/1372208/10609114/programas.json",
        "https://cloud.cx.javeriana.edu.co/Programas.json",
    ],
    "periods": [
        "https://www.javeriana.edu.co/recursosdb/1372208/10609114/periodos.json",
        "https://cloud.cx.javeriana.edu.co/periodos.json",
    ],
}

CORE_DATASETS = ("locations", "prefixes", "programs", "periods")


def fetch_json(url: str, timeout: float = DEFAULT_TIMEOUT) -> Any:
    """
    Fetch and decode one JSON document.

    http(s) URLs are fetched with a plain GET. Plain paths and file:// URLs
    are read from disk.

    Raises:
        requests.RequestException: On transport errors or non-2xx status
        ValueError: If the body is not valid JSON or the scheme is unsupported
        OSError: If a local file cannot be read
    """
    parsed = urlparse(url)
    if parsed.scheme in ("http", "https"):
        response = requests.get(url, timeout=timeout, headers={"Accept": "application/json"})
        response.raise_for_status()
        return response.json()

    if parsed.scheme == "file":
        path = url2pathname(parsed.path)
    elif parsed.scheme == "" or len(parsed.scheme) == 1:
        # len 1: Windows drive letter
        path = url
    else:
        raise ValueError(f"Unsupported URL scheme: {parsed.scheme}")

    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


class SharedDataRegistry:
    """Loaded datasets and pending loads, keyed by dataset name."""

    def __init__(self):
        self.datasets: Dict[str, Any] = {}
        self.in_flight: Dict[str, asyncio.Future] = {}

    def clear(self) -> None:
        self.datasets.clear()
        self.in_flight.clear()


_default_registry = SharedDataRegistry()


def default_registry() -> SharedDataRegistry:
    return _default_registry


class ReferenceDataStore:
    """
    Loads, caches and serves reference datasets.

    Args:
        urls: Preferred URL per dataset, tried before the fallbacks
        cache: DatasetCache used when caching is enabled
        cache_enabled: Whether the persistent cache is read and written
        fallback_urls: Ordered fallback URLs per dataset
        fetcher: Blocking callable url -> decoded JSON (default: fetch_json)
        registry: Dataset map and in-flight registry (default: process-wide)
    """

    def __init__(
        self,
        urls: Optional[Dict[str, str]] = None,
        cache: Optional[DatasetCache] = None,
        cache_enabled: bool = True,
        fallback_urls: Optional[Dict[str, List[str]]] = None,
        fetcher: Optional[Callable[[str], Any]] = None,
        registry: Optional[SharedDataRegistry] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.urls: Dict[str, str] = dict(urls or {})
        self.cache = cache if cache is not None else DatasetCache()
        self.cache_enabled = cache_enabled
        self.fallback_urls = (
            {k: list(v) for k, v in fallback_urls.items()}
            if fallback_urls is not None
            else {k: list(v) for k, v in DEFAULT_FALLBACK_URLS.items()}
        )
        self.fetcher = fetcher or functools.partial(fetch_json, timeout=timeout)
        self.registry = registry if registry is not None else default_registry()

    @classmethod
    def from_config(cls, config, cache_storage=None, **kwargs) -> "ReferenceDataStore":
        """Build a store from a FormConfig (urls and cache settings)."""
        cache = DatasetCache(storage=cache_storage, expiration_hours=config.cache_expiration_hours)
        return cls(urls=config.urls, cache=cache, cache_enabled=config.cache_enabled, **kwargs)

    # ========================
    # Synchronous access
    # ========================

    def get(self, name: str) -> Optional[Any]:
        """Loaded dataset or None. Never triggers a load."""
        return self.registry.datasets.get(name)

    def is_loaded(self, name: str) -> bool:
        return name in self.registry.datasets

    def candidate_urls(self, name: str, url: Optional[str] = None) -> List[str]:
        """
        Ordered, de-duplicated URL candidates for a dataset.

        Args:
            name: Dataset name
            url: Caller-supplied URL, tried first
        """
        ordered: List[str] = []
        for candidate in [url, self.urls.get(name), *self.fallback_urls.get(name, [])]:
            if candidate and candidate not in ordered:
                ordered.append(candidate)
        return ordered

    # ========================
    # Loading
    # ========================

    async def load(self, name: str, url: Optional[str] = None) -> Any:
        """
        Return a dataset, loading it if needed.

        Raises:
            DataUnavailableError: If no candidate URL produced the dataset
        """
        if name in self.registry.datasets:
            return self.registry.datasets[name]

        pending = self.registry.in_flight.get(name)
        if pending is not None:
            logger.debug(f"Waiting for in-flight load of '{name}'")
            return await asyncio.shield(pending)

        if self.cache_enabled:
            cached = self.cache.get(name)
            if cached is not None:
                logger.info(f"Dataset '{name}' served from cache")
                self.registry.datasets[name] = cached
                return cached

        task = asyncio.ensure_future(self._perform_load(name, self.candidate_urls(name, url)))
        self.registry.in_flight[name] = task
        return await asyncio.shield(task)

    async def _perform_load(self, name: str, urls: List[str]) -> Any:
        try:
            loop = asyncio.get_running_loop()
            last_error: Optional[BaseException] = None

            for url in urls:
                try:
                    logger.debug(f"Loading '{name}' from {url}")
                    data = await loop.run_in_executor(None, self.fetcher, url)
                except (requests.RequestException, OSError, ValueError) as e:
                    logger.warning(f"Failed to load '{name}' from {url}: {e}")
                    last_error = e
                    continue

                if self.cache_enabled:
                    self.cache.set(name, data)
                self.registry.datasets[name] = data
                logger.info(f"Dataset '{name}' loaded from {url}")
                return data

            logger.warning(f"Dataset '{name}' unavailable: all {len(urls)} URL(s) failed")
            raise DataUnavailableError(name, urls, last_error)
        finally:
            self.registry.in_flight.pop(name, None)

    async def reload(self, name: str) -> Any:
        """Drop the dataset from memory and cache, then load it again."""
        if name not in self.registry.in_flight:
            self.registry.datasets.pop(name, None)
            self.cache.remove(name)
        return await self.load(name)

    async def load_all(self, names: Optional[Iterable[str]] = None) -> Dict[str, Optional[Any]]:
        """
        Load several datasets concurrently without failing as a whole.

        Returns:
            dict: dataset name -> dataset, or None when it is unavailable
        """
        names = list(names) if names is not None else list(CORE_DATASETS)
        results = await asyncio.gather(*(self._load_tolerant(n) for n in names))
        loaded = dict(zip(names, results))
        missing = [n for n, data in loaded.items() if data is None]
        if missing:
            logger.warning(f"Continuing without datasets: {', '.join(missing)}")
        else:
            logger.info(f"All datasets loaded: {', '.join(names)}")
        return loaded

    async def _load_tolerant(self, name: str) -> Optional[Any]:
        try:
            return await self.load(name)
        except DataUnavailableError as e:
            logger.warning(str(e))
            return None

    # ========================
    # Settings
    # ========================

    def update_urls(self, new_urls: Dict[str, str]) -> None:
        self.urls.update(new_urls)

    def configure_caching(self, enabled: bool, expiration_hours: float = 12) -> None:
        self.cache_enabled = enabled
        self.cache.expiration_hours = expiration_hours
        if not enabled:
            self.cache.clear()

    def clear_cache(self) -> None:
        self.cache.clear()
