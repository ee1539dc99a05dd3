"""Type, property and node data for the ``/api/data`` routes.

Adds two cache layers around :mod:`rdfscout.api`: the in-memory TTL
cache and the on-disk JSON files.  Concurrent cold requests for the same
endpoint and kind share one upstream run.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional

from rdfscout import api
from rdfscout.backend.services.cache_service import (
    JsonFileCache,
    MemoryCache,
    cache,
    cache_key,
)
from rdfscout.inflight import InFlightRegistry
from rdfscout.models import dump_node_map, dump_type_map, load_type_map
from rdfscout.query import QueryExecutor

logger = logging.getLogger(__name__)

KINDS = ("vars", "properties", "nodes")

_inflight: InFlightRegistry[Any] = InFlightRegistry()


class DataService:
    """Serve the three data kinds of an endpoint, cached.

    Parameters
    ----------
    config:
        Flask config (or any mapping with the same keys).
    executor:
        Query executor shared by the whole app.
    memory:
        In-memory cache (defaults to the module singleton).
    """

    def __init__(
        self,
        config: Mapping[str, Any],
        executor: Optional[QueryExecutor] = None,
        memory: Optional[MemoryCache] = None,
    ) -> None:
        self.executor = executor
        self.memory = memory if memory is not None else cache
        self.files = JsonFileCache(config.get("DATA_DIR", ""))
        self.ttl = int(config.get("CACHE_TTL", 0))
        self.node_limit = int(config.get("NODE_LIMIT", 100))
        self.total_node_limit = int(config.get("TOTAL_NODE_LIMIT", 1000))
        self.filter_min_length = int(config.get("FILTER_MIN_LENGTH", 3))
        self.max_workers = int(config.get("MAX_WORKERS", 8))
        self.timeout = float(config.get("DISCOVERY_TIMEOUT", 0)) or None

    def _cached(self, kind: str, endpoint: str, compute: Callable[[], Any]) -> Any:
        key = f"{kind}:{cache_key(endpoint)}"
        data = self.memory.get(key)
        if data is not None:
            return data

        data = self.files.read(kind, endpoint)
        if data is None:
            data = _inflight.run(f"{kind}|{endpoint}", compute)
            self.files.write(kind, endpoint, data)

        self.memory.set(key, data, ttl=self.ttl)
        return data

    def get_vars(self, endpoint: str) -> dict:
        """Type map of *endpoint* as JSON data."""
        return self._cached(
            "vars",
            endpoint,
            lambda: dump_type_map(
                api.discover_types(
                    endpoint,
                    executor=self.executor,
                    timeout=self.timeout,
                    max_workers=self.max_workers,
                ),
            ),
        )

    def get_properties(self, endpoint: str) -> dict:
        """Object and data properties of every type of *endpoint*."""
        def compute() -> dict:
            vars = load_type_map(self.get_vars(endpoint))
            maps = api.classify_properties(
                vars,
                endpoint,
                executor=self.executor,
                timeout=self.timeout,
                max_workers=self.max_workers,
            )
            return maps.to_json()

        return self._cached("properties", endpoint, compute)

    def get_nodes(self, endpoint: str, filter_text: Optional[str] = None) -> dict:
        """Sampled nodes of every type, optionally filtered.

        Filters shorter than ``FILTER_MIN_LENGTH`` are ignored.  Filtered
        samples are never cached.
        """
        if filter_text and len(filter_text) >= self.filter_min_length:
            vars = load_type_map(self.get_vars(endpoint))
            nodes = api.sample_filtered_nodes(
                vars,
                endpoint,
                self.node_limit,
                filter_text,
                self.total_node_limit,
                executor=self.executor,
                timeout=self.timeout,
                max_workers=self.max_workers,
            )
            return dump_node_map(nodes)

        def compute() -> dict:
            vars = load_type_map(self.get_vars(endpoint))
            nodes = api.sample_nodes(
                vars,
                endpoint,
                self.node_limit,
                self.total_node_limit,
                executor=self.executor,
                timeout=self.timeout,
                max_workers=self.max_workers,
            )
            return dump_node_map(nodes)

        return self._cached("nodes", endpoint, compute)

    def get(self, kind: str, endpoint: str, filter_text: Optional[str] = None) -> dict:
        if kind == "vars":
            return self.get_vars(endpoint)
        if kind == "properties":
            return self.get_properties(endpoint)
        if kind == "nodes":
            return self.get_nodes(endpoint, filter_text)
        raise KeyError(kind)
