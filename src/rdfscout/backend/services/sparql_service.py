"""SPARQL query execution service: a thin Flask wrapper with caching.

All core logic lives in :mod:`rdfscout.api`.  This service adds
response caching via :mod:`~rdfscout.backend.services.cache_service`.
"""

from __future__ import annotations

from typing import Optional

from rdfscout.api import run_query
from rdfscout.backend.services.cache_service import MemoryCache, cache, cache_key
from rdfscout.query import QueryExecutor, QueryResult


class SparqlService:
    """Execute SPARQL queries by delegating to :func:`rdfscout.api.run_query`."""

    def __init__(
        self,
        executor: Optional[QueryExecutor] = None,
        ttl: int = 300,
        memory: Optional[MemoryCache] = None,
    ) -> None:
        self.executor = executor
        self.ttl = ttl
        self.memory = memory if memory is not None else cache

    def execute(
        self,
        query: str,
        endpoint: str,
        method: str = "GET",
        timeout: int = 30,
        labels: bool = True,
    ) -> QueryResult:
        """Execute a SPARQL query with result caching."""
        key = f"sparql:{cache_key(query, endpoint, labels)}"
        cached = self.memory.get(key)
        if cached is not None:
            return cached

        result = run_query(
            endpoint,
            query,
            labels=labels,
            method=method,
            timeout=timeout,
            executor=self.executor,
        )

        if result.error is None:
            self.memory.set(key, result, ttl=self.ttl)

        return result
