"""Main rdfscout functionalities: types, properties and nodes of an endpoint."""

from __future__ import annotations

import logging
import threading
from typing import Optional

from rdfscout import discovery, nodes, properties
from rdfscout.concurrency import DEFAULT_MAX_WORKERS, run_with_timeout
from rdfscout.exceptions import RdfScoutError
from rdfscout.inflight import InFlightRegistry
from rdfscout.labels import decorate_with_labels
from rdfscout.models import NodeMap, PropertyMaps, TypeMap
from rdfscout.query import QueryExecutor, QueryResult, SparqlExecutor, execute_sparql

logger = logging.getLogger(__name__)

__all__ = [
    "classify_properties",
    "default_executor",
    "discover_types",
    "run_query",
    "sample_filtered_nodes",
    "sample_nodes",
]

_inflight: InFlightRegistry[TypeMap] = InFlightRegistry()
_default_executor: Optional[SparqlExecutor] = None
_executor_lock = threading.Lock()


def default_executor() -> SparqlExecutor:
    """Return the process-wide :class:`SparqlExecutor`."""
    global _default_executor
    with _executor_lock:
        if _default_executor is None:
            _default_executor = SparqlExecutor()
        return _default_executor


def discover_types(
    endpoint: str,
    *,
    executor: Optional[QueryExecutor] = None,
    timeout: Optional[float] = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> TypeMap:
    """Discover the browsable types of an endpoint.

    Concurrent calls for the same endpoint share one discovery run.

    Args:
        endpoint: SPARQL endpoint URL
        executor: Query executor (defaults to :func:`default_executor`)
        timeout: Seconds to wait for the result, ``None`` for no limit
        max_workers: Fan-out width

    Returns:
        Type map keyed by normalised label

    Raises:
        UpstreamQueryError: If any discovery query fails
        QueryTimeoutError: If *timeout* passes first
    """
    executor = executor or default_executor()
    return _inflight.run(
        endpoint,
        lambda: discovery.discover_types(executor, endpoint, max_workers=max_workers),
        timeout=timeout,
    )


def classify_properties(
    vars: TypeMap,
    endpoint: str,
    *,
    executor: Optional[QueryExecutor] = None,
    timeout: Optional[float] = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> PropertyMaps:
    """Split the predicates of every type into object and data properties.

    Args:
        vars: Type map from :func:`discover_types`
        endpoint: SPARQL endpoint URL
        executor: Query executor
        timeout: Seconds to wait for the result
        max_workers: Fan-out width

    Returns:
        ``PropertyMaps``; types whose queries failed are absent
    """
    executor = executor or default_executor()
    return run_with_timeout(
        lambda: properties.classify_properties(
            executor, endpoint, vars, max_workers=max_workers,
        ),
        timeout,
        f"property classification for {endpoint}",
    )


def sample_nodes(
    vars: TypeMap,
    endpoint: str,
    per_type_limit: int,
    total_limit: int,
    *,
    executor: Optional[QueryExecutor] = None,
    timeout: Optional[float] = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> NodeMap:
    """Sample labelled instance nodes of every type.

    Args:
        vars: Type map from :func:`discover_types`
        endpoint: SPARQL endpoint URL
        per_type_limit: Candidates fetched per type
        total_limit: Maximum number of nodes over all types
        executor: Query executor
        timeout: Seconds to wait for the result
        max_workers: Fan-out width

    Returns:
        Node buckets keyed by type key
    """
    executor = executor or default_executor()
    return run_with_timeout(
        lambda: nodes.sample_nodes(
            executor, endpoint, vars, per_type_limit, total_limit,
            max_workers=max_workers,
        ),
        timeout,
        f"node sampling for {endpoint}",
    )


def sample_filtered_nodes(
    vars: TypeMap,
    endpoint: str,
    per_type_limit: int,
    filter_text: str,
    total_limit: int,
    *,
    executor: Optional[QueryExecutor] = None,
    timeout: Optional[float] = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> NodeMap:
    """Sample nodes whose URI, label or type key contains *filter_text*.

    Args:
        vars: Type map from :func:`discover_types`
        endpoint: SPARQL endpoint URL
        per_type_limit: Candidates fetched per type
        filter_text: Case-insensitive substring
        total_limit: Maximum number of nodes over all types
        executor: Query executor
        timeout: Seconds to wait for the result
        max_workers: Fan-out width

    Raises:
        InvalidInputError: For bad limits or filter text, before any query
    """
    nodes.validate_limit(per_type_limit, "per_type_limit")
    nodes.validate_limit(total_limit, "total_limit")
    nodes.validate_filter(filter_text)

    executor = executor or default_executor()
    return run_with_timeout(
        lambda: nodes.sample_filtered_nodes(
            executor, endpoint, vars, per_type_limit, filter_text, total_limit,
            max_workers=max_workers,
        ),
        timeout,
        f"filtered node sampling for {endpoint}",
    )


def run_query(
    endpoint: str,
    query: str,
    *,
    labels: bool = True,
    method: str = "GET",
    timeout: int = 30,
    executor: Optional[QueryExecutor] = None,
) -> QueryResult:
    """Proxy an arbitrary SELECT query.

    Args:
        endpoint: SPARQL endpoint URL
        query: Full SPARQL query
        labels: Attach a label to every URI cell
        method: ``"GET"`` or ``"POST"``
        timeout: Request timeout in seconds
        executor: Executor used for the label lookups

    Returns:
        ``QueryResult``; failures are reported in its ``error`` field
    """
    result = execute_sparql(query, endpoint, method=method, timeout=timeout)
    if labels and not result.error:
        try:
            decorate_with_labels(result, executor or default_executor())
        except RdfScoutError as exc:
            logger.warning("Label lookup for proxied query failed: %s", exc)
    return result
