"""
Type discovery – infer browsable "variable types" from graph structure.

For every meaningful named graph the root classes visible from its
members are looked up (``rdfs:subClassOf`` / ``owl:someValuesFrom``
targets without further parents).  Three outcomes are possible per graph:

1. Only ``owl:Thing`` is found → the graph has no usable hierarchy and
   becomes one graph-only type named after the graph.
2. A root is ``rdf:Statement`` (or is labelled ``"Triple"``) → the graph
   stores reified statements and becomes one synthetic ``Triplet`` type.
3. Otherwise each root class becomes a type keyed by its label.

Graphs are processed concurrently; each task returns its descriptors
and :func:`merge_types` folds them into one map, resolving label-key
collisions deterministically.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Set

from rdfscout import queries
from rdfscout.concurrency import DEFAULT_MAX_WORKERS, fan_out
from rdfscout.exceptions import UpstreamQueryError, log_ambiguity
from rdfscout.labels import fetch_labels
from rdfscout.models import TypeDescriptor, TypeMap
from rdfscout.query import QueryExecutor, UriTerm
from rdfscout.utils import (
    capitalize,
    format_key,
    get_domain,
    get_last_path_segment,
    get_local_name,
    is_core_term,
    is_valid_uri,
)
from rdfscout.vocab import RDF_STATEMENT, THING, TRIPLET

logger = logging.getLogger(__name__)

__all__ = [
    "discover_graph",
    "discover_types",
    "fetch_graph_uris",
    "is_triplet",
    "merge_types",
]

TRIPLE_LABEL = "Triple"


def fetch_graph_uris(executor: QueryExecutor, endpoint: str) -> List[str]:
    """Return the meaningful named graphs of *endpoint*, sorted."""
    rows = executor.select(endpoint, queries.all_graphs(), purpose="vars/graphs")
    graphs = {
        row["graph"].value
        for row in rows
        if isinstance(row.get("graph"), UriTerm)
    }
    kept = sorted(g for g in graphs if is_valid_uri(g) and g != THING)
    logger.info("Found %d graphs, %d kept", len(graphs), len(kept))
    return kept


def is_triplet(label: str, element_uri: str) -> bool:
    """Whether a root class stands for reified statements."""
    return label == TRIPLE_LABEL or element_uri == RDF_STATEMENT


def _is_root_class(uri: str) -> bool:
    """Whether a root class can name a type; core vocabulary terms cannot."""
    if uri == RDF_STATEMENT:
        return True
    return uri.startswith("http") and "localhost" not in uri and not is_core_term(uri)


def discover_graph(
    executor: QueryExecutor,
    endpoint: str,
    graph: str,
    *,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> List[TypeDescriptor]:
    """Return the type descriptors contributed by one named graph."""
    rows = executor.select(endpoint, queries.var_types_in_graph(graph), purpose="vars/types")
    found = sorted({
        row["VarType"].value
        for row in rows
        if isinstance(row.get("VarType"), UriTerm)
    })
    local_name = get_last_path_segment(graph)

    roots = [uri for uri in found if _is_root_class(uri)]

    if not roots:
        if THING in found:
            logger.debug("Graph %s has no class hierarchy", graph)
            return [
                TypeDescriptor(
                    label=local_name,
                    use_graph_only=True,
                    element_uri=THING,
                    graph_uri=graph,
                ),
            ]
        logger.debug("Graph %s has no usable root classes (%d found)", graph, len(found))
        return []

    if THING in found:
        logger.debug("Ignoring owl:Thing next to %d roots in %s", len(roots), graph)

    try:
        labels = fetch_labels(executor, endpoint, roots, max_workers=max_workers)
    except UpstreamQueryError as exc:
        raise exc.with_phase("vars/labels") from exc

    descriptors: List[TypeDescriptor] = []
    for uri in roots:
        label = labels.get(uri) or get_local_name(uri)
        if is_triplet(label, uri):
            descriptors.append(
                TypeDescriptor(
                    label=capitalize(local_name),
                    use_graph_only=True,
                    element_uri=TRIPLET,
                    graph_uri=graph,
                ),
            )
            continue
        descriptors.append(
            TypeDescriptor(
                label=label,
                use_graph_only=False,
                element_uri=uri,
                graph_uri=graph,
            ),
        )
    return descriptors


def _identity(desc: TypeDescriptor) -> str:
    """What makes two descriptors the same type.

    Sentinel types are only distinguished by the graph they describe.
    """
    if desc.element_uri in (THING, TRIPLET):
        return f"{desc.element_uri}@{desc.graph_uri}"
    return desc.element_uri


def _domain(desc: TypeDescriptor) -> str:
    if desc.element_uri in (THING, TRIPLET):
        return get_domain(desc.graph_uri)
    return get_domain(desc.element_uri)


def _insert_unique(vars: TypeMap, key: str, desc: TypeDescriptor) -> str:
    candidate = key
    n = 2
    while candidate in vars:
        candidate = f"{key}_{n}"
        n += 1
    vars[candidate] = desc
    return candidate


def merge_types(descriptors: Iterable[TypeDescriptor]) -> TypeMap:
    """Fold descriptors into a type map with unique normalised keys.

    When two different types share a label key, both are renamed to
    ``<key>_<domain>``; later arrivals on an already-split key go
    straight to their suffixed form.  The result only depends on the
    input order.
    """
    vars: TypeMap = {}
    seen: Dict[str, Set[str]] = {}
    split: Set[str] = set()

    for desc in descriptors:
        base = format_key(desc.label)
        if not base:
            logger.debug("Skipping unlabelled type %s", desc.element_uri)
            continue

        identity = _identity(desc)
        identities = seen.setdefault(base, set())
        if identity in identities:
            continue
        identities.add(identity)

        if base in split:
            key = _insert_unique(vars, f"{base}_{_domain(desc)}", desc)
            logger.info("Type %s stored as %s (shared label)", desc.element_uri, key)
            continue

        existing = vars.get(base)
        if existing is None:
            vars[base] = desc
            continue

        del vars[base]
        split.add(base)
        old_key = _insert_unique(vars, f"{base}_{_domain(existing)}", existing)
        new_key = _insert_unique(vars, f"{base}_{_domain(desc)}", desc)
        log_ambiguity(
            logger,
            f"label key {base!r}",
            [existing.element_uri, desc.element_uri],
            f"{old_key}, {new_key}",
        )

    return vars


def discover_types(
    executor: QueryExecutor,
    endpoint: str,
    *,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> TypeMap:
    """Discover the type map of *endpoint*.

    Any upstream failure aborts the whole discovery: no partial map is
    returned.
    """
    graphs = fetch_graph_uris(executor, endpoint)
    per_graph = fan_out(
        lambda graph: discover_graph(executor, endpoint, graph, max_workers=max_workers),
        graphs,
        max_workers=max_workers,
    )
    vars = merge_types(desc for descriptors in per_graph for desc in descriptors)
    logger.info("Discovered %d types in %d graphs of %s", len(vars), len(graphs), endpoint)
    return vars
