"""Label resolution: best human-readable label for one or many URIs.

Priority is ``rdfs:label`` > ``skos:prefLabel`` > ``skos:altLabel``;
the first non-empty one wins and a URI without any label maps to ``""``.
"""

from __future__ import annotations

import logging
from typing import Iterable

from rdfscout import queries
from rdfscout.concurrency import DEFAULT_MAX_WORKERS, fan_out
from rdfscout.query import QueryExecutor, QueryResult, term_value
from rdfscout.utils import is_safe_iri, pick_label

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "decorate_with_labels",
    "fetch_label",
    "fetch_labels",
]

DEFAULT_BATCH_SIZE = 100


def fetch_label(executor: QueryExecutor, endpoint: str, uri: str) -> str:
    """Return the best label of *uri*, or ``""``."""
    if not is_safe_iri(uri):
        return ""
    rows = executor.select(endpoint, queries.label_for(uri), purpose="labels/single")
    for row in rows:
        label = pick_label(
            term_value(row, "rdfsLabel"),
            term_value(row, "prefLabel"),
            term_value(row, "altLabel"),
        )
        if label:
            return label
    return ""


def fetch_labels(
    executor: QueryExecutor,
    endpoint: str,
    uris: Iterable[str],
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> dict[str, str]:
    """Return ``{uri: label}`` for every input URI.

    URIs are deduplicated and sent in ``VALUES`` batches of *batch_size*;
    batches run concurrently and are all joined before returning.
    Any :class:`~rdfscout.exceptions.UpstreamQueryError` propagates.
    """
    unique = list(dict.fromkeys(uris))
    labels = {uri: "" for uri in unique}
    safe = [uri for uri in unique if is_safe_iri(uri)]
    if len(safe) < len(unique):
        logger.debug("Skipping %d URIs that cannot be queried", len(unique) - len(safe))

    batches = [safe[i:i + batch_size] for i in range(0, len(safe), batch_size)]

    def _fetch(batch: list[str]) -> dict[str, str]:
        rows = executor.select(endpoint, queries.labels_for(batch), purpose="labels/batch")
        found: dict[str, str] = {}
        for row in rows:
            uri = term_value(row, "uri")
            label = pick_label(
                term_value(row, "rdfsLabel"),
                term_value(row, "prefLabel"),
                term_value(row, "altLabel"),
            )
            # A URI with several labels yields several rows
            if uri and label and not found.get(uri):
                found[uri] = label
        return found

    for found in fan_out(_fetch, batches, max_workers=max_workers):
        labels.update(found)

    logger.debug("Resolved %d/%d labels", sum(1 for v in labels.values() if v), len(labels))
    return labels


def decorate_with_labels(
    result: QueryResult,
    executor: QueryExecutor,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> QueryResult:
    """Attach a ``label`` to every URI cell of a proxied query result."""
    if result.error or not result.rows:
        return result

    uris = [
        cell.value
        for row in result.rows
        for cell in row.values()
        if cell.type == "uri"
    ]
    if not uris:
        return result

    labels = fetch_labels(executor, result.endpoint, uris, batch_size=batch_size)
    for row in result.rows:
        for cell in row.values():
            if cell.type == "uri":
                cell.label = labels.get(cell.value, "")
    result.labels = {uri: label for uri, label in labels.items() if label}
    return result
