"""
Node sampling – example instances per type under a shared budget.

Each type's candidates are fetched concurrently (class membership or
graph membership, optionally filtered by a substring), labelled in
batches and then cut down by :func:`build_nodes` so that the total
never exceeds the budget while every type keeps a fair share.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, List, Optional, Sequence, Tuple

from rdfscout import queries
from rdfscout.concurrency import DEFAULT_MAX_WORKERS, fan_out
from rdfscout.exceptions import InvalidInputError, RdfScoutError
from rdfscout.labels import fetch_labels
from rdfscout.models import NodeEntry, NodeMap, TypeDescriptor, TypeMap
from rdfscout.query import QueryExecutor, UriTerm
from rdfscout.utils import get_last_path_segment, is_valid_uri, sanitize_filter

logger = logging.getLogger(__name__)

__all__ = [
    "MAX_FILTER_LENGTH",
    "allocate",
    "build_nodes",
    "dedupe_labels",
    "sample_filtered_nodes",
    "sample_nodes",
    "validate_filter",
    "validate_limit",
]

MAX_FILTER_LENGTH = 256


# ── Input validation ──────────────────────────────────────────────


def validate_limit(value: object, name: str) -> int:
    """Return *value* if it is a non-negative integer."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(f"{name} must be an integer, got {value!r}")
    if value < 0:
        raise InvalidInputError(f"{name} must not be negative, got {value}")
    return value


def validate_filter(filter_text: object) -> str:
    """Return the sanitised, lower-cased needle for *filter_text*."""
    if not isinstance(filter_text, str):
        raise InvalidInputError(f"filter must be a string, got {type(filter_text).__name__}")
    if len(filter_text) > MAX_FILTER_LENGTH:
        raise InvalidInputError(f"filter longer than {MAX_FILTER_LENGTH} characters")
    needle = sanitize_filter(filter_text)
    if not needle:
        raise InvalidInputError(f"filter {filter_text!r} is empty after sanitising")
    return needle


# ── Budget ────────────────────────────────────────────────────────


def allocate(sizes: Sequence[int], total: int) -> List[int]:
    """Split *total* slots among buckets holding *sizes* candidates.

    Slots are handed out in rounds of equal shares; a bucket that runs
    out of candidates drops out and its unused share goes back to the
    pool.  When fewer slots than open buckets remain, the first open
    buckets (in input order) get one more each.

    Examples::

        >>> allocate([1, 20, 20], 10)
        [1, 5, 4]
    """
    quotas = [0] * len(sizes)
    remaining = total
    pending = [i for i, size in enumerate(sizes) if size > 0]

    while remaining > 0 and pending:
        share = remaining // len(pending)
        if share == 0:
            for i in pending[:remaining]:
                quotas[i] += 1
            break
        still_open = []
        for i in pending:
            take = min(share, sizes[i] - quotas[i])
            quotas[i] += take
            remaining -= take
            if quotas[i] < sizes[i]:
                still_open.append(i)
        pending = still_open

    return quotas


def dedupe_labels(bucket: List[NodeEntry]) -> List[NodeEntry]:
    """Make every label of one bucket unique.

    Duplicated labels get the node's last URI path segment appended,
    ``"label (segment)"``; a clash that survives (same segment) gets a
    running ``" [n]"`` suffix.
    """
    counts = Counter(node.label for node in bucket)
    used = set()
    out: List[NodeEntry] = []
    for node in bucket:
        label = node.label
        if counts[label] > 1:
            segment = get_last_path_segment(node.uri)
            label = f"{label} ({segment})" if label else f"({segment})"
        unique = label
        n = 2
        while unique in used:
            unique = f"{label} [{n}]"
            n += 1
        used.add(unique)
        out.append(node if unique == node.label else NodeEntry(uri=node.uri, label=unique))
    return out


def build_nodes(candidates: Dict[str, List[NodeEntry]], total_limit: int) -> NodeMap:
    """Apply the shared *total_limit* to per-type candidate lists.

    Guarantees
    ----------
    * the result holds at most *total_limit* nodes;
    * a type with at least ``total_limit // len(candidates)`` candidates
      keeps at least that many;
    * labels are unique within each bucket.
    """
    total_limit = validate_limit(total_limit, "total_limit")
    keys = list(candidates)
    quotas = allocate([len(candidates[k]) for k in keys], total_limit)
    return {
        key: dedupe_labels(candidates[key][:quota])
        for key, quota in zip(keys, quotas)
    }


# ── Sampling ──────────────────────────────────────────────────────


def _fetch_candidates(
    executor: QueryExecutor,
    endpoint: str,
    key: str,
    desc: TypeDescriptor,
    limit: int,
    needle: Optional[str],
) -> List[str]:
    if needle is None or needle in key.lower():
        query = queries.nodes(desc, limit)
    else:
        query = queries.filtered_nodes(desc, limit, needle)
    rows = executor.select(endpoint, query, purpose="nodes/candidates")

    uris = []
    for row in rows:
        term = row.get("node")
        if isinstance(term, UriTerm) and is_valid_uri(term.value):
            uris.append(term.value)
    return list(dict.fromkeys(uris))


def _sample_type(
    executor: QueryExecutor,
    endpoint: str,
    key: str,
    desc: TypeDescriptor,
    limit: int,
    needle: Optional[str],
    max_workers: int,
) -> List[NodeEntry]:
    uris = _fetch_candidates(executor, endpoint, key, desc, limit, needle)
    labels = fetch_labels(executor, endpoint, uris, max_workers=max_workers)
    entries = [NodeEntry(uri=uri, label=labels.get(uri, "")) for uri in uris]

    if needle is not None and needle not in key.lower():
        # the query may have matched a label other than the one displayed
        kept = [
            e for e in entries
            if needle in e.uri.lower() or needle in e.label.lower()
        ]
        if len(kept) < len(entries):
            logger.debug("%s: %d nodes matched a secondary label only", key, len(entries) - len(kept))
        entries = kept
    return entries


def _sample(
    executor: QueryExecutor,
    endpoint: str,
    vars: TypeMap,
    per_type_limit: int,
    total_limit: int,
    needle: Optional[str],
    max_workers: int,
) -> NodeMap:
    items: List[Tuple[str, TypeDescriptor]] = list(vars.items())
    outcomes = fan_out(
        lambda item: _sample_type(
            executor, endpoint, item[0], item[1], per_type_limit, needle, max_workers,
        ),
        items,
        max_workers=max_workers,
        return_exceptions=True,
    )

    candidates: Dict[str, List[NodeEntry]] = {}
    for (key, _), outcome in zip(items, outcomes):
        if isinstance(outcome, RdfScoutError):
            logger.error("Error retrieving nodes for %s: %s", key, outcome)
            candidates[key] = []
            continue
        if isinstance(outcome, BaseException):
            raise outcome
        candidates[key] = outcome

    nodes = build_nodes(candidates, total_limit)
    logger.info(
        "Sampled %d nodes for %d types (budget %d)",
        sum(len(bucket) for bucket in nodes.values()), len(nodes), total_limit,
    )
    return nodes


def sample_nodes(
    executor: QueryExecutor,
    endpoint: str,
    vars: TypeMap,
    per_type_limit: int,
    total_limit: int,
    *,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> NodeMap:
    """Sample up to *per_type_limit* labelled instances of every type.

    A *per_type_limit* of 0 leaves the per-type query unbounded.

    A type whose query fails gets an empty bucket; the others are still
    returned.
    """
    per_type_limit = validate_limit(per_type_limit, "per_type_limit")
    total_limit = validate_limit(total_limit, "total_limit")
    return _sample(executor, endpoint, vars, per_type_limit, total_limit, None, max_workers)


def sample_filtered_nodes(
    executor: QueryExecutor,
    endpoint: str,
    vars: TypeMap,
    per_type_limit: int,
    filter_text: str,
    total_limit: int,
    *,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> NodeMap:
    """Like :func:`sample_nodes`, keeping nodes that match *filter_text*.

    A node matches when its URI or label contains the filter, case
    insensitively.  All nodes of a type whose key contains the filter
    match.

    Raises
    ------
    InvalidInputError
        Before any query, for bad limits or filter text.
    """
    per_type_limit = validate_limit(per_type_limit, "per_type_limit")
    total_limit = validate_limit(total_limit, "total_limit")
    needle = validate_filter(filter_text)
    return _sample(executor, endpoint, vars, per_type_limit, total_limit, needle, max_workers)
