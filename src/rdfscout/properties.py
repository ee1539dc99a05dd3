"""
Property classification – object vs. data properties per type.

Every predicate used by a type's instances walks a small state machine
until it reaches a resolved state::

    UNRESOLVED ──► TYPED_VIA_VALUE        values are subclasses of a class
         │
         ├──────► TYPED_VIA_SAMPLE        one concrete value was inspected
         │
         └──────► TYPED_VIA_DECLARATION   owl:ObjectProperty / anything else

The last stage always resolves, falling back to ``xsd:string``.

Types whose ``elementUri`` is the ``Triplet`` sentinel model reified
statements: their ``rdf:subject`` / ``rdf:object`` slots are resolved by
voting (classes, then graphs, then parent classes) and every other
predicate goes through the same state machine.

Types are classified concurrently and independently; one type failing
upstream only drops that type from the result.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from rdfscout import queries
from rdfscout.concurrency import DEFAULT_MAX_WORKERS, fan_out
from rdfscout.exceptions import RdfScoutError, log_ambiguity
from rdfscout.labels import fetch_labels
from rdfscout.models import PropertyDescriptor, PropertyMaps, TypeDescriptor, TypeMap
from rdfscout.query import BNodeTerm, LiteralTerm, QueryExecutor, UriTerm, term_value
from rdfscout.utils import get_local_name, is_safe_iri
from rdfscout.vocab import (
    ANY_URI,
    DATATYPE_NAMESPACES,
    LANG_STRING,
    OWL_OBJECT_PROPERTY,
    RDF_OBJECT,
    RDF_SUBJECT,
    THING,
    TRIPLET,
    XSD_STRING,
)

logger = logging.getLogger(__name__)

__all__ = [
    "PredicateState",
    "Resolution",
    "TypeIndex",
    "add_unique",
    "classify_properties",
    "classify_type",
    "resolve_triplet_slot",
    "split_types",
]

ANCESTOR_BATCH_SIZE = 50
SLOT_CANDIDATES = 10
UNKNOWN_DEPTH = 1 << 16

PropertyLists = Tuple[List[PropertyDescriptor], List[PropertyDescriptor]]


class Resolution(IntEnum):
    """How far a predicate's range has been resolved."""

    UNRESOLVED = 0
    TYPED_VIA_VALUE = 1
    TYPED_VIA_SAMPLE = 2
    TYPED_VIA_DECLARATION = 3


@dataclass
class PredicateState:
    """Resolution progress of one predicate of one type."""

    predicate: str
    label: str
    state: Resolution = Resolution.UNRESOLVED
    objects: List[str] = field(default_factory=list)
    datatypes: List[str] = field(default_factory=list)

    @property
    def resolved(self) -> bool:
        return self.state is not Resolution.UNRESOLVED

    def resolve(
        self,
        state: Resolution,
        objects: Iterable[str] = (),
        datatypes: Iterable[str] = (),
    ) -> None:
        """Move to *state*; transitions only go forward."""
        if state <= self.state:
            raise ValueError(f"{self.predicate}: cannot go from {self.state.name} to {state.name}")
        self.state = state
        self.objects = list(dict.fromkeys(objects))
        self.datatypes = list(dict.fromkeys(datatypes))

    def descriptors(self) -> List[PropertyDescriptor]:
        out = [
            PropertyDescriptor(property=self.predicate, label=self.label, object=obj)
            for obj in self.objects
        ]
        out.extend(
            PropertyDescriptor(property=self.predicate, label=self.label, type=dt)
            for dt in self.datatypes
        )
        return out


class TypeIndex:
    """Reverse lookups from URIs to type keys.

    The first key in map order wins when several types share a URI.
    Sentinel element URIs never match.
    """

    def __init__(self, vars: TypeMap) -> None:
        self._by_element: Dict[str, str] = {}
        self._by_graph: Dict[str, str] = {}
        for key, desc in vars.items():
            if desc.element_uri not in (THING, TRIPLET):
                self._by_element.setdefault(desc.element_uri, key)
            self._by_graph.setdefault(desc.graph_uri, key)

    def by_element(self, uri: str) -> Optional[str]:
        return self._by_element.get(uri)

    def by_graph(self, uri: str) -> Optional[str]:
        return self._by_graph.get(uri)

    def match(self, uri: str) -> Optional[str]:
        return self.by_element(uri) or self.by_graph(uri)


@dataclass
class _Context:
    executor: QueryExecutor
    endpoint: str
    vars: TypeMap
    index: TypeIndex
    max_workers: int = DEFAULT_MAX_WORKERS

    def select(self, query: str, purpose: str):
        return self.executor.select(self.endpoint, query, purpose=purpose)


def add_unique(descriptors: List[PropertyDescriptor], new: PropertyDescriptor) -> bool:
    """Append *new* unless an entry with the same (property, label, object) exists."""
    key = new.dedup_key()
    if any(existing.dedup_key() == key for existing in descriptors):
        return False
    descriptors.append(new)
    return True


def _is_datatype(uri: str) -> bool:
    return uri.startswith(DATATYPE_NAMESPACES)


def _literal_datatype(term: LiteralTerm) -> str:
    if term.datatype:
        return term.datatype
    return LANG_STRING if term.lang else XSD_STRING


# ── Stage 1: value classes ────────────────────────────────────────


def _value_types(ctx: _Context, desc: TypeDescriptor, predicate: str) -> List[str]:
    rows = ctx.select(queries.value_types(desc, predicate), "properties/value-type")
    return sorted({
        row["type"].value
        for row in rows
        if isinstance(row.get("type"), UriTerm)
    })


def _depth(row) -> int:
    try:
        return int(float(term_value(row, "depth")))
    except ValueError:
        return UNKNOWN_DEPTH


def _ancestor_keys(ctx: _Context, classes: Sequence[str]) -> Dict[str, str]:
    """Map classes to the known type of their nearest known ancestor.

    Ancestors at the same depth are ordered by URI. When several known
    ancestors exist the candidates and the choice are logged.
    """
    safe = [c for c in classes if is_safe_iri(c)]
    batches = [safe[i:i + ANCESTOR_BATCH_SIZE] for i in range(0, len(safe), ANCESTOR_BATCH_SIZE)]

    def _fetch(batch: List[str]) -> Dict[str, List[Tuple[int, str]]]:
        rows = ctx.select(queries.ancestors(batch), "properties/ancestors")
        found: Dict[str, List[Tuple[int, str]]] = defaultdict(list)
        for row in rows:
            cls, ancestor = term_value(row, "class"), term_value(row, "ancestor")
            if cls and ancestor:
                found[cls].append((_depth(row), ancestor))
        return found

    keys: Dict[str, str] = {}
    for found in fan_out(_fetch, batches, max_workers=ctx.max_workers):
        for cls, parents in found.items():
            known = [
                (ancestor, ctx.index.by_element(ancestor))
                for _, ancestor in sorted(parents)
                if ctx.index.by_element(ancestor)
            ]
            if not known:
                continue
            keys[cls] = known[0][1]
            if len(known) > 1:
                log_ambiguity(logger, f"{cls} ancestors", [a for a, _ in known], known[0][1])
    return keys


def _apply_value_types(
    ctx: _Context,
    state: PredicateState,
    types: List[str],
    ancestor_keys: Dict[str, str],
) -> None:
    objects: List[str] = []
    datatypes: List[str] = []
    for uri in types:
        key = ctx.index.by_element(uri) or ancestor_keys.get(uri)
        if key:
            objects.append(key)
        elif uri == ANY_URI:
            objects.append(ANY_URI)
        elif _is_datatype(uri):
            datatypes.append(uri)
        else:
            logger.debug("%s: value class %s matches no type", state.predicate, uri)
            datatypes.append(XSD_STRING)
    state.resolve(Resolution.TYPED_VIA_VALUE, objects, datatypes)


# ── Stage 2: one concrete value ───────────────────────────────────


def _apply_sample(ctx: _Context, desc: TypeDescriptor, state: PredicateState) -> None:
    rows = ctx.select(queries.sample_value(desc, state.predicate), "properties/sample")
    term = rows[0].get("o") if rows else None

    if isinstance(term, LiteralTerm):
        state.resolve(Resolution.TYPED_VIA_SAMPLE, datatypes=[_literal_datatype(term)])
    elif isinstance(term, UriTerm):
        key = ctx.index.match(term.value)
        if key:
            state.resolve(Resolution.TYPED_VIA_SAMPLE, objects=[key])
    elif term is None or isinstance(term, BNodeTerm):
        logger.debug("%s: no usable sample value", state.predicate)


# ── Stage 3: property declarations ────────────────────────────────


def _apply_declarations(ctx: _Context, states: List[PredicateState]) -> None:
    declared: Dict[str, set] = defaultdict(set)
    safe = [s.predicate for s in states if is_safe_iri(s.predicate)]
    if safe:
        rows = ctx.select(queries.property_declarations(safe), "properties/declaration")
        for row in rows:
            declared[term_value(row, "p")].add(term_value(row, "propertyType"))

    for state in states:
        if OWL_OBJECT_PROPERTY in declared.get(state.predicate, ()):
            state.resolve(Resolution.TYPED_VIA_DECLARATION, objects=[ANY_URI])
        else:
            state.resolve(Resolution.TYPED_VIA_DECLARATION, datatypes=[XSD_STRING])


def _resolve_predicates(
    ctx: _Context,
    desc: TypeDescriptor,
    predicates: List[str],
) -> List[PredicateState]:
    labels = fetch_labels(ctx.executor, ctx.endpoint, predicates, max_workers=ctx.max_workers)
    states = [
        PredicateState(predicate=p, label=labels.get(p) or get_local_name(p))
        for p in predicates
    ]

    value_types = fan_out(
        lambda s: _value_types(ctx, desc, s.predicate),
        states,
        max_workers=ctx.max_workers,
    )
    unknown = sorted({
        uri
        for types in value_types
        for uri in types
        if not ctx.index.by_element(uri) and uri != ANY_URI and not _is_datatype(uri)
    })
    ancestor_keys = _ancestor_keys(ctx, unknown) if unknown else {}

    for state, types in zip(states, value_types):
        if types:
            _apply_value_types(ctx, state, types, ancestor_keys)

    pending = [s for s in states if not s.resolved]
    fan_out(lambda s: _apply_sample(ctx, desc, s), pending, max_workers=ctx.max_workers)

    pending = [s for s in states if not s.resolved]
    if pending:
        _apply_declarations(ctx, pending)

    return states


def _emit(states: Iterable[PredicateState], out: PropertyLists) -> PropertyLists:
    object_props, data_props = out
    for state in states:
        for descriptor in state.descriptors():
            if descriptor.object is not None:
                add_unique(object_props, descriptor)
            else:
                add_unique(data_props, descriptor)
    return out


def _predicates(ctx: _Context, desc: TypeDescriptor, exclude: Iterable[str] = ()) -> List[str]:
    rows = ctx.select(queries.predicates_for(desc), "properties/predicates")
    skip = set(exclude)
    return sorted({
        row["p"].value
        for row in rows
        if isinstance(row.get("p"), UriTerm) and row["p"].value not in skip
        and is_safe_iri(row["p"].value)
    })


# ── Simple types ──────────────────────────────────────────────────


def _classify_simple(ctx: _Context, desc: TypeDescriptor) -> PropertyLists:
    predicates = _predicates(ctx, desc)
    states = _resolve_predicates(ctx, desc, predicates)
    return _emit(states, ([], []))


# ── Triplet types ─────────────────────────────────────────────────


def _ranked(rows, var: str) -> List[str]:
    """Values of *var* ordered by descending ``?count`` (stable)."""
    ranked = []
    for row in rows:
        term = row.get(var)
        if not isinstance(term, UriTerm):
            continue
        try:
            count = int(float(term_value(row, "count") or 0))
        except ValueError:
            count = 0
        ranked.append((count, term.value))
    ranked.sort(key=lambda item: -item[0])
    return [uri for _, uri in ranked]


def resolve_triplet_slot(ctx: _Context, desc: TypeDescriptor, slot: str) -> Optional[str]:
    """Find the type key the reified statements' *slot* values belong to.

    Tries, in order: the most frequent value class that is a known type,
    the most frequent other graph that hosts a known type, and the
    nearest known ancestor of the most frequent value classes.
    """
    slot_name = get_local_name(slot)
    subject = f"{desc.graph_uri} rdf:{slot_name}"

    classes = _ranked(
        ctx.select(
            queries.triplet_slot_classes(desc.graph_uri, slot, SLOT_CANDIDATES),
            "properties/triplet-classes",
        ),
        "class",
    )
    qualifying = [c for c in classes if ctx.index.by_element(c)]
    if qualifying:
        choice = ctx.index.by_element(qualifying[0])
        if len(qualifying) > 1:
            log_ambiguity(logger, subject, qualifying, choice)
        return choice

    graphs = _ranked(
        ctx.select(
            queries.triplet_slot_graphs(desc.graph_uri, slot, SLOT_CANDIDATES),
            "properties/triplet-graphs",
        ),
        "graph",
    )
    qualifying = [g for g in graphs if ctx.index.by_graph(g)]
    if qualifying:
        choice = ctx.index.by_graph(qualifying[0])
        if len(qualifying) > 1:
            log_ambiguity(logger, subject, qualifying, choice)
        return choice

    if classes:
        parents = _ancestor_keys(ctx, classes)
        for cls in classes:
            if cls in parents:
                log_ambiguity(logger, subject, classes, parents[cls])
                return parents[cls]

    log_ambiguity(logger, subject, classes + graphs, None)
    return None


def _classify_triplet(ctx: _Context, desc: TypeDescriptor) -> PropertyLists:
    slots = (RDF_OBJECT, RDF_SUBJECT)

    def _slots() -> List[Optional[str]]:
        return fan_out(
            lambda slot: resolve_triplet_slot(ctx, desc, slot),
            slots,
            max_workers=ctx.max_workers,
        )

    def _others() -> List[PredicateState]:
        predicates = _predicates(ctx, desc, exclude=slots)
        return _resolve_predicates(ctx, desc, predicates)

    slot_keys, states = fan_out(lambda task: task(), [_slots, _others], max_workers=2)

    object_props: List[PropertyDescriptor] = []
    for slot, key in zip(slots, slot_keys):
        if key:
            add_unique(
                object_props,
                PropertyDescriptor(property=slot, label=get_local_name(slot), object=key),
            )
    return _emit(states, (object_props, []))


# ── Public entry points ───────────────────────────────────────────


def split_types(vars: TypeMap) -> Tuple[TypeMap, TypeMap]:
    """Partition *vars* into (simple, triplet) types."""
    simple: TypeMap = {}
    triplet: TypeMap = {}
    for key, desc in vars.items():
        (triplet if desc.element_uri == TRIPLET else simple)[key] = desc
    return simple, triplet


def classify_type(ctx: _Context, key: str, desc: TypeDescriptor) -> PropertyLists:
    """Object and data properties of one type."""
    if desc.element_uri == TRIPLET:
        return _classify_triplet(ctx, desc)
    return _classify_simple(ctx, desc)


def classify_properties(
    executor: QueryExecutor,
    endpoint: str,
    vars: TypeMap,
    *,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> PropertyMaps:
    """Classify the properties of every type in *vars*.

    Best effort: a type whose queries fail is logged and left out of
    both maps while the others complete.
    """
    ctx = _Context(executor, endpoint, vars, TypeIndex(vars), max_workers)
    simple, triplet = split_types(vars)
    tasks = [(key, desc, "simple") for key, desc in simple.items()]
    tasks += [(key, desc, "triplet") for key, desc in triplet.items()]

    outcomes = fan_out(
        lambda task: classify_type(ctx, task[0], task[1]),
        tasks,
        max_workers=max_workers,
        return_exceptions=True,
    )

    by_key = {}
    for (key, _, kind), outcome in zip(tasks, outcomes):
        if isinstance(outcome, RdfScoutError):
            logger.error("Error retrieving %s properties for %s: %s", kind, key, outcome)
            continue
        if isinstance(outcome, BaseException):
            raise outcome
        by_key[key] = outcome
        logger.info(
            "Fetched %s %s properties (OP:%d, DP:%d)",
            key, kind, len(outcome[0]), len(outcome[1]),
        )

    maps = PropertyMaps()
    for key in vars:
        if key in by_key:
            maps.object_properties[key], maps.data_properties[key] = by_key[key]
    return maps
