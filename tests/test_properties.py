"""Tests for property classification."""

from __future__ import annotations

import logging

import pytest

from rdfscout.exceptions import UpstreamQueryError
from rdfscout.models import PropertyDescriptor, TypeDescriptor
from rdfscout.properties import (
    PredicateState,
    Resolution,
    TypeIndex,
    add_unique,
    classify_properties,
    split_types,
)
from rdfscout.vocab import ANY_URI, OWL_OBJECT_PROPERTY, RDF_OBJECT, RDF_SUBJECT, THING, TRIPLET, XSD_STRING

from .fakes import ENDPOINT, FakeExecutor, label_rows, lit, uri

XSD = "http://www.w3.org/2001/XMLSchema#"
EX = "http://example.org/vocab#"

EVENT = TypeDescriptor(
    label="event", use_graph_only=False,
    element_uri="http://example.org/Event", graph_uri="http://example.org/graphs/events",
)
PROTEIN = TypeDescriptor(
    label="protein", use_graph_only=False,
    element_uri="http://purl.uniprot.org/core/Protein", graph_uri="http://example.org/graphs/uniprot",
)
GENE = TypeDescriptor(
    label="gene", use_graph_only=True,
    element_uri=THING, graph_uri="http://example.org/graphs/gene",
)
INTERACTIONS = TypeDescriptor(
    label="Interactions", use_graph_only=True,
    element_uri=TRIPLET, graph_uri="http://example.org/graphs/interactions",
)


def scripted(predicates, value_types=None, samples=None, declarations=None,
             ancestors=None, labels=None, slots=None, slot_graphs=None):
    """Executor for one-store property scenarios.

    *predicates*, *value_types* and *samples* are keyed by a URI that
    must occur in the query (a type's element or graph URI, then the
    predicate). *ancestors* lists each class's ancestors nearest
    first.
    """
    value_types = value_types or {}
    samples = samples or {}
    declarations = declarations or {}
    ancestors = ancestors or {}
    labels = labels or {}
    slots = slots or {}
    slot_graphs = slot_graphs or {}

    def pick(table, query):
        for key, value in table.items():
            if f"<{key}>" in query:
                return value
        return None

    def handler(purpose, query):
        if purpose == "labels/batch":
            return label_rows(query, labels)
        if purpose == "properties/predicates":
            return [{"p": uri(p)} for p in pick(predicates, query) or []]
        if purpose == "properties/value-type":
            types = pick(value_types, query) or []
            return [{"type": uri(t)} for t in types] or [{}]
        if purpose == "properties/sample":
            term = pick(samples, query)
            return [{"o": term}] if term is not None else []
        if purpose == "properties/declaration":
            return [
                {"p": uri(p), "propertyType": uri(t)}
                for p, t in declarations.items()
                if f"<{p}>" in query
            ]
        if purpose == "properties/ancestors":
            return [
                {"class": uri(c), "ancestor": uri(a), "depth": lit(str(depth))}
                for c, parents in ancestors.items()
                if f"<{c}>" in query
                for depth, a in reversed(list(enumerate(parents, 1)))
            ]
        if purpose == "properties/triplet-classes":
            return [{"class": uri(c), "count": lit(str(n))} for c, n in pick(slots, query) or []]
        if purpose == "properties/triplet-graphs":
            return [{"graph": uri(g), "count": lit(str(n))} for g, n in pick(slot_graphs, query) or []]
        raise AssertionError(f"unexpected query {purpose}")

    return FakeExecutor(handler)


def assert_no_duplicates(maps):
    for lists in (maps.object_properties, maps.data_properties):
        for descriptors in lists.values():
            keys = [d.dedup_key() for d in descriptors]
            assert len(keys) == len(set(keys))


class TestPredicateState:
    """Resolution only moves forward."""

    def test_forward(self):
        state = PredicateState(predicate=EX + "p", label="p")
        assert not state.resolved
        state.resolve(Resolution.TYPED_VIA_SAMPLE, datatypes=[XSD + "date"])
        assert state.resolved
        assert state.descriptors() == [
            PropertyDescriptor(property=EX + "p", label="p", type=XSD + "date"),
        ]

    def test_backward_is_rejected(self):
        state = PredicateState(predicate=EX + "p", label="p")
        state.resolve(Resolution.TYPED_VIA_DECLARATION, datatypes=[XSD_STRING])
        with pytest.raises(ValueError):
            state.resolve(Resolution.TYPED_VIA_VALUE, objects=["gene"])


class TestHelpers:
    def test_add_unique(self):
        descriptors = []
        first = PropertyDescriptor(property=EX + "p", label="p", object="gene")
        assert add_unique(descriptors, first)
        assert not add_unique(descriptors, first.model_copy())
        assert add_unique(descriptors, PropertyDescriptor(property=EX + "p", label="p", object="protein"))
        assert len(descriptors) == 2

    def test_dedup_ignores_datatype(self):
        descriptors = []
        add_unique(descriptors, PropertyDescriptor(property=EX + "p", label="p", type=XSD + "date"))
        assert not add_unique(descriptors, PropertyDescriptor(property=EX + "p", label="p", type=XSD_STRING))

    def test_split_types(self):
        simple, triplet = split_types({"event": EVENT, "interactions": INTERACTIONS})
        assert list(simple) == ["event"]
        assert list(triplet) == ["interactions"]

    def test_type_index_ignores_sentinels(self):
        index = TypeIndex({"gene": GENE, "interactions": INTERACTIONS, "protein": PROTEIN})
        assert index.by_element(THING) is None
        assert index.by_element(TRIPLET) is None
        assert index.by_element(PROTEIN.element_uri) == "protein"
        assert index.by_graph(GENE.graph_uri) == "gene"


def test_literal_sample_gives_data_property():
    """A predicate with no value class but one xsd:dateTime value."""
    date = EX + "date"
    executor = scripted(
        predicates={EVENT.element_uri: [date]},
        samples={date: lit("2020-01-01T00:00:00", datatype=XSD + "dateTime")},
    )
    maps = classify_properties(executor, ENDPOINT, {"event": EVENT})
    assert maps.object_properties == {"event": []}
    assert maps.data_properties == {
        "event": [PropertyDescriptor(property=date, label="date", type=XSD + "dateTime")],
    }


def test_value_class_of_known_type_gives_object_property():
    encodes = EX + "encodes"
    executor = scripted(
        predicates={EVENT.element_uri: [encodes]},
        value_types={encodes: [PROTEIN.element_uri]},
        labels={encodes: "encodes"},
    )
    maps = classify_properties(executor, ENDPOINT, {"event": EVENT, "protein": PROTEIN})
    assert maps.object_properties["event"] == [
        PropertyDescriptor(property=encodes, label="encodes", object="protein"),
    ]
    assert maps.data_properties["event"] == []
    assert executor.queries("properties/sample") == []


def test_value_class_resolved_through_ancestor():
    located = EX + "locatedIn"
    subclass = "http://example.org/classes/Nucleus"
    executor = scripted(
        predicates={EVENT.element_uri: [located]},
        value_types={located: [subclass]},
        ancestors={subclass: [PROTEIN.element_uri]},
    )
    maps = classify_properties(executor, ENDPOINT, {"event": EVENT, "protein": PROTEIN})
    assert maps.object_properties["event"][0].object == "protein"


def test_nearest_known_ancestor_wins(caplog):
    located = EX + "locatedIn"
    nucleus = "http://example.org/classes/Nucleus"
    organelle = TypeDescriptor(
        label="organelle", use_graph_only=False,
        element_uri="http://example.org/classes/Organelle", graph_uri="http://example.org/graphs/go",
    )
    anatomy = TypeDescriptor(
        label="anatomical_entity", use_graph_only=False,
        element_uri="http://example.org/classes/AnatomicalEntity", graph_uri="http://example.org/graphs/go",
    )
    executor = scripted(
        predicates={EVENT.element_uri: [located]},
        value_types={located: [nucleus]},
        ancestors={nucleus: [organelle.element_uri, anatomy.element_uri]},
    )
    vars = {"event": EVENT, "anatomical_entity": anatomy, "organelle": organelle}
    with caplog.at_level(logging.WARNING, logger="rdfscout.properties"):
        maps = classify_properties(executor, ENDPOINT, vars)

    assert [d.object for d in maps.object_properties["event"]] == ["organelle"]
    assert "Ambiguous schema" in caplog.text
    assert anatomy.element_uri in caplog.text


def test_value_class_datatype_and_any_uri():
    seealso = EX + "seeAlso"
    executor = scripted(
        predicates={EVENT.element_uri: [seealso]},
        value_types={seealso: [ANY_URI, XSD + "integer"]},
    )
    maps = classify_properties(executor, ENDPOINT, {"event": EVENT})
    assert [d.object for d in maps.object_properties["event"]] == [ANY_URI]
    assert [d.type for d in maps.data_properties["event"]] == [XSD + "integer"]


def test_lang_tagged_sample():
    name = EX + "name"
    executor = scripted(
        predicates={EVENT.element_uri: [name]},
        samples={name: lit("fête", lang="fr")},
    )
    maps = classify_properties(executor, ENDPOINT, {"event": EVENT})
    assert maps.data_properties["event"][0].type == "http://www.w3.org/1999/02/22-rdf-syntax-ns#langString"


def test_uri_sample_of_known_graph_gives_object_property():
    gene_ref = EX + "gene"
    executor = scripted(
        predicates={EVENT.element_uri: [gene_ref]},
        samples={gene_ref: uri(GENE.graph_uri)},
    )
    maps = classify_properties(executor, ENDPOINT, {"event": EVENT, "gene": GENE})
    assert maps.object_properties["event"][0].object == "gene"


def test_declaration_fallback():
    xref = EX + "xref"
    comment = EX + "comment"
    executor = scripted(
        predicates={EVENT.element_uri: [xref, comment]},
        samples={xref: uri("http://other.org/thing/1")},
        declarations={xref: OWL_OBJECT_PROPERTY},
    )
    maps = classify_properties(executor, ENDPOINT, {"event": EVENT})
    assert maps.object_properties["event"] == [
        PropertyDescriptor(property=xref, label="xref", object=ANY_URI),
    ]
    assert maps.data_properties["event"] == [
        PropertyDescriptor(property=comment, label="comment", type=XSD_STRING),
    ]
    # both unresolved predicates share one declaration query
    assert len(executor.queries("properties/declaration")) == 1


def test_no_duplicate_entries():
    encodes = EX + "encodes"
    isoform = "http://purl.uniprot.org/core/Isoform"
    executor = scripted(
        predicates={EVENT.element_uri: [encodes, encodes]},
        value_types={encodes: [PROTEIN.element_uri, isoform]},
        ancestors={isoform: [PROTEIN.element_uri]},
    )
    maps = classify_properties(executor, ENDPOINT, {"event": EVENT, "protein": PROTEIN})
    assert len(maps.object_properties["event"]) == 1
    assert_no_duplicates(maps)


def test_failing_type_is_isolated(caplog):
    date = EX + "date"

    def handler(purpose, query):
        if f"<{PROTEIN.element_uri}>" in query:
            raise UpstreamQueryError("boom", ENDPOINT, query, purpose)
        if purpose == "properties/predicates":
            return [{"p": uri(date)}]
        if purpose == "properties/value-type":
            return [{}]
        if purpose == "properties/sample":
            return [{"o": lit("x")}]
        return []

    with caplog.at_level(logging.ERROR, logger="rdfscout"):
        maps = classify_properties(FakeExecutor(handler), ENDPOINT, {"event": EVENT, "protein": PROTEIN})
    assert "protein" not in maps.object_properties
    assert "protein" not in maps.data_properties
    assert maps.data_properties["event"][0].type == XSD_STRING
    assert "protein" in caplog.text


def test_completion_is_logged(caplog):
    executor = scripted(predicates={})
    with caplog.at_level(logging.INFO, logger="rdfscout"):
        classify_properties(executor, ENDPOINT, {"event": EVENT})
    assert "Fetched event simple properties (OP:0, DP:0)" in caplog.text


class TestTriplets:
    """Reified statements resolve their subject and object slots."""

    score = EX + "score"
    other_graph = "http://example.org/graphs/unrelated"

    def vars(self):
        return {"protein": PROTEIN, "gene": GENE, "interactions": INTERACTIONS}

    def test_slots_and_other_predicates(self):
        executor = scripted(
            predicates={INTERACTIONS.graph_uri: [RDF_SUBJECT, RDF_OBJECT, self.score]},
            samples={self.score: lit("0.9", datatype=XSD + "decimal")},
            slots={RDF_OBJECT: [("http://example.org/Unknown", 9), (PROTEIN.element_uri, 5)]},
            slot_graphs={RDF_SUBJECT: [(self.other_graph, 7), (GENE.graph_uri, 3)]},
        )
        maps = classify_properties(executor, ENDPOINT, self.vars())

        assert maps.object_properties["interactions"] == [
            PropertyDescriptor(property=RDF_OBJECT, label="object", object="protein"),
            PropertyDescriptor(property=RDF_SUBJECT, label="subject", object="gene"),
        ]
        assert maps.data_properties["interactions"] == [
            PropertyDescriptor(property=self.score, label="score", type=XSD + "decimal"),
        ]

    def test_majority_class_wins(self, caplog):
        other = "http://example.org/Other"
        vars = dict(self.vars(), other=TypeDescriptor(
            label="other", use_graph_only=False, element_uri=other, graph_uri=self.other_graph,
        ))
        executor = scripted(
            predicates={},
            slots={
                RDF_OBJECT: [(other, 2), (PROTEIN.element_uri, 8)],
                RDF_SUBJECT: [(PROTEIN.element_uri, 8)],
            },
        )
        with caplog.at_level(logging.WARNING, logger="rdfscout"):
            maps = classify_properties(executor, ENDPOINT, vars)
        objects = {d.property: d.object for d in maps.object_properties["interactions"]}
        assert objects[RDF_OBJECT] == "protein"
        assert "Ambiguous schema" in caplog.text

    def test_parent_class_fallback(self):
        isoform = "http://purl.uniprot.org/core/Isoform"
        executor = scripted(
            predicates={},
            slots={RDF_OBJECT: [(isoform, 4)]},
            ancestors={isoform: [PROTEIN.element_uri]},
        )
        maps = classify_properties(executor, ENDPOINT, self.vars())
        objects = {d.property: d.object for d in maps.object_properties["interactions"]}
        assert objects == {RDF_OBJECT: "protein"}

    def test_unresolvable_slot_is_left_out(self, caplog):
        executor = scripted(predicates={})
        with caplog.at_level(logging.WARNING, logger="rdfscout"):
            maps = classify_properties(executor, ENDPOINT, self.vars())
        assert maps.object_properties["interactions"] == []
        assert "rdf:object" in caplog.text
