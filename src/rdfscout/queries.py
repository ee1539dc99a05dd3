"""
SPARQL query builders.

One function per information need of the discovery, property and node
layers.  Type-scoped builders take a :class:`TypeDescriptor` and either
match instances by class membership (``rdfs:subClassOf`` or
``owl:someValuesFrom`` pointing at the class) or, for graph-only types,
by membership of the type's named graph.
"""

from __future__ import annotations

from typing import Iterable, Optional

from rdfscout.models import TypeDescriptor
from rdfscout.vocab import (
    LABEL_PREDICATES,
    OWL_SOME_VALUES_FROM,
    RDF_TYPE,
    RDFS_SUBCLASS_OF,
    RDFS_SUBPROPERTY_OF,
)

__all__ = [
    "all_graphs",
    "ancestors",
    "filtered_nodes",
    "label_for",
    "labels_for",
    "nodes",
    "predicates_for",
    "property_declarations",
    "sample_value",
    "triplet_slot_classes",
    "triplet_slot_graphs",
    "value_types",
    "var_types_in_graph",
]

_MEMBERSHIP = f"<{OWL_SOME_VALUES_FROM}> <{RDFS_SUBCLASS_OF}>"
_RDFS_LABEL, _SKOS_PREF, _SKOS_ALT = LABEL_PREDICATES


def _values(var: str, uris: Iterable[str]) -> str:
    """Build a ``VALUES ?var { <u1> <u2> … }`` clause."""
    entries = " ".join(f"<{u}>" for u in uris)
    return f"VALUES ?{var} {{ {entries} }}"


def _limit(limit: Optional[int]) -> str:
    return f"\nLIMIT {limit}" if limit else ""


def _scoped(desc: TypeDescriptor, body: str, subject: str = "?s") -> str:
    """Wrap *body* so that *subject* ranges over instances of *desc*."""
    if desc.use_graph_only:
        return f"""\
  GRAPH <{desc.graph_uri}> {{
    {body}
  }}"""
    return f"""\
  {subject} ?_membership <{desc.element_uri}> .
  VALUES ?_membership {{ {_MEMBERSHIP} }}
  {body}"""


def _label_optionals(var: str) -> str:
    return f"""\
  OPTIONAL {{ ?{var} <{_RDFS_LABEL}> ?rdfsLabel . }}
  OPTIONAL {{ ?{var} <{_SKOS_PREF}> ?prefLabel . }}
  OPTIONAL {{ ?{var} <{_SKOS_ALT}> ?altLabel . }}"""


# ── Discovery ─────────────────────────────────────────────────────


def all_graphs() -> str:
    """Every named graph in the store."""
    return """\
SELECT DISTINCT ?graph
WHERE {
  GRAPH ?graph { ?s ?p ?o }
}
ORDER BY ?graph"""


def var_types_in_graph(graph: str) -> str:
    """Root classes reachable from *graph* members.

    A root is the target of ``subClassOf`` / ``someValuesFrom`` that has
    no further such parent of its own.
    """
    return f"""\
SELECT DISTINCT ?VarType
WHERE {{
  GRAPH <{graph}> {{
    ?AnyURI ?Property ?VarType .
    VALUES ?Property {{ {_MEMBERSHIP} }}

    FILTER NOT EXISTS {{
      ?VarType <{OWL_SOME_VALUES_FROM}> ?VarParentValues .
      FILTER(?VarParentValues != ?VarType)
    }}
    FILTER NOT EXISTS {{
      ?VarType <{RDFS_SUBCLASS_OF}> ?VarParentClass .
      FILTER(?VarParentClass != ?VarType)
    }}
  }}
}}"""


# ── Labels ────────────────────────────────────────────────────────


def label_for(uri: str) -> str:
    """Label candidates of a single URI."""
    return f"""\
SELECT ?rdfsLabel ?prefLabel ?altLabel
WHERE {{
  BIND(<{uri}> AS ?uri)
{_label_optionals("uri")}
}}
LIMIT 1"""


def labels_for(uris: Iterable[str]) -> str:
    """Label candidates of many URIs in one round-trip."""
    return f"""\
SELECT ?uri ?rdfsLabel ?prefLabel ?altLabel
WHERE {{
  {_values("uri", uris)}
{_label_optionals("uri")}
}}"""


# ── Properties ────────────────────────────────────────────────────


def predicates_for(desc: TypeDescriptor) -> str:
    """Distinct predicates used by instances of *desc*."""
    return f"""\
SELECT DISTINCT ?p
WHERE {{
{_scoped(desc, "?s ?p ?o .")}
}}"""


def value_types(desc: TypeDescriptor, predicate: str) -> str:
    """Classes the values of *predicate* are subclasses of."""
    body = f"?s <{predicate}> ?o . OPTIONAL {{ ?o <{RDFS_SUBCLASS_OF}> ?type }}"
    return f"""\
SELECT DISTINCT ?type
WHERE {{
{_scoped(desc, body)}
}}"""


def sample_value(desc: TypeDescriptor, predicate: str) -> str:
    """One concrete value of *predicate* on an instance of *desc*."""
    body = f"?s <{predicate}> ?o ."
    return f"""\
SELECT ?o
WHERE {{
{_scoped(desc, body)}
}}
LIMIT 1"""


def property_declarations(predicates: Iterable[str]) -> str:
    """How each predicate is declared (``rdf:type`` / ``subPropertyOf``)."""
    return f"""\
SELECT DISTINCT ?p ?propertyType
WHERE {{
  {_values("p", predicates)}
  ?p ?propertyClass ?propertyType .
  VALUES ?propertyClass {{ <{RDFS_SUBPROPERTY_OF}> <{RDF_TYPE}> }}
}}"""


def triplet_slot_classes(graph: str, slot: str, limit: int = 10) -> str:
    """Classes of the reified statements' *slot* values, most frequent first.

    *slot* is an ``rdf:subject`` / ``rdf:object`` predicate URI.
    """
    return f"""\
SELECT ?class (COUNT(?x) AS ?count)
WHERE {{
  GRAPH <{graph}> {{ ?s <{slot}> ?x }}
  ?x <{RDFS_SUBCLASS_OF}> ?class .
}}
GROUP BY ?class
ORDER BY DESC(?count)
LIMIT {limit}"""


def triplet_slot_graphs(graph: str, slot: str, limit: int = 10) -> str:
    """Other named graphs holding the *slot* values, most frequent first."""
    return f"""\
SELECT ?graph (COUNT(?x) AS ?count)
WHERE {{
  GRAPH <{graph}> {{ ?s <{slot}> ?x }}
  GRAPH ?graph {{ ?x ?p ?o }}
  FILTER(?graph != <{graph}>)
}}
GROUP BY ?graph
ORDER BY DESC(?count)
LIMIT {limit}"""


def ancestors(classes: Iterable[str]) -> str:
    """Transitive ``rdfs:subClassOf`` parents of each class with their depth.

    ``?depth`` counts the classes between ``?class`` and ``?ancestor``
    (the ancestor included), so a direct parent has depth 1.
    """
    return f"""\
SELECT ?class ?ancestor (COUNT(DISTINCT ?step) AS ?depth)
WHERE {{
  {_values("class", classes)}
  ?class <{RDFS_SUBCLASS_OF}>+ ?step .
  ?step <{RDFS_SUBCLASS_OF}>* ?ancestor .
  FILTER(?ancestor != ?class)
}}
GROUP BY ?class ?ancestor"""


# ── Nodes ─────────────────────────────────────────────────────────


def _graph_node_body() -> str:
    """Graph members whose values are not themselves sub-things."""
    return f"""?node ?property ?o .
    FILTER NOT EXISTS {{
      ?o <{OWL_SOME_VALUES_FROM}> ?parent .
      FILTER(?o != ?parent)
    }}
    FILTER NOT EXISTS {{
      ?o <{RDFS_SUBCLASS_OF}> ?parent .
      FILTER(?o != ?parent)
    }}
    FILTER NOT EXISTS {{
      ?o <{RDF_TYPE}> ?parent .
      FILTER(?o != ?parent)
    }}"""


def nodes(desc: TypeDescriptor, limit: Optional[int]) -> str:
    """Candidate instance nodes of *desc*."""
    if desc.use_graph_only:
        where = _scoped(desc, _graph_node_body())
    else:
        where = _scoped(desc, "", subject="?node")
    return f"""\
SELECT DISTINCT ?node
WHERE {{
{where}
  FILTER(isIRI(?node))
}}{_limit(limit)}"""


def filtered_nodes(desc: TypeDescriptor, limit: Optional[int], needle: str) -> str:
    """Candidate nodes whose URI or label contains *needle*.

    *needle* must already be lower-cased and sanitised.
    """
    if desc.use_graph_only:
        where = _scoped(desc, _graph_node_body())
    else:
        where = _scoped(desc, "", subject="?node")
    return f"""\
SELECT DISTINCT ?node
WHERE {{
{where}
  FILTER(isIRI(?node))
{_label_optionals("node")}
  FILTER(
    CONTAINS(LCASE(STR(?node)), "{needle}")
    || CONTAINS(LCASE(STR(COALESCE(?rdfsLabel, ""))), "{needle}")
    || CONTAINS(LCASE(STR(COALESCE(?prefLabel, ""))), "{needle}")
    || CONTAINS(LCASE(STR(COALESCE(?altLabel, ""))), "{needle}")
  )
}}{_limit(limit)}"""
