"""Vocabulary URIs and sentinel values used by the schema heuristics."""

from __future__ import annotations

from rdflib.namespace import OWL, RDF, RDFS, SKOS, XSD

__all__ = [
    "ANY_URI",
    "CORE_NAMESPACES",
    "DATATYPE_NAMESPACES",
    "LABEL_PREDICATES",
    "OWL_DATATYPE_PROPERTY",
    "OWL_OBJECT_PROPERTY",
    "RDF_OBJECT",
    "RDF_SUBJECT",
    "RDF_STATEMENT",
    "RDF_TYPE",
    "RDFS_SUBCLASS_OF",
    "RDFS_SUBPROPERTY_OF",
    "OWL_SOME_VALUES_FROM",
    "THING",
    "TRIPLET",
    "XSD_STRING",
    "LANG_STRING",
]

THING = str(OWL.Thing)

# elementUri of a synthetic type that models reified statements
TRIPLET = "Triplet"

# range of a property pointing to an unconstrained external URI
ANY_URI = str(XSD.anyURI)
XSD_STRING = str(XSD.string)
LANG_STRING = str(RDF.langString)

RDF_TYPE = str(RDF.type)
RDF_SUBJECT = str(RDF.subject)
RDF_OBJECT = str(RDF.object)
RDF_STATEMENT = str(RDF.Statement)
RDFS_SUBCLASS_OF = str(RDFS.subClassOf)
RDFS_SUBPROPERTY_OF = str(RDFS.subPropertyOf)
OWL_SOME_VALUES_FROM = str(OWL.someValuesFrom)
OWL_OBJECT_PROPERTY = str(OWL.ObjectProperty)
OWL_DATATYPE_PROPERTY = str(OWL.DatatypeProperty)

# rdfs:label, skos:prefLabel, skos:altLabel in priority order
LABEL_PREDICATES = (str(RDFS.label), str(SKOS.prefLabel), str(SKOS.altLabel))

CORE_NAMESPACES = (str(RDF), str(RDFS), str(OWL), str(XSD))

DATATYPE_NAMESPACES = (str(XSD), str(RDF))
