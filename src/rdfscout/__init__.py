"""rdfscout: schema discovery for SPARQL endpoints.

Main modules:
- api: discover types, classify properties and sample nodes of an endpoint
- query: SPARQL execution boundary and proxied query results
- models: pydantic models for types, properties and nodes
- backend: Flask service exposing the above over HTTP
"""

from .api import (
    classify_properties,
    discover_types,
    run_query,
    sample_filtered_nodes,
    sample_nodes,
)
from .exceptions import (
    InvalidInputError,
    QueryTimeoutError,
    RdfScoutError,
    UpstreamQueryError,
)
from .models import NodeEntry, PropertyDescriptor, PropertyMaps, TypeDescriptor
from .version import VERSION

__all__ = [
    "VERSION",
    "InvalidInputError",
    "NodeEntry",
    "PropertyDescriptor",
    "PropertyMaps",
    "QueryTimeoutError",
    "RdfScoutError",
    "TypeDescriptor",
    "UpstreamQueryError",
    "classify_properties",
    "discover_types",
    "run_query",
    "sample_filtered_nodes",
    "sample_nodes",
]
