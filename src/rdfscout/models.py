"""
Pydantic models for the discovered schema.

Field names are snake_case in Python and camelCase on the wire, which
is what the browsing front-end consumes.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

__all__ = [
    "NodeEntry",
    "NodeMap",
    "PropertyDescriptor",
    "PropertyMaps",
    "TypeDescriptor",
    "TypeMap",
    "dump_node_map",
    "dump_type_map",
    "load_node_map",
    "load_type_map",
]


class TypeDescriptor(BaseModel):
    """One browsable "variable type" discovered in a named graph."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    label: str = Field(..., description="Display name")
    use_graph_only: bool = Field(
        False,
        alias="useGraphOnly",
        description="Query by graph membership instead of class URI",
    )
    element_uri: str = Field(
        ...,
        alias="elementUri",
        description="Class URI, or the Triplet / owl:Thing sentinel",
    )
    graph_uri: str = Field(..., alias="graphUri", description="Named graph URI")


class PropertyDescriptor(BaseModel):
    """A predicate used by a type, with either a target type or a datatype."""

    model_config = ConfigDict(frozen=True)

    property: str
    label: str
    object: Optional[str] = None
    type: Optional[str] = None

    @model_validator(mode="after")
    def _exactly_one_range(self) -> PropertyDescriptor:
        if (self.object is None) == (self.type is None):
            raise ValueError("exactly one of 'object' or 'type' must be set")
        return self

    def dedup_key(self) -> tuple[str, str, Optional[str]]:
        """Identity used to keep property lists free of duplicates."""
        return (self.property, self.label, self.object)


class NodeEntry(BaseModel):
    """A sampled instance node."""

    uri: str
    label: str = ""


class PropertyMaps(BaseModel):
    """Result of property classification, keyed by type key."""

    model_config = ConfigDict(populate_by_name=True)

    object_properties: Dict[str, List[PropertyDescriptor]] = Field(
        default_factory=dict, alias="objectProperties",
    )
    data_properties: Dict[str, List[PropertyDescriptor]] = Field(
        default_factory=dict, alias="dataProperties",
    )

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


TypeMap = Dict[str, TypeDescriptor]
NodeMap = Dict[str, List[NodeEntry]]


def dump_type_map(vars: TypeMap) -> Dict[str, Any]:
    """Serialise a type map to plain JSON data."""
    return {key: desc.model_dump(by_alias=True) for key, desc in vars.items()}


def load_type_map(data: Dict[str, Any]) -> TypeMap:
    """Inverse of :func:`dump_type_map`."""
    return {key: TypeDescriptor.model_validate(value) for key, value in data.items()}


def dump_node_map(nodes: NodeMap) -> Dict[str, Any]:
    return {key: [n.model_dump() for n in bucket] for key, bucket in nodes.items()}


def load_node_map(data: Dict[str, Any]) -> NodeMap:
    return {
        key: [NodeEntry.model_validate(n) for n in bucket]
        for key, bucket in data.items()
    }
