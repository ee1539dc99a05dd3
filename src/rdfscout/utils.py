"""
Common utility functions for URI and label handling.

Shared by discovery, property classification and node sampling so that
the same "meaningful URI" rule and key normalisation apply everywhere.
"""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import quote, urlparse

from rdfscout.vocab import CORE_NAMESPACES, THING

__all__ = [
    "capitalize",
    "format_key",
    "get_domain",
    "get_last_path_segment",
    "get_local_name",
    "is_core_term",
    "is_safe_iri",
    "is_valid_uri",
    "pick_label",
    "sanitize_filter",
    "sanitize_input",
]

_WHITESPACE = re.compile(r"\s+")

# characters that may not appear inside <...> in SPARQL
_UNSAFE_IRI = re.compile(r'[\x00-\x20<>"{}|^`\\]')

# characters stripped from user text before it is embedded in a literal
_UNSAFE_FILTER = re.compile(r'[\x00-\x1f"\'\\<>{}]')


def format_key(label: str) -> str:
    """Normalise a label into a type key.

    Examples::

        >>> format_key("Gene Ontology Term")
        'gene_ontology_term'
    """
    return _WHITESPACE.sub("_", label.lower())


def capitalize(text: str) -> str:
    """Upper-case the first character only."""
    return text[:1].upper() + text[1:]


def get_domain(url: str) -> str:
    """Return the second-level domain label of *url*'s host.

    Examples::

        >>> get_domain("http://purl.obolibrary.org/obo/PR_000000001")
        'obolibrary'
        >>> get_domain("http://localhost/x")
        'localhost'
    """
    hostname = urlparse(url).hostname or ""
    parts = [p for p in hostname.split(".") if p]
    if not parts:
        return "unknown"
    return parts[-2] if len(parts) >= 2 else parts[0]


def get_local_name(uri: str) -> str:
    """Extract the local name from a URI.

    Examples::

        >>> get_local_name("http://example.org/foo#Bar")
        'Bar'
        >>> get_local_name("http://example.org/foo/Bar")
        'Bar'
    """
    if "#" in uri:
        return uri.split("#")[-1]
    return uri.rstrip("/").rsplit("/", 1)[-1] if "/" in uri else uri


def get_last_path_segment(uri: str) -> str:
    """Return the text after the last ``/`` (trailing slashes ignored)."""
    return uri.rstrip("/").rsplit("/", 1)[-1]


def is_valid_uri(uri: str) -> bool:
    """Tell whether *uri* looks like a meaningful data URI.

    Rejects non-http URIs, anything on ``localhost``, schema documents
    and W3C vocabulary terms, except the ``owl:Thing`` sentinel.
    """
    if uri == THING:
        return True
    return (
        uri.startswith("http")
        and "localhost" not in uri
        and "schemas" not in uri
        and "www.w3.org" not in uri
    )


def is_core_term(uri: str) -> bool:
    """Whether *uri* belongs to the RDF, RDFS, OWL or XSD vocabularies."""
    return uri.startswith(CORE_NAMESPACES)


def is_safe_iri(uri: str) -> bool:
    """Whether *uri* can be written as ``<uri>`` in a query."""
    return bool(uri) and not _UNSAFE_IRI.search(uri)


def pick_label(*candidates: Optional[str]) -> str:
    """Return the first non-empty candidate, or ``""``."""
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate
    return ""


def sanitize_input(text: Optional[str]) -> str:
    """Make arbitrary text safe for use in a file name.

    Control characters and backslashes are dropped and the rest is
    percent-encoded.
    """
    if not text:
        return ""
    cleaned = re.sub(r"[\r\n\f\\]", "", str(text))
    return quote(cleaned, safe="")


def sanitize_filter(text: str) -> str:
    """Lower-case filter text and strip characters unsafe in a literal."""
    return _UNSAFE_FILTER.sub("", text).strip().lower()
