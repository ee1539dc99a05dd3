"""Tests for URI and label helpers."""

import pytest

from rdfscout.utils import (
    capitalize,
    format_key,
    get_domain,
    get_last_path_segment,
    get_local_name,
    is_core_term,
    is_safe_iri,
    is_valid_uri,
    pick_label,
    sanitize_filter,
    sanitize_input,
)
from rdfscout.vocab import THING


class TestKeys:
    """Label key normalisation."""

    def test_format_key(self):
        assert format_key("Gene Ontology  Term") == "gene_ontology_term"

    def test_format_key_tabs(self):
        assert format_key("A\tB") == "a_b"

    def test_capitalize_only_first(self):
        assert capitalize("interactions") == "Interactions"
        assert capitalize("mRNA") == "MRNA"
        assert capitalize("") == ""


class TestUriParts:
    """Domain and local name extraction."""

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("http://purl.uniprot.org/core/Protein", "uniprot"),
            ("https://identifiers.org/taxonomy/9606", "identifiers"),
            ("http://localhost/x", "localhost"),
            ("not a url", "unknown"),
        ],
    )
    def test_get_domain(self, url, expected):
        assert get_domain(url) == expected

    def test_local_name_hash(self):
        assert get_local_name("http://example.org/vocab#date") == "date"

    def test_local_name_slash(self):
        assert get_local_name("http://example.org/graphs/gene/") == "gene"

    def test_last_path_segment(self):
        assert get_last_path_segment("http://example.org/P12345") == "P12345"


class TestValidity:
    """The meaningful-URI rule."""

    def test_thing_is_valid(self):
        assert is_valid_uri(THING)

    @pytest.mark.parametrize(
        "value",
        [
            "urn:uuid:1234",
            "http://localhost:8890/graph",
            "http://schemas.example.org/x",
            "http://www.w3.org/2000/01/rdf-schema#Class",
        ],
    )
    def test_rejected(self, value):
        assert not is_valid_uri(value)

    def test_accepted(self):
        assert is_valid_uri("https://purl.uniprot.org/core/Protein")

    def test_core_terms(self):
        assert is_core_term(THING)
        assert is_core_term("http://www.w3.org/2001/XMLSchema#string")
        assert not is_core_term("http://www.w3.org/2004/02/skos/core#Concept")
        assert not is_core_term("http://www.w3.org/ns/prov#Entity")

    def test_safe_iri(self):
        assert is_safe_iri("http://example.org/a")
        assert not is_safe_iri("http://example.org/a b")
        assert not is_safe_iri("http://example.org/a>")
        assert not is_safe_iri("")


class TestText:
    """Label picking and sanitising."""

    def test_pick_label_skips_blank(self):
        assert pick_label(None, "  ", "Gene") == "Gene"
        assert pick_label(None, "") == ""

    def test_sanitize_input_file_safe(self):
        value = sanitize_input("http://example.org/sparql?x=1\n")
        assert "/" not in value
        assert "\n" not in value
        assert sanitize_input(None) == ""

    def test_sanitize_filter(self):
        assert sanitize_filter(' Kin"ase\\ ') == "kinase"
        assert sanitize_filter("{}<>") == ""
