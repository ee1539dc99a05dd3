"""Tests for the HTTP transport."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from rdfscout.sparql_helper import EndpointError, QueryError, SparqlHelper

RESULT = {"head": {"vars": ["s"]}, "results": {"bindings": []}}


def _response(status: int = 200, text: str = "") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.text = text
    if status >= 400:
        resp.raise_for_status.side_effect = requests.exceptions.HTTPError(
            f"{status} error", response=resp,
        )
    return resp


@pytest.fixture
def session():
    with patch("rdfscout.sparql_helper.requests.Session") as session_cls:
        mock_session = MagicMock()
        session_cls.return_value = mock_session
        yield mock_session


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("rdfscout.sparql_helper.time.sleep"):
        yield


def test_select_with_get(session):
    session.get.return_value = _response(text=json.dumps(RESULT))
    helper = SparqlHelper("http://example.org/sparql")
    assert helper.select("SELECT ?s {}") == RESULT
    session.post.assert_not_called()


def test_html_body_switches_to_post(session):
    session.get.return_value = _response(text="<!DOCTYPE html><html></html>")
    session.post.return_value = _response(text=json.dumps(RESULT))
    helper = SparqlHelper("http://example.org/sparql")
    assert helper.select("SELECT ?s {}") == RESULT
    assert session.post.call_count == 1
    # later queries go straight to POST
    helper.select("SELECT ?s {}")
    assert session.get.call_count == 1


def test_405_switches_to_post(session):
    session.get.return_value = _response(status=405)
    session.post.return_value = _response(text=json.dumps(RESULT))
    helper = SparqlHelper("http://example.org/sparql")
    assert helper.select("SELECT ?s {}") == RESULT


def test_retries_then_succeeds(session):
    session.get.side_effect = [_response(status=503), _response(text=json.dumps(RESULT))]
    helper = SparqlHelper("http://example.org/sparql", max_retries=3)
    assert helper.select("SELECT ?s {}") == RESULT
    assert session.get.call_count == 2


def test_gives_up_after_max_retries(session):
    session.get.return_value = _response(status=502)
    helper = SparqlHelper("http://example.org/sparql", max_retries=2)
    with pytest.raises(EndpointError, match="2 attempts"):
        helper.select("SELECT ?s {}")
    assert session.get.call_count == 2


def test_bad_request_is_query_error(session):
    session.get.return_value = _response(status=400)
    helper = SparqlHelper("http://example.org/sparql")
    with pytest.raises(QueryError):
        helper.select("SELEC")
    assert session.get.call_count == 1


def test_context_manager_closes_session(session):
    session.get.return_value = _response(text='{"head": {}, "results": {"bindings": []}}')
    with SparqlHelper("http://example.org/sparql") as helper:
        assert helper.select("SELECT * {}")["results"]["bindings"] == []
    session.close.assert_called_once()
