"""SPARQL query execution boundary.

Everything above this module sees bindings as tagged terms:

* :class:`UriTerm`, :class:`LiteralTerm` and :class:`BNodeTerm` are
  parsed once from the SPARQL JSON results, so downstream code never
  re-checks ``binding["type"]`` by hand.
* :class:`QueryExecutor` is the narrow "execute query, get rows"
  interface the schema layers depend on.  :class:`SparqlExecutor` is
  the default implementation built on
  :class:`~rdfscout.sparql_helper.SparqlHelper`.
* :class:`QueryResult` is the pydantic payload returned by the SPARQL
  proxy (:func:`execute_sparql`).
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Union

from pydantic import BaseModel, Field

from rdfscout.exceptions import UpstreamQueryError
from rdfscout.sparql_helper import SparqlHelper, SparqlHelperError

logger = logging.getLogger(__name__)

__all__ = [
    "BNodeTerm",
    "LiteralTerm",
    "QueryExecutor",
    "QueryResult",
    "ResultCell",
    "Row",
    "SparqlExecutor",
    "Term",
    "UriTerm",
    "execute_sparql",
    "parse_bindings",
    "term_value",
]


# ── Terms ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class UriTerm:
    """An IRI in a result row."""

    value: str


@dataclass(frozen=True)
class LiteralTerm:
    """A literal in a result row."""

    value: str
    datatype: Optional[str] = None
    lang: Optional[str] = None


@dataclass(frozen=True)
class BNodeTerm:
    """A blank node in a result row."""

    value: str


Term = Union[UriTerm, LiteralTerm, BNodeTerm]
Row = Dict[str, Term]


def _parse_term(cell: Any) -> Term:
    if not isinstance(cell, dict) or "value" not in cell:
        raise ValueError(f"malformed binding cell: {cell!r}")
    kind = cell.get("type", "literal")
    value = str(cell["value"])
    if kind == "uri":
        return UriTerm(value)
    if kind == "bnode":
        return BNodeTerm(value)
    return LiteralTerm(
        value,
        datatype=cell.get("datatype"),
        lang=cell.get("xml:lang"),
    )


def parse_bindings(json_result: Any) -> list[Row]:
    """Turn a SPARQL JSON document into a list of term rows.

    Raises
    ------
    ValueError
        If the document does not have the SPARQL results shape.
    """
    if not isinstance(json_result, dict):
        raise ValueError("SPARQL result is not a JSON object")
    results = json_result.get("results", {})
    if not isinstance(results, dict):
        raise ValueError("SPARQL result has no 'results' object")
    bindings = results.get("bindings", [])
    if not isinstance(bindings, list):
        raise ValueError("SPARQL result 'bindings' is not a list")

    rows: list[Row] = []
    for binding in bindings:
        if not isinstance(binding, dict):
            raise ValueError(f"malformed binding row: {binding!r}")
        rows.append({var: _parse_term(cell) for var, cell in binding.items()})
    return rows


def term_value(row: Row, var: str) -> str:
    """Return the lexical value of *var* in *row*, or ``""``."""
    term = row.get(var)
    return term.value if term is not None else ""


# ── Executor ──────────────────────────────────────────────────────


class QueryExecutor(Protocol):
    """Anything able to run a SELECT query against an endpoint."""

    def select(self, endpoint: str, query: str, purpose: str = "") -> list[Row]:
        """Run *query* and return its rows.

        Raises :class:`~rdfscout.exceptions.UpstreamQueryError` on
        terminal failure.
        """
        ...


class SparqlExecutor:
    """Default :class:`QueryExecutor` backed by :class:`SparqlHelper`.

    Each thread keeps its own helper (and so its own HTTP session) per
    endpoint, since ``requests.Session`` is not thread-safe.

    Parameters
    ----------
    timeout:
        Per-request timeout in seconds.
    max_retries:
        Attempts per query before giving up.
    use_post:
        Start with POST instead of GET.
    """

    def __init__(
        self,
        timeout: float = 60.0,
        max_retries: int = 3,
        use_post: bool = False,
    ) -> None:
        self.timeout = timeout
        self.max_retries = max_retries
        self.use_post = use_post
        self._local = threading.local()
        self._all: list[SparqlHelper] = []
        self._lock = threading.Lock()

    def _helper(self, endpoint: str) -> SparqlHelper:
        helpers = getattr(self._local, "helpers", None)
        if helpers is None:
            helpers = self._local.helpers = {}
        helper = helpers.get(endpoint)
        if helper is None:
            helper = SparqlHelper(
                endpoint,
                use_post=self.use_post,
                max_retries=self.max_retries,
                timeout=self.timeout,
            )
            helpers[endpoint] = helper
            with self._lock:
                self._all.append(helper)
        return helper

    def select(self, endpoint: str, query: str, purpose: str = "") -> list[Row]:
        logger.debug("[%s] querying %s", purpose or "select", endpoint)
        try:
            json_result = self._helper(endpoint).select(query)
            return parse_bindings(json_result)
        except SparqlHelperError as exc:
            raise UpstreamQueryError(str(exc), endpoint, query, purpose) from exc
        except ValueError as exc:
            raise UpstreamQueryError(
                f"Invalid SPARQL response: {exc}", endpoint, query, purpose,
            ) from exc

    def close(self) -> None:
        """Close the sessions of every thread."""
        with self._lock:
            helpers, self._all = self._all, []
            self._local = threading.local()
        for helper in helpers:
            helper.close()


# ── Proxy result models ───────────────────────────────────────────


class ResultCell(BaseModel):
    """One cell in a SPARQL result row."""

    value: str
    type: str  # "uri" | "literal" | "bnode"
    lang: Optional[str] = None
    datatype: Optional[str] = None
    label: Optional[str] = None


class QueryResult(BaseModel):
    """Structured result from a proxied SPARQL query."""

    query: str
    endpoint: str
    variables: list[str]
    rows: list[dict[str, ResultCell]]
    row_count: int
    duration_ms: int
    error: Optional[str] = None
    labels: dict[str, str] = Field(default_factory=dict)


def _to_cell(term: Term) -> ResultCell:
    if isinstance(term, UriTerm):
        return ResultCell(value=term.value, type="uri")
    if isinstance(term, BNodeTerm):
        return ResultCell(value=term.value, type="bnode")
    return ResultCell(
        value=term.value,
        type="literal",
        lang=term.lang,
        datatype=term.datatype,
    )


def execute_sparql(
    query: str,
    endpoint: str,
    *,
    method: str = "GET",
    timeout: int = 30,
) -> QueryResult:
    """Execute a SPARQL SELECT query and return a :class:`QueryResult`.

    Failures are reported in ``QueryResult.error`` instead of raised,
    so the proxy can hand them to the caller verbatim.

    Parameters
    ----------
    query:
        Full SPARQL query string.
    endpoint:
        URL of the SPARQL endpoint.
    method:
        ``"GET"`` or ``"POST"``.  GET falls back to POST automatically.
    timeout:
        Request timeout in seconds.
    """
    t0 = time.monotonic()

    try:
        with SparqlHelper(
            endpoint,
            use_post=(method.upper() == "POST"),
            timeout=float(timeout),
        ) as helper:
            json_result = helper.select(query)
        rows = parse_bindings(json_result)
    except (SparqlHelperError, ValueError) as exc:
        logger.warning("Proxy query to %s failed: %s", endpoint, exc)
        return QueryResult(
            query=query,
            endpoint=endpoint,
            variables=[],
            rows=[],
            row_count=0,
            duration_ms=int((time.monotonic() - t0) * 1000),
            error=str(exc),
        )

    variables: list[str] = list(json_result.get("head", {}).get("vars", []))
    cells = [
        {var: _to_cell(term) for var, term in row.items()}
        for row in rows
    ]

    return QueryResult(
        query=query,
        endpoint=endpoint,
        variables=variables,
        rows=cells,
        row_count=len(cells),
        duration_ms=int((time.monotonic() - t0) * 1000),
    )
