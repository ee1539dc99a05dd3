"""
SPARQL Helper - HTTP transport for SELECT queries.

This module is the only place that talks HTTP to a triplestore. It handles:
- Automatic GET → POST fallback for endpoints that require POST
- Exponential backoff retry logic for transient failures
- HTML error detection in responses
- Consistent logging across all SPARQL operations

Usage:
    from rdfscout.sparql_helper import SparqlHelper

    helper = SparqlHelper("https://sparql.example.org/")
    results = helper.select("SELECT ?g WHERE { GRAPH ?g { ?s ?p ?o } }")
"""

from __future__ import annotations

import json
import logging
import secrets
import time
from typing import Any

import requests

from rdfscout.version import VERSION

logger = logging.getLogger(__name__)

__all__ = [
    "EndpointError",
    "MimeTypes",
    "QueryError",
    "SparqlHelper",
    "SparqlHelperError",
]


class SparqlHelperError(Exception):
    """Base exception for SPARQL helper errors."""

    pass


class EndpointError(SparqlHelperError):
    """Raised when the endpoint returns an error."""

    pass


class QueryError(SparqlHelperError):
    """Raised when the query itself is rejected by the endpoint."""

    pass


class MimeTypes:
    """Standard MIME types for SPARQL protocol."""

    JSON = "application/sparql-results+json"
    XML = "application/sparql-results+xml"

    SELECT_ACCEPT = f"{JSON}, application/json;q=0.9"


class SparqlHelper:
    """
    SPARQL query executor with automatic fallback and retry logic.

    Attributes:
        endpoint_url: The SPARQL endpoint URL
        use_post: If True, always use POST method (skip GET attempt)
        max_retries: Maximum number of attempts
        initial_backoff: Initial backoff delay in seconds
        max_backoff: Maximum backoff delay in seconds
        timeout: Request timeout in seconds

    Example:
        >>> helper = SparqlHelper("https://sparql.example.org/")
        >>> results = helper.select("SELECT ?g { GRAPH ?g { ?s ?p ?o } }")
        >>> for binding in results["results"]["bindings"]:
        ...     print(binding["g"]["value"])
    """

    # Error patterns that indicate POST should be tried
    POST_RETRY_PATTERNS = ("html", "method not allowed", "uri too long", "414")

    # HTML markers that indicate an error page instead of JSON
    HTML_MARKERS = ("<!DOCTYPE", "<html", "<HTML", "<!doctype")

    # HTTP status codes that warrant a retry
    RETRY_STATUS_CODES = (500, 502, 503, 504, 429)

    # HTTP status codes where the query itself was refused
    QUERY_STATUS_CODES = (400,)

    def __init__(
        self,
        endpoint_url: str,
        *,
        use_post: bool = False,
        max_retries: int = 3,
        initial_backoff: float = 1.0,
        max_backoff: float = 30.0,
        timeout: float = 60.0,
    ) -> None:
        """
        Initialize the SPARQL helper.

        Args:
            endpoint_url: SPARQL endpoint URL
            use_post: Always use POST (default: False, tries GET first)
            max_retries: Maximum attempts for transient failures
            initial_backoff: Initial delay between retries (seconds)
            max_backoff: Maximum delay between retries (seconds)
            timeout: Request timeout in seconds (default: 60)
        """
        self.endpoint_url = endpoint_url
        self.use_post = use_post
        self.max_retries = max(1, max_retries)
        self.initial_backoff = initial_backoff
        self.max_backoff = max_backoff
        self.timeout = timeout

        # Track if we've detected this endpoint requires POST
        self._requires_post = use_post

        # Session for connection pooling
        self._session = requests.Session()

        logger.debug("SparqlHelper initialized for %s", self.endpoint_url)

    def select(self, query: str) -> dict[str, Any]:
        """
        Execute a SELECT query and return JSON results.

        Returns:
            Dictionary in SPARQL JSON results format:
            ``{"head": {"vars": [...]}, "results": {"bindings": [...]}}``

        Raises:
            EndpointError: If the endpoint fails after all retries
            QueryError: If the endpoint rejects the query
        """
        result: dict[str, Any] = self._execute(query)
        return result

    def _execute(self, query: str) -> Any:
        """
        Execute a SPARQL query with automatic GET/POST fallback and retry.

        Raises:
            EndpointError: If query fails after all retries
            QueryError: If the endpoint answers 400
        """
        use_post = self._requires_post
        attempt = 0

        while attempt < self.max_retries:
            attempt += 1
            try:
                if use_post:
                    logger.debug("Executing SELECT with POST")
                    body = self._post_query(query)
                else:
                    logger.debug("Executing SELECT with GET")
                    body = self._get_query(query)

                if self._is_html_response(body):
                    if not use_post:
                        logger.debug("GET returned HTML, switching to POST")
                        self._requires_post = use_post = True
                        attempt -= 1
                        continue
                    raise EndpointError("Endpoint returned HTML error even with POST")

                result = json.loads(body)
                if not isinstance(result, dict):
                    raise EndpointError("Endpoint returned a non-object JSON document")
                return result

            except requests.exceptions.HTTPError as e:
                status_code = e.response.status_code if e.response is not None else 0

                if not use_post and status_code in (405, 414):
                    logger.debug("GET returned %s, switching to POST", status_code)
                    self._requires_post = use_post = True
                    attempt -= 1
                    continue

                if status_code in self.RETRY_STATUS_CODES:
                    self._handle_retry(attempt, e)
                    continue

                if status_code in self.QUERY_STATUS_CODES:
                    raise QueryError(f"HTTP {status_code}: {e}") from e

                raise EndpointError(f"HTTP {status_code}: {e}") from e

            except requests.exceptions.RequestException as e:
                if not use_post and self._should_retry_with_post(str(e).lower()):
                    logger.debug("GET failed, switching to POST: %s", e)
                    self._requires_post = use_post = True
                    attempt -= 1
                    continue

                self._handle_retry(attempt, e)

            except json.JSONDecodeError as e:
                self._handle_retry(attempt, e)

        raise EndpointError("Query failed unexpectedly")

    def _get_query(self, query: str) -> str:
        """Execute SPARQL query using HTTP GET and return the body."""
        headers = {
            "Accept": MimeTypes.SELECT_ACCEPT,
            "User-Agent": f"rdfscout/{VERSION} (SPARQL client)",
        }
        response = self._session.get(
            self.endpoint_url,
            params={"query": query},
            headers=headers,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.text

    def _post_query(self, query: str) -> str:
        """
        Execute SPARQL query using HTTP POST.

        Uses application/x-www-form-urlencoded encoding as per SPARQL protocol.
        """
        headers = {
            "Accept": MimeTypes.SELECT_ACCEPT,
            "Content-Type": "application/x-www-form-urlencoded",
            "User-Agent": f"rdfscout/{VERSION} (SPARQL client)",
        }
        response = self._session.post(
            self.endpoint_url,
            data={"query": query},
            headers=headers,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.text

    def _handle_retry(self, attempt: int, error: Exception) -> None:
        """
        Sleep with exponential backoff, or give up after the last attempt.

        Raises:
            EndpointError: If max retries exceeded
        """
        logger.warning("Query attempt %d/%d failed: %s", attempt, self.max_retries, error)

        if attempt >= self.max_retries:
            logger.error("SELECT failed after %d tries", self.max_retries)
            raise EndpointError(
                f"Query failed after {self.max_retries} attempts: {error}"
            ) from error

        backoff = min(self.initial_backoff * (2 ** (attempt - 1)), self.max_backoff)
        jitter = secrets.randbelow(int(backoff * 0.1 * 1000) + 1) / 1000
        sleep_time = backoff + jitter

        logger.info("Retrying in %.1fs (attempt %d/%d)", sleep_time, attempt + 1, self.max_retries)
        time.sleep(sleep_time)

    def _should_retry_with_post(self, error_msg: str) -> bool:
        """Check if error indicates POST method should be tried."""
        return any(pattern in error_msg for pattern in self.POST_RETRY_PATTERNS)

    def _is_html_response(self, content: str) -> bool:
        """Check if content appears to be HTML (error page) instead of JSON."""
        if not content:
            return False
        stripped = content.strip()
        return any(stripped.startswith(marker) for marker in self.HTML_MARKERS)

    def close(self) -> None:
        """Close the underlying requests session."""
        self._session.close()

    def __enter__(self) -> SparqlHelper:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        url = self.endpoint_url
        return f"SparqlHelper({url!r}, use_post={self._requires_post})"
