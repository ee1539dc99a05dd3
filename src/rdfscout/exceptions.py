"""Exception taxonomy shared by the discovery, property and node layers."""

from __future__ import annotations

import logging
from typing import Iterable

__all__ = [
    "AmbiguousSchemaError",
    "InvalidInputError",
    "QueryTimeoutError",
    "RdfScoutError",
    "UpstreamQueryError",
    "log_ambiguity",
]


class RdfScoutError(Exception):
    """Base exception for rdfscout errors."""

    pass


class UpstreamQueryError(RdfScoutError):
    """The triplestore call failed or returned malformed data.

    Parameters
    ----------
    message:
        Human readable description of the failure.
    endpoint:
        SPARQL endpoint the query was sent to.
    query:
        The query text (kept for debugging, not part of ``str()``).
    phase:
        Short tag of the operation that failed, e.g. ``"vars/graphs"``.
    """

    def __init__(
        self,
        message: str,
        endpoint: str = "",
        query: str = "",
        phase: str = "",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.endpoint = endpoint
        self.query = query
        self.phase = phase

    def with_phase(self, phase: str) -> UpstreamQueryError:
        """Return a copy of this error tagged with *phase*."""
        return type(self)(self.message, self.endpoint, self.query, phase)

    def __str__(self) -> str:
        parts = [self.message]
        if self.phase:
            parts.append(f"phase={self.phase}")
        if self.endpoint:
            parts.append(f"endpoint={self.endpoint}")
        return " | ".join(parts)


class QueryTimeoutError(UpstreamQueryError):
    """The operation did not finish before its deadline."""

    pass


class InvalidInputError(RdfScoutError, ValueError):
    """Malformed filter text or out-of-range limits."""

    pass


class AmbiguousSchemaError(RdfScoutError):
    """A schema heuristic had to pick among several candidates.

    Never raised; see :func:`log_ambiguity`.
    """

    def __init__(self, subject: str, candidates: Iterable[str], choice: str | None) -> None:
        self.subject = subject
        self.candidates = list(candidates)
        self.choice = choice
        super().__init__(
            f"{subject}: picked {choice!r} among {self.candidates}"
        )


def log_ambiguity(
    logger: logging.Logger,
    subject: str,
    candidates: Iterable[str],
    choice: str | None,
) -> AmbiguousSchemaError:
    """Log a soft :class:`AmbiguousSchemaError` and return it."""
    err = AmbiguousSchemaError(subject, candidates, choice)
    logger.warning("Ambiguous schema: %s", err)
    return err
