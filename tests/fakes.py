"""Test doubles: a scripted query executor and term helpers."""

from __future__ import annotations

import threading
from typing import Callable, Dict, List, Optional

from rdfscout.query import LiteralTerm, Row, UriTerm

ENDPOINT = "http://example.org/sparql"


def uri(value: str) -> UriTerm:
    return UriTerm(value)


def lit(value: str, datatype: Optional[str] = None, lang: Optional[str] = None) -> LiteralTerm:
    return LiteralTerm(value, datatype=datatype, lang=lang)


def label_rows(query: str, labels: Dict[str, str]) -> List[Row]:
    """Answer a batched label query from a ``{uri: label}`` table."""
    return [
        {"uri": uri(u), "rdfsLabel": lit(label)}
        for u, label in labels.items()
        if f"<{u}>" in query
    ]


class FakeExecutor:
    """Query executor answering from ``handler(purpose, query) -> rows``.

    Every call is recorded in :attr:`calls` as ``(purpose, query)``.
    """

    def __init__(self, handler: Callable[[str, str], List[Row]]) -> None:
        self.handler = handler
        self.calls: List[tuple] = []
        self._lock = threading.Lock()

    def select(self, endpoint: str, query: str, purpose: str = "") -> List[Row]:
        with self._lock:
            self.calls.append((purpose, query))
        return self.handler(purpose, query)

    def queries(self, purpose: str) -> List[str]:
        with self._lock:
            return [q for p, q in self.calls if p == purpose]
