"""Collapse concurrent identical requests into one upstream run."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, Dict, Generic, Optional, TypeVar

from rdfscout.exceptions import QueryTimeoutError

logger = logging.getLogger(__name__)

__all__ = [
    "InFlightRegistry",
]

R = TypeVar("R")


class InFlightRegistry(Generic[R]):
    """Process-wide map of ``key -> in-progress future``.

    The first caller for a key runs the work in its own thread; callers
    arriving while it runs wait on the same :class:`Future`.  The entry
    is removed once the work finishes, successfully or not, so a later
    cold request starts a fresh run.
    """

    def __init__(self) -> None:
        self._pending: Dict[str, Future] = {}
        self._lock = threading.Lock()

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._pending

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def run(
        self,
        key: str,
        fn: Callable[[], R],
        timeout: Optional[float] = None,
    ) -> R:
        """Return the result of *fn*, sharing it with concurrent callers.

        Raises
        ------
        QueryTimeoutError
            If *timeout* seconds pass before the shared run finishes.
            The run itself keeps going for the other waiters.
        """
        with self._lock:
            future = self._pending.get(key)
            owner = future is None
            if owner:
                future = Future()
                future.set_running_or_notify_cancel()
                self._pending[key] = future

        if owner:
            logger.debug("Starting run for %s", key)
            worker = threading.Thread(
                target=self._work,
                args=(key, fn, future),
                name=f"inflight-{key}",
                daemon=True,
            )
            worker.start()
        else:
            logger.info("Joining in-flight run for %s", key)

        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError:
            if future.done():
                raise
            raise QueryTimeoutError(
                f"run for {key} timed out after {timeout}s", endpoint=key,
            ) from None

    def _work(self, key: str, fn: Callable[[], R], future: Future) -> None:
        try:
            result = fn()
        except BaseException as exc:
            with self._lock:
                self._pending.pop(key, None)
            future.set_exception(exc)
        else:
            with self._lock:
                self._pending.pop(key, None)
            future.set_result(result)
