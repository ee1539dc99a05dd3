"""Thread-pool fan-out helpers.

All upstream work is blocking HTTP, so concurrency is plain threads.
Each :func:`fan_out` call owns its pool: a task may itself fan out
(types → predicates → label batches) without starving its parent.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, Iterable, List, Optional, TypeVar, Union

from rdfscout.exceptions import QueryTimeoutError

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_MAX_WORKERS",
    "fan_out",
    "run_with_timeout",
]

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_MAX_WORKERS = 8


def fan_out(
    fn: Callable[[T], R],
    items: Iterable[T],
    *,
    max_workers: int = DEFAULT_MAX_WORKERS,
    return_exceptions: bool = False,
) -> List[Union[R, BaseException]]:
    """Apply *fn* to every item concurrently and join.

    Results come back in input order.  With ``return_exceptions`` a
    failing item yields its exception in place of a result; otherwise
    the first failure (in input order) is re-raised once every task has
    finished.
    """
    work = list(items)
    if not work:
        return []
    if len(work) == 1:
        try:
            return [fn(work[0])]
        except Exception as exc:
            if return_exceptions:
                return [exc]
            raise

    results: List[Union[R, BaseException]] = []
    with ThreadPoolExecutor(max_workers=min(max_workers, len(work))) as pool:
        futures = [pool.submit(fn, item) for item in work]
        for future in futures:
            exc = future.exception()
            if exc is None:
                results.append(future.result())
            else:
                results.append(exc)

    if not return_exceptions:
        for outcome in results:
            if isinstance(outcome, BaseException):
                raise outcome
    return results


def run_with_timeout(
    fn: Callable[[], R],
    timeout: Optional[float],
    description: str = "operation",
) -> R:
    """Run *fn* and stop waiting for it after *timeout* seconds.

    The worker thread is not interrupted; its result is discarded.

    Raises
    ------
    QueryTimeoutError
        If the deadline passes first.
    """
    if not timeout:
        return fn()

    pool = ThreadPoolExecutor(max_workers=1)
    future = pool.submit(fn)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError:
        if future.done():
            raise
        future.cancel()
        logger.error("%s timed out after %ss", description, timeout)
        raise QueryTimeoutError(
            f"{description} timed out after {timeout}s",
        ) from None
    finally:
        pool.shutdown(wait=False)
