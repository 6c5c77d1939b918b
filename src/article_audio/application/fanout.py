"""
Bounded fan-out / fan-in over a thread pool.

All items are submitted at once; at most `max_workers` run at a time. The
caller blocks until every item has finished or one has failed. On the first
failure queued items are cancelled, items that have not started yet skip
their call, and the failure is re-raised. Results of calls still in flight
at that moment are discarded.
"""

import logging
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Callable, Dict, Iterable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class FanOutCancelled(RuntimeError):
    """Raised inside a worker that was scheduled after a sibling failed."""


def _index_of(item) -> int:
    return item.index


def run_bounded(
    items: Iterable[T],
    worker: Callable[[T], R],
    *,
    max_workers: int,
    key: Callable[[T], int] = _index_of,
    name: str = "fanout",
    cancel_event: Optional[threading.Event] = None,
) -> List[R]:
    """Apply `worker` to every item concurrently; return results ordered by `key`."""
    items = list(items)
    if max_workers <= 0:
        raise ValueError(f"max_workers must be positive, got {max_workers}")
    if not items:
        return []

    keys = [key(item) for item in items]
    if len(set(keys)) != len(keys):
        raise ValueError(f"{name}: duplicate item keys {sorted(keys)}")

    cancelled = cancel_event or threading.Event()

    def guarded(item: T) -> R:
        if cancelled.is_set():
            raise FanOutCancelled(f"{name}: item {key(item)} skipped after a sibling failed")
        try:
            return worker(item)
        except BaseException:
            # Set before the future completes so queued siblings see it at once.
            cancelled.set()
            raise

    results: Dict[int, R] = {}
    failure: Optional[BaseException] = None
    executor = ThreadPoolExecutor(
        max_workers=min(max_workers, len(items)),
        thread_name_prefix=name,
    )
    try:
        futures = {executor.submit(guarded, item): key(item) for item in items}
        pending = set(futures)
        while pending and failure is None:
            done, pending = wait(pending, return_when=FIRST_EXCEPTION)
            # Among futures that finished together, report the lowest key.
            for future in sorted(done, key=futures.get):
                error = future.exception()
                if error is None:
                    results[futures[future]] = future.result()
                elif failure is None:
                    failure = error
                    logger.warning("%s: item %s failed: %s", name, futures[future], error)

        if failure is not None:
            cancelled.set()
            for future in pending:
                future.cancel()
            raise failure
    finally:
        # Do not wait on siblings after a failure; their results are dropped.
        executor.shutdown(wait=failure is None, cancel_futures=True)

    return [results[k] for k in sorted(results)]
