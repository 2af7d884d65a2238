"""
Thread-pool fan-out for independent API reads, and request pacing.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

T = TypeVar("T")


def execute_concurrent(
    func: Callable[[Any], T],
    items: Iterable[Any],
    max_workers: int = 10,
    rate_limiter: Optional["RateLimiter"] = None,
    logger: Optional[logging.Logger] = None,
    label: str = "API calls",
) -> List[T]:
    """
    Run ``func`` over ``items`` on a thread pool.

    Results come back in item order. Each call waits on ``rate_limiter``
    first, when one is given. If calls fail, the others still finish and
    the error of the earliest failing item is raised.

    Examples:
        >>> ids = DeviceEnrollment.all_ids()
        >>> per_instance = execute_concurrent(fetch_devices_for, ids, max_workers=4)
    """
    log = logger or logging.getLogger(__name__)
    pending = list(items)
    if not pending:
        return []

    def call(item: Any) -> T:
        if rate_limiter is None:
            return func(item)
        with rate_limiter:
            return func(item)

    if len(pending) == 1 or max_workers <= 1:
        return [call(item) for item in pending]

    workers = min(max_workers, len(pending))
    log.debug("%s: %d calls on %d threads", label, len(pending), workers)

    results: List[Any] = [None] * len(pending)
    failures: Dict[int, BaseException] = {}
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="jamf-api-kit") as pool:
        futures = {pool.submit(call, item): idx for idx, item in enumerate(pending)}
        for future in as_completed(futures):
            idx = futures[future]
            exc = future.exception()
            if exc is None:
                results[idx] = future.result()
            else:
                log.debug("%s: item %d failed: %s", label, idx, exc)
                failures[idx] = exc

    if failures:
        log.error("%s: %d of %d calls failed", label, len(failures), len(pending))
        raise failures[min(failures)]
    return results


class RateLimiter:
    """
    Spaces API requests at least ``1 / per_second`` seconds apart.

    Shared by every thread using a connection. A rate of 0 (or less)
    turns pacing off.

        >>> limiter = RateLimiter(5)
        >>> with limiter:
        ...     cnx.jp_get("v1/buildings")
    """

    def __init__(self, per_second: float = 10.0):
        self.per_second = per_second
        self.interval = 1.0 / per_second if per_second > 0 else 0.0
        self._next_slot = 0.0
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.interval > 0

    def wait(self) -> float:
        """Block until the next request may go out. Returns the seconds slept."""
        if not self.enabled:
            return 0.0
        with self._lock:
            now = time.monotonic()
            delay = max(0.0, self._next_slot - now)
            if delay:
                time.sleep(delay)
            self._next_slot = max(now, self._next_slot) + self.interval
        return delay

    def __enter__(self) -> "RateLimiter":
        self.wait()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        return False
