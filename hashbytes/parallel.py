"""Order-preserving parallel processing helpers."""

from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Generic, Iterable, TypeVar

T = TypeVar("T")
U = TypeVar("U")


class OrderedResults(Generic[T]):
    """Collects indexed results and releases them in index order."""

    def __init__(self) -> None:
        self._next_index = 0
        self._pending: dict[int, T] = {}

    def push(self, index: int, value: T) -> list[T]:
        """Record a result; return every result now ready in sequence."""
        self._pending[index] = value
        ready = []
        while self._next_index in self._pending:
            ready.append(self._pending.pop(self._next_index))
            self._next_index += 1
        return ready


def _available_parallelism() -> int:
    try:
        return len(os.sched_getaffinity(0)) or 1
    except (AttributeError, OSError):
        return os.cpu_count() or 1


def normalized_jobs(requested: int | None) -> int:
    """Worker count: the CPU count when unset, and never below one."""
    if requested is None:
        return _available_parallelism()
    return max(requested, 1)


def process_indexed_in_parallel(
    items: Iterable[T], jobs: int, process: Callable[[tuple[int, T]], U]
) -> list[U]:
    """Apply ``process`` to each ``(index, item)`` and return results in input order."""
    indexed = list(enumerate(items))
    workers = max(jobs, 1)
    if workers == 1:
        return [process(pair) for pair in indexed]
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(process, indexed))