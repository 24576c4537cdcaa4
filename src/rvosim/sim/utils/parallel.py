from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List

logger = logging.getLogger(__name__)


class PhaseExecutor:
    """
    Parallel map over an agent index range with a join at the end of every call.

    Each call to `map_range` is one phase: the callable must only write to the
    slot of the index it is given, and every chunk is joined before returning,
    so the next phase always sees the finished output of this one.
    """

    def __init__(self, workers: int = 1) -> None:
        self._workers = max(1, int(workers))
        self._pool: ThreadPoolExecutor | None = None
        if self._workers > 1:
            self._pool = ThreadPoolExecutor(max_workers=self._workers, thread_name_prefix="rvosim-phase")

    @property
    def workers(self) -> int:
        return self._workers

    def map_range(self, fn: Callable[[int], object], count: int) -> None:
        if count <= 0:
            return
        if self._pool is None or count < 2:
            for index in range(count):
                fn(index)
            return

        futures = [self._pool.submit(_run_chunk, fn, start, stop) for start, stop in self._chunks(count)]
        # Joining in submission order re-raises the first worker failure.
        for future in futures:
            future.result()

    def _chunks(self, count: int) -> List[tuple[int, int]]:
        chunk_count = min(self._workers, count)
        base, extra = divmod(count, chunk_count)
        chunks = []
        start = 0
        for chunk in range(chunk_count):
            stop = start + base + (1 if chunk < extra else 0)
            chunks.append((start, stop))
            start = stop
        return chunks

    def close(self) -> None:
        if self._pool is not None:
            logger.debug("shutting down phase pool (%d workers)", self._workers)
            self._pool.shutdown(wait=True)
            self._pool = None


def _run_chunk(fn: Callable[[int], object], start: int, stop: int) -> None:
    for index in range(start, stop):
        fn(index)
