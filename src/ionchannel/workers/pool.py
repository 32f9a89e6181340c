"""
Process pool for evaluating many traces in parallel.

Traces are analysed independently, so a batch becomes one task per trace.
Tasks run on a spawn-context ProcessPoolExecutor; numba kernels are compiled
with ``cache=True`` so workers load them from disk instead of recompiling.
Every task outcome, value or exception, comes back as a TaskResult so one
bad trace never aborts the batch.
"""

from __future__ import annotations

import logging
import multiprocessing as mp
import os
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Callable, Generic, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")

ProgressCallback = Callable[[int, int], None]

logger = logging.getLogger(__name__)


@dataclass
class TaskResult(Generic[R]):
    """Outcome of one task: its value, or the exception it raised."""

    success: bool
    value: R | None = None
    error: Exception | None = None

    @classmethod
    def ok(cls, value: R) -> TaskResult[R]:
        return cls(success=True, value=value)

    @classmethod
    def err(cls, error: Exception) -> TaskResult[R]:
        return cls(success=False, error=error)


def _run_task(fn: Callable[[T], R], item: T) -> TaskResult[R]:
    """Apply fn to one item, capturing any exception. Runs in the worker."""
    try:
        return TaskResult.ok(fn(item))
    except Exception as e:
        return TaskResult.err(e)


class AnalysisPool:
    """
    Lazily started process pool for per-trace tasks.

    Usage:
        with AnalysisPool(max_workers=4) as pool:
            results = pool.map_with_progress(run_evaluation_task, params_list)
    """

    def __init__(self, max_workers: int | None = None):
        """
        Args:
            max_workers: Worker processes. Defaults to CPU count - 1.
        """
        self._workers = max_workers or max(1, (os.cpu_count() or 1) - 1)
        self._executor: ProcessPoolExecutor | None = None

    def _start(self) -> ProcessPoolExecutor:
        if self._executor is None:
            logger.debug(f"Starting analysis pool with {self._workers} workers")
            self._executor = ProcessPoolExecutor(
                max_workers=self._workers,
                mp_context=mp.get_context("spawn"),
            )
        return self._executor

    def map_with_progress(
        self,
        fn: Callable[[T], R],
        items: Sequence[T],
        on_progress: ProgressCallback | None = None,
    ) -> list[TaskResult[R]]:
        """
        Apply a module-level function to every item on the worker processes.

        Args:
            fn: Picklable function of one item.
            items: Task inputs.
            on_progress: Called with (completed, total) as tasks finish, in
                completion order.

        Returns:
            One TaskResult per item, in input order.
        """
        if not items:
            return []

        executor = self._start()
        futures = {executor.submit(_run_task, fn, item): idx for idx, item in enumerate(items)}

        results: list[TaskResult[R] | None] = [None] * len(items)
        for done, future in enumerate(as_completed(futures), start=1):
            results[futures[future]] = future.result()
            if on_progress is not None:
                on_progress(done, len(items))

        return results  # type: ignore[return-value]

    def shutdown(self, wait: bool = True, cancel_futures: bool = False) -> None:
        """Stop the worker processes; the pool restarts on next use."""
        if self._executor is not None:
            self._executor.shutdown(wait=wait, cancel_futures=cancel_futures)
            self._executor = None

    def __enter__(self) -> AnalysisPool:
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown(wait=True)


def map_in_process(
    fn: Callable[[T], R],
    items: Sequence[T],
    on_progress: ProgressCallback | None = None,
) -> list[TaskResult[R]]:
    """Apply fn to every item in the calling process.

    Results and errors are wrapped the same way as by
    ``AnalysisPool.map_with_progress``.
    """
    results = []
    for done, item in enumerate(items, start=1):
        results.append(_run_task(fn, item))
        if on_progress is not None:
            on_progress(done, len(items))
    return results
