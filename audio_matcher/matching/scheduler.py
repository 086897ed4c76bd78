"""Bounded worker pool for chunk-pair jobs.

The scheduler is an explicitly constructed, caller-owned object whose lifetime
is one ``with`` block; nothing about it is global. Jobs are submitted while
holding a bounded semaphore, so at most ``max_in_flight`` jobs (and therefore
chunk buffers) exist at once regardless of recording length. Results are
gathered in job order, keyed by reference chunk index, so downstream
assembly never depends on which worker finished first.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import TypeVar

from audio_matcher.errors import AlignmentCancelled, DegenerateSignal, InvalidConfiguration
from audio_matcher.utils.cancel import is_cancelled

__all__ = [
    "ChunkPairJob",
    "ParallelScheduler",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ChunkPairJob:
    """Correlate reference chunk *ref_index* against target window *target_index*."""

    ref_index: int
    target_index: int


class ParallelScheduler:
    """Thread pool with a cap on submitted-but-uncollected jobs.

    NumPy and SciPy release the GIL inside their FFT kernels, so threads give
    real parallelism for correlation work without copying chunk buffers
    between processes.

    Parameters:
        workers (int): Pool size; ``0`` uses one worker per CPU.
        max_in_flight (int): Maximum number of jobs resident at once.

    Raises:
        InvalidConfiguration: If *workers* < 0 or *max_in_flight* < 1.

    Example:
        >>> with ParallelScheduler(workers=4, max_in_flight=16) as scheduler:
        ...     results = scheduler.run(jobs, correlate_pair)
    """

    def __init__(self, workers: int = 0, max_in_flight: int = 32) -> None:
        if workers < 0:
            raise InvalidConfiguration("workers", f"must be >= 0, got {workers}")
        if max_in_flight < 1:
            raise InvalidConfiguration("max_in_flight", f"must be >= 1, got {max_in_flight}")
        self.workers = workers or (os.cpu_count() or 1)
        self.max_in_flight = max_in_flight
        self._executor: ThreadPoolExecutor | None = None

    def __enter__(self) -> ParallelScheduler:
        self._executor = ThreadPoolExecutor(
            max_workers=self.workers, thread_name_prefix="audio-matcher"
        )
        logger.debug(
            f"Scheduler started: {self.workers} worker(s), {self.max_in_flight} job(s) in flight"
        )
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True, cancel_futures=True)
            self._executor = None

    def run(
        self,
        jobs: Iterable[ChunkPairJob],
        fn: Callable[[ChunkPairJob], list[T]],
        cancel_event: threading.Event | None = None,
    ) -> dict[int, list[T]]:
        """Execute *jobs* and collect their results by reference chunk.

        Parameters:
            jobs (Iterable[ChunkPairJob]): Jobs in the order results should be
                concatenated.
            fn (Callable[[ChunkPairJob], list[T]]): Job body. A
                :class:`DegenerateSignal` it raises counts as an empty result.
            cancel_event (threading.Event | None): Stops submission when set.

        Returns:
            dict[int, list[T]]: Results per reference chunk index, each list in
                job order. Every reference index seen in *jobs* has an entry.

        Raises:
            AlignmentCancelled: If *cancel_event* was set; in-flight jobs are
                allowed to finish first.
            Exception: The first job failure other than DegenerateSignal, after
                queued jobs are cancelled.
        """
        if self._executor is None:
            raise RuntimeError("ParallelScheduler must be used as a context manager")

        slots = threading.BoundedSemaphore(self.max_in_flight)
        failed = threading.Event()
        submitted: list[tuple[ChunkPairJob, Future]] = []
        cancelled = False

        def on_done(future: Future) -> None:
            slots.release()
            if not future.cancelled() and future.exception() is not None:
                failed.set()

        for job in jobs:
            if is_cancelled(cancel_event):
                cancelled = True
                break
            if failed.is_set():
                break
            slots.acquire()
            future = self._executor.submit(self._run_one, fn, job)
            future.add_done_callback(on_done)
            submitted.append((job, future))

        results: dict[int, list[T]] = {}
        try:
            for job, future in submitted:
                results.setdefault(job.ref_index, []).extend(future.result())
        except Exception:
            for _, future in submitted:
                future.cancel()
            raise

        if cancelled:
            logger.info(f"Cancelled after {len(submitted)} job(s)")
            raise AlignmentCancelled(f"cancelled after {len(submitted)} chunk-pair job(s)")
        return results

    @staticmethod
    def _run_one(fn: Callable[[ChunkPairJob], list[T]], job: ChunkPairJob) -> list[T]:
        try:
            return fn(job)
        except DegenerateSignal as exc:
            logger.debug(f"Chunk pair {job.ref_index}/{job.target_index} skipped: {exc}")
            return []
