"""Unit tests for the bounded parallel scheduler."""

import random
import threading
import time

import pytest

from audio_matcher.errors import AlignmentCancelled, DegenerateSignal, InvalidConfiguration
from audio_matcher.matching.scheduler import ChunkPairJob, ParallelScheduler


def _jobs(n_ref: int, n_target: int) -> list[ChunkPairJob]:
    return [ChunkPairJob(r, t) for r in range(n_ref) for t in range(n_target)]


def test_results_grouped_in_job_order() -> None:
    """Results are keyed by reference chunk and ordered like the jobs."""
    rng = random.Random(0)

    def work(job: ChunkPairJob) -> list[tuple[int, int]]:
        time.sleep(rng.random() * 0.005)
        return [(job.ref_index, job.target_index)]

    with ParallelScheduler(workers=4, max_in_flight=3) as scheduler:
        results = scheduler.run(_jobs(3, 5), work)
    assert sorted(results) == [0, 1, 2]
    for ref_index, items in results.items():
        assert items == [(ref_index, t) for t in range(5)]


def test_in_flight_bound_is_respected() -> None:
    lock = threading.Lock()
    active = 0
    peak = 0

    def work(job: ChunkPairJob) -> list[int]:
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.002)
        with lock:
            active -= 1
        return [job.target_index]

    with ParallelScheduler(workers=8, max_in_flight=2) as scheduler:
        scheduler.run(_jobs(2, 10), work)
    assert peak <= 2


def test_degenerate_signal_counts_as_empty() -> None:
    def work(job: ChunkPairJob) -> list[int]:
        if job.target_index == 1:
            raise DegenerateSignal("silent")
        return [job.target_index]

    with ParallelScheduler(workers=2) as scheduler:
        results = scheduler.run(_jobs(1, 3), work)
    assert results == {0: [0, 2]}


def test_job_failure_propagates() -> None:
    def work(job: ChunkPairJob) -> list[int]:
        if job.target_index == 2:
            raise RuntimeError("boom")
        return []

    with ParallelScheduler(workers=2, max_in_flight=2) as scheduler:
        with pytest.raises(RuntimeError, match="boom"):
            scheduler.run(_jobs(1, 20), work)


def test_cancellation_stops_submission() -> None:
    cancel = threading.Event()
    calls = []

    def work(job: ChunkPairJob) -> list[int]:
        calls.append(job)
        cancel.set()
        return []

    with ParallelScheduler(workers=1, max_in_flight=1) as scheduler:
        with pytest.raises(AlignmentCancelled):
            scheduler.run(_jobs(1, 50), work, cancel_event=cancel)
    assert len(calls) < 50


def test_run_outside_context_raises() -> None:
    with pytest.raises(RuntimeError):
        ParallelScheduler(workers=1).run([], lambda job: [])


def test_zero_workers_means_cpu_count() -> None:
    assert ParallelScheduler(workers=0).workers >= 1


@pytest.mark.parametrize(
    ("kwargs", "parameter"),
    [({"workers": -1}, "workers"), ({"max_in_flight": 0}, "max_in_flight")],
)
def test_invalid_settings(kwargs: dict, parameter: str) -> None:
    with pytest.raises(InvalidConfiguration) as excinfo:
        ParallelScheduler(**kwargs)
    assert excinfo.value.parameter == parameter
