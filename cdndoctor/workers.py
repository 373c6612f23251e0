"""Bounded fan-out where every task carries its own deadline.

A task's clock starts when it gets a worker slot, not when it is queued, so a
task waiting behind slow neighbours is never charged for their time. A task
that overruns is abandoned and its slot handed to the next one; its thread is
left to finish on its own.
"""
from __future__ import annotations

import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, Hashable, TypeVar

from cdndoctor.context import CancelToken

K = TypeVar("K", bound=Hashable)

POLL_INTERVAL = 0.05


class Slot:
    """One task's claim on the concurrency limit, plus its clock."""

    def __init__(self, limiter: threading.Semaphore) -> None:
        self._limiter = limiter
        self._lock = threading.Lock()
        self._held = False
        self.started: float | None = None

    def acquire(self, cancel: CancelToken) -> None:
        while not self._limiter.acquire(timeout=POLL_INTERVAL):
            cancel.raise_if_cancelled()
        with self._lock:
            self._held = True
        self.start_clock()

    def release(self) -> None:
        with self._lock:
            if self._held:
                self._held = False
                self._limiter.release()

    def start_clock(self) -> None:
        self.started = time.monotonic()

    def stop_clock(self) -> None:
        self.started = None

    def overran(self, timeout: float, now: float) -> bool:
        started = self.started
        return started is not None and now - started >= timeout


def run_with_deadlines(
    tasks: dict[K, Callable[[Slot], object]],
    workers: int,
    timeout: float,
    cancel: CancelToken,
    name: str = "cdndoctor-worker",
) -> tuple[dict[K, Future], list[K]]:
    """Run *tasks* with at most *workers* in flight, each bounded by *timeout*.

    Each task is called with its Slot; a task that retries can stop its clock
    while backing off and restart it per attempt. Returns the finished futures
    by key and the keys that timed out. Raises RunCancelledError on cancel.
    """
    if not tasks:
        return {}, []

    limiter = threading.Semaphore(max(1, workers))
    slots = {key: Slot(limiter) for key in tasks}

    def run(key, fn):
        slot = slots[key]
        slot.acquire(cancel)
        try:
            return fn(slot)
        finally:
            slot.release()

    finished: dict[K, Future] = {}
    timed_out: list[K] = []
    # One thread per task: a hung task must not hold up the ones queued behind it.
    executor = ThreadPoolExecutor(max_workers=len(tasks), thread_name_prefix=name)
    try:
        futures = {executor.submit(run, key, fn): key for key, fn in tasks.items()}
        pending = set(futures)
        while pending:
            cancel.raise_if_cancelled()
            done, pending = wait(pending, timeout=POLL_INTERVAL, return_when=FIRST_COMPLETED)
            for future in done:
                finished[futures[future]] = future
            now = time.monotonic()
            for future in list(pending):
                key = futures[future]
                if slots[key].overran(timeout, now):
                    pending.discard(future)
                    slots[key].release()
                    timed_out.append(key)
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    return finished, timed_out
