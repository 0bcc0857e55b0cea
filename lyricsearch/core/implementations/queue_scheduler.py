"""
In-process implementation of the Scheduler interface.

Tasks are kept in a heap ordered by due time, then by enqueue order, and
executed one at a time, either synchronously (``run_next`` /
``run_until_empty``) or by a background worker thread (``start`` /
``stop``). Tasks never overlap: a task runs to completion before the
next one is taken.

Example:
    ```python
    scheduler = QueueScheduler()
    scheduler.register("process_song_batch", jobs.process_song_batch)
    scheduler.run_after(0, "process_song_batch", {"limit": 20, "min_views": 0, "recursive": True})
    scheduler.run_until_empty()  # drains the whole chain
    ```
"""
import heapq
import itertools
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from lyricsearch.config.settings import JOB_CONFIG
from lyricsearch.core.interfaces.scheduler import Scheduler, UnknownJobError

logger = logging.getLogger(__name__)

# (due, sequence, job name, kwargs)
Task = Tuple[float, int, str, Dict[str, Any]]


class QueueScheduler(Scheduler):
    """
    Thread-safe delayed work queue with an optional worker thread.

    Attributes:
        poll_interval: Seconds the idle worker waits before re-checking the queue
    """

    def __init__(self, poll_interval: float = JOB_CONFIG["poll_interval"]):
        self.poll_interval = poll_interval
        self._jobs: Dict[str, Callable[..., Any]] = {}
        self._queue: List[Task] = []
        self._counter = itertools.count()
        self._cond = threading.Condition()
        self._worker: Optional[threading.Thread] = None
        self._stopping = False

    def register(self, name: str, fn: Callable[..., Any]) -> None:
        self._jobs[name] = fn

    def run_after(self, delay_ms: int, job: str, args: Dict[str, Any]) -> None:
        if job not in self._jobs:
            raise UnknownJobError(job)
        due = time.monotonic() + max(delay_ms, 0) / 1000.0
        with self._cond:
            heapq.heappush(self._queue, (due, next(self._counter), job, dict(args)))
            self._cond.notify()
        logger.debug("Scheduled %s in %d ms with %s", job, delay_ms, args)

    def pending(self) -> int:
        with self._cond:
            return len(self._queue)

    def _pop(self, wait_for_work: bool) -> Optional[Task]:
        """
        Take the earliest task once it is due.

        Returns None when the queue is empty and ``wait_for_work`` is False,
        or when the scheduler is stopping.
        """
        with self._cond:
            while not self._stopping:
                if not self._queue:
                    if not wait_for_work:
                        return None
                    self._cond.wait(self.poll_interval)
                    continue
                wait = self._queue[0][0] - time.monotonic()
                if wait <= 0:
                    return heapq.heappop(self._queue)
                self._cond.wait(wait)
            return None

    def _execute(self, task: Task) -> None:
        _, _, job, args = task
        logger.info("Running %s(%s)", job, ", ".join(f"{k}={v!r}" for k, v in args.items()))
        self._jobs[job](**args)

    def run_next(self) -> bool:
        """
        Run the earliest queued task, waiting until it is due.

        Returns:
            False if the queue was empty, True once a task has run

        Raises:
            Whatever the task raised; the task is not re-queued
        """
        task = self._pop(wait_for_work=False)
        if task is None:
            return False
        self._execute(task)
        return True

    def run_until_empty(self) -> int:
        """Run tasks, including any they schedule, until the queue is empty."""
        ran = 0
        while self.run_next():
            ran += 1
        return ran

    def _run_worker(self) -> None:
        while not self._stopping:
            task = self._pop(wait_for_work=True)
            if task is None:
                continue
            try:
                self._execute(task)
            except Exception:
                # The failed job scheduled no successor, so its chain stops here.
                logger.exception("Job %s failed", task[2])

    def start(self) -> None:
        """Start the background worker thread."""
        if self._worker is not None and self._worker.is_alive():
            return
        self._stopping = False
        self._worker = threading.Thread(target=self._run_worker, name="lyricsearch-scheduler", daemon=True)
        self._worker.start()
        logger.info("Scheduler worker started")

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the worker after its current task; queued tasks are kept."""
        with self._cond:
            self._stopping = True
            self._cond.notify_all()
        if self._worker is not None:
            self._worker.join(timeout)
            if self._worker.is_alive():
                logger.warning("Scheduler worker still finishing its current task")
                return
            self._worker = None
        with self._cond:
            self._stopping = False
        logger.info("Scheduler worker stopped")
