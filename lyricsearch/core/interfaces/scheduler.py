"""
Scheduler interface for the lyricsearch project.

Batch jobs drain their backlog by enqueueing one successor invocation
and returning, instead of looping. The scheduler is what runs those
successors: it accepts "run this job after a delay" requests and
invokes registered jobs by name with keyword arguments.

Example:
    ```python
    scheduler.register("process_song_batch", jobs.process_song_batch)
    scheduler.run_after(0, "process_song_batch", {"limit": 20, "min_views": 0})
    ```
"""
from typing import Any, Callable, Dict, Protocol


class UnknownJobError(KeyError):
    """Raised when a job name has not been registered with the scheduler."""


class Scheduler(Protocol):
    """
    Interface for delayed, fire-and-forget job invocation.

    Delivery is at-least-once; jobs must be idempotent.
    """

    def register(self, name: str, fn: Callable[..., Any]) -> None:
        """Make ``fn`` invocable under ``name``."""
        ...

    def run_after(self, delay_ms: int, job: str, args: Dict[str, Any]) -> None:
        """
        Enqueue ``job(**args)`` to run no earlier than ``delay_ms`` from now.

        Raises:
            UnknownJobError: If ``job`` is not registered
        """
        ...
