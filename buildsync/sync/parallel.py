"""Bounded parallel execution of independent fallible tasks."""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

from ..utils import DEFAULT_WORKERS

logger = logging.getLogger(__name__)


class ParallelRun:
    """Runs tasks with at most ``max_workers`` of them active at once.

    ``do`` blocks the caller while the limit is reached, so submissions never
    pile up in an unbounded queue. ``wait`` blocks until every task has
    finished and returns the first error recorded, without cancelling the
    remaining tasks.

    Examples:
        >>> run = ParallelRun(max_workers=8)
        >>> for record in records:
        ...     run.do(transfer, record)
        >>> error = run.wait()
    """

    def __init__(self, max_workers: int = DEFAULT_WORKERS):
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self.max_workers = max_workers
        self._slots = threading.BoundedSemaphore(max_workers)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="buildsync"
        )
        self._lock = threading.Lock()
        self._errors: list[BaseException] = []
        self._futures: list[Future] = []

    def __enter__(self) -> "ParallelRun":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.wait()

    def do(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        """Submit a task, blocking while ``max_workers`` tasks are active."""
        self._slots.acquire()
        try:
            future = self._executor.submit(self._run, fn, *args, **kwargs)
        except BaseException:
            self._slots.release()
            raise
        self._futures.append(future)

    def _run(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        try:
            fn(*args, **kwargs)
        except Exception as e:
            logger.debug(f"Task failed: {e}")
            with self._lock:
                self._errors.append(e)
        finally:
            self._slots.release()

    @property
    def errors(self) -> list[BaseException]:
        """Every error recorded so far, in completion order."""
        with self._lock:
            return list(self._errors)

    def wait(self) -> Optional[BaseException]:
        """Wait for all submitted tasks.

        Returns:
            The first error recorded, or None if every task succeeded
        """
        self._executor.shutdown(wait=True)
        for future in self._futures:
            # Surfaces BaseExceptions that _run does not record
            future.result()
        with self._lock:
            return self._errors[0] if self._errors else None
