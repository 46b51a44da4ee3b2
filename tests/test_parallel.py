"""Tests for bounded parallel execution."""

import threading
import time

import pytest

from buildsync.sync.parallel import ParallelRun


class TestParallelRun:
    """Tests for ParallelRun."""

    def test_invalid_worker_count(self):
        """Test that at least one worker is required."""
        with pytest.raises(ValueError, match="at least 1"):
            ParallelRun(max_workers=0)

    def test_all_tasks_succeed(self):
        """Test that wait returns None when no task fails."""
        results = []
        lock = threading.Lock()

        def task(i):
            with lock:
                results.append(i)

        run = ParallelRun(max_workers=4)
        for i in range(20):
            run.do(task, i)

        assert run.wait() is None
        assert sorted(results) == list(range(20))

    def test_wait_without_tasks(self):
        """Test that waiting on an empty run succeeds."""
        assert ParallelRun().wait() is None

    def test_concurrency_never_exceeds_limit(self):
        """Test that no more than max_workers tasks run at once."""
        active = 0
        peak = 0
        lock = threading.Lock()

        def task():
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.01)
            with lock:
                active -= 1

        run = ParallelRun(max_workers=8)
        for _ in range(20):
            run.do(task)

        assert run.wait() is None
        assert 1 <= peak <= 8

    def test_do_blocks_when_all_workers_busy(self):
        """Test that submission blocks while the limit is reached."""
        release = threading.Event()
        submitted = []

        def blocking_task():
            release.wait(timeout=5)

        run = ParallelRun(max_workers=2)

        def submit_all():
            for i in range(3):
                run.do(blocking_task)
                submitted.append(i)

        submitter = threading.Thread(target=submit_all)
        submitter.start()
        time.sleep(0.1)
        assert submitted == [0, 1]

        release.set()
        submitter.join(timeout=5)
        assert submitted == [0, 1, 2]
        assert run.wait() is None

    def test_first_error_is_returned(self):
        """Test that two failing tasks yield exactly one recorded error."""
        failing = {3, 7}
        finished = []
        lock = threading.Lock()

        def task(i):
            time.sleep(0.001 * (i % 4))
            if i in failing:
                raise RuntimeError(f"task {i} failed")
            with lock:
                finished.append(i)

        run = ParallelRun(max_workers=8)
        for i in range(20):
            run.do(task, i)
        error = run.wait()

        assert isinstance(error, RuntimeError)
        assert str(error) in {"task 3 failed", "task 7 failed"}
        assert len(run.errors) == 2
        assert run.errors[0] is error
        # Siblings run to completion despite failures
        assert sorted(finished) == [i for i in range(20) if i not in failing]

    def test_context_manager_waits(self):
        """Test that leaving the context waits for all tasks."""
        done = []

        def task():
            time.sleep(0.01)
            done.append(True)

        with ParallelRun(max_workers=2) as run:
            for _ in range(4):
                run.do(task)

        assert len(done) == 4

    def test_do_after_wait_fails(self):
        """Test that a finished run does not accept new tasks."""
        run = ParallelRun(max_workers=1)
        run.wait()
        with pytest.raises(RuntimeError):
            run.do(lambda: None)
        # The slot was released, so the run is not wedged
        assert run._slots.acquire(blocking=False)
