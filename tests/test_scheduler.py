"""测试延迟任务调度器"""
import asyncio
import threading
import time
from unittest.mock import Mock

from fixcnchar.core.rewriter.guard import ProcessingGuard
from fixcnchar.core.rewriter.scheduler import AsyncioScheduler, ManualScheduler, ThreadedScheduler


class TestManualScheduler:
    """手动调度器测试"""

    def test_runs_only_when_driven(self):
        scheduler = ManualScheduler()
        job = Mock()
        assert scheduler.schedule("a", job) is True
        assert scheduler.is_pending("a")
        job.assert_not_called()

        assert scheduler.run_pending() == 1
        job.assert_called_once()
        assert not scheduler.is_pending("a")

    def test_single_slot_per_key(self):
        """同一个 key 只能有一个待执行任务"""
        scheduler = ManualScheduler()
        assert scheduler.schedule("a", Mock()) is True
        assert scheduler.schedule("a", Mock()) is False
        assert scheduler.schedule("b", Mock()) is True
        assert scheduler.pending_count == 2

    def test_cancel(self):
        scheduler = ManualScheduler()
        job = Mock()
        scheduler.schedule("a", job)
        assert scheduler.cancel("a") is True
        assert scheduler.cancel("a") is False
        scheduler.run_pending()
        job.assert_not_called()

    def test_job_errors_are_contained(self):
        scheduler = ManualScheduler()
        after = Mock()
        scheduler.schedule("a", Mock(side_effect=RuntimeError("boom")))
        scheduler.schedule("b", after)
        assert scheduler.run_pending() == 2
        after.assert_called_once()

    def test_jobs_scheduled_while_running_wait_for_next_round(self):
        scheduler = ManualScheduler()
        inner = Mock()
        scheduler.schedule("a", lambda: scheduler.schedule("a", inner))
        scheduler.run_pending()
        inner.assert_not_called()
        scheduler.run_pending()
        inner.assert_called_once()


class TestAsyncioScheduler:
    """asyncio 调度器测试"""

    def test_runs_on_next_loop_iteration(self):
        async def main():
            scheduler = AsyncioScheduler()
            calls = []
            scheduler.schedule("a", lambda: calls.append("job"))
            calls.append("sync")
            assert scheduler.is_pending("a")
            await asyncio.sleep(0)
            assert not scheduler.is_pending("a")
            return calls

        assert asyncio.run(main()) == ["sync", "job"]

    def test_single_slot_and_cancel(self):
        async def main():
            scheduler = AsyncioScheduler()
            job = Mock()
            assert scheduler.schedule("a", job) is True
            assert scheduler.schedule("a", Mock()) is False
            assert scheduler.cancel("a") is True
            await asyncio.sleep(0)
            return job

        asyncio.run(main()).assert_not_called()


class TestThreadedScheduler:
    """后台线程调度器测试"""

    def test_runs_job_on_worker_thread(self):
        scheduler = ThreadedScheduler(poll_interval=0.05)
        scheduler.start()
        try:
            done = threading.Event()
            thread_names = []

            def job():
                thread_names.append(threading.current_thread().name)
                done.set()

            assert scheduler.schedule("a", job) is True
            assert done.wait(2)
            assert thread_names[0] != threading.current_thread().name
            assert scheduler.wait_idle(2)
        finally:
            scheduler.stop()

    def test_single_slot_per_key(self):
        scheduler = ThreadedScheduler(poll_interval=0.05)
        assert scheduler.schedule("a", Mock()) is True
        assert scheduler.schedule("a", Mock()) is False
        assert scheduler.pending_keys == ["a"]

    def test_cancelled_job_not_run(self):
        scheduler = ThreadedScheduler(poll_interval=0.05)
        job = Mock()
        scheduler.schedule("a", job)
        assert scheduler.cancel("a") is True
        scheduler.start()
        try:
            time.sleep(0.2)
            job.assert_not_called()
        finally:
            scheduler.stop()

    def test_failed_job_keeps_worker_alive(self):
        scheduler = ThreadedScheduler(poll_interval=0.05)
        scheduler.start()
        try:
            scheduler.schedule("a", Mock(side_effect=ValueError("test error")))
            assert scheduler.wait_idle(2)
            done = threading.Event()
            scheduler.schedule("a", done.set)
            assert done.wait(2)
        finally:
            scheduler.stop()


class TestProcessingGuard:
    def test_acquire_release(self):
        guard = ProcessingGuard()
        assert guard.acquire("a") is True
        assert guard.acquire("a") is False
        assert "a" in guard
        guard.release("a")
        assert "a" not in guard
        assert guard.acquire("a") is True

    def test_keys_are_independent(self):
        guard = ProcessingGuard()
        assert guard.acquire("a")
        assert guard.acquire("b")
        assert len(guard) == 2
        guard.clear()
        assert len(guard) == 0
