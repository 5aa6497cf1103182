"""延迟任务调度器

实时改写分两阶段：变更事件处理中同步检测，稍后在调度器上应用修正。
调度器保证每个 key (缓冲区) 同时最多只有一个待执行任务。

提供三种实现:
- ManualScheduler: 手动驱动，测试中可精确控制挂起点
- AsyncioScheduler: 在事件循环的下一轮执行 (loop.call_soon)
- ThreadedScheduler: 内存队列 + 后台工作线程
"""
import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from queue import Empty, Queue
from typing import Callable, Dict, Hashable, List, Optional

logger = logging.getLogger(__name__)

Job = Callable[[], None]


class Scheduler(ABC):
    """单槽 (每个 key 一个任务) 延迟调度器"""

    @abstractmethod
    def schedule(self, key: Hashable, job: Job) -> bool:
        """
        提交一个延迟任务

        Args:
            key: 槽位标识 (通常是缓冲区 ID)
            job: 无参数回调

        Returns:
            False 表示该 key 已有待执行任务，本次提交被拒绝
        """

    @abstractmethod
    def is_pending(self, key: Hashable) -> bool:
        """该 key 是否有尚未开始执行的任务"""

    @abstractmethod
    def cancel(self, key: Hashable) -> bool:
        """取消尚未开始执行的任务"""

    @staticmethod
    def _run_job(key: Hashable, job: Job) -> None:
        try:
            job()
        except Exception:
            logger.exception(f"Scheduled job failed: {key!r}")


class ManualScheduler(Scheduler):
    """
    手动驱动的调度器

    任务只在调用 run_pending() 时执行，便于在测试中模拟
    "检测" 与 "应用" 之间的竞争。
    """

    def __init__(self):
        self._jobs: "OrderedDict[Hashable, Job]" = OrderedDict()
        self._lock = threading.Lock()

    def schedule(self, key: Hashable, job: Job) -> bool:
        with self._lock:
            if key in self._jobs:
                return False
            self._jobs[key] = job
            return True

    def is_pending(self, key: Hashable) -> bool:
        return key in self._jobs

    def cancel(self, key: Hashable) -> bool:
        with self._lock:
            return self._jobs.pop(key, None) is not None

    @property
    def pending_count(self) -> int:
        return len(self._jobs)

    def run_pending(self) -> int:
        """
        执行当前所有待执行任务

        执行期间新提交的任务留到下一次调用。

        Returns:
            执行的任务数
        """
        with self._lock:
            jobs = list(self._jobs.items())
            self._jobs.clear()

        for key, job in jobs:
            self._run_job(key, job)
        return len(jobs)


class AsyncioScheduler(Scheduler):
    """在 asyncio 事件循环的下一轮执行任务"""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._handles: Dict[Hashable, asyncio.Handle] = {}

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def schedule(self, key: Hashable, job: Job) -> bool:
        if key in self._handles:
            return False
        self._handles[key] = self.loop.call_soon(self._run, key, job)
        return True

    def _run(self, key: Hashable, job: Job) -> None:
        self._handles.pop(key, None)
        self._run_job(key, job)

    def is_pending(self, key: Hashable) -> bool:
        return key in self._handles

    def cancel(self, key: Hashable) -> bool:
        handle = self._handles.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True


@dataclass
class ScheduledJob:
    """队列中的任务项"""
    key: Hashable
    job: Job
    created_at: datetime = field(default_factory=datetime.now)
    cancelled: bool = False


class ThreadedScheduler(Scheduler):
    """
    后台线程调度器

    使用内存队列 + 单个工作线程顺序执行任务。
    """

    def __init__(self, poll_interval: float = 0.5):
        """
        初始化调度器

        Args:
            poll_interval: 工作线程等待任务的超时（秒）
        """
        self._queue: "Queue[ScheduledJob]" = Queue()
        self._pending: Dict[Hashable, ScheduledJob] = {}
        self._lock = threading.Lock()
        self._poll_interval = poll_interval
        self._worker_thread: Optional[threading.Thread] = None
        self._running = False
        self._idle = threading.Event()
        self._idle.set()

    def schedule(self, key: Hashable, job: Job) -> bool:
        with self._lock:
            if key in self._pending:
                return False
            item = ScheduledJob(key=key, job=job)
            self._pending[key] = item
            self._idle.clear()
        self._queue.put(item)
        return True

    def is_pending(self, key: Hashable) -> bool:
        return key in self._pending

    def cancel(self, key: Hashable) -> bool:
        with self._lock:
            item = self._pending.pop(key, None)
            if item is None:
                return False
            item.cancelled = True
            if not self._pending:
                self._idle.set()
            return True

    def start(self):
        """启动工作线程"""
        if self._running:
            return

        self._running = True
        self._worker_thread = threading.Thread(target=self._worker, daemon=True)
        self._worker_thread.start()
        logger.info("Threaded scheduler started")

    def stop(self):
        """停止工作线程"""
        self._running = False
        if self._worker_thread:
            self._worker_thread.join(timeout=5)
            self._worker_thread = None
        logger.info("Threaded scheduler stopped")

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """等待所有已提交任务执行完毕"""
        return self._idle.wait(timeout)

    def _worker(self):
        """后台工作线程"""
        while self._running:
            try:
                item = self._queue.get(timeout=self._poll_interval)
            except Empty:
                continue

            with self._lock:
                if item.cancelled or self._pending.get(item.key) is not item:
                    continue
                del self._pending[item.key]

            self._run_job(item.key, item.job)

            with self._lock:
                if not self._pending:
                    self._idle.set()

    @property
    def pending_keys(self) -> List[Hashable]:
        return list(self._pending)
