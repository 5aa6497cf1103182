"""按缓冲区的重入保护"""
import threading
from typing import Hashable, Set


class ProcessingGuard:
    """
    正在修正中的缓冲区集合

    一个缓冲区在修正批次被调度前加入，批次应用结束 (成功、失败或异常)
    后移除。加入期间改写器不会为该缓冲区开启新的修正周期。
    """

    def __init__(self):
        self._held: Set[Hashable] = set()
        self._lock = threading.Lock()

    def acquire(self, key: Hashable) -> bool:
        """尝试加入，已在集合中时返回 False"""
        with self._lock:
            if key in self._held:
                return False
            self._held.add(key)
            return True

    def release(self, key: Hashable) -> None:
        with self._lock:
            self._held.discard(key)

    def clear(self) -> None:
        with self._lock:
            self._held.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._held

    def __len__(self) -> int:
        return len(self._held)
