"""
实时标点改写器

监听编辑器缓冲区的变更事件，把用户刚键入的中文标点静默替换为半角标点。

两阶段流水线:
1. 检测 (同步，在变更通知中执行): 匹配单字符输入，按绝对偏移记录待修正项
2. 应用 (延迟，在调度器上执行): 重新校验目标文本，按偏移降序一次性应用

同一缓冲区同时最多只有一个修正批次。批次等待执行期间到达的新输入
会合并进该批次；批次应用期间产生的变更事件 (即改写器自己的编辑)
被忽略。
"""
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Dict, Iterable, List, Optional

from fixcnchar.core.config_source import ConfigSource
from fixcnchar.core.editor.base import (
    ChangeEvent,
    ContentChange,
    Disposable,
    EditorHost,
    TextBuffer,
    TextEdit,
    shift_offset,
)
from fixcnchar.core.errors import EditRejectedError, StaleTargetError
from fixcnchar.core.rewriter.guard import ProcessingGuard
from fixcnchar.core.rewriter.scheduler import Scheduler, ThreadedScheduler
from fixcnchar.core.rules.table import RuleTable

logger = logging.getLogger(__name__)

# 撤销/重做恢复的原始字符不应被再次修正
_IGNORED_REASONS = frozenset({"undo", "redo"})


@dataclass(frozen=True)
class PendingCorrection:
    """一个已捕获、等待校验与应用的修正"""
    offset: int
    expected_text: str
    replacement: str

    @property
    def end(self) -> int:
        return self.offset + len(self.expected_text)

    def shifted(self, change: ContentChange) -> Optional['PendingCorrection']:
        """按之后发生的变更平移，目标被覆盖时返回 None"""
        offset = shift_offset(self.offset, len(self.expected_text), change)
        if offset is None:
            return None
        if offset == self.offset:
            return self
        return PendingCorrection(offset, self.expected_text, self.replacement)

    def to_edit(self) -> TextEdit:
        return TextEdit(self.offset, self.end, self.replacement)


class BatchState(str, Enum):
    """修正批次状态"""
    PENDING = "pending"      # 已调度，尚未应用，可合并新的修正
    APPLYING = "applying"    # 正在应用，忽略该缓冲区的变更事件


@dataclass
class CorrectionBatch:
    """一个缓冲区的修正批次"""
    buffer_id: str
    corrections: List[PendingCorrection] = field(default_factory=list)
    state: BatchState = BatchState.PENDING


@dataclass
class RewriterStats:
    """改写统计"""
    detected: int = 0      # 捕获的修正
    applied: int = 0       # 已应用的修正
    stale: int = 0         # 因目标文本变化而丢弃
    failed: int = 0        # 宿主拒绝或异常的批次


def shift_corrections(
    corrections: Iterable[PendingCorrection],
    changes: Iterable[ContentChange],
) -> List[PendingCorrection]:
    """将一组修正依次按变更平移，丢弃被覆盖的修正"""
    result = list(corrections)
    for change in changes:
        result = [c for c in (c.shifted(change) for c in result) if c is not None]
    return result


class LiveRewriter:
    """
    实时改写器

    每个实例拥有自己的重入保护、批次表和订阅句柄，可以同时存在多个
    互不干扰的实例。

    用法:
        host = MemoryHost()
        rewriter = LiveRewriter(host, scheduler=ManualScheduler())
        rewriter.start(StaticConfigSource({'，': ','}))

        buffer = host.open_buffer("hello")
        host.type_text(buffer.buffer_id, 5, "，")
        scheduler.run_pending()
        buffer.get_text()   # "hello,"
    """

    def __init__(
        self,
        host: EditorHost,
        scheduler: Optional[Scheduler] = None,
        allow_composition_replace: bool = False,
    ):
        """
        初始化改写器

        Args:
            host: 编辑器宿主
            scheduler: 应用阶段使用的调度器，为 None 时使用内部的后台线程调度器
            allow_composition_replace: 是否修正 "单字符替换一段文本" 的变更
                (输入法组字用最终字符替换占位文本)
        """
        self._host = host
        self._owns_scheduler = scheduler is None
        self._scheduler = scheduler if scheduler is not None else ThreadedScheduler()
        self.allow_composition_replace = allow_composition_replace

        self._guard = ProcessingGuard()
        self._batches: Dict[str, CorrectionBatch] = {}
        self._lock = threading.RLock()

        self._config_source: Optional[ConfigSource] = None
        self._change_subscription: Optional[Disposable] = None
        self._config_subscription: Optional[Disposable] = None
        self._started = False
        self.stats = RewriterStats()

    # ---- 生命周期 ----

    @property
    def is_started(self) -> bool:
        return self._started

    @property
    def is_watching(self) -> bool:
        """是否正在监听缓冲区变更"""
        return self._change_subscription is not None

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    def start(self, config_source: ConfigSource) -> None:
        """开始监听，配置变化时自动重新注册"""
        if self._started:
            self.stop()

        self._config_source = config_source
        self._config_subscription = config_source.on_did_change(self.on_config_changed)
        if self._owns_scheduler:
            self._scheduler.start()
        self._started = True
        self._register()
        logger.info("Live rewriter started")

    def stop(self) -> None:
        """停止监听并丢弃所有尚未应用的修正"""
        if not self._started:
            return

        self._started = False
        self._unregister()
        if self._config_subscription is not None:
            self._config_subscription.dispose()
            self._config_subscription = None

        self._discard_pending()

        if self._owns_scheduler:
            self._scheduler.stop()
        self._config_source = None
        logger.info("Live rewriter stopped")

    def on_config_changed(self) -> None:
        """配置变化: 按新的实时开关重新注册监听"""
        if not self._started:
            return
        self._register()

    def _register(self) -> None:
        self._unregister()

        if not self._config_source.is_realtime_enabled():
            logger.info("Real-time replacement disabled")
            # 取消订阅后收不到变更事件，已捕获的偏移无法继续跟踪
            self._discard_pending()
            return

        self._change_subscription = self._host.on_did_change_text(self.handle_change)
        logger.debug("Subscribed to buffer changes")

    def _discard_pending(self) -> None:
        """丢弃所有尚未开始应用的批次"""
        with self._lock:
            for buffer_id, batch in list(self._batches.items()):
                if batch.state is BatchState.PENDING:
                    self._scheduler.cancel(buffer_id)
                    del self._batches[buffer_id]
                    self._guard.release(buffer_id)

    def _unregister(self) -> None:
        if self._change_subscription is not None:
            self._change_subscription.dispose()
            self._change_subscription = None

    def is_correcting(self, buffer_id: str) -> bool:
        """该缓冲区是否有修正批次在途"""
        return buffer_id in self._guard

    # ---- 检测阶段 ----

    def _is_typed_character(self, change: ContentChange) -> bool:
        if len(change.text) != 1:
            return False
        return change.range_length == 0 or self.allow_composition_replace

    def detect(self, event: ChangeEvent, table: RuleTable) -> List[PendingCorrection]:
        """
        从一个变更事件中找出需要修正的字符

        事件中的变更按应用顺序处理，先前捕获的偏移会按之后的变更平移，
        因此返回的偏移都对应事件结束后的缓冲区状态。

        Args:
            event: 变更事件
            table: 规则表

        Returns:
            待修正项列表
        """
        found: List[PendingCorrection] = []
        if table.is_empty:
            return found

        for change in event.changes:
            found = shift_corrections(found, (change,))
            if not self._is_typed_character(change):
                continue

            replacement = table.lookup(change.text)
            if replacement is None or replacement == change.text:
                continue

            found.append(PendingCorrection(change.range_offset, change.text, replacement))

        return found

    def _accepts_new_corrections(self, event: ChangeEvent, config_source: ConfigSource) -> bool:
        if event.reason in _IGNORED_REASONS:
            return False
        if not config_source.is_realtime_enabled():
            return False
        if not self._host.is_active(event.buffer_id):
            logger.debug(f"Ignoring change in inactive buffer {event.buffer_id}")
            return False
        return True

    def handle_change(self, event: ChangeEvent) -> List[PendingCorrection]:
        """
        变更事件回调

        该缓冲区有等待中的批次时，无论事件本身是否参与检测 (撤销/重做、
        非活动缓冲区、实时替换已关闭)，批次中的偏移都先按事件平移。

        Returns:
            本次事件新捕获的待修正项
        """
        config_source = self._config_source
        if not self._started or config_source is None:
            return []

        buffer_id = event.buffer_id
        with self._lock:
            batch = self._batches.get(buffer_id)
            if batch is not None and batch.state is BatchState.APPLYING:
                return []

            if batch is not None:
                batch.corrections = shift_corrections(batch.corrections, event.changes)

            if not self._accepts_new_corrections(event, config_source):
                return []

            table = RuleTable.build(config_source.get_rules())
            found = self.detect(event, table)
            self.stats.detected += len(found)

            if batch is not None:
                batch.corrections.extend(found)
                if found:
                    logger.debug(f"Merged {len(found)} corrections into pending batch for {buffer_id}")
                return found

            if not found:
                return found

            if not self._guard.acquire(buffer_id):
                logger.debug(f"Buffer {buffer_id} is already being corrected")
                return []

            self._batches[buffer_id] = CorrectionBatch(buffer_id, found)
            try:
                scheduled = self._scheduler.schedule(buffer_id, partial(self._apply_batch, buffer_id))
            except Exception:
                logger.exception(f"Failed to schedule corrections for {buffer_id}")
                scheduled = False

            if not scheduled:
                del self._batches[buffer_id]
                self._guard.release(buffer_id)
                return []

        logger.debug(f"Scheduled {len(found)} corrections for {buffer_id}")
        return found

    # ---- 应用阶段 ----

    def _apply_batch(self, buffer_id: str) -> None:
        with self._lock:
            batch = self._batches.get(buffer_id)
            if batch is None:
                return
            batch.state = BatchState.APPLYING
            corrections = list(batch.corrections)

        try:
            self._apply_corrections(buffer_id, corrections)
        finally:
            with self._lock:
                if self._batches.get(buffer_id) is batch:
                    del self._batches[buffer_id]
                self._guard.release(buffer_id)

    @staticmethod
    def _verify(buffer: TextBuffer, correction: PendingCorrection) -> None:
        """校验目标位置仍是捕获时的文本"""
        actual = buffer.get_text(correction.offset, correction.end)
        if actual != correction.expected_text:
            raise StaleTargetError(correction.offset, correction.expected_text, actual)

    def _apply_corrections(self, buffer_id: str, corrections: List[PendingCorrection]) -> None:
        config_source = self._config_source
        if not self._started or config_source is None:
            return
        if not config_source.is_realtime_enabled():
            logger.debug(f"Real-time replacement disabled, dropping corrections for {buffer_id}")
            return
        if not self._host.is_active(buffer_id):
            logger.debug(f"Buffer {buffer_id} lost focus, dropping {len(corrections)} corrections")
            return

        buffer = self._host.get_buffer(buffer_id)
        if buffer is None:
            return

        # 校验与应用之间缓冲区若被修改，宿主按版本号拒绝这次编辑
        version = buffer.version
        edits: List[TextEdit] = []
        seen = set()
        for correction in sorted(corrections, key=lambda c: c.offset, reverse=True):
            if correction.offset in seen:
                continue
            try:
                self._verify(buffer, correction)
            except StaleTargetError as e:
                self.stats.stale += 1
                logger.debug(f"Dropping correction: {e}")
                continue
            seen.add(correction.offset)
            edits.append(correction.to_edit())

        if not edits:
            return

        try:
            applied = self._host.apply_edits(
                buffer_id,
                edits,
                undo_stop_before=False,
                undo_stop_after=True,
                expected_version=version,
            )
        except EditRejectedError as e:
            self.stats.failed += 1
            logger.warning(f"Edit rejected for {buffer_id}: {e}")
            return
        except Exception:
            self.stats.failed += 1
            logger.exception(f"Failed to apply corrections to {buffer_id}")
            return

        if not applied and buffer.version != version:
            self.stats.stale += len(edits)
            logger.debug(f"Buffer {buffer_id} changed during verification, dropping {len(edits)} corrections")
            return

        if not applied:
            self.stats.failed += 1
            logger.warning(f"Host refused {len(edits)} corrections for {buffer_id}")
            return

        self.stats.applied += len(edits)
        logger.debug(f"Applied {len(edits)} corrections to {buffer_id}")


if __name__ == '__main__':
    from fixcnchar.core.config_source import StaticConfigSource
    from fixcnchar.core.editor.memory import MemoryHost
    from fixcnchar.core.rewriter.scheduler import ManualScheduler

    host = MemoryHost()
    scheduler = ManualScheduler()
    rewriter = LiveRewriter(host, scheduler=scheduler)
    rewriter.start(StaticConfigSource())

    buffer = host.open_buffer("hello")
    cursor = host.type_text(buffer.buffer_id, 5, "，")
    print(f"键入后: {buffer.get_text()!r}")
    scheduler.run_pending()
    print(f"修正后: {buffer.get_text()!r}")

    host.type_text(buffer.buffer_id, cursor, "世界。")
    scheduler.run_pending()
    print(f"继续键入: {buffer.get_text()!r}")

    host.undo(buffer.buffer_id)
    print(f"撤销一步: {buffer.get_text()!r}")

    rewriter.stop()
