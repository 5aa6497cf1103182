"""编辑器宿主抽象

实时改写器只依赖这里定义的接口：
- TextBuffer: 支持位置/偏移寻址的文本缓冲区
- EditorHost: 变更通知、编辑应用 (集成撤销/重做)、焦点与选区
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, NamedTuple, Optional, Sequence, Tuple


class Position(NamedTuple):
    """行列位置 (均从 0 开始)"""
    line: int
    character: int


class Range(NamedTuple):
    """由两个 Position 组成的范围"""
    start: Position
    end: Position

    @property
    def is_empty(self) -> bool:
        return self.start == self.end


@dataclass(frozen=True)
class TextEdit:
    """一次替换: 用 text 替换绝对偏移 [start, end) 之间的内容"""
    start: int
    end: int
    text: str

    def __post_init__(self):
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid edit range: [{self.start}, {self.end})")


@dataclass(frozen=True)
class ContentChange:
    """
    变更通知中的一条原子编辑

    Attributes:
        range: 被替换的范围 (编辑前坐标)
        range_offset: 被替换范围起点的绝对偏移
        range_length: 被替换文本的长度
        text: 插入的文本
    """
    range: Range
    range_offset: int
    range_length: int
    text: str

    @property
    def range_end(self) -> int:
        return self.range_offset + self.range_length

    @property
    def delta(self) -> int:
        """该变更引起的长度变化"""
        return len(self.text) - self.range_length


@dataclass(frozen=True)
class ChangeEvent:
    """
    缓冲区变更事件

    changes 按应用顺序排列：每条变更的坐标对应于同一事件中
    前面的变更已应用之后的缓冲区状态。
    """
    buffer_id: str
    changes: Tuple[ContentChange, ...]
    version: int = 0
    reason: Optional[str] = None  # None / "undo" / "redo"


ChangeListener = Callable[[ChangeEvent], None]


@dataclass
class Disposable:
    """订阅句柄，dispose() 可重复调用"""
    _callback: Optional[Callable[[], None]] = field(default=None, repr=False)

    def dispose(self) -> None:
        callback, self._callback = self._callback, None
        if callback is not None:
            callback()

    @property
    def disposed(self) -> bool:
        return self._callback is None


class TextBuffer(ABC):
    """文本缓冲区抽象基类"""

    @property
    @abstractmethod
    def buffer_id(self) -> str:
        """缓冲区唯一标识"""

    @property
    @abstractmethod
    def version(self) -> int:
        """每次编辑递增的版本号"""

    @abstractmethod
    def get_text(self, start: Optional[int] = None, end: Optional[int] = None) -> str:
        """获取 [start, end) 范围的文本，省略时返回全文"""

    @abstractmethod
    def offset_at(self, position: Position) -> int:
        """行列位置 → 绝对偏移"""

    @abstractmethod
    def position_at(self, offset: int) -> Position:
        """绝对偏移 → 行列位置"""

    @abstractmethod
    def __len__(self) -> int:
        pass

    @property
    def line_count(self) -> int:
        return self.get_text().count('\n') + 1


class EditorHost(ABC):
    """编辑器宿主抽象基类

    实时改写器与批量改写器通过它访问缓冲区。
    """

    @property
    @abstractmethod
    def active_buffer(self) -> Optional[TextBuffer]:
        """当前获得焦点的缓冲区，没有时为 None"""

    @abstractmethod
    def get_buffer(self, buffer_id: str) -> Optional[TextBuffer]:
        """按标识获取缓冲区"""

    @abstractmethod
    def on_did_change_text(self, listener: ChangeListener) -> Disposable:
        """订阅所有缓冲区的变更事件"""

    @abstractmethod
    def apply_edits(
        self,
        buffer_id: str,
        edits: Sequence[TextEdit],
        undo_stop_before: bool = True,
        undo_stop_after: bool = True,
        expected_version: Optional[int] = None,
    ) -> bool:
        """
        以一次原子编辑应用一批替换

        Args:
            buffer_id: 目标缓冲区
            edits: 替换列表，坐标均相对于编辑前的缓冲区，互不重叠
            undo_stop_before: False 表示与上一个撤销步骤合并
            undo_stop_after: False 表示后续编辑可以合并进本次撤销步骤
            expected_version: 给出时，缓冲区版本不一致则拒绝编辑

        Returns:
            编辑是否被应用
        """

    def get_selection(self, buffer_id: str) -> Tuple[int, int]:
        """当前选区的绝对偏移 (start, end)，默认为空选区"""
        return 0, 0

    def is_active(self, buffer_id: str) -> bool:
        buffer = self.active_buffer
        return buffer is not None and buffer.buffer_id == buffer_id


def shift_offset(offset: int, length: int, change: ContentChange) -> Optional[int]:
    """
    将已捕获的绝对偏移按一次变更平移

    Args:
        offset: 捕获的偏移
        length: 捕获文本的长度
        change: 捕获之后发生的变更

    Returns:
        平移后的偏移；若变更覆盖了捕获的文本则返回 None
    """
    # 在捕获位置处的纯插入会把捕获的文本整体后移
    if change.range_end <= offset:
        return offset + change.delta
    if change.range_offset >= offset + length:
        return offset
    return None

