"""
内存编辑器宿主

EditorHost 的参考实现，用于测试、演示和 HTTP 服务:
- 多缓冲区、焦点与选区
- 模拟用户输入 (逐字符键入、粘贴、替换)
- 撤销/重做，按 undo_stop_before / undo_stop_after 合并撤销步骤
- 变更通知在缓冲区锁之外派发
"""
import logging
import threading
import uuid
from typing import Dict, List, Optional, Sequence, Tuple

from fixcnchar.core.editor.base import (
    ChangeEvent,
    ChangeListener,
    ContentChange,
    Disposable,
    EditorHost,
    Position,
    Range,
    TextBuffer,
    TextEdit,
)
from fixcnchar.core.errors import EditRejectedError

logger = logging.getLogger(__name__)

UndoGroup = List[TextEdit]


class MemoryBuffer(TextBuffer):
    """基于字符串的文本缓冲区"""

    def __init__(self, buffer_id: str, text: str = ""):
        self._buffer_id = buffer_id
        self._text = text
        self._version = 1
        self._lock = threading.RLock()
        self._undo_stack: List[UndoGroup] = []
        self._redo_stack: List[UndoGroup] = []
        self._group_open = False

    @property
    def buffer_id(self) -> str:
        return self._buffer_id

    @property
    def version(self) -> int:
        return self._version

    @property
    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo_stack)

    @property
    def undo_depth(self) -> int:
        return len(self._undo_stack)

    def get_text(self, start: Optional[int] = None, end: Optional[int] = None) -> str:
        with self._lock:
            text = self._text
        start = 0 if start is None else max(0, start)
        end = len(text) if end is None else min(len(text), end)
        if end <= start:
            return ""
        return text[start:end]

    def offset_at(self, position: Position) -> int:
        with self._lock:
            lines = self._text.split('\n')
        line = min(max(position.line, 0), len(lines) - 1)
        offset = sum(len(lines[i]) + 1 for i in range(line))
        return offset + min(max(position.character, 0), len(lines[line]))

    def position_at(self, offset: int) -> Position:
        with self._lock:
            text = self._text
        offset = min(max(offset, 0), len(text))
        before = text[:offset]
        line = before.count('\n')
        return Position(line, offset - (before.rfind('\n') + 1))

    def __len__(self) -> int:
        return len(self._text)

    def _validate(self, edits: Sequence[TextEdit]) -> List[TextEdit]:
        """校验一批编辑并按起点降序返回"""
        ordered = sorted(edits, key=lambda e: (e.start, e.end))
        length = len(self._text)
        for i, edit in enumerate(ordered):
            if edit.end > length:
                raise EditRejectedError(
                    f"Edit [{edit.start}, {edit.end}) out of range for buffer of length {length}"
                )
            if i and (ordered[i - 1].end > edit.start or ordered[i - 1].start == edit.start):
                raise EditRejectedError(f"Overlapping edits at offset {edit.start}")
        ordered.reverse()
        return ordered

    def _mutate(self, sequence: Sequence[TextEdit]) -> Tuple[List[ContentChange], UndoGroup]:
        """按顺序依次应用编辑，返回变更记录与逆操作"""
        changes: List[ContentChange] = []
        inverses: UndoGroup = []
        for edit in sequence:
            old_text = self._text[edit.start:edit.end]
            change_range = Range(self.position_at(edit.start), self.position_at(edit.end))
            self._text = self._text[:edit.start] + edit.text + self._text[edit.end:]
            changes.append(ContentChange(
                range=change_range,
                range_offset=edit.start,
                range_length=edit.end - edit.start,
                text=edit.text,
            ))
            inverses.append(TextEdit(edit.start, edit.start + len(edit.text), old_text))
        self._version += 1
        return changes, inverses

    def apply(
        self,
        edits: Sequence[TextEdit],
        undo_stop_before: bool = True,
        undo_stop_after: bool = True,
        expected_version: Optional[int] = None,
    ) -> Optional[ChangeEvent]:
        """
        应用一批编辑 (坐标相对于编辑前的缓冲区)

        Returns:
            变更事件；给出 expected_version 且版本不一致时返回 None，缓冲区不变

        Raises:
            EditRejectedError: 编辑越界或互相重叠
        """
        with self._lock:
            if expected_version is not None and expected_version != self._version:
                return None
            ordered = self._validate(edits)
            changes, inverses = self._mutate(ordered)

            self._redo_stack.clear()
            if not undo_stop_before and self._group_open and self._undo_stack:
                self._undo_stack[-1].extend(inverses)
            else:
                self._undo_stack.append(inverses)
            self._group_open = not undo_stop_after

            return ChangeEvent(self._buffer_id, tuple(changes), self._version)

    def undo(self) -> Optional[ChangeEvent]:
        """撤销一个步骤，没有可撤销内容时返回 None"""
        with self._lock:
            if not self._undo_stack:
                return None
            group = self._undo_stack.pop()
            changes, inverses = self._mutate(list(reversed(group)))
            self._redo_stack.append(inverses)
            self._group_open = False
            return ChangeEvent(self._buffer_id, tuple(changes), self._version, reason="undo")

    def redo(self) -> Optional[ChangeEvent]:
        """重做一个步骤，没有可重做内容时返回 None"""
        with self._lock:
            if not self._redo_stack:
                return None
            group = self._redo_stack.pop()
            changes, inverses = self._mutate(list(reversed(group)))
            self._undo_stack.append(inverses)
            self._group_open = False
            return ChangeEvent(self._buffer_id, tuple(changes), self._version, reason="redo")

    def __repr__(self) -> str:
        return f"MemoryBuffer({self._buffer_id!r}, {self._text!r})"


class MemoryHost(EditorHost):
    """
    内存编辑器宿主

    用法:
        host = MemoryHost()
        buffer = host.open_buffer("hello")
        host.type_text(buffer.buffer_id, 5, "，")
        host.undo(buffer.buffer_id)
    """

    def __init__(self):
        self._buffers: Dict[str, MemoryBuffer] = {}
        self._selections: Dict[str, Tuple[int, int]] = {}
        self._listeners: List[ChangeListener] = []
        self._active_id: Optional[str] = None
        self._lock = threading.Lock()

    # ---- 缓冲区与焦点 ----

    def open_buffer(self, text: str = "", buffer_id: Optional[str] = None, focus: bool = True) -> MemoryBuffer:
        """打开一个新缓冲区"""
        buffer_id = buffer_id or uuid.uuid4().hex
        buffer = MemoryBuffer(buffer_id, text)
        with self._lock:
            if buffer_id in self._buffers:
                raise ValueError(f"Buffer already open: {buffer_id}")
            self._buffers[buffer_id] = buffer
            if focus:
                self._active_id = buffer_id
        logger.debug(f"Buffer opened: {buffer_id}")
        return buffer

    def close_buffer(self, buffer_id: str) -> None:
        with self._lock:
            self._buffers.pop(buffer_id, None)
            self._selections.pop(buffer_id, None)
            if self._active_id == buffer_id:
                self._active_id = None
        logger.debug(f"Buffer closed: {buffer_id}")

    def focus(self, buffer_id: Optional[str]) -> None:
        """切换焦点，None 表示没有活动缓冲区"""
        if buffer_id is not None and buffer_id not in self._buffers:
            raise KeyError(buffer_id)
        self._active_id = buffer_id

    @property
    def active_buffer(self) -> Optional[MemoryBuffer]:
        if self._active_id is None:
            return None
        return self._buffers.get(self._active_id)

    def get_buffer(self, buffer_id: str) -> Optional[MemoryBuffer]:
        return self._buffers.get(buffer_id)

    @property
    def buffers(self) -> List[MemoryBuffer]:
        return list(self._buffers.values())

    # ---- 选区 ----

    def set_selection(self, buffer_id: str, start: int, end: int) -> None:
        if start > end:
            start, end = end, start
        self._selections[buffer_id] = (start, end)

    def get_selection(self, buffer_id: str) -> Tuple[int, int]:
        buffer = self._buffers.get(buffer_id)
        if buffer is None:
            return 0, 0
        start, end = self._selections.get(buffer_id, (0, 0))
        length = len(buffer)
        return min(start, length), min(end, length)

    # ---- 变更通知 ----

    def on_did_change_text(self, listener: ChangeListener) -> Disposable:
        with self._lock:
            self._listeners.append(listener)

        def _remove():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return Disposable(_remove)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _fire(self, event: Optional[ChangeEvent]) -> None:
        if event is None or not event.changes:
            return
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception(f"Change listener failed for buffer {event.buffer_id}")

    # ---- 编辑 ----

    def apply_edits(
        self,
        buffer_id: str,
        edits: Sequence[TextEdit],
        undo_stop_before: bool = True,
        undo_stop_after: bool = True,
        expected_version: Optional[int] = None,
    ) -> bool:
        buffer = self._buffers.get(buffer_id)
        if buffer is None:
            logger.warning(f"Cannot apply edits, buffer not found: {buffer_id}")
            return False
        if not edits:
            return True

        event = buffer.apply(edits, undo_stop_before, undo_stop_after, expected_version)
        if event is None:
            logger.debug(f"Buffer {buffer_id} changed since version {expected_version}, edits refused")
            return False
        self._fire(event)
        return True

    def type_text(self, buffer_id: str, offset: int, text: str) -> int:
        """
        模拟逐字符键入

        每个字符是一次独立的编辑与变更事件，键入后撤销步骤保持打开，
        以便紧随其后的修正可以并入同一个撤销步骤。

        Args:
            buffer_id: 目标缓冲区
            offset: 起始偏移
            text: 键入的文本

        Returns:
            键入结束后的光标偏移
        """
        for char in text:
            self.apply_edits(
                buffer_id,
                [TextEdit(offset, offset, char)],
                undo_stop_before=True,
                undo_stop_after=False,
            )
            offset += 1
        return offset

    def insert(self, buffer_id: str, offset: int, text: str) -> bool:
        """一次性插入 (粘贴 / 程序化插入)"""
        return self.apply_edits(buffer_id, [TextEdit(offset, offset, text)])

    def replace(self, buffer_id: str, start: int, end: int, text: str) -> bool:
        """替换一段文本 (如输入法组字替换占位符)"""
        return self.apply_edits(
            buffer_id,
            [TextEdit(start, end, text)],
            undo_stop_before=True,
            undo_stop_after=False,
        )

    def delete(self, buffer_id: str, start: int, end: int) -> bool:
        return self.apply_edits(buffer_id, [TextEdit(start, end, "")])

    def undo(self, buffer_id: str) -> bool:
        buffer = self._buffers.get(buffer_id)
        if buffer is None:
            return False
        event = buffer.undo()
        self._fire(event)
        return event is not None

    def redo(self, buffer_id: str) -> bool:
        buffer = self._buffers.get(buffer_id)
        if buffer is None:
            return False
        event = buffer.redo()
        self._fire(event)
        return event is not None
