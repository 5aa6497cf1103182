"""Editor host abstraction and the in-memory reference host"""
from fixcnchar.core.editor.base import (
    ChangeEvent,
    ContentChange,
    Disposable,
    EditorHost,
    Position,
    Range,
    TextBuffer,
    TextEdit,
    shift_offset,
)
from fixcnchar.core.editor.memory import MemoryBuffer, MemoryHost

__all__ = [
    'ChangeEvent',
    'ContentChange',
    'Disposable',
    'EditorHost',
    'Position',
    'Range',
    'TextBuffer',
    'TextEdit',
    'shift_offset',
    'MemoryBuffer',
    'MemoryHost',
]
