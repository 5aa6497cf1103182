"""WebSocket 实时编辑会话管理

每个连接拥有一个服务端内存缓冲区和一个独立的实时改写器。
"""
import logging
from typing import Any, Dict, Optional
from dataclasses import dataclass, field
from fastapi import WebSocket

from fixcnchar.core.config_source import ConfigSource
from fixcnchar.core.editor.memory import MemoryBuffer, MemoryHost
from fixcnchar.core.rewriter.live import LiveRewriter
from fixcnchar.core.rewriter.scheduler import AsyncioScheduler

logger = logging.getLogger(__name__)


@dataclass
class ConnectionState:
    """实时编辑会话状态"""
    host: MemoryHost = field(default_factory=MemoryHost)
    scheduler: AsyncioScheduler = field(default_factory=AsyncioScheduler)
    rewriter: Optional[LiveRewriter] = None
    buffer: Optional[MemoryBuffer] = None

    def open(self, text: str = "") -> MemoryBuffer:
        """打开 (或重新打开) 会话缓冲区"""
        if self.buffer is not None:
            self.host.close_buffer(self.buffer.buffer_id)
        self.buffer = self.host.open_buffer(text)
        return self.buffer

    def snapshot(self) -> Dict[str, Any]:
        if self.buffer is None:
            return {"type": "state", "text": "", "version": 0}
        return {
            "type": "state",
            "text": self.buffer.get_text(),
            "version": self.buffer.version,
        }

    def reset(self):
        """关闭缓冲区并停止改写器"""
        if self.rewriter is not None:
            self.rewriter.stop()
            self.rewriter = None
        if self.buffer is not None:
            self.host.close_buffer(self.buffer.buffer_id)
            self.buffer = None


class WebSocketManager:
    """WebSocket 连接管理器"""

    def __init__(self):
        self.connections: Dict[str, WebSocket] = {}
        self.states: Dict[str, ConnectionState] = {}

    def connect(
        self,
        websocket: WebSocket,
        connection_id: str,
        config_source: Optional[ConfigSource] = None,
        allow_composition_replace: bool = False,
    ) -> ConnectionState:
        """添加新连接，提供 config_source 时启动实时改写"""
        state = ConnectionState()
        if config_source is not None:
            state.rewriter = LiveRewriter(
                state.host,
                scheduler=state.scheduler,
                allow_composition_replace=allow_composition_replace,
            )
            state.rewriter.start(config_source)

        self.connections[connection_id] = websocket
        self.states[connection_id] = state
        logger.info(f"WebSocket connected: {connection_id}")
        return state

    def disconnect(self, connection_id: str):
        """移除连接"""
        state = self.states.pop(connection_id, None)
        if state is not None:
            state.reset()
        self.connections.pop(connection_id, None)
        logger.info(f"WebSocket disconnected: {connection_id}")

    def get_state(self, connection_id: str) -> Optional[ConnectionState]:
        """获取连接状态"""
        return self.states.get(connection_id)

    async def send_json(self, connection_id: str, data: Dict[str, Any]):
        """发送 JSON 消息"""
        websocket = self.connections.get(connection_id)
        if websocket:
            try:
                await websocket.send_json(data)
            except Exception as e:
                logger.error(f"Failed to send message to {connection_id}: {e}")


ws_manager = WebSocketManager()
