"""WebSocket 实时编辑路由"""
import asyncio
import uuid
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from fixcnchar.api.dependencies import get_config_source
from fixcnchar.api.ws_manager import ws_manager, ConnectionState
from fixcnchar.config import settings
from fixcnchar.core.config_source import ConfigSource
from fixcnchar.core.errors import EditRejectedError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])


@router.websocket("/ws/live")
async def websocket_live(
    websocket: WebSocket,
    config_source: ConfigSource = Depends(get_config_source),
):
    """
    实时编辑 WebSocket 接口

    协议 (JSON 文本消息):
    1. {"type": "open", "text": "..."}                      打开会话缓冲区
    2. {"type": "edit", "offset": 5, "length": 0, "text": "，"}  用户编辑 (键入 / 替换)
    3. {"type": "undo"} / {"type": "redo"}
    每条消息之后服务端返回 {"type": "state", "text": "...", "version": n}，
    其中已包含实时修正的结果。出错时返回 {"type": "error", "message": "..."}。
    """
    await websocket.accept()

    connection_id = str(uuid.uuid4())
    state = ws_manager.connect(
        websocket,
        connection_id,
        config_source=config_source,
        allow_composition_replace=settings.allow_composition_replace,
    )

    try:
        while True:
            message = await websocket.receive_json()
            try:
                _handle_message(state, message)
            except (KeyError, TypeError, ValueError, EditRejectedError) as e:
                await websocket.send_json({"type": "error", "message": str(e)})
                continue

            # 让出一轮事件循环，使延迟的修正先于状态回传完成
            await asyncio.sleep(0)
            await websocket.send_json(state.snapshot())

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected: {connection_id}")
    except Exception as e:
        logger.error(f"WebSocket error: {e}", exc_info=True)
    finally:
        ws_manager.disconnect(connection_id)


def _handle_message(state: ConnectionState, message: Dict[str, Any]):
    """处理一条客户端消息"""
    kind = message.get("type")

    if kind == "open":
        state.open(str(message.get("text", "")))
        return

    if state.buffer is None:
        raise ValueError("No open buffer, send an 'open' message first")
    buffer_id = state.buffer.buffer_id

    if kind == "edit":
        offset = int(message["offset"])
        length = int(message.get("length", 0))
        state.host.replace(buffer_id, offset, offset + length, str(message["text"]))
    elif kind == "undo":
        state.host.undo(buffer_id)
    elif kind == "redo":
        state.host.redo(buffer_id)
    else:
        raise ValueError(f"Unknown message type: {kind!r}")
