import asyncio
import contextlib
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from tabletop_relay.core.logging import clear_connection_context, set_connection_context
from tabletop_relay.websockets.connection_manager import ClientConnection
from tabletop_relay.websockets.handlers import RoomEventDispatcher
from tabletop_relay.websockets.session import SessionContext

logger = logging.getLogger(__name__)

router = APIRouter(tags=["WebSocket"])


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    실시간 동기화 WebSocket 엔드포인트

    연결 하나가 세션 하나입니다. 클라이언트는 연결 후 join-room을 보내야
    다른 이벤트가 처리됩니다.
    """
    dispatcher: RoomEventDispatcher = websocket.app.state.dispatcher
    manager = dispatcher.manager

    # 1. 연결 수락 및 등록
    await websocket.accept()
    connection = ClientConnection(websocket, max_size=dispatcher.settings.outbox_max_size)
    session = SessionContext(connection_id=connection.id)
    set_connection_context(connection.id)
    manager.register(connection)
    writer = asyncio.create_task(connection.pump())

    logger.info(f"Connection {connection.id} connected")

    try:
        # 2. 메시지 수신 루프
        while True:
            try:
                data = await websocket.receive_json()
            except ValueError as e:
                # JSON 파싱 오류
                logger.warning(f"Invalid JSON from connection {connection.id}: {e}")
                continue

            try:
                dispatcher.handle_message(session, data)
            except Exception as e:
                logger.error(f"Error processing message from connection {connection.id}: {e}", exc_info=True)

    except WebSocketDisconnect:
        # 정상적인 연결 해제
        logger.info(f"Connection {connection.id} disconnected")

    except Exception as e:
        logger.error(f"Unexpected error in WebSocket connection {connection.id}: {e}", exc_info=True)

    finally:
        # 3. 연결 해제 처리
        try:
            dispatcher.leave(session)
        finally:
            manager.unregister(connection.id)
            connection.close()
            writer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await writer
            clear_connection_context()
