import asyncio
import logging
import uuid
from enum import Enum
from typing import Any, Dict, List, Optional

from fastapi import WebSocket, status
from pydantic import BaseModel

from tabletop_relay.schemas.events import ServerEventType, envelope

logger = logging.getLogger(__name__)


class DeliveryMode(str, Enum):
    REPLY = "reply"        # 요청한 연결에만
    RELAY = "relay"        # 룸의 다른 연결 전체 (요청자 제외)
    ANNOUNCE = "announce"  # 룸의 모든 연결 (요청자 포함)


# 이벤트별 전달 범위
DELIVERY_MODES: Dict[ServerEventType, DeliveryMode] = {
    ServerEventType.ROOM_STATE: DeliveryMode.REPLY,
    ServerEventType.USER_JOINED: DeliveryMode.RELAY,
    ServerEventType.USER_LEFT: DeliveryMode.RELAY,
    ServerEventType.CHAT_MESSAGE: DeliveryMode.ANNOUNCE,
    ServerEventType.TOKEN_MOVED: DeliveryMode.RELAY,
    ServerEventType.TOKEN_ADDED: DeliveryMode.ANNOUNCE,
}


class ClientConnection:
    """
    WebSocket 연결 하나와 그 송신 큐

    send()는 큐에 넣기만 하고 즉시 반환합니다(fire-and-forget).
    실제 전송은 pump() 태스크가 큐 순서대로 처리하므로 연결별 전달 순서가 유지됩니다.
    큐가 max_size를 넘으면 읽지 않는 클라이언트로 보고 연결을 닫습니다.
    """

    def __init__(self, websocket: WebSocket, connection_id: Optional[str] = None, max_size: int = 0):
        self.id = connection_id or uuid.uuid4().hex
        self.websocket = websocket
        self.max_size = max_size
        # 종료 신호(None)용 한 칸은 항상 남겨 둠
        self._outbox: "asyncio.Queue[Optional[Dict[str, Any]]]" = asyncio.Queue(maxsize=max_size + 1 if max_size else 0)
        self.closed = False
        self.overflowed = False

    def send(self, data: Dict[str, Any]):
        if self.closed:
            return
        if self.max_size and self._outbox.qsize() >= self.max_size:
            logger.warning(f"Outbox overflow for connection {self.id} ({self.max_size} frames), closing")
            self._overflow()
            return
        self._outbox.put_nowait(data)

    def close(self):
        """송신 큐를 닫습니다. 이미 쌓인 프레임은 모두 보낸 뒤 pump()가 종료됩니다."""
        if self.closed:
            return
        self.closed = True
        self._outbox.put_nowait(None)

    def _overflow(self):
        # 쌓인 프레임은 버리고 종료 신호만 남김
        self.closed = True
        self.overflowed = True
        while not self._outbox.empty():
            self._outbox.get_nowait()
        self._outbox.put_nowait(None)

    async def pump(self):
        """송신 큐를 WebSocket으로 내보냅니다."""
        while True:
            data = await self._outbox.get()
            if data is None:
                break
            try:
                await self.websocket.send_json(data)
            except Exception as e:
                logger.warning(f"Failed to send to connection {self.id}: {e}")
                self.closed = True
                return

        if self.overflowed:
            try:
                await self.websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            except Exception as e:
                logger.warning(f"Failed to close connection {self.id}: {e}")


class ConnectionManager:
    """
    Broadcast Gateway

    연결 등록과 전송 계층의 룸 소속을 관리하고, reply / relay / announce
    세 가지 전달 방식을 제공합니다.
    """

    def __init__(self):
        # 연결별: {connection_id: connection}
        self.connections: Dict[str, ClientConnection] = {}
        # 룸별 연결 그룹: {room_id: {connection_id: connection}}
        self.room_connections: Dict[str, Dict[str, ClientConnection]] = {}
        # 연결별 소속 룸: {connection_id: room_id}
        self.connection_rooms: Dict[str, str] = {}

    def register(self, connection: ClientConnection):
        """새 연결을 등록합니다. 아직 어느 룸에도 속하지 않습니다."""
        self.connections[connection.id] = connection
        logger.info(f"Connection {connection.id} registered ({len(self.connections)} online)")

    def unregister(self, connection_id: str):
        """연결을 제거하고 소속 룸에서도 뺍니다."""
        self.leave_room(connection_id)
        self.connections.pop(connection_id, None)
        logger.info(f"Connection {connection_id} unregistered ({len(self.connections)} online)")

    def join_room(self, connection_id: str, room_id: str):
        """연결을 룸 그룹에 추가합니다. 다른 룸에 있었다면 먼저 빠집니다."""
        connection = self.connections.get(connection_id)
        if connection is None:
            return

        current = self.connection_rooms.get(connection_id)
        if current is not None and current != room_id:
            self.leave_room(connection_id)

        if room_id not in self.room_connections:
            self.room_connections[room_id] = {}
        self.room_connections[room_id][connection_id] = connection
        self.connection_rooms[connection_id] = room_id

    def leave_room(self, connection_id: str):
        room_id = self.connection_rooms.pop(connection_id, None)
        if room_id is None:
            return

        if room_id in self.room_connections:
            self.room_connections[room_id].pop(connection_id, None)

            # 연결이 없는 그룹은 정리 (Room 상태 자체는 RoomRegistry가 유지)
            if not self.room_connections[room_id]:
                del self.room_connections[room_id]

    # ---- 전달 방식 ----------------------------------------------------------

    def reply(self, connection_id: str, data: Dict[str, Any]) -> int:
        """요청한 연결에만 전송합니다."""
        connection = self.connections.get(connection_id)
        if connection is None:
            return 0
        connection.send(data)
        return 1

    def relay(self, room_id: str, data: Dict[str, Any], origin_id: str) -> int:
        """요청한 연결을 제외한 룸 전체에 전송합니다."""
        return self.broadcast_to_room(room_id, data, exclude_connection=origin_id)

    def announce(self, room_id: str, data: Dict[str, Any]) -> int:
        """요청한 연결을 포함한 룸 전체에 전송합니다."""
        return self.broadcast_to_room(room_id, data)

    def broadcast_to_room(self, room_id: str, data: Dict[str, Any], exclude_connection: Optional[str] = None) -> int:
        if room_id not in self.room_connections:
            return 0

        delivered = 0
        for connection_id, connection in list(self.room_connections[room_id].items()):
            if exclude_connection and connection_id == exclude_connection:
                continue
            connection.send(data)
            delivered += 1
        return delivered

    def deliver(
        self,
        event_type: ServerEventType,
        payload: BaseModel,
        room_id: str,
        origin_id: str,
    ) -> int:
        """
        이벤트 종류에 정해진 전달 방식(DELIVERY_MODES)으로 이벤트를 보냅니다.

        Returns:
            int: 전송 큐에 넣은 연결 수
        """
        data = envelope(event_type, payload)
        mode = DELIVERY_MODES[event_type]

        if mode is DeliveryMode.REPLY:
            return self.reply(origin_id, data)
        if mode is DeliveryMode.RELAY:
            return self.relay(room_id, data, origin_id)
        return self.announce(room_id, data)

    # ---- 조회 ---------------------------------------------------------------

    def get_room_connection_ids(self, room_id: str) -> List[str]:
        """룸에 연결된 connection_id 목록을 반환합니다."""
        if room_id not in self.room_connections:
            return []
        return list(self.room_connections[room_id].keys())

    def get_connection_count_in_room(self, room_id: str) -> int:
        if room_id not in self.room_connections:
            return 0
        return len(self.room_connections[room_id])

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self.connections

    def get_connection_room(self, connection_id: str) -> Optional[str]:
        return self.connection_rooms.get(connection_id)

    def get_online_count(self) -> int:
        return len(self.connections)
