"""
WebSocket 실시간 동기화 모듈

주요 구성 요소:
- session: 연결별 세션 컨텍스트
- connection_manager: 연결 관리 및 reply / relay / announce 전달
- handlers: 인바운드 이벤트 디스패처
"""

from .session import SessionContext
from .connection_manager import ClientConnection, ConnectionManager, DeliveryMode, DELIVERY_MODES
from .handlers import RoomEventDispatcher

__all__ = [
    "SessionContext",
    "ClientConnection",
    "ConnectionManager",
    "DeliveryMode",
    "DELIVERY_MODES",
    "RoomEventDispatcher",
]
