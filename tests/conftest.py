from datetime import datetime
from typing import Any, Dict, List

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import AsyncClient, ASGITransport

from tabletop_relay.core.config import Settings
from tabletop_relay.domain.registry import RoomRegistry
from tabletop_relay.main import create_app
from tabletop_relay.websockets.connection_manager import ConnectionManager
from tabletop_relay.websockets.handlers import RoomEventDispatcher
from tabletop_relay.websockets.session import SessionContext


# 테스트용 고정 시각
FIXED_NOW = datetime(2024, 1, 1, 9, 30)


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


class FakeConnection:
    """전송된 프레임을 기록만 하는 가짜 연결"""

    def __init__(self, connection_id: str):
        self.id = connection_id
        self.received: List[Dict[str, Any]] = []

    def send(self, data: Dict[str, Any]):
        self.received.append(data)

    def of_type(self, event_type: str) -> List[Dict[str, Any]]:
        return [frame for frame in self.received if frame["type"] == event_type]

    def clear(self):
        self.received.clear()


@pytest.fixture
def test_settings() -> Settings:
    """파일 로그를 끈 테스트 설정"""
    return Settings(log_dir="", debug=True)


@pytest.fixture
def registry() -> RoomRegistry:
    return RoomRegistry(clock=lambda: FIXED_NOW)


@pytest.fixture
def manager() -> ConnectionManager:
    return ConnectionManager()


@pytest.fixture
def dispatcher(registry, manager, test_settings) -> RoomEventDispatcher:
    return RoomEventDispatcher(registry, manager, settings=test_settings, clock=lambda: FIXED_NOW)


@pytest.fixture
def connect(manager):
    """가짜 연결을 등록하고 (connection, session)을 반환하는 팩토리"""
    def _connect(connection_id: str):
        connection = FakeConnection(connection_id)
        manager.register(connection)
        return connection, SessionContext(connection_id=connection_id)
    return _connect


@pytest.fixture
def join_event():
    def _join_event(name: str, room_id: str = "default", color: str = "#3b82f6") -> Dict[str, Any]:
        return {"type": "join-room", "roomId": room_id, "user": {"name": name, "color": color}}
    return _join_event


@pytest.fixture
def app(test_settings):
    return create_app(test_settings, registry=RoomRegistry(clock=lambda: FIXED_NOW))


@pytest.fixture
def ws_client(app):
    """WebSocket 테스트 클라이언트 (모든 연결이 같은 이벤트 루프를 공유)"""
    with TestClient(app) as client:
        yield client


@pytest_asyncio.fixture
async def client(app):
    """테스트용 비동기 HTTP 클라이언트"""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
