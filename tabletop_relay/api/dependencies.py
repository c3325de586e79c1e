from fastapi import Request

from tabletop_relay.domain.registry import RoomRegistry
from tabletop_relay.websockets.connection_manager import ConnectionManager


def get_registry(request: Request) -> RoomRegistry:
    """앱에 연결된 RoomRegistry 인스턴스"""
    return request.app.state.registry


def get_connection_manager(request: Request) -> ConnectionManager:
    """앱에 연결된 ConnectionManager 인스턴스"""
    return request.app.state.manager
