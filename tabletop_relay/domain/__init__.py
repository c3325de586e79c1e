"""
Domain 계층

룸 상태(Room)와 프로세스 단위 룸 조회 테이블(RoomRegistry)
"""

from .room import Room, create_default_room
from .registry import RoomRegistry

__all__ = [
    "Room",
    "create_default_room",
    "RoomRegistry",
]
