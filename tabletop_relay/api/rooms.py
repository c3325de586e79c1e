from fastapi import APIRouter, Depends, HTTPException, status

from tabletop_relay.api.dependencies import get_connection_manager, get_registry
from tabletop_relay.domain.registry import RoomRegistry
from tabletop_relay.websockets.connection_manager import ConnectionManager

router = APIRouter(prefix="/rooms", tags=["Rooms"])


@router.get("")
async def list_rooms(registry: RoomRegistry = Depends(get_registry)):
    """유지 중인 모든 룸의 요약 정보를 반환합니다."""
    return [
        {
            "roomId": room.room_id,
            "userCount": len(room.users),
            "messageCount": len(room.messages),
            "tokenCount": len(room.tokens),
        }
        for room in registry.rooms()
    ]


@router.get("/{room_id}/status")
async def get_room_status(
    room_id: str,
    registry: RoomRegistry = Depends(get_registry),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    """
    룸의 현재 상태 정보를 조회합니다.
    조회만 하며 룸을 새로 만들지 않습니다.

    Args:
        room_id: 룸 키

    Returns:
        dict: 룸 상태 정보
    """
    room = registry.get(room_id)
    if room is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Room {room_id} not found"
        )

    return {
        "roomId": room.room_id,
        "users": [user.model_dump() for user in room.user_list()],
        "userCount": len(room.users),
        "connectionCount": manager.get_connection_count_in_room(room_id),
        "messageCount": len(room.messages),
        "tokenCount": len(room.tokens),
        "isActive": not room.is_empty,
        "createdAt": room.created_at,
    }
