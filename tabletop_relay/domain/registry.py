"""
Room Registry: 룸 키 → Room 조회 테이블

- 처음 보는 룸 키로 참가하면 기본 상태의 룸을 생성
- 한 번 생성된 룸은 참가자가 모두 나가도 프로세스 종료까지 유지
"""
import logging
import threading
from datetime import datetime
from typing import Callable, Dict, List, Optional

from tabletop_relay.domain.room import Room, create_default_room

logger = logging.getLogger(__name__)


class RoomRegistry:
    """룸 생명주기 관리자"""

    def __init__(
        self,
        welcome_message: str = "セッション開始！",
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._rooms: Dict[str, Room] = {}
        # 확인 후 생성(check-then-insert)을 원자적으로 유지
        self._lock = threading.Lock()
        self.welcome_message = welcome_message
        self.clock = clock

    def get_or_create(self, room_id: str) -> Room:
        """
        룸을 반환하고, 없으면 기본 상태로 생성합니다.

        모든 문자열 키에 대해 실패하지 않습니다. 같은 키로 동시에 호출되어도
        Room은 하나만 생성됩니다.
        """
        room = self._rooms.get(room_id)
        if room is not None:
            return room

        with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                room = create_default_room(
                    room_id,
                    welcome_message=self.welcome_message,
                    now=self.clock(),
                )
                self._rooms[room_id] = room
                logger.info(f"Created room {room_id} (total rooms: {len(self._rooms)})")
        return room

    def get(self, room_id: str) -> Optional[Room]:
        """룸을 조회합니다. 없으면 생성하지 않고 None을 반환합니다."""
        return self._rooms.get(room_id)

    def room_ids(self) -> List[str]:
        return list(self._rooms.keys())

    def rooms(self) -> List[Room]:
        return list(self._rooms.values())

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)
