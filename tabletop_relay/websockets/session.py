from dataclasses import dataclass
from typing import Optional


@dataclass
class SessionContext:
    """
    연결 하나에 대응하는 세션 정보

    연결 시 빈 상태로 생성되고, join-room에서 채워지며, 연결 해제 시 폐기됩니다.
    전송 계층은 룸 개념이 없으므로 "이 연결이 현재 어느 룸에 있는가"는
    오직 여기서만 기억합니다.
    """
    connection_id: str
    room_id: Optional[str] = None
    display_name: Optional[str] = None

    @property
    def joined(self) -> bool:
        return self.room_id is not None

    def bind(self, room_id: str, display_name: str):
        self.room_id = room_id
        self.display_name = display_name

    def clear(self):
        self.room_id = None
        self.display_name = None
