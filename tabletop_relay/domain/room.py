"""
Room State

룸 하나가 소유하는 권위 있는 상태입니다.
- messages: 수락 순서대로 쌓이며 재정렬/삭제되지 않음
- tokens: 토큰 ID로 유일, x/y만 제자리에서 변경됨
- users: 연결 ID → User (같은 표시 이름이 여러 연결에 있을 수 있음)
"""
import itertools
from datetime import datetime
from typing import Dict, Iterator, List, Optional

from tabletop_relay.schemas.events import RoomStatePayload
from tabletop_relay.schemas.room import Channel, Message, Token, User
from tabletop_relay.utils.time_utils import format_clock_time

SYSTEM_SENDER = "System"
SYSTEM_COLOR = "#888"


class Room:
    """단일 룸의 메시지 로그, 토큰 집합, 참가자 명단"""

    def __init__(self, room_id: str, created_at: Optional[datetime] = None):
        self.room_id = room_id
        self.created_at = created_at or datetime.utcnow()
        self.messages: List[Message] = []
        self.tokens: Dict[str, Token] = {}
        self.users: Dict[str, User] = {}
        self._message_seq: Iterator[int] = itertools.count(1)
        self._token_seq: Iterator[int] = itertools.count(1)

    # ---- messages -----------------------------------------------------------

    def next_message_id(self, prefix: str = "msg") -> str:
        return f"{prefix}-{next(self._message_seq)}"

    def append_message(
        self,
        sender: str,
        text: str,
        timestamp: str,
        channel: Channel = "main",
        color: Optional[str] = None,
        expression: Optional[str] = None,
        message_id: Optional[str] = None,
    ) -> Message:
        """새 메시지에 ID를 부여해 로그 끝에 추가합니다."""
        message = Message(
            id=message_id or self.next_message_id(),
            sender=sender,
            text=text,
            timestamp=timestamp,
            channel=channel,
            color=color,
            expression=expression,
        )
        self.messages.append(message)
        return message

    # ---- tokens -------------------------------------------------------------

    def next_token_id(self) -> str:
        token_id = f"token-{next(self._token_seq)}"
        while token_id in self.tokens:
            token_id = f"token-{next(self._token_seq)}"
        return token_id

    def add_token(self, name: str, x: float, y: float, color: str) -> Token:
        token = Token(id=self.next_token_id(), name=name, x=x, y=y, color=color)
        self.tokens[token.id] = token
        return token

    def find_token(self, token_id: str) -> Optional[Token]:
        return self.tokens.get(token_id)

    def move_token(self, token_id: str, x: float, y: float) -> Optional[Token]:
        """토큰 좌표를 제자리에서 갱신합니다. 없는 토큰이면 None."""
        token = self.tokens.get(token_id)
        if token is None:
            return None
        token.x = x
        token.y = y
        return token

    # ---- users --------------------------------------------------------------

    def add_user(self, connection_id: str, name: str, color: str) -> User:
        user = User(name=name, color=color)
        self.users[connection_id] = user
        return user

    def remove_user(self, connection_id: str) -> Optional[User]:
        return self.users.pop(connection_id, None)

    def user_list(self) -> List[User]:
        return list(self.users.values())

    @property
    def is_empty(self) -> bool:
        return not self.users

    def snapshot(self) -> RoomStatePayload:
        """room-state 이벤트로 보낼 현재 상태"""
        return RoomStatePayload(
            messages=list(self.messages),
            tokens=list(self.tokens.values()),
            users=self.user_list(),
        )


def create_default_room(
    room_id: str,
    welcome_message: str = "セッション開始！",
    now: Optional[datetime] = None,
) -> Room:
    """
    기본 상태의 새 룸을 생성합니다.

    시스템 환영 메시지 1개와 시드 토큰 2개(Hero, Orc)가 들어 있고
    참가자 명단은 비어 있습니다.
    """
    now = now or datetime.now()
    room = Room(room_id)
    room.append_message(
        sender=SYSTEM_SENDER,
        text=welcome_message,
        timestamp=format_clock_time(now),
        channel="main",
        color=SYSTEM_COLOR,
        message_id=room.next_message_id(prefix="system"),
    )
    room.add_token(name="Hero", x=200, y=200, color="#3b82f6")
    room.add_token(name="Orc", x=280, y=200, color="#ef4444")
    return room
