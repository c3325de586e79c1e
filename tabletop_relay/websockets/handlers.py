import logging
from datetime import datetime
from typing import Any, Callable, Optional

from tabletop_relay.core.config import Settings, settings as default_settings
from tabletop_relay.core.errors import DroppedEvent, MalformedEvent, RoomNotFound, SessionNotJoined, TokenNotFound
from tabletop_relay.core.logging import log_websocket_event, room_id_var
from tabletop_relay.domain.registry import RoomRegistry
from tabletop_relay.domain.room import Room
from tabletop_relay.schemas.events import (
    ChatMessageEvent,
    ClientEvent,
    JoinRoomEvent,
    ServerEventType,
    TokenAddEvent,
    TokenMoveEvent,
    TokenMovedPayload,
    UserPresencePayload,
    parse_client_event,
)
from tabletop_relay.schemas.room import Message, Token, User
from tabletop_relay.utils.time_utils import format_clock_time
from tabletop_relay.websockets.connection_manager import ConnectionManager
from tabletop_relay.websockets.session import SessionContext

logger = logging.getLogger(__name__)


class RoomEventDispatcher:
    """
    WebSocket 이벤트 디스패처

    인바운드 이벤트마다 세션 컨텍스트를 확인하고, 룸 상태를 변경한 뒤,
    이벤트별 전달 방식으로 결과를 내보냅니다. 핸들러는 I/O를 기다리지 않으므로
    한 이벤트의 읽기-변경-전송은 다른 이벤트와 섞이지 않습니다.
    """

    def __init__(
        self,
        registry: RoomRegistry,
        manager: ConnectionManager,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.registry = registry
        self.manager = manager
        self.settings = settings or default_settings
        self.clock = clock

    def handle_message(self, session: SessionContext, data: Any):
        """
        WebSocket으로 받은 프레임을 검증하고 처리합니다.

        Args:
            session: 프레임을 보낸 연결의 세션 컨텍스트
            data: 클라이언트에서 전송한 JSON 데이터
        """
        try:
            event = parse_client_event(data)
        except MalformedEvent as e:
            log_websocket_event(
                logger, "dropped", session.connection_id, session.room_id,
                level=logging.WARNING, reason=e.reason,
            )
            return
        self.dispatch(session, event)

    def dispatch(self, session: SessionContext, event: ClientEvent):
        """검증된 이벤트를 핸들러로 보냅니다. 버려지는 이벤트는 로그만 남깁니다."""
        try:
            if isinstance(event, JoinRoomEvent):
                self.join(session, event)
            elif isinstance(event, ChatMessageEvent):
                self.chat(session, event)
            elif isinstance(event, TokenMoveEvent):
                self.move_token(session, event)
            elif isinstance(event, TokenAddEvent):
                self.add_token(session, event)
        except DroppedEvent as e:
            log_websocket_event(
                logger, "dropped", session.connection_id, session.room_id,
                level=logging.DEBUG, reason=e.reason,
            )

    def join(self, session: SessionContext, event: JoinRoomEvent) -> Room:
        room_id = event.room_id or self.settings.default_room_id
        name = (event.user and event.user.name) or self.settings.anonymous_name
        color = (event.user and event.user.color) or self.settings.default_user_color

        # 다른 룸에 있던 세션이면 이전 룸에서 먼저 퇴장
        if session.joined and session.room_id != room_id:
            self.leave(session)

        session.bind(room_id, name)
        room_id_var.set(room_id)
        room = self.registry.get_or_create(room_id)
        self.manager.join_room(session.connection_id, room_id)
        room.add_user(session.connection_id, name, color)

        log_websocket_event(
            logger, "join", session.connection_id, room_id,
            display_name=name, user_count=len(room.users),
        )

        self.manager.deliver(ServerEventType.ROOM_STATE, room.snapshot(), room_id, session.connection_id)
        self.manager.deliver(
            ServerEventType.USER_JOINED,
            UserPresencePayload(name=name, users=room.user_list()),
            room_id,
            session.connection_id,
        )
        return room

    def chat(self, session: SessionContext, event: ChatMessageEvent) -> Message:
        room = self._require_room(session)
        message = room.append_message(
            sender=event.sender or session.display_name or self.settings.anonymous_name,
            text=event.text,
            timestamp=format_clock_time(self.clock()),
            channel=event.channel,
            color=event.color,
            expression=event.expression,
        )

        log_websocket_event(
            logger, "chat", session.connection_id, room.room_id,
            level=logging.DEBUG, message_id=message.id, preview=message.text[:30],
        )

        self.manager.deliver(ServerEventType.CHAT_MESSAGE, message, room.room_id, session.connection_id)
        return message

    def move_token(self, session: SessionContext, event: TokenMoveEvent) -> Token:
        room = self._require_room(session)
        token = room.move_token(event.token_id, event.x, event.y)
        if token is None:
            raise TokenNotFound(room.room_id, event.token_id)

        log_websocket_event(
            logger, "token_move", session.connection_id, room.room_id,
            level=logging.DEBUG, token_id=token.id, x=token.x, y=token.y,
        )

        self.manager.deliver(
            ServerEventType.TOKEN_MOVED,
            TokenMovedPayload(token_id=token.id, x=token.x, y=token.y),
            room.room_id,
            session.connection_id,
        )
        return token

    def add_token(self, session: SessionContext, event: TokenAddEvent) -> Token:
        room = self._require_room(session)
        token = room.add_token(
            name=event.name or "Token",
            x=event.x,
            y=event.y,
            color=event.color or self.settings.default_token_color,
        )

        log_websocket_event(
            logger, "token_add", session.connection_id, room.room_id,
            level=logging.DEBUG, token_id=token.id,
        )

        self.manager.deliver(ServerEventType.TOKEN_ADDED, token, room.room_id, session.connection_id)
        return token

    def leave(self, session: SessionContext) -> Optional[User]:
        """
        연결 해제(또는 다른 룸으로 이동) 시 정리합니다.

        룸 참가자 명단에서 이 연결만 제거하고 남은 참가자에게 알립니다.
        룸이 비어도 룸과 그 기록은 유지됩니다.
        """
        if not session.joined:
            return None

        room_id = session.room_id
        room = self.registry.get(room_id)
        self.manager.leave_room(session.connection_id)
        display_name = session.display_name
        session.clear()
        if room is None:
            return None

        user = room.remove_user(session.connection_id)
        log_websocket_event(
            logger, "leave", session.connection_id, room_id,
            display_name=display_name, user_count=len(room.users),
        )

        # 이미 룸 그룹에서 빠졌으므로 남은 참가자 전원에게 전달됨
        self.manager.deliver(
            ServerEventType.USER_LEFT,
            UserPresencePayload(name=display_name or self.settings.anonymous_name, users=room.user_list()),
            room_id,
            session.connection_id,
        )

        if room.is_empty:
            log_websocket_event(logger, "room_empty", session.connection_id, room_id)
            logger.info(f"[{room_id}] Room is now empty (retained)")

        return user

    def _require_room(self, session: SessionContext) -> Room:
        if not session.joined:
            raise SessionNotJoined(session.connection_id)
        room = self.registry.get(session.room_id)
        if room is None:
            raise RoomNotFound(session.room_id)
        return room
