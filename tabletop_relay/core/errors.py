"""
릴레이 예외 정의

프로토콜에는 부정 응답(NACK) 채널이 없으므로, 여기 정의된 예외는 모두
디스패처 내부에서 잡혀 로그만 남기고 이벤트를 버립니다.
"""


class RelayException(Exception):
    """모든 릴레이 예외의 기반 클래스"""
    pass


class DroppedEvent(RelayException):
    """처리하지 않고 버리는 이벤트"""
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class SessionNotJoined(DroppedEvent):
    """룸에 참가하지 않은 연결에서 온 이벤트"""
    def __init__(self, connection_id: str):
        self.connection_id = connection_id
        super().__init__(f"Connection {connection_id} has not joined a room")


class RoomNotFound(DroppedEvent):
    def __init__(self, room_id: str):
        self.room_id = room_id
        super().__init__(f"Room {room_id} not found")


class TokenNotFound(DroppedEvent):
    def __init__(self, room_id: str, token_id: str):
        self.room_id = room_id
        self.token_id = token_id
        super().__init__(f"Token {token_id} not found in room {room_id}")


class MalformedEvent(DroppedEvent):
    """형식이 잘못된 인바운드 프레임"""
    pass


class UnknownEventType(MalformedEvent):
    def __init__(self, event_type):
        self.event_type = event_type
        super().__init__(f"Unknown event type: {event_type!r}")
