"""
WebSocket 이벤트 스키마

클라이언트 → 릴레이 이벤트는 `type` 필드로 구분되는 태그드 유니온으로 검증하고,
릴레이 → 클라이언트 이벤트는 `envelope()`로 평탄한 JSON 프레임을 만듭니다.
기본값 채우기와 형식 검증은 모두 이 모듈에서만 처리합니다.
"""
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from tabletop_relay.core.errors import MalformedEvent, UnknownEventType
from tabletop_relay.schemas.room import Channel, Message, Token, User


class ClientEventType(str, Enum):
    JOIN_ROOM = "join-room"
    CHAT_MESSAGE = "chat-message"
    TOKEN_MOVE = "token-move"
    TOKEN_ADD = "token-add"


class ServerEventType(str, Enum):
    ROOM_STATE = "room-state"
    USER_JOINED = "user-joined"
    USER_LEFT = "user-left"
    CHAT_MESSAGE = "chat-message"
    TOKEN_MOVED = "token-moved"
    TOKEN_ADDED = "token-added"


# 문자열, bool은 숫자로 변환하지 않음 (정수는 허용)
Coordinate = Annotated[float, Field(strict=True, allow_inf_nan=False)]


def _blank_to_none(value: Any) -> Optional[str]:
    if not isinstance(value, str) or not value.strip():
        return None
    return value


# =============================================================================
# 인바운드 이벤트 (클라이언트 → 릴레이)
# =============================================================================

class JoinRoomUser(BaseModel):
    """참가 요청에 포함된 사용자 정보"""
    name: Optional[str] = None
    color: Optional[str] = None

    @field_validator("name", "color", mode="before")
    @classmethod
    def normalize_optional(cls, value: Any) -> Optional[str]:
        return _blank_to_none(value)


class JoinRoomEvent(BaseModel):
    """룸 참가 요청. 어떤 필드가 잘못되어도 거부하지 않고 기본값을 사용합니다."""
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["join-room"]
    room_id: Optional[str] = Field(None, alias="roomId")
    user: Optional[JoinRoomUser] = None

    @field_validator("room_id", mode="before")
    @classmethod
    def normalize_room_id(cls, value: Any) -> Optional[str]:
        return _blank_to_none(value)

    @field_validator("user", mode="before")
    @classmethod
    def drop_non_object_user(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return None
        return value


class ChatMessageEvent(BaseModel):
    """채팅 메시지 (id, timestamp는 릴레이가 부여)"""
    type: Literal["chat-message"]
    sender: Optional[str] = None
    text: str
    channel: Channel = "main"
    color: Optional[str] = None
    expression: Optional[str] = None

    @field_validator("sender", mode="before")
    @classmethod
    def normalize_sender(cls, value: Any) -> Optional[str]:
        return _blank_to_none(value)


class TokenMoveEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["token-move"]
    token_id: str = Field(..., alias="tokenId")
    x: Coordinate
    y: Coordinate


class TokenAddEvent(BaseModel):
    """토큰 추가 (id는 릴레이가 부여)"""
    type: Literal["token-add"]
    name: Optional[str] = None
    x: Coordinate
    y: Coordinate
    color: Optional[str] = None

    @field_validator("name", "color", mode="before")
    @classmethod
    def normalize_optional(cls, value: Any) -> Optional[str]:
        return _blank_to_none(value)


ClientEvent = Annotated[
    Union[JoinRoomEvent, ChatMessageEvent, TokenMoveEvent, TokenAddEvent],
    Field(discriminator="type"),
]

_client_event_adapter = TypeAdapter(ClientEvent)
_client_event_types = {event_type.value for event_type in ClientEventType}


def parse_client_event(data: Any) -> ClientEvent:
    """
    수신한 JSON 프레임을 인바운드 이벤트로 변환합니다.

    Args:
        data: receive_json()으로 받은 값

    Returns:
        JoinRoomEvent | ChatMessageEvent | TokenMoveEvent | TokenAddEvent

    Raises:
        UnknownEventType: type 필드가 없거나 알 수 없는 값인 경우
        MalformedEvent: 필드 검증에 실패한 경우
    """
    if not isinstance(data, dict):
        raise MalformedEvent(f"Expected a JSON object, got {type(data).__name__}")

    event_type = data.get("type")
    if not isinstance(event_type, str) or event_type not in _client_event_types:
        raise UnknownEventType(event_type)

    try:
        return _client_event_adapter.validate_python(data)
    except ValidationError as e:
        fields = ", ".join(".".join(str(loc) for loc in error["loc"]) for error in e.errors())
        raise MalformedEvent(f"Invalid {event_type} payload: {fields}") from e


# =============================================================================
# 아웃바운드 이벤트 (릴레이 → 클라이언트)
# =============================================================================

class RoomStatePayload(BaseModel):
    """참가자 본인에게만 보내는 전체 룸 상태"""
    messages: List[Message]
    tokens: List[Token]
    users: List[User]


class UserPresencePayload(BaseModel):
    """user-joined / user-left 공통 페이로드"""
    name: str
    users: List[User]


class TokenMovedPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token_id: str = Field(..., alias="tokenId")
    x: float
    y: float


def envelope(event_type: ServerEventType, payload: BaseModel) -> Dict[str, Any]:
    """아웃바운드 이벤트를 `{"type": ..., **payload}` 형태의 프레임으로 만듭니다."""
    return {
        "type": event_type.value,
        **payload.model_dump(by_alias=True, exclude_none=True),
    }
