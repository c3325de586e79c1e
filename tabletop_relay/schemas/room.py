from typing import Optional, Literal
from pydantic import BaseModel, Field

Channel = Literal["main", "sub"]


class Message(BaseModel):
    """채팅 메시지 스키마 (생성 후 변경되지 않음)"""
    id: str = Field(..., description="릴레이가 부여한 메시지 ID")
    sender: str = Field(..., description="발송자 표시 이름")
    text: str = Field(..., description="메시지 내용")
    timestamp: str = Field(..., description="릴레이가 부여한 시각 (HH:MM)")
    channel: Channel = Field(default="main", description="채널: main 또는 sub")
    color: Optional[str] = Field(None, description="표시 색상")
    expression: Optional[str] = Field(None, description="표정 태그")


class Token(BaseModel):
    """맵 위의 토큰 스키마 (x, y만 변경됨)"""
    id: str = Field(..., description="릴레이가 부여한 토큰 ID")
    name: str
    x: float
    y: float
    color: str


class User(BaseModel):
    """룸 참가자 스키마"""
    name: str
    color: str
