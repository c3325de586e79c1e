"""
시간 관련 유틸리티 함수
"""
from datetime import datetime
from typing import Optional


def format_clock_time(dt: Optional[datetime] = None) -> str:
    """
    datetime을 메시지에 표시할 시각 문자열로 변환합니다.

    Args:
        dt: datetime 객체 (None인 경우 현재 로컬 시각)

    Returns:
        str: "HH:MM" 형식의 24시간제 시각

    Examples:
        >>> format_clock_time(datetime(2024, 1, 1, 9, 5))
        "09:05"
    """
    if dt is None:
        dt = datetime.now()
    return dt.strftime("%H:%M")
