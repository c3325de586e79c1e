"""
TRPG 세션 실시간 동기화 릴레이

룸 단위로 채팅 로그, 토큰 위치, 접속자 목록을 모든 클라이언트에 동기화합니다.
"""

__version__ = "0.1.0"
