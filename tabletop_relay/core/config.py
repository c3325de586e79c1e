from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()  # .env 파일 로드


class Settings(BaseSettings):
    host: str = "0.0.0.0"
    port: int = 3001
    cors_origins: List[str] = [
        "http://localhost:5173",
        "http://localhost:4173",
        "https://tany0131.github.io",
    ]
    debug: bool = False
    log_level: str = "INFO"
    log_dir: str = "logs"

    # 연결별 송신 큐 크기 (초과 시 연결 종료, 0은 무제한)
    outbox_max_size: int = 1000

    # 룸 기본값
    default_room_id: str = "default"
    anonymous_name: str = "Anonymous"
    default_user_color: str = "#3b82f6"
    default_token_color: str = "#888"
    welcome_message: str = "セッション開始！"

    class Config:
        env_file = ".env"
        env_prefix = "RELAY_"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
