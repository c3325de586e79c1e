import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tabletop_relay.api.health import router as health_router
from tabletop_relay.api.rooms import router as rooms_router
from tabletop_relay.api.websocket import router as websocket_router
from tabletop_relay.core.config import Settings, settings as default_settings
from tabletop_relay.core.logging import setup_logging
from tabletop_relay.domain.registry import RoomRegistry
from tabletop_relay.websockets.connection_manager import ConnectionManager
from tabletop_relay.websockets.handlers import RoomEventDispatcher

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"Tabletop relay ready, WebSocket endpoint: /ws (port {app.state.settings.port})")
    yield
    # Shutdown
    logger.info(f"Tabletop relay shutting down, {len(app.state.registry)} rooms discarded")


def create_app(settings: Optional[Settings] = None, registry: Optional[RoomRegistry] = None) -> FastAPI:
    """룸 레지스트리, 연결 매니저, 디스패처를 앱 인스턴스마다 새로 구성합니다."""
    settings = settings or default_settings
    if registry is None:
        registry = RoomRegistry(welcome_message=settings.welcome_message)
    manager = ConnectionManager()

    app = FastAPI(title="Tabletop Relay", debug=settings.debug, lifespan=lifespan)
    app.state.settings = settings
    app.state.registry = registry
    app.state.manager = manager
    app.state.dispatcher = RoomEventDispatcher(registry, manager, settings=settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(health_router)
    app.include_router(rooms_router)
    app.include_router(websocket_router)

    return app


app = create_app()


def run():
    """콘솔 실행 진입점"""
    setup_logging(default_settings)
    uvicorn.run(app, host=default_settings.host, port=default_settings.port)


if __name__ == "__main__":
    run()
