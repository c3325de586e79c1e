from fastapi import APIRouter, Depends
from datetime import datetime

from tabletop_relay.api.dependencies import get_connection_manager, get_registry
from tabletop_relay.domain.registry import RoomRegistry
from tabletop_relay.websockets.connection_manager import ConnectionManager

router = APIRouter()


@router.get("/health")
async def health_check(
    registry: RoomRegistry = Depends(get_registry),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    """Application health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow(),
        "rooms": len(registry),
        "connections": manager.get_online_count(),
        "service": "tabletop-relay"
    }


@router.get("/health/ready")
async def readiness_check():
    """Kubernetes readiness probe endpoint"""
    return {"status": "ready"}


@router.get("/health/live")
async def liveness_check():
    """Kubernetes liveness probe endpoint"""
    return {"status": "alive", "timestamp": datetime.utcnow()}
