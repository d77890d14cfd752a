"""Health endpoint."""

from fastapi import APIRouter, Depends

from ..hub import Hub
from .deps import get_hub

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health(hub: Hub = Depends(get_hub)):
    """Liveness + store reachability. Always 200 while the process runs."""
    status = await hub.health.get_status(connected_clients=hub.broadcaster.connected_count)
    return status.to_dict()
