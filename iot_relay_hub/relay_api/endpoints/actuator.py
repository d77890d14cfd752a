"""Bulb / actuator control endpoints."""

from fastapi import APIRouter, Depends

from ..clock import iso_now
from ..hub import Hub
from ..schemas import StatusResponse, ToggleResponse
from .deps import get_hub

router = APIRouter(tags=["actuator"])


@router.get("/on", response_model=ToggleResponse)
async def turn_on(hub: Hub = Depends(get_hub)):
    outcome = await hub.router.turn_on()
    return ToggleResponse(
        message="Bulb turned ON",
        currentState=outcome.snapshot.actuator_state,
        timestamp=iso_now(),
        persistence=outcome.persistence.value,
    )


@router.get("/off", response_model=ToggleResponse)
async def turn_off(hub: Hub = Depends(get_hub)):
    outcome = await hub.router.turn_off()
    return ToggleResponse(
        message="Bulb turned OFF",
        currentState=outcome.snapshot.actuator_state,
        timestamp=iso_now(),
        persistence=outcome.persistence.value,
    )


@router.get("/status", response_model=StatusResponse)
async def status(hub: Hub = Depends(get_hub)):
    snapshot = await hub.registry.get()
    return StatusResponse(
        state=snapshot.actuator_state,
        connectedClients=hub.broadcaster.connected_count,
        serverPort=hub.settings.port,
    )
