"""Environment sensor endpoints (pull-only, never broadcast)."""

from fastapi import APIRouter, Depends

from ..clock import iso_now
from ..hub import Hub
from ..schemas import ReceivedReading, SensorDataAck, SensorDataIn, SensorDataResponse
from ..storage.mirror import PersistenceStatus
from .deps import get_hub

router = APIRouter(prefix="/api", tags=["sensors"])


@router.post("/sensor-data", response_model=SensorDataAck)
async def post_sensor_data(payload: SensorDataIn, hub: Hub = Depends(get_hub)):
    outcome = await hub.router.record_sensor_reading(
        payload.temperature,
        payload.humidity,
        payload.timestamp,
        payload.datetime,
    )
    if outcome.persistence is PersistenceStatus.SYNCED:
        message = "Sensor data synced to store"
    else:
        message = "Sensor data received"
    return SensorDataAck(
        message=message,
        receivedData=ReceivedReading(
            temperature=outcome.snapshot.temperature,
            humidity=outcome.snapshot.humidity,
        ),
        persistence=outcome.persistence.value,
    )


@router.get("/sensor-data", response_model=SensorDataResponse)
async def get_sensor_data(hub: Hub = Depends(get_hub)):
    snapshot = await hub.registry.get()
    return SensorDataResponse(data=snapshot.to_dict(), serverTime=iso_now())
