"""WebSocket endpoint for live subscribers (bulb firmware, dashboards).

Protocol:
1. Server → {type: "init", bulbState, timestamp}           on connect
2. Server → {command: "light_on"|"light_off", timestamp}   on every transition
3. Client → {command: "light_on"|"light_off"}              request a transition
4. Client → "status:on" | "status:off"                     firmware state report

Bad frames are logged and dropped; the connection stays open. A client
whose send fails is closed with 1011 and has to reconnect.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from ..hub import Hub

logger = logging.getLogger(__name__)

router = APIRouter(tags=["live"])


@router.websocket("/")
@router.websocket("/ws")
async def live_connection(websocket: WebSocket):
    hub: Hub = websocket.app.state.hub
    broadcaster = hub.broadcaster

    await websocket.accept()
    await broadcaster.on_connect(websocket)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            if not broadcaster.is_connected(websocket):
                # Dropped after a failed send; the close frame is already out.
                break

            frame = message.get("text")
            if frame is None:
                frame = message.get("bytes")
            if frame is None:
                continue

            await broadcaster.on_subscriber_command(websocket, frame)

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.exception("[WS] Session error: client=%s error=%s", id(websocket), e)
        try:
            await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        except Exception:
            logger.debug("[WS] Close after error failed", exc_info=True)
    finally:
        broadcaster.on_disconnect(websocket)
