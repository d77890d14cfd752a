"""Relay API: HTTP + WebSocket surface around the state/event core.

Structure:
- state/: StateRegistry, the authoritative snapshot
- storage/: durable store collaborator, EventStore, snapshot mirror
- realtime/: Broadcaster and the live-connection protocol
- commands/: CommandRouter, the control plane
- devices/: outbound client for the actuator device
- endpoints/: FastAPI routers
"""
