"""IoT relay hub: device state fan-out, event log and live subscribers."""

__version__ = "0.1.0"
