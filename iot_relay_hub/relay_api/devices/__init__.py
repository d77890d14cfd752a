from .actuator_client import ActuatorClient, ForwardResult

__all__ = ["ActuatorClient", "ForwardResult"]
