from .registry import StateRegistry, StateSnapshot, round_one_decimal

__all__ = ["StateRegistry", "StateSnapshot", "round_one_decimal"]
