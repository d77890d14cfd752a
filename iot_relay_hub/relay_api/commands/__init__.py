from .router import CommandOutcome, CommandRouter

__all__ = ["CommandOutcome", "CommandRouter"]
