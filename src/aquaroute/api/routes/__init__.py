"""Router modules."""

from . import candidates, health, sessions

__all__ = ["candidates", "health", "sessions"]
