"""Shared plumbing for pydantic models: JSON persistence and observer lists."""

from cuelight.model_manager.observer import ObserverManager
from cuelight.model_manager.persistence import PydanticPersistence

__all__ = [
    "ObserverManager",
    "PydanticPersistence",
]
