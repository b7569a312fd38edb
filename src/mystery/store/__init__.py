"""Store package - persisted session state and its change feed."""

from .base import (
    GameStateStore,
    WriteBatch,
    SessionUpdate,
    ReadinessWrite,
    PlayerUpdate,
    PlayerDelete,
    DedupingSubscriber,
    SnapshotCallback,
    Unsubscribe,
    strip_volatile_fields,
)
from .memory_store import InMemoryGameStateStore

__all__ = [
    "GameStateStore",
    "WriteBatch",
    "SessionUpdate",
    "ReadinessWrite",
    "PlayerUpdate",
    "PlayerDelete",
    "DedupingSubscriber",
    "SnapshotCallback",
    "Unsubscribe",
    "strip_volatile_fields",
    "InMemoryGameStateStore",
]
