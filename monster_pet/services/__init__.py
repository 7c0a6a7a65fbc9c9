"""
monster_pet/services/

Everything around the monster that does I/O.

Architecture:
- Persistence: the single save slot (JSON file or in-memory)
- Events: typed events and the channel that carries them
- Workers: keyboard and timer producers, one thread each
- Session: the single-owner loop that applies events to the monster
- Terminal: scoped raw mode and alternate screen

Producers only send events. The session is the only writer of the
monster and of the screen, so no locks guard either.
"""

from .events import EventChannel, InputAction, InputEvent, TickEvent, WorkerFailedEvent
from .persistence import (
    PersistenceConfig,
    StatePersistence,
    JsonFileStatePersistence,
    InMemoryStatePersistence,
    create_persistence,
    load_or_create,
    reset_monster,
)
from .session import InteractiveSession, SessionConfig, SessionState, TransientMessage
from .workers import InputWorker, TimerWorker

__all__ = [
    "EventChannel",
    "InputAction",
    "InputEvent",
    "TickEvent",
    "WorkerFailedEvent",
    "PersistenceConfig",
    "StatePersistence",
    "JsonFileStatePersistence",
    "InMemoryStatePersistence",
    "create_persistence",
    "load_or_create",
    "reset_monster",
    "InteractiveSession",
    "SessionConfig",
    "SessionState",
    "TransientMessage",
    "InputWorker",
    "TimerWorker",
]
