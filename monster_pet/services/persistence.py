"""
monster_pet/services/persistence.py

The save slot.

There is exactly one monster per slot. The slot can live in a JSON file
on disk (the normal case) or in memory (tests, throwaway sessions).

The on-disk record is a flat, pretty-printed JSON object holding the
MonsterState fields, with `last_updated` stored as ISO 8601 UTC text so
that saves stay sortable and easy to diff.
"""

from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from typing import Any, Callable

from monster_pet.core.monster import MonsterState, apply_time_passage
from monster_pet.errors import PersistenceError

logger = logging.getLogger(__name__)

DEFAULT_STATE_FILE = ".monster-state.json"

_FIELD_TYPES = {
    "name": str,
    "hunger": int,
    "happiness": int,
    "energy": int,
    "health": int,
    "age": int,
    "is_sleeping": bool,
    "is_alive": bool,
    "last_updated": str,
}


@dataclass
class PersistenceConfig:
    """Where the save slot lives."""

    backend: str = "file"  # "file" or "memory"
    state_file: str = DEFAULT_STATE_FILE

    @classmethod
    def from_env(cls) -> PersistenceConfig:
        """Create config from environment variables."""
        return cls(
            backend=os.environ.get("MONSTER_PET_BACKEND", "file"),
            state_file=os.environ.get("MONSTER_PET_STATE_FILE", DEFAULT_STATE_FILE),
        )


# ==================== Encoding ====================

def state_to_dict(state: MonsterState) -> dict[str, Any]:
    """Flatten a state into a JSON-ready record."""
    return {
        "name": state.name,
        "hunger": state.hunger,
        "happiness": state.happiness,
        "energy": state.energy,
        "health": state.health,
        "age": state.age,
        "is_sleeping": state.is_sleeping,
        "is_alive": state.is_alive,
        "last_updated": state.last_updated.astimezone(timezone.utc).isoformat(),
    }


def state_from_dict(data: Any) -> MonsterState:
    """
    Rebuild a state from a decoded record.

    The record must hold exactly the MonsterState fields with the right
    types and in-range values. Anything else raises PersistenceError;
    there is no partial recovery.
    """
    if not isinstance(data, dict):
        raise PersistenceError(
            f"State record must be a JSON object, got {type(data).__name__}"
        )

    expected = {f.name for f in fields(MonsterState)}
    missing = expected - data.keys()
    unknown = data.keys() - expected
    if missing:
        raise PersistenceError(f"State record is missing fields: {sorted(missing)}")
    if unknown:
        raise PersistenceError(f"State record has unknown fields: {sorted(unknown)}")

    for name, expected_type in _FIELD_TYPES.items():
        value = data[name]
        # bool is an int subclass; a stat of `true` is still malformed
        if expected_type is int and isinstance(value, bool):
            raise PersistenceError(f"Field {name!r} must be an integer, got {value!r}")
        if not isinstance(value, expected_type):
            raise PersistenceError(
                f"Field {name!r} must be {expected_type.__name__}, got {value!r}"
            )

    try:
        last_updated = datetime.fromisoformat(data["last_updated"])
    except ValueError as err:
        raise PersistenceError(
            f"Field 'last_updated' is not an ISO 8601 timestamp: {data['last_updated']!r}"
        ) from err
    if last_updated.tzinfo is None:
        raise PersistenceError("Field 'last_updated' must carry a UTC offset")

    try:
        return MonsterState(
            name=data["name"],
            hunger=data["hunger"],
            happiness=data["happiness"],
            energy=data["energy"],
            health=data["health"],
            age=data["age"],
            is_sleeping=data["is_sleeping"],
            is_alive=data["is_alive"],
            last_updated=last_updated.astimezone(timezone.utc),
        )
    except ValueError as err:
        raise PersistenceError(f"State record is out of range: {err}") from err


# ==================== Slots ====================

class StatePersistence(ABC):
    """
    Abstract save slot.

    Implementations raise PersistenceError on any storage failure.
    """

    @abstractmethod
    def load(self) -> MonsterState | None:
        """Load the saved monster. Returns None if the slot is empty."""
        pass

    @abstractmethod
    def save(self, state: MonsterState) -> None:
        """Durably store the monster, replacing whatever was there."""
        pass

    @abstractmethod
    def exists(self) -> bool:
        """Whether the slot currently holds a monster."""
        pass

    @abstractmethod
    def delete(self) -> None:
        """Empty the slot. Deleting an empty slot is a no-op."""
        pass


class JsonFileStatePersistence(StatePersistence):
    """
    Slot backed by a single JSON file.

    Writes go to a temporary sibling first and are moved into place, so a
    crash mid-write never leaves a half-written save behind.
    """

    def __init__(self, path: str = DEFAULT_STATE_FILE):
        self.path = path

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def load(self) -> MonsterState | None:
        if not self.exists():
            return None

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                content = f.read()
        except OSError as err:
            raise PersistenceError(f"Failed to read state file {self.path}") from err

        try:
            data = json.loads(content)
        except json.JSONDecodeError as err:
            raise PersistenceError(f"Failed to parse state file {self.path}") from err

        state = state_from_dict(data)
        logger.debug(f"Loaded {state.name} from {self.path}")
        return state

    def save(self, state: MonsterState) -> None:
        tmp = f"{self.path}.tmp"
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(state_to_dict(state), f, ensure_ascii=False, indent=2)
            os.replace(tmp, self.path)
        except OSError as err:
            raise PersistenceError(f"Failed to write state file {self.path}") from err

    def delete(self) -> None:
        if not self.exists():
            return
        try:
            os.remove(self.path)
        except OSError as err:
            raise PersistenceError(f"Failed to remove state file {self.path}") from err
        logger.info(f"Removed state file {self.path}")


class InMemoryStatePersistence(StatePersistence):
    """
    Slot held in process memory.

    Records still go through the JSON encoding so that what comes back
    out matches what a file slot would return.
    """

    def __init__(self):
        self._record: str | None = None
        self.save_count = 0

    def exists(self) -> bool:
        return self._record is not None

    def load(self) -> MonsterState | None:
        if self._record is None:
            return None
        return state_from_dict(json.loads(self._record))

    def save(self, state: MonsterState) -> None:
        self._record = json.dumps(state_to_dict(state))
        self.save_count += 1

    def delete(self) -> None:
        self._record = None


def create_persistence(config: PersistenceConfig | None = None) -> StatePersistence:
    """
    Factory function to create a save slot.

    Args:
        config: Slot configuration (default: JSON file in the working directory)

    Returns:
        StatePersistence instance
    """
    config = config or PersistenceConfig()
    if config.backend == "file":
        return JsonFileStatePersistence(config.state_file)
    elif config.backend == "memory":
        return InMemoryStatePersistence()
    else:
        raise ValueError(f"Unknown backend: {config.backend}")


# ==================== Lifecycle ====================

def load_or_create(
    persistence: StatePersistence,
    prompt_name: Callable[[], str] | None = None,
    now: datetime | None = None,
) -> MonsterState:
    """
    Fetch the monster, hatching a new one if the slot is empty.

    A loaded monster catches up on the time it spent unattended and is
    saved straight back. A new monster asks `prompt_name` for its name
    (blank means the default) and is saved immediately.
    """
    state = persistence.load()
    if state is not None:
        state = apply_time_passage(state, now)
        persistence.save(state)
        return state

    name = prompt_name() if prompt_name is not None else ""
    state = MonsterState.hatch(name, now)
    persistence.save(state)
    logger.info(f"Hatched a new monster named {state.name}")
    return state


def reset_monster(persistence: StatePersistence) -> None:
    """
    Throw away the saved monster.

    Does not check whether the monster is still alive; callers decide.
    """
    if persistence.exists():
        persistence.delete()
        logger.info("Save slot cleared")
