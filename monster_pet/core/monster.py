"""
core/monster.py

What the monster IS, and how it changes.

Two kinds of change exist:
- Decay: real hours pass, hunger climbs, energy drains, sleep restores.
- Action: the keeper feeds, plays, or tucks the monster in.

Every transition here is pure. A state goes in, a new state (and for
actions a message) comes out. No clocks are read unless asked, no files
are touched.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Tuple

from .messages import ACTIVITIES, FOODS, MessagePicker, RandomMessagePicker

DEFAULT_NAME = "Fluffy"

MAX_STAT = 100
STAT_DECAY_RATE = 2
SLEEP_RECOVERY_RATE = 10
MAX_HOURS = 1000          # Long absences are capped here
MAX_AGE = 2**32 - 1

STAT_FIELDS = ("hunger", "happiness", "energy", "health")

_default_picker = RandomMessagePicker()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class MonsterState:
    """
    The single persisted creature.

    All four vitals live in [0, 100]. Hunger counts up (100 = starving),
    the rest count down. `last_updated` is the only clock the decay model
    trusts.
    """
    name: str = DEFAULT_NAME
    hunger: int = 50
    happiness: int = 70
    energy: int = 80
    health: int = 100
    age: int = 0                  # Hours lived
    is_sleeping: bool = False
    is_alive: bool = True
    last_updated: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        for name in STAT_FIELDS:
            value = getattr(self, name)
            if not 0 <= value <= MAX_STAT:
                raise ValueError(f"{name} must be within [0, {MAX_STAT}], got {value}")
        if not 0 <= self.age <= MAX_AGE:
            raise ValueError(f"age must be within [0, {MAX_AGE}], got {self.age}")
        if self.last_updated.tzinfo is None:
            raise ValueError("last_updated must be timezone-aware")

    @classmethod
    def hatch(cls, name: str = "", now: Optional[datetime] = None) -> "MonsterState":
        """A fresh monster. Blank names fall back to the default."""
        name = name.strip() or DEFAULT_NAME
        return cls(name=name, last_updated=now or utc_now())


class Mood(Enum):
    """Derived mood, as an (emoji, label) pair."""
    DEAD = ("💀", "Dead")
    SLEEPING = ("😴", "Sleeping")
    ECSTATIC = ("😁", "Ecstatic")
    HAPPY = ("😊", "Happy")
    CONTENT = ("🙂", "Content")
    OKAY = ("😐", "Okay")
    SAD = ("☹️", "Sad")
    VERY_SAD = ("😢", "Very Sad")
    CRITICAL = ("😵", "Critical")

    @property
    def emoji(self) -> str:
        return self.value[0]

    @property
    def label(self) -> str:
        return self.value[1]


# Lower bound of each band, highest first
MOOD_BANDS = (
    (90, Mood.ECSTATIC),
    (75, Mood.HAPPY),
    (60, Mood.CONTENT),
    (45, Mood.OKAY),
    (30, Mood.SAD),
    (15, Mood.VERY_SAD),
    (0, Mood.CRITICAL),
)


def mood_for_average(average: int) -> Mood:
    """Map an average vital score in [0, 100] to its mood band."""
    if not 0 <= average <= MAX_STAT:
        raise ValueError(f"average must be within [0, {MAX_STAT}], got {average}")
    for lower, band in MOOD_BANDS:
        if average >= lower:
            return band
    raise AssertionError("unreachable: the lowest band starts at 0")


def mood(state: MonsterState) -> Mood:
    if not state.is_alive:
        return Mood.DEAD
    if state.is_sleeping:
        return Mood.SLEEPING

    average = (
        state.happiness
        + (MAX_STAT - state.hunger)
        + state.health
        + state.energy
    ) // 4
    return mood_for_average(average)


def _cap(value: int) -> int:
    return min(value, MAX_STAT)


def hours_between(earlier: datetime, later: datetime) -> int:
    """Whole hours from `earlier` to `later`, floored (negative if reversed)."""
    return (later - earlier) // timedelta(hours=1)


# ==================== Decay ====================

def apply_time_passage(state: MonsterState, now: Optional[datetime] = None) -> MonsterState:
    """
    Age the monster by the whole hours elapsed since `last_updated`.

    Less than one full hour is a no-op: the state (and its timestamp) is
    returned untouched so that partial hours keep accumulating across
    frequent calls.

    `half_decay` is derived once from the clamped decay before any stat
    moves, so a one-hour step (decay 2) costs one happiness point.
    """
    now = now or utc_now()
    hours = hours_between(state.last_updated, now)
    if hours <= 0:
        return state

    hours = min(hours, MAX_HOURS)
    decay = min(hours * STAT_DECAY_RATE, MAX_STAT)
    recovery = min(hours * SLEEP_RECOVERY_RATE // 2, MAX_STAT)
    half_decay = decay // 2

    hunger, happiness, energy, health = (
        state.hunger, state.happiness, state.energy, state.health
    )

    if state.is_sleeping:
        energy = _cap(energy + recovery)
        hunger = _cap(hunger + half_decay)
    else:
        hunger = _cap(hunger + decay)
        happiness = max(happiness - half_decay, 1)
        energy = max(energy - decay, 0)

    if hunger > 80 or happiness < 20 or energy < 10:
        health = max(health - max(decay * 2, 1), 0)

    return replace(
        state,
        age=min(state.age + hours, MAX_AGE),
        hunger=hunger,
        happiness=happiness,
        energy=energy,
        health=health,
        is_alive=state.is_alive and health > 0,
        last_updated=max(now, state.last_updated),
    )


# ==================== Actions ====================

def _deceased_message(state: MonsterState) -> str:
    return f"💀 {state.name} has passed away..."


def _sleeping_message(state: MonsterState) -> str:
    return f"😴 {state.name} is sleeping peacefully. Try again later!"


def feed(
    state: MonsterState,
    picker: Optional[MessagePicker] = None,
) -> Tuple[MonsterState, str]:
    if not state.is_alive:
        return state, _deceased_message(state)
    if state.is_sleeping:
        return state, _sleeping_message(state)

    if state.hunger <= 20:
        full = replace(state, happiness=max(state.happiness - 5, 0))
        return full, f"🤢 {state.name} is too full to eat more!"

    fed = replace(
        state,
        hunger=max(state.hunger - 25, 0),
        happiness=_cap(state.happiness + 10),
        health=_cap(state.health + 5),
    )
    food = (picker or _default_picker).choose(FOODS)
    return fed, f"{state.name} ate {food} and feels much better!"


def play(
    state: MonsterState,
    picker: Optional[MessagePicker] = None,
) -> Tuple[MonsterState, str]:
    if not state.is_alive:
        return state, _deceased_message(state)
    if state.is_sleeping:
        return state, _sleeping_message(state)

    if state.energy < 20:
        return state, f"😫 {state.name} is too tired to play right now!"
    if state.hunger > 80:
        return state, f"😵 {state.name} is too hungry to play! Feed them first!"

    played = replace(
        state,
        happiness=_cap(state.happiness + 20),
        energy=max(state.energy - 15, 0),
        hunger=_cap(state.hunger + 5),
    )
    activity = (picker or _default_picker).choose(ACTIVITIES)
    return played, f"{state.name} played {activity} and is super happy!"


def toggle_sleep(state: MonsterState) -> Tuple[MonsterState, str]:
    if not state.is_alive:
        return state, _deceased_message(state)

    toggled = replace(state, is_sleeping=not state.is_sleeping)
    if toggled.is_sleeping:
        return toggled, f"😴 {state.name} has gone to sleep. Sweet dreams!"
    return toggled, f"🌞 {state.name} has woken up feeling refreshed!"
