"""
Core components of the monster.

- monster: the MonsterState record and its pure transitions
- messages: swappable flavor-text pickers
"""

from .monster import (
    MonsterState,
    Mood,
    apply_time_passage,
    feed,
    play,
    toggle_sleep,
    mood,
    mood_for_average,
)
from .messages import MessagePicker, RandomMessagePicker, FixedMessagePicker

__all__ = [
    "MonsterState",
    "Mood",
    "apply_time_passage",
    "feed",
    "play",
    "toggle_sleep",
    "mood",
    "mood_for_average",
    "MessagePicker",
    "RandomMessagePicker",
    "FixedMessagePicker",
]
