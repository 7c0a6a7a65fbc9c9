"""
core/messages.py

Cosmetic flavor text.

The choice of which snack or toy shows up in a message is random, but it
never touches the monster's stats. Pickers are swappable so that tests can
pin the choice.
"""

from __future__ import annotations
from typing import Optional, Protocol, Sequence
import numpy as np


FOODS = ("🍎", "🥕", "🍖", "🐟", "🥛")
ACTIVITIES = ("⚽", "🎾", "🛹", "🎮", "🏀")


class MessagePicker(Protocol):
    """Anything that can pick one option out of a fixed set."""

    def choose(self, options: Sequence[str]) -> str:
        ...


class RandomMessagePicker:
    """Uniform choice backed by a numpy Generator."""

    def __init__(self, seed: Optional[int] = None):
        self.rng = np.random.default_rng(seed)

    def choose(self, options: Sequence[str]) -> str:
        if not options:
            raise ValueError("Cannot choose from an empty set of options")
        return options[int(self.rng.integers(len(options)))]


class FixedMessagePicker:
    """Always picks the same index (wrapped to the option count)."""

    def __init__(self, index: int = 0):
        self.index = index

    def choose(self, options: Sequence[str]) -> str:
        if not options:
            raise ValueError("Cannot choose from an empty set of options")
        return options[self.index % len(options)]
