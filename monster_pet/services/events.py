"""
monster_pet/services/events.py

Typed events and the channel that carries them.

Two producers (keyboard, timer) feed one consumer (the session loop)
through a single FIFO channel. Each producer's events stay in the order
they were sent; across producers, order is simply arrival order.

Closing the channel is the shutdown signal: once closed, every send
fails and the producers wind themselves down.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union
import logging
import queue
import threading

logger = logging.getLogger(__name__)


class InputAction(Enum):
    """What a key press asks the monster to do."""
    FEED = "feed"
    PLAY = "play"
    SLEEP = "sleep"
    STATUS = "status"
    RESET = "reset"
    QUIT = "quit"


@dataclass(frozen=True)
class InputEvent:
    action: InputAction


@dataclass(frozen=True)
class TickEvent:
    pass


@dataclass(frozen=True)
class WorkerFailedEvent:
    """A producer died; the loop must abort."""
    source: str
    error: BaseException


GameEvent = Union[InputEvent, TickEvent, WorkerFailedEvent]


ESC = "\x1b"
CTRL_C = "\x03"
TAB = "\t"

KEY_BINDINGS = {
    "q": InputAction.QUIT,
    ESC: InputAction.QUIT,
    CTRL_C: InputAction.QUIT,
    "f": InputAction.FEED,
    "p": InputAction.PLAY,
    "s": InputAction.SLEEP,
    "i": InputAction.STATUS,
    TAB: InputAction.STATUS,
    "r": InputAction.RESET,
}


def map_key(key: str) -> Optional[InputAction]:
    """
    Translate one key press into an action.

    Keys are case-sensitive ("F" is not "f"). Unknown keys, including
    multi-byte escape sequences such as arrow keys, map to None.
    """
    return KEY_BINDINGS.get(key)


def split_keys(data: str) -> List[str]:
    """
    Split one terminal read into individual key presses.

    Several keys can arrive in a single read (type-ahead, paste, key
    repeat). Plain characters become one key each. CSI sequences
    ("\\x1b[" ... final byte) and SS3 sequences ("\\x1bO" + one byte)
    stay together; any other Esc is a key on its own.
    """
    keys = []
    i = 0
    while i < len(data):
        if data[i] != ESC or i + 1 >= len(data):
            keys.append(data[i])
            i += 1
            continue

        introducer = data[i + 1]
        if introducer == "[":
            end = i + 2
            # Parameter and intermediate bytes run until a final byte in @..~
            while end < len(data) and not "@" <= data[end] <= "~":
                end += 1
            end = min(end + 1, len(data))
        elif introducer == "O":
            end = min(i + 3, len(data))
        else:
            end = i + 1

        keys.append(data[i:end])
        i = end
    return keys


class EventChannel:
    """
    Multi-producer, single-consumer event channel.

    Thread-safe; built on queue.Queue.
    """

    def __init__(self):
        self._queue: queue.Queue = queue.Queue()
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def send(self, event: GameEvent) -> bool:
        """Enqueue an event. Returns False once the channel is closed."""
        if self._closed.is_set():
            return False
        self._queue.put(event)
        return True

    def receive(self, timeout: float) -> Optional[GameEvent]:
        """Wait up to `timeout` seconds for the next event."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def close(self) -> None:
        """Refuse further sends and drop anything still queued."""
        self._closed.set()
        dropped = 0
        while True:
            try:
                self._queue.get_nowait()
                dropped += 1
            except queue.Empty:
                break
        if dropped:
            logger.debug(f"Dropped {dropped} undelivered events on close")

    def pending(self) -> int:
        return self._queue.qsize()
