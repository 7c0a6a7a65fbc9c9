"""
monster_pet/services/workers.py

Background producers for the interactive session.

- InputWorker: polls the keyboard, turns recognized keys into events
- TimerWorker: emits a tick at a fixed cadence, no matter what

Neither worker touches the monster. They only send events, and they stop
on their own once the channel refuses a send (or on stop()). There is no
forced interruption: a worker notices shutdown after at most one polling
interval.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Optional, Protocol

from .events import (
    EventChannel,
    InputEvent,
    TickEvent,
    WorkerFailedEvent,
    map_key,
)

logger = logging.getLogger(__name__)


class KeySource(Protocol):
    """Something that can be polled for key presses."""

    def read_key(self, timeout: float) -> Optional[str]:
        """Return the next key, or None if none arrived within `timeout`."""
        ...


class _Worker(ABC):
    """Shared thread plumbing for the producers."""

    name = "worker"

    def __init__(self, channel: EventChannel):
        self.channel = channel
        self.running = False
        self.events_sent = 0
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        self.running = True
        self._thread = threading.Thread(
            target=self._run, name=f"monster-{self.name}", daemon=True
        )
        self._thread.start()
        logger.debug(f"{self.name} worker started")

    def stop(self) -> None:
        """Ask the worker to exit at its next check."""
        self.running = False

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the thread to finish. Returns True if it has."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _send(self, event) -> bool:
        if not self.channel.send(event):
            return False
        self.events_sent += 1
        return True

    def _run(self) -> None:
        try:
            self.run()
        except Exception as e:
            logger.error(f"{self.name} worker failed: {e}")
            self.channel.send(WorkerFailedEvent(source=self.name, error=e))
        finally:
            self.running = False
            logger.debug(f"{self.name} worker stopped after {self.events_sent} events")

    @abstractmethod
    def run(self) -> None:
        """Produce events until stopped or the channel closes."""
        pass


class InputWorker(_Worker):
    """
    Polls a KeySource and forwards recognized keys.

    Unrecognized keys are dropped here and never reach the channel.
    """

    name = "input"

    def __init__(
        self,
        channel: EventChannel,
        key_source: KeySource,
        poll_interval: float = 0.1,
    ):
        super().__init__(channel)
        self.key_source = key_source
        self.poll_interval = poll_interval

    def run(self) -> None:
        while self.running and not self.channel.closed:
            key = self.key_source.read_key(self.poll_interval)
            if key is None:
                continue

            action = map_key(key)
            if action is None:
                logger.debug(f"Ignoring unbound key {key!r}")
                continue

            if not self._send(InputEvent(action)):
                break


class TimerWorker(_Worker):
    """Sends a TickEvent every `interval` seconds."""

    name = "timer"

    def __init__(self, channel: EventChannel, interval: float = 0.06):
        super().__init__(channel)
        self.interval = interval

    def run(self) -> None:
        while self.running:
            time.sleep(self.interval)
            if not self._send(TickEvent()):
                break
