"""
monster_pet/services/session.py

The interactive session.

The session owns the monster. It is the only code that changes the
monster's state and the only code that writes to the screen. Everything
else (keyboard, timer) talks to it through the event channel:

1. Receive the next event (waiting at most one poll interval)
2. Apply the matching transition
3. Save the monster
4. Redraw

Between events it also retires the transient message once it has been
on screen for its full lifetime.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from rich.console import Console, RenderableType

from monster_pet.core.messages import MessagePicker, RandomMessagePicker
from monster_pet.core.monster import (
    MonsterState,
    apply_time_passage,
    feed,
    play,
    toggle_sleep,
    utc_now,
)
from monster_pet.errors import TerminalError
from monster_pet.observations.render import render_frame

from .events import (
    EventChannel,
    GameEvent,
    InputAction,
    InputEvent,
    TickEvent,
    WorkerFailedEvent,
)
from .persistence import StatePersistence, load_or_create, reset_monster
from .workers import InputWorker, KeySource, TimerWorker

logger = logging.getLogger(__name__)


@dataclass
class SessionConfig:
    """Timing and reset settings for the interactive session."""
    tick_interval: float = 0.06     # Seconds between timer ticks
    poll_interval: float = 0.1      # Max wait for keys and for the next event
    message_lifetime: float = 3.0   # Seconds a transient message stays up
    join_timeout: float = 1.0       # Max wait for each worker on shutdown
    hatch_name: str = ""            # Name for the monster hatched by an in-session reset


class SessionState(Enum):
    RUNNING = "running"
    QUITTING = "quitting"


@dataclass(frozen=True)
class TransientMessage:
    """Short-lived text under the stats. Never persisted."""
    text: str
    created_at: float  # Monotonic seconds

    def is_expired(self, now: float, lifetime: float) -> bool:
        return now - self.created_at >= lifetime


class InteractiveSession:
    """
    Single-owner event loop around one monster.

    Clocks are injectable: `clock` is the monotonic clock used for message
    expiry, `now_fn` supplies wall-clock time for the decay model.
    """

    def __init__(
        self,
        monster: MonsterState,
        persistence: StatePersistence,
        config: Optional[SessionConfig] = None,
        picker: Optional[MessagePicker] = None,
        clock: Callable[[], float] = time.monotonic,
        now_fn: Callable[[], datetime] = utc_now,
    ):
        self.monster = monster
        self.persistence = persistence
        self.config = config or SessionConfig()
        self.picker = picker or RandomMessagePicker()
        self.clock = clock
        self.now_fn = now_fn

        self.state = SessionState.RUNNING
        self.message: Optional[TransientMessage] = None
        self.redraws = 0

    # ==================== Messages ====================

    def set_message(self, text: str) -> None:
        self.message = TransientMessage(text=text, created_at=self.clock())

    def expire_message(self) -> bool:
        """Drop the message if its time is up. Returns True if one was dropped."""
        if self.message is None:
            return False
        if not self.message.is_expired(self.clock(), self.config.message_lifetime):
            return False
        self.message = None
        return True

    # ==================== Transitions ====================

    def handle_event(self, event: GameEvent) -> None:
        """Apply one event to the owned monster."""
        if isinstance(event, TickEvent):
            self._on_tick()
        elif isinstance(event, InputEvent):
            self._on_input(event.action)
        elif isinstance(event, WorkerFailedEvent):
            raise TerminalError(f"The {event.source} worker failed") from event.error
        else:
            raise TypeError(f"Unknown event: {event!r}")

    def _on_tick(self) -> None:
        self.monster = apply_time_passage(self.monster, self.now_fn())
        self.persistence.save(self.monster)

        if self.message is not None:
            return

        name = self.monster.name
        if not self.monster.is_alive:
            self.set_message(f"💀 {name} has died! Press 'r' to start over.")
        elif self.monster.hunger > 90:
            self.set_message(f"🚨 {name} is starving! Feed them now!")
        elif self.monster.health < 20:
            self.set_message(f"⚠️ {name}'s health is low! Take care of them!")

    def _on_input(self, action: InputAction) -> None:
        logger.debug(f"Input: {action.value}")

        if action is InputAction.QUIT:
            self.state = SessionState.QUITTING
            return

        if action is InputAction.FEED:
            self.monster, message = feed(self.monster, self.picker)
        elif action is InputAction.PLAY:
            self.monster, message = play(self.monster, self.picker)
        elif action is InputAction.SLEEP:
            self.monster, message = toggle_sleep(self.monster)
        elif action is InputAction.STATUS:
            message = "📊 Status updated!"
        elif action is InputAction.RESET:
            message = self._reset()
        else:
            raise ValueError(f"Unknown input action: {action}")

        self.set_message(message)
        self.persistence.save(self.monster)

    def _reset(self) -> str:
        if self.monster.is_alive:
            return "⚠️ Monster is still alive! Reset only works when monster has died."

        old_name = self.monster.name
        reset_monster(self.persistence)
        self.monster = load_or_create(
            self.persistence,
            prompt_name=lambda: self.config.hatch_name,
            now=self.now_fn(),
        )
        logger.info(f"{old_name} was replaced by {self.monster.name}")
        return "🔄 Game has been reset! A new monster has been created."

    # ==================== Loop ====================

    def frame(self) -> RenderableType:
        return render_frame(self.monster, self.message)

    def run_loop(
        self,
        channel: EventChannel,
        draw: Callable[[RenderableType], None],
    ) -> None:
        """
        Consume events until a Quit arrives.

        `draw` receives a fresh frame after every consumed event and
        whenever the message expires. A Quit ends the loop immediately,
        without another draw.
        """
        self._draw(draw)

        while self.state is SessionState.RUNNING:
            event = channel.receive(timeout=self.config.poll_interval)
            # Expire first so that no frame ever shows a stale message
            expired = self.expire_message()

            if event is not None:
                self.handle_event(event)
                if self.state is SessionState.QUITTING:
                    break
                self._draw(draw)
            elif expired:
                self._draw(draw)

    def _draw(self, draw: Callable[[RenderableType], None]) -> None:
        draw(self.frame())
        self.redraws += 1

    def run(
        self,
        console: Optional[Console] = None,
        key_source: Optional[KeySource] = None,
    ) -> None:
        """
        Run the full-screen session until the keeper quits.

        Sets up the terminal, starts both workers, and tears everything
        down on the way out, whether the loop ended normally or not.
        """
        # Imported here so that headless use never touches termios
        from .terminal import StdinKeySource, terminal_session

        console = console or Console()
        channel = EventChannel()

        logger.info(f"Interactive session started for {self.monster.name}")

        with terminal_session(console) as screen:
            workers = [
                InputWorker(
                    channel,
                    key_source or StdinKeySource(),
                    poll_interval=self.config.poll_interval,
                ),
                TimerWorker(channel, interval=self.config.tick_interval),
            ]
            for worker in workers:
                worker.start()

            try:
                self.run_loop(channel, screen.update)
            finally:
                channel.close()
                for worker in workers:
                    worker.stop()
                for worker in workers:
                    if not worker.join(self.config.join_timeout):
                        logger.warning(f"{worker.name} worker did not stop in time")

        logger.info(f"Interactive session ended for {self.monster.name}")
