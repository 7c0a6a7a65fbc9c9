"""
Tests for services/session.py

The session loop is driven with a fake clock and a scripted channel, so
nothing here needs a terminal or real time.
"""

import os
from datetime import datetime, timedelta, timezone

import pytest

from monster_pet.core.messages import FixedMessagePicker
from monster_pet.core.monster import MonsterState
from monster_pet.errors import PersistenceError, TerminalError
from monster_pet.observations.render import render_text
from monster_pet.services.events import (
    InputAction,
    InputEvent,
    TickEvent,
    WorkerFailedEvent,
)
from monster_pet.services.persistence import InMemoryStatePersistence
from monster_pet.services.session import (
    InteractiveSession,
    SessionConfig,
    SessionState,
    TransientMessage,
)

NOW = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start=100.0):
        self.t = start

    def __call__(self):
        return self.t


class ScriptedChannel:
    """Hands out scripted events; None means a receive that timed out."""

    def __init__(self, events, clock, step=1.0):
        self.events = list(events)
        self.clock = clock
        self.step = step

    def receive(self, timeout):
        self.clock.t += self.step
        if not self.events:
            return InputEvent(InputAction.QUIT)
        return self.events.pop(0)


class FailingPersistence(InMemoryStatePersistence):
    def save(self, state):
        raise PersistenceError("Failed to write state file") from OSError("disk full")


def make_monster(**overrides):
    fields = dict(name="Rex", last_updated=NOW)
    fields.update(overrides)
    return MonsterState(**fields)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def slot():
    return InMemoryStatePersistence()


def make_session(monster, slot, clock, wall=NOW, **kwargs):
    return InteractiveSession(
        monster,
        slot,
        picker=FixedMessagePicker(0),
        clock=clock,
        now_fn=lambda: wall,
        **kwargs,
    )


class TestTransientMessage:
    """Tests for TransientMessage expiry."""

    def test_alive_before_lifetime(self):
        assert not TransientMessage("hi", created_at=10.0).is_expired(12.9, 3.0)

    def test_expired_at_lifetime(self):
        assert TransientMessage("hi", created_at=10.0).is_expired(13.0, 3.0)


class TestInputHandling:
    """Tests for key-driven transitions."""

    def test_feed(self, slot, clock):
        session = make_session(make_monster(hunger=50), slot, clock)
        session.handle_event(InputEvent(InputAction.FEED))

        assert session.monster.hunger == 25
        assert session.message.text == "Rex ate 🍎 and feels much better!"
        assert session.message.created_at == clock.t
        assert slot.load() == session.monster

    def test_play(self, slot, clock):
        session = make_session(make_monster(), slot, clock)
        session.handle_event(InputEvent(InputAction.PLAY))

        assert session.monster.happiness == 90
        assert session.message.text == "Rex played ⚽ and is super happy!"

    def test_sleep_toggles(self, slot, clock):
        session = make_session(make_monster(), slot, clock)
        session.handle_event(InputEvent(InputAction.SLEEP))
        assert session.monster.is_sleeping
        session.handle_event(InputEvent(InputAction.SLEEP))
        assert not session.monster.is_sleeping
        assert "woken up" in session.message.text

    def test_status(self, slot, clock):
        monster = make_monster()
        session = make_session(monster, slot, clock)
        session.handle_event(InputEvent(InputAction.STATUS))

        assert session.monster == monster
        assert session.message.text == "📊 Status updated!"
        assert slot.save_count == 1

    def test_quit(self, slot, clock):
        session = make_session(make_monster(), slot, clock)
        session.handle_event(InputEvent(InputAction.QUIT))

        assert session.state is SessionState.QUITTING
        assert session.message is None

    def test_new_message_replaces_old(self, slot, clock):
        session = make_session(make_monster(), slot, clock)
        session.handle_event(InputEvent(InputAction.STATUS))
        clock.t += 1.0
        session.handle_event(InputEvent(InputAction.FEED))

        assert "ate" in session.message.text
        assert session.message.created_at == clock.t


class TestReset:
    """Tests for the in-session reset key."""

    def test_refused_while_alive(self, slot, clock):
        monster = make_monster(age=40)
        session = make_session(monster, slot, clock)
        session.handle_event(InputEvent(InputAction.RESET))

        assert session.monster == monster
        assert "still alive" in session.message.text

    def test_dead_monster_replaced(self, slot, clock):
        dead = make_monster(health=0, is_alive=False, age=300)
        slot.save(dead)
        config = SessionConfig(hatch_name="Spike")
        session = make_session(dead, slot, clock, config=config)
        session.handle_event(InputEvent(InputAction.RESET))

        assert session.monster.name == "Spike"
        assert session.monster.is_alive
        assert session.monster.age == 0
        assert session.monster.last_updated == NOW
        assert slot.load() == session.monster
        assert "reset" in session.message.text

    def test_dead_monster_replaced_with_default_name(self, slot, clock):
        session = make_session(make_monster(health=0, is_alive=False), slot, clock)
        session.handle_event(InputEvent(InputAction.RESET))
        assert session.monster.name == "Fluffy"


class TestTicks:
    """Tests for timer ticks: decay, save, alerts."""

    def test_tick_without_elapsed_hour_keeps_state(self, slot, clock):
        monster = make_monster()
        session = make_session(monster, slot, clock, wall=NOW + timedelta(minutes=59))
        session.handle_event(TickEvent())

        assert session.monster == monster
        assert slot.save_count == 1
        assert session.message is None

    def test_tick_applies_decay(self, slot, clock):
        session = make_session(make_monster(), slot, clock, wall=NOW + timedelta(hours=10))
        session.handle_event(TickEvent())

        assert session.monster.hunger == 70
        assert session.monster.age == 10
        assert slot.load() == session.monster

    def test_starving_alert(self, slot, clock):
        session = make_session(
            make_monster(hunger=89), slot, clock, wall=NOW + timedelta(hours=1)
        )
        session.handle_event(TickEvent())

        assert session.monster.hunger == 91
        assert session.message.text == "🚨 Rex is starving! Feed them now!"

    def test_death_alert_wins(self, slot, clock):
        session = make_session(
            make_monster(hunger=95, health=2), slot, clock, wall=NOW + timedelta(hours=1)
        )
        session.handle_event(TickEvent())

        assert not session.monster.is_alive
        assert session.message.text == "💀 Rex has died! Press 'r' to start over."

    def test_low_health_alert(self, slot, clock):
        session = make_session(make_monster(health=19), slot, clock)
        session.handle_event(TickEvent())
        assert session.message.text == "⚠️ Rex's health is low! Take care of them!"

    def test_alert_does_not_replace_active_message(self, slot, clock):
        session = make_session(make_monster(health=19), slot, clock)
        session.handle_event(InputEvent(InputAction.STATUS))
        session.handle_event(TickEvent())
        assert session.message.text == "📊 Status updated!"

    def test_healthy_monster_gets_no_alert(self, slot, clock):
        session = make_session(make_monster(), slot, clock)
        session.handle_event(TickEvent())
        assert session.message is None


class TestFailures:
    """Tests for errors that end the session."""

    def test_worker_failure_is_fatal(self, slot, clock):
        session = make_session(make_monster(), slot, clock)
        error = OSError("stdin closed")
        with pytest.raises(TerminalError) as exc_info:
            session.handle_event(WorkerFailedEvent(source="input", error=error))
        assert exc_info.value.__cause__ is error

    def test_save_failure_is_fatal(self, clock):
        session = make_session(make_monster(), FailingPersistence(), clock)
        with pytest.raises(PersistenceError):
            session.handle_event(TickEvent())

    def test_unknown_event(self, slot, clock):
        session = make_session(make_monster(), slot, clock)
        with pytest.raises(TypeError):
            session.handle_event("f")

    def test_run_needs_a_terminal(self, slot, clock, monkeypatch):
        monkeypatch.setattr(os, "isatty", lambda fd: False)
        session = make_session(make_monster(), slot, clock)
        with pytest.raises(TerminalError):
            session.run(key_source=object())


class TestRunLoop:
    """Tests for run_loop."""

    def test_draws_once_per_event_and_stops_on_quit(self, slot, clock):
        session = make_session(make_monster(), slot, clock)
        channel = ScriptedChannel([InputEvent(InputAction.FEED)], clock)
        frames = []

        session.run_loop(channel, frames.append)

        # Initial frame, then one after the feed. Quit draws nothing.
        assert len(frames) == 2
        assert session.redraws == 2
        assert session.state is SessionState.QUITTING
        assert session.monster.hunger == 25

    def test_idle_loop_does_not_redraw(self, slot, clock):
        session = make_session(make_monster(), slot, clock)
        channel = ScriptedChannel([None, None, None], clock)
        frames = []

        session.run_loop(channel, frames.append)
        assert len(frames) == 1

    def test_message_expiry_triggers_redraw(self, slot, clock):
        session = make_session(make_monster(), slot, clock)
        channel = ScriptedChannel(
            [InputEvent(InputAction.FEED), None, None, None, None], clock
        )
        frames = []

        session.run_loop(channel, frames.append)

        text = [render_text(frame) for frame in frames]
        assert len(text) == 3
        assert "feels much better" not in text[0]
        assert "feels much better" in text[1]
        assert "feels much better" not in text[2]
        assert session.message is None

    def test_ticks_apply_in_order(self, slot, clock):
        session = make_session(make_monster(), slot, clock, wall=NOW + timedelta(hours=2))
        channel = ScriptedChannel(
            [TickEvent(), InputEvent(InputAction.FEED), TickEvent()], clock
        )

        session.run_loop(channel, lambda frame: None)

        # Decay to 54 first, then the meal, then no further hours elapse
        assert session.monster.hunger == 29
        assert slot.load() == session.monster

    def test_poll_interval_passed_to_channel(self, slot, clock):
        seen = []

        class RecordingChannel(ScriptedChannel):
            def receive(self, timeout):
                seen.append(timeout)
                return super().receive(timeout)

        config = SessionConfig(poll_interval=0.25)
        session = make_session(make_monster(), slot, clock, config=config)
        session.run_loop(RecordingChannel([None], clock), lambda frame: None)

        assert seen == [0.25, 0.25]
