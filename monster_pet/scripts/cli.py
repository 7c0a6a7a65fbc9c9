#!/usr/bin/env python3
"""
Monster Pet CLI

Look after your monster from the shell, one command at a time, or open
the full-screen interactive mode.

Usage:
    # Quick care
    monster-pet feed
    monster-pet play
    monster-pet sleep

    # Check in (full frame on a terminal, key/value lines in a pipe)
    monster-pet status
    monster-pet status | grep health

    # Live session
    monster-pet --log-file monster.log interactive

    # Start over (asks first)
    monster-pet reset

    # Alternate save slot and tuned timings
    monster-pet --state-file ~/pets/rex.json --config monster.yaml status
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Callable, Sequence

import yaml
from rich.console import Console
from rich.markup import escape

from monster_pet.core.messages import MessagePicker, RandomMessagePicker
from monster_pet.core.monster import MonsterState, feed, play, toggle_sleep
from monster_pet.errors import ConfigError, MonsterPetError
from monster_pet.observations.render import render_frame, render_summary
from monster_pet.services.persistence import (
    PersistenceConfig,
    StatePersistence,
    create_persistence,
    load_or_create,
    reset_monster,
)
from monster_pet.services.session import InteractiveSession, SessionConfig

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

COMMANDS = ("feed", "play", "sleep", "status", "interactive", "reset")


def load_config(config_path: str | None = None) -> dict[str, Any]:
    """Load the optional YAML config file. No path means no overrides."""
    if config_path is None:
        return {}

    try:
        with open(config_path) as f:
            config = yaml.safe_load(f)
    except OSError as err:
        raise ConfigError(f"Failed to read config file {config_path}") from err
    except yaml.YAMLError as err:
        raise ConfigError(f"Failed to parse config file {config_path}") from err

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")
    return config


def build_persistence_config(
    file_config: dict[str, Any],
    state_file: str | None = None,
) -> PersistenceConfig:
    """Environment first, then the config file, then the command line."""
    config = PersistenceConfig.from_env()
    section = file_config.get("persistence") or {}
    if not isinstance(section, dict):
        raise ConfigError("'persistence' must be a mapping")

    for key, value in section.items():
        if not hasattr(config, key):
            raise ConfigError(f"Unknown persistence setting: {key}")
        setattr(config, key, value)

    if config.backend not in ("file", "memory"):
        raise ConfigError(f"Unknown persistence backend: {config.backend}")
    if state_file is not None:
        config.state_file = state_file
    return config


def build_session_config(file_config: dict[str, Any]) -> SessionConfig:
    section = file_config.get("session") or {}
    if not isinstance(section, dict):
        raise ConfigError("'session' must be a mapping")
    try:
        config = SessionConfig(**section)
    except TypeError as err:
        raise ConfigError(f"Invalid session settings: {err}") from err
    if not isinstance(config.hatch_name, str):
        raise ConfigError("'session.hatch_name' must be a string")
    return config


def setup_logging(level: str = "WARNING", log_file: str | None = None) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format=LOG_FORMAT,
        filename=log_file,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="monster-pet",
        description="Take care of a virtual monster that lives in your terminal",
    )
    parser.add_argument("--state-file", default=None,
                        help="Save file path (default: .monster-state.json)")
    parser.add_argument("--config", default=None,
                        help="YAML file with persistence/session settings")
    parser.add_argument("--seed", type=int, default=None,
                        help="Seed for flavor-text randomness")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-file", default=None,
                        help="Write logs here instead of stderr")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("feed", help="Feed your monster to reduce hunger")
    subparsers.add_parser("play", help="Play with your monster to increase happiness")
    subparsers.add_parser("sleep", help="Put your monster to sleep, or wake it up")
    subparsers.add_parser("status", help="Display the current status of your monster")
    subparsers.add_parser("interactive", help="Start interactive mode")
    subparsers.add_parser("reset", help="Start over with a new monster")

    return parser


def _ask_name(console: Console) -> Callable[[], str]:
    def prompt() -> str:
        console.print("🥚 A new monster has hatched! What would you like to name them?")
        try:
            return console.input("Name: ")
        except EOFError:
            return ""
    return prompt


def _confirm(console: Console, question: str) -> bool:
    try:
        answer = console.input(f"{escape(question)} \\[y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def _load(persistence: StatePersistence, console: Console) -> MonsterState:
    hatching = not persistence.exists()
    monster = load_or_create(persistence, prompt_name=_ask_name(console))
    if hatching:
        console.print(f"🎉 Meet {escape(monster.name)}! Take good care of them!")
    return monster


def run_command(
    command: str,
    persistence: StatePersistence,
    console: Console,
    picker: MessagePicker,
    session_config: SessionConfig | None = None,
) -> int:
    """Run one subcommand against the save slot. Returns the exit code."""
    if command == "reset":
        return _reset(persistence, console)

    monster = _load(persistence, console)

    if command == "status":
        if console.is_terminal:
            console.print(render_frame(monster, show_controls=False))
        else:
            console.print(render_summary(monster), markup=False, highlight=False)
        return 0

    if command == "interactive":
        session = InteractiveSession(
            monster,
            persistence,
            config=session_config,
            picker=picker,
        )
        session.run(console)
        console.print("\n👋 Thanks for playing! Your pet has been saved.")
        return 0

    if command == "feed":
        monster, message = feed(monster, picker)
    elif command == "play":
        monster, message = play(monster, picker)
    elif command == "sleep":
        monster, message = toggle_sleep(monster)
    else:
        raise ValueError(f"Unknown command: {command}")

    persistence.save(monster)
    logger.info(f"{command}: {message}")
    console.print(message, markup=False, highlight=False)
    return 0


def _reset(persistence: StatePersistence, console: Console) -> int:
    monster = persistence.load()
    if monster is None:
        console.print("There is no monster to reset yet.")
        return 0

    if monster.is_alive:
        console.print(f"⚠️  {escape(monster.name)} is still alive!")
        question = f"Really abandon {monster.name} and start over?"
    else:
        question = f"Say goodbye to {monster.name} and start over?"

    if not _confirm(console, question):
        console.print("Reset cancelled.")
        return 0

    reset_monster(persistence)
    console.print("💫 Starting fresh with a new monster!")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level, args.log_file)

    if args.command is None:
        print("No command provided. Use --help for more information.")
        return 0

    console = Console()

    try:
        file_config = load_config(args.config)
        persistence = create_persistence(
            build_persistence_config(file_config, args.state_file)
        )
        session_config = build_session_config(file_config)
        seed = args.seed if args.seed is not None else file_config.get("seed")
        picker = RandomMessagePicker(seed)

        return run_command(args.command, persistence, console, picker, session_config)

    except MonsterPetError as e:
        detail = f"{e}: {e.__cause__}" if e.__cause__ is not None else str(e)
        logger.error(f"{args.command} failed: {detail}")
        print(f"Error: {detail}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
