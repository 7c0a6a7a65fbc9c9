"""
monster_pet/errors.py

Fatal error types. Every one of these aborts the current invocation and
is reported at the command-line boundary.
"""


class MonsterPetError(Exception):
    """Base class for fatal monster-pet errors."""


class PersistenceError(MonsterPetError):
    """The save slot could not be read, written, decoded or removed."""


class TerminalError(MonsterPetError):
    """Raw mode, alternate screen or keyboard input failed."""


class ConfigError(MonsterPetError):
    """The configuration file could not be read or is malformed."""
