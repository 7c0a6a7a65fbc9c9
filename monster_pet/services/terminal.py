"""
monster_pet/services/terminal.py

Terminal control for the interactive session.

Raw key input and the alternate screen are both scoped resources: they
are only ever entered through context managers, so the terminal is put
back the way it was on every exit path, including errors.
"""

from __future__ import annotations

import logging
import os
import select
import sys
import termios
import tty
from collections import deque
from contextlib import ExitStack, contextmanager
from typing import Deque, Iterator, Optional

from rich.console import Console, ScreenContext

from monster_pet.errors import TerminalError

from .events import split_keys

logger = logging.getLogger(__name__)

_READ_CHUNK = 32


def _restore(fd: int, saved: list) -> None:
    try:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)
    except (termios.error, OSError) as err:
        raise TerminalError("Failed to disable raw mode") from err
    logger.debug("Raw mode disabled")


@contextmanager
def raw_mode(fd: int) -> Iterator[None]:
    """
    Put the terminal on `fd` into raw-ish input mode.

    Echo, line buffering and signal keys are switched off so that every
    key (Ctrl-C included) arrives as a byte. Output processing is left
    alone so newlines still return the carriage.

    The saved settings are put back on every exit. If the body raised,
    a failed restore is logged and the body's error is the one that
    propagates.
    """
    try:
        saved = termios.tcgetattr(fd)
        mode = termios.tcgetattr(fd)
        mode[tty.LFLAG] &= ~(termios.ECHO | termios.ICANON | termios.ISIG | termios.IEXTEN)
        mode[tty.CC][termios.VMIN] = 1
        mode[tty.CC][termios.VTIME] = 0
        termios.tcsetattr(fd, termios.TCSAFLUSH, mode)
    except (termios.error, OSError) as err:
        raise TerminalError("Failed to enable raw mode") from err

    logger.debug("Raw mode enabled")
    try:
        yield
    except BaseException:
        try:
            _restore(fd, saved)
        except TerminalError as err:
            logger.error(f"{err}: {err.__cause__}")
        raise
    _restore(fd, saved)


class StdinKeySource:
    """
    Reads key presses from a terminal file descriptor.

    One read can hold several key presses; they are split apart and
    handed out one per call. An escape sequence (arrow keys, function
    keys) comes back as a single string and a lone Esc as "\\x1b".
    """

    def __init__(self, fd: Optional[int] = None):
        self.fd = sys.stdin.fileno() if fd is None else fd
        self._pending: Deque[str] = deque()

    def read_key(self, timeout: float) -> Optional[str]:
        if self._pending:
            return self._pending.popleft()

        try:
            ready, _, _ = select.select([self.fd], [], [], timeout)
            if not ready:
                return None
            data = os.read(self.fd, _READ_CHUNK)
        except OSError as err:
            raise TerminalError("Failed to read from the terminal") from err

        if not data:
            return None
        self._pending.extend(split_keys(data.decode("utf-8", errors="replace")))
        return self._pending.popleft() if self._pending else None


@contextmanager
def terminal_session(console: Console, fd: Optional[int] = None) -> Iterator[ScreenContext]:
    """
    Enter the alternate screen and raw mode; yield the rich ScreenContext.

    Both are released in reverse order on the way out.
    """
    try:
        fd = sys.stdin.fileno() if fd is None else fd
    except (OSError, ValueError) as err:
        raise TerminalError("Interactive mode needs an interactive terminal") from err
    if not os.isatty(fd):
        raise TerminalError("Interactive mode needs an interactive terminal")

    with ExitStack() as stack:
        try:
            screen = stack.enter_context(console.screen(hide_cursor=True))
        except OSError as err:
            raise TerminalError("Failed to enter the alternate screen") from err
        stack.enter_context(raw_mode(fd))
        yield screen
