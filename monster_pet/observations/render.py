"""
observations/render.py

Look at the monster.

Rendering is a pure function of the state and the current message: the
same inputs always draw the same frame, and nothing is remembered
between calls.
"""

from __future__ import annotations

import io
from typing import TYPE_CHECKING, List, Optional, Tuple

from rich import box
from rich.console import Console, Group, RenderableType
from rich.panel import Panel
from rich.text import Text

from monster_pet.core.monster import MAX_STAT, Mood, MonsterState, mood

if TYPE_CHECKING:
    from monster_pet.services.session import TransientMessage

BAR_WIDTH = 20
FRAME_WIDTH = 80

# (left eye, mouth, right eye) per mood
FACES = {
    Mood.ECSTATIC: ("◕", "‿", "◕"),
    Mood.HAPPY: ("^", "‿", "^"),
    Mood.CONTENT: ("•", "‿", "•"),
    Mood.OKAY: ("•", "_", "•"),
    Mood.SAD: ("•", "︵", "•"),
    Mood.VERY_SAD: ("╥", "﹏", "╥"),
    Mood.CRITICAL: ("x", "_", "x"),
}

TOMBSTONE = (
    "        💀     💀",
    "          ╲   ╱",
    "           ╲ ╱",
    "         ───┴───",
    "        💀 R.I.P 💀",
)

CONTROLS = "[F]eed  [P]lay  [S]leep  [I]nfo\n[R]eset  [Q]uit"


def _portrait(state: MonsterState, current: Mood) -> List[str]:
    if current is Mood.DEAD:
        return list(TOMBSTONE)
    if current is Mood.SLEEPING:
        return [
            "          zzZ",
            "        ╭─────╮",
            "       ╱  - -  ╲",
            "      ╱    ω    ╲",
            "     ╱___________╲",
            "        😴💤💤",
        ]

    left, mouth, right = FACES.get(current, ("•", "‿", "•"))
    return [
        "        ╭─────╮",
        f"       ╱  {left} {right}  ╲",
        f"      ╱    {mouth}    ╲",
        "     ╱___________╲",
        f"        {current.emoji}  {state.name}",
    ]


def status_bar(label: str, value: int, good: str, bad: str) -> Text:
    """One stat as a 20-cell bar. The bar uses `good` above 60%."""
    filled = value * BAR_WIDTH // MAX_STAT
    bar = Text(f"   {label}: [")
    bar.append("█" * filled, style=good if value > 60 else bad)
    bar.append("░" * (BAR_WIDTH - filled), style="bright_black")
    bar.append(f"] {value}%")
    return bar


def _warnings(state: MonsterState) -> List[Tuple[str, str]]:
    warnings = []
    if state.hunger > 70:
        warnings.append((f"⚠️  {state.name} is very hungry!", "red"))
    if state.happiness < 30:
        warnings.append((f"⚠️  {state.name} looks sad. Try playing with them!", "yellow"))
    if state.energy < 20:
        warnings.append((f"⚠️  {state.name} is exhausted. Let them sleep!", "cyan"))
    if state.health < 50:
        warnings.append((f"⚠️  {state.name} doesn't look well. Take better care!", "red"))
    return warnings


def render_frame(
    state: MonsterState,
    message: Optional[TransientMessage] = None,
    show_controls: bool = True,
) -> RenderableType:
    """
    Draw one full frame.

    Args:
        state: The monster to draw
        message: Transient message to show under the stats, if any
        show_controls: Whether to append the key bindings box

    Returns:
        A rich renderable
    """
    current = mood(state)
    parts: List[RenderableType] = [
        Panel(
            Text("🐲  Monster Status  🐲", justify="center"),
            box=box.ROUNDED,
            width=37,
        ),
        Text("\n".join(_portrait(state, current))),
        Text(""),
        Text("📊 Stats:"),
        # Hunger is shown as fullness so that every bar reads "more is better"
        status_bar("🍽️  Hunger", MAX_STAT - state.hunger, "green", "red"),
        status_bar("😊 Happiness", state.happiness, "yellow", "grey50"),
        status_bar("💖 Health", state.health, "red", "dark_red"),
        status_bar("⚡ Energy", state.energy, "cyan", "dark_cyan"),
        Text(""),
        Text("📈 Info:"),
        Text(f"   Age: {state.age} hours old"),
        Text(f"   Mood: {current.label}"),
        Text(f"   Status: {'😴 Sleeping' if state.is_sleeping else '👁️ Awake'}"),
        Text(""),
    ]

    if not state.is_alive:
        parts.append(
            Text("💀 Your pet has died. You can start over with a new pet.", style="red")
        )
    else:
        parts.append(Text("🎮 Commands: feed, play, sleep, status, interactive"))
        for warning, style in _warnings(state):
            parts.append(Text(warning, style=style))

    if message is not None:
        parts.append(Text(""))
        parts.append(Text(f"💬 {message.text}", style="cyan"))

    if show_controls:
        parts.append(Panel(Text(CONTROLS), title="CONTROLS", box=box.ROUNDED, width=37))

    return Group(*parts)


def render_text(renderable: RenderableType, width: int = FRAME_WIDTH) -> str:
    """Export a renderable as plain, uncolored text."""
    buffer = io.StringIO()
    console = Console(
        file=buffer,
        width=width,
        color_system=None,
        force_terminal=False,
        legacy_windows=False,
    )
    console.print(renderable)
    return buffer.getvalue()


def render_summary(state: MonsterState) -> str:
    """Plain key/value lines, for pipes and scripts."""
    current = mood(state)
    lines = [
        f"name: {state.name}",
        f"hunger: {state.hunger}",
        f"happiness: {state.happiness}",
        f"energy: {state.energy}",
        f"health: {state.health}",
        f"age: {state.age}",
        f"mood: {current.label}",
        f"sleeping: {str(state.is_sleeping).lower()}",
        f"alive: {str(state.is_alive).lower()}",
        f"last_updated: {state.last_updated.isoformat()}",
    ]
    return "\n".join(lines)
