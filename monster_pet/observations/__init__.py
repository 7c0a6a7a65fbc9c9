"""
Observation of the monster: frames for the terminal, summaries for pipes.
"""

from .render import render_frame, render_summary, render_text

__all__ = ["render_frame", "render_summary", "render_text"]
