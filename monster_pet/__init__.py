"""
Monster Pet: a persistent virtual creature living in your terminal.

The monster's vitals decay as real time passes. Feed it, play with it,
put it to bed, and keep it alive.
"""

__version__ = "0.1.0"
