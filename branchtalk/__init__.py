"""
branchtalk - branching dialogue scripts for games.

Provides game-facing conversation tools built on a small core:
- Core (event bus, configuration)
- Dialog (script grammar, conversation graphs, sessions, contexts)
"""

__version__ = "0.1.0"
