"""guess-ai: party-game session backend."""

__version__ = "0.1.0"
