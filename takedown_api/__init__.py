"""Takedown request intake, safe harbor link removal and status lookup."""

__version__ = "0.1.0"
