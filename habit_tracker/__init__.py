"""Habit tracking REST API with streak analytics."""

__version__ = "0.1.0"
