"""Doodle Digger — walks the Google profile-picture picker and saves every preset."""

__version__ = "0.1.0"
