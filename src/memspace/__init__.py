"""Persistent memory spaces in front of a chat model."""

__version__ = "0.1.0"
