"""Rewind CLI - terminal client for the Rewind media server."""

__version__ = "0.1.0"
