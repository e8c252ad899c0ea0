"""Logging package -- JSON file + console handlers for the whole app."""

from .setup import setup_logging

__all__ = ["setup_logging"]
