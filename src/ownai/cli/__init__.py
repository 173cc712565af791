"""Command-line interface for ownai."""

from .app import app, main

__all__ = ["app", "main"]
