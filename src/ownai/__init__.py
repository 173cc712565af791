"""
ownai: a terminal chat client for local models served by Ollama.

This package follows Parnas's information hiding principles,
where each module hides a specific design decision.
"""

__version__ = "0.1.0"

from .config import AppSettings, ServerConfig, load_settings
from .content import ContentType, classify, parse_segments

__all__ = [
    "AppSettings",
    "ContentType",
    "ServerConfig",
    "classify",
    "load_settings",
    "parse_segments",
]
