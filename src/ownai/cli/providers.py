"""Provider factory functions for CLI.

Centralizes creation of the HTTP clients, session storage and chat
controller from application settings. Hides configuration details from
command implementations.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

from ..chat import ChatController
from ..config import AppSettings
from ..llm import ChatStreamClient, ServerMonitor
from ..memory import SessionManager, create_session_storage

LOG_FORMAT = "%(name)s: %(message)s"


def configure_logging(level: str, console: Console | None = None) -> None:
    """Route log records to stderr through rich.

    Args:
        level: Level name (debug, info, warning, error)
        console: Console to write to; stderr by default
    """
    logging.basicConfig(
        level=level.upper(),
        format=LOG_FORMAT,
        datefmt="[%X]",
        handlers=[RichHandler(console=console or Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def configure_tui_logging(level: str) -> None:
    """Route log records to the Textual devtools console instead of the screen."""
    from textual.logging import TextualHandler

    logging.basicConfig(
        level=level.upper(),
        format=LOG_FORMAT,
        handlers=[TextualHandler()],
        force=True,
    )


def get_session_manager(settings: AppSettings) -> SessionManager:
    """Create a session manager over the configured storage backend.

    Settings used:
        memory_backend: 'memory' or 'sqlite'
        memory_path: SQLite database file (sqlite only)
    """
    storage_config = {}
    if settings.memory_backend == "sqlite":
        storage_config["path"] = settings.memory_path
    storage = create_session_storage(settings.memory_backend, **storage_config)
    return SessionManager(storage)


def get_monitor(settings: AppSettings) -> ServerMonitor:
    return ServerMonitor(selected_model=settings.server.model)


def get_controller(settings: AppSettings) -> ChatController:
    return ChatController(get_session_manager(settings), ChatStreamClient())
