"""Terminal UI module for ownai.

Provides a Textual-based TUI for chatting with a local Ollama server.

Module structure (each module hides a design decision):
- config.py: Display constants
- rendering.py: Content segments to rich renderables
- widgets.py: Message views, status line, input bar
- styles.py: CSS styling (layout decisions)
- screens.py: Modal dialogs (sessions, models, server settings, rename)
- app.py: Application orchestration (user interaction flow)
"""

from .app import OwnAIApp, run_textual_tui
from .rendering import render_content
from .widgets import ChatHistoryWidget, ChatInputBar, MessageView, StatusBar

__all__ = [
    "ChatHistoryWidget",
    "ChatInputBar",
    "MessageView",
    "OwnAIApp",
    "StatusBar",
    "render_content",
    "run_textual_tui",
]
