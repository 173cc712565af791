"""Main Textual TUI application.

Orchestrates the UI components and routes user interaction to the
ChatController and ServerMonitor.
"""

import asyncio
import logging

from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Header

from ..chat import ChatController
from ..config import ServerConfig
from ..llm import ServerMonitor
from ..memory import ChangeKind, StoreChange
from .config import APP_TITLE, NOTIFY_SHORT, THEME_NAME
from .screens import (
    ModelPickerScreen,
    RenameScreen,
    ServerSettingsScreen,
    SessionAction,
    SessionPickerScreen,
)
from .styles import APP_CSS
from .widgets import ChatHistoryWidget, ChatInputBar, StatusBar

logger = logging.getLogger(__name__)


class OwnAIApp(App):
    """Textual TUI for chatting with a local Ollama server."""

    CSS = APP_CSS
    TITLE = APP_TITLE

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit"),
        Binding("escape", "cancel_reply", "Cancel"),
        Binding("ctrl+n", "new_session", "New Chat"),
        Binding("ctrl+s", "show_sessions", "Sessions"),
        Binding("ctrl+t", "pick_model", "Model"),
        Binding("ctrl+o", "server_settings", "Server"),
        Binding("ctrl+e", "rename_session", "Rename"),
        Binding("ctrl+r", "reconnect", "Reconnect"),
    ]

    def __init__(
        self,
        controller: ChatController,
        monitor: ServerMonitor,
        config: ServerConfig,
    ) -> None:
        super().__init__()
        self._controller = controller
        self._monitor = monitor
        self._config = config
        self._unsubscribe = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield ChatHistoryWidget(id="chat-history")
        yield StatusBar(id="status-bar")
        yield ChatInputBar(id="chat-input-bar")
        yield Footer()

    async def on_mount(self) -> None:
        """Load sessions, then connect in the background."""
        self.theme = THEME_NAME
        self._unsubscribe = self._controller.subscribe(self._on_store_change)
        await self._controller.start()
        self._refresh_status()
        self.query_one("#chat-input-bar", ChatInputBar).focus_input()
        self._check_connection()

    async def on_unmount(self) -> None:
        """Release the stream, storage and HTTP clients."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self._monitor.close()
        await self._controller.close()

    def _on_store_change(self, change: StoreChange) -> None:
        chat = self.query_one("#chat-history", ChatHistoryWidget)
        store = self._controller.store
        if change.kind == ChangeKind.RESET:
            chat.reset(store.messages)
        elif change.message_id is not None:
            chat.apply_change(change, store.get(change.message_id))
        self._refresh_title()

    def _refresh_title(self) -> None:
        session = self._controller.current_session
        chat = self.query_one("#chat-history", ChatHistoryWidget)
        chat.border_subtitle = session.display_title if session is not None else ""

    def _refresh_status(self) -> None:
        status_bar = self.query_one("#status-bar", StatusBar)
        status_bar.show_status(
            self._monitor.status,
            f"{self._config.address}:{self._config.port}",
            self._monitor.selected_model,
        )
        self.sub_title = self._monitor.selected_model or "no model"

    @work(exclusive=True, group="connection")
    async def _check_connection(self) -> None:
        task = asyncio.ensure_future(self._monitor.check(self._config, fetch_models=True))
        await asyncio.sleep(0)
        self._refresh_status()
        await task
        self._refresh_status()

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def on_chat_input_bar_submitted(self, event: ChatInputBar.Submitted) -> None:
        """Handle user input submission."""
        config = self._config.with_model(self._monitor.selected_model)
        try:
            await self._controller.send(event.value, config)
        except (ValueError, RuntimeError) as e:
            logger.debug("Prompt not sent: %s", e)
            self.notify(str(e), severity="warning", timeout=NOTIFY_SHORT)

    async def action_cancel_reply(self) -> None:
        """Cancel the reply being streamed."""
        if await self._controller.cancel():
            self.notify("Cancelled", severity="warning", timeout=NOTIFY_SHORT)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def action_new_session(self) -> None:
        await self._controller.new_session()
        self.notify("New chat", timeout=NOTIFY_SHORT)

    def action_show_sessions(self) -> None:
        sessions = self._controller.sessions
        self.push_screen(
            SessionPickerScreen(sessions.sessions, sessions.current_session_id),
            self._on_session_action,
        )

    async def _on_session_action(self, result: SessionAction | None) -> None:
        if result is None:
            return
        if result.action == "new":
            await self._controller.new_session()
        elif result.action == "open" and result.session_id is not None:
            await self._controller.switch_session(result.session_id)
        elif result.action == "delete" and result.session_id is not None:
            await self._controller.delete_session(result.session_id)
            self.notify("Session deleted", timeout=NOTIFY_SHORT)

    def action_rename_session(self) -> None:
        session = self._controller.current_session
        if session is None:
            return
        self.push_screen(RenameScreen(session.title or ""), self._on_rename)

    async def _on_rename(self, title: str | None) -> None:
        session = self._controller.current_session
        if title is None or session is None:
            return
        await self._controller.rename_session(session.id, title)
        self._refresh_title()

    # ------------------------------------------------------------------
    # Server
    # ------------------------------------------------------------------

    def action_reconnect(self) -> None:
        self._check_connection()

    def action_pick_model(self) -> None:
        self.push_screen(
            ModelPickerScreen(self._monitor.models, self._monitor.selected_model),
            self._on_model_picked,
        )

    def _on_model_picked(self, model: str | None) -> None:
        if model:
            self._monitor.selected_model = model
            self._refresh_status()

    def action_server_settings(self) -> None:
        self.push_screen(
            ServerSettingsScreen(self._config.address, str(self._config.port)),
            self._on_server_settings,
        )

    def _on_server_settings(self, result: tuple[str, str] | None) -> None:
        if result is None:
            return
        address, port = result
        self._config = self._config.model_copy(update={"address": address, "port": port})
        self._check_connection()


async def run_textual_tui(
    controller: ChatController,
    monitor: ServerMonitor,
    config: ServerConfig,
) -> None:
    """Run the Textual TUI.

    Args:
        controller: Chat controller owning sessions and streaming
        monitor: Connection status holder
        config: Initial server settings
    """
    app = OwnAIApp(controller=controller, monitor=monitor, config=config)
    try:
        await app.run_async()
    except (KeyboardInterrupt, asyncio.CancelledError):
        pass
