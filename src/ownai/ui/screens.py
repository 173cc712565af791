"""Modal screens for the TUI.

This module hides the design decisions about:
- How sessions and models are listed for selection
- How server settings and titles are edited
- Keyboard shortcuts for dialogs
"""

from dataclasses import dataclass

from rich.text import Text
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Input, OptionList, Static
from textual.widgets.option_list import Option

from ..memory import ChatSession
from .styles import MODAL_CSS


@dataclass(frozen=True)
class SessionAction:
    """Result of the session picker."""

    action: str  # "open", "delete", "new"
    session_id: str | None = None


class SessionPickerScreen(ModalScreen[SessionAction | None]):
    """Lists sessions; open, delete, or start a new one."""

    CSS = MODAL_CSS
    DEFAULT_CLASSES = "modal"

    BINDINGS = [
        Binding("escape", "dismiss_picker", "Close", show=False),
        Binding("d", "delete_session", "Delete", show=False),
        Binding("n", "new_session", "New", show=False),
    ]

    def __init__(self, sessions: list[ChatSession], current_id: str | None) -> None:
        super().__init__()
        self._sessions = sessions
        self._current_id = current_id

    def compose(self) -> ComposeResult:
        options = []
        for session in self._sessions:
            marker = "* " if session.id == self._current_id else "  "
            created = session.created_at.astimezone().strftime("%Y-%m-%d %H:%M")
            label = f"{marker}{session.display_title}  ({len(session.messages)} msgs, {created})"
            options.append(Option(Text(label), id=session.id))

        with Vertical(classes="modal-dialog"):
            yield Static("Chat Sessions", classes="modal-title")
            yield OptionList(*options, id="session-list")
            yield Static("enter: open   d: delete   n: new chat   esc: close", classes="modal-hint")

    def on_mount(self) -> None:
        option_list = self.query_one("#session-list", OptionList)
        for index, session in enumerate(self._sessions):
            if session.id == self._current_id:
                option_list.highlighted = index
                break
        option_list.focus()

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        self.dismiss(SessionAction("open", event.option.id))

    def _highlighted_id(self) -> str | None:
        option_list = self.query_one("#session-list", OptionList)
        if option_list.highlighted is None:
            return None
        return option_list.get_option_at_index(option_list.highlighted).id

    def action_delete_session(self) -> None:
        session_id = self._highlighted_id()
        if session_id is not None:
            self.dismiss(SessionAction("delete", session_id))

    def action_new_session(self) -> None:
        self.dismiss(SessionAction("new"))

    def action_dismiss_picker(self) -> None:
        self.dismiss(None)


class ModelPickerScreen(ModalScreen[str | None]):
    """Choose the model used for new replies."""

    CSS = MODAL_CSS
    DEFAULT_CLASSES = "modal"

    BINDINGS = [
        Binding("escape", "dismiss_picker", "Close", show=False),
    ]

    def __init__(self, models: list[str], selected: str) -> None:
        super().__init__()
        self._models = models
        self._selected = selected

    def compose(self) -> ComposeResult:
        with Vertical(classes="modal-dialog"):
            yield Static("Model Selection", classes="modal-title")
            if self._models:
                yield OptionList(*[Option(Text(name), id=name) for name in self._models], id="model-list")
            else:
                yield Static("No models found. Connect to the server or install models with the Ollama CLI.")
            yield Static(f"Chat will use: {self._selected or 'None selected'}", classes="modal-hint")

    def on_mount(self) -> None:
        if not self._models:
            return
        option_list = self.query_one("#model-list", OptionList)
        if self._selected in self._models:
            option_list.highlighted = self._models.index(self._selected)
        option_list.focus()

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        self.dismiss(event.option.id)

    def action_dismiss_picker(self) -> None:
        self.dismiss(None)


class ServerSettingsScreen(ModalScreen[tuple[str, str] | None]):
    """Edit the server address and port; submit reconnects."""

    CSS = MODAL_CSS
    DEFAULT_CLASSES = "modal"

    BINDINGS = [
        Binding("escape", "dismiss_settings", "Close", show=False),
    ]

    def __init__(self, address: str, port: str) -> None:
        super().__init__()
        self._address = address
        self._port = port

    def compose(self) -> ComposeResult:
        with Vertical(classes="modal-dialog"):
            yield Static("Ollama Server Settings", classes="modal-title")
            yield Input(self._address, placeholder="e.g., localhost or 192.168.1.10", id="address-input")
            yield Input(self._port, placeholder="e.g., 11434", id="port-input")
            yield Static("enter: connect   esc: close", classes="modal-hint")

    def on_mount(self) -> None:
        self.query_one("#address-input", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        address = self.query_one("#address-input", Input).value
        port = self.query_one("#port-input", Input).value
        self.dismiss((address, port))

    def action_dismiss_settings(self) -> None:
        self.dismiss(None)


class RenameScreen(ModalScreen[str | None]):
    """Ask for a session title; an empty title restores the default."""

    CSS = MODAL_CSS
    DEFAULT_CLASSES = "modal"

    BINDINGS = [
        Binding("escape", "dismiss_rename", "Close", show=False),
    ]

    def __init__(self, current_title: str) -> None:
        super().__init__()
        self._current_title = current_title

    def compose(self) -> ComposeResult:
        with Vertical(classes="modal-dialog"):
            yield Static("Rename Session", classes="modal-title")
            yield Input(self._current_title, placeholder="Session title", id="title-input")

    def on_mount(self) -> None:
        self.query_one("#title-input", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.dismiss(event.value)

    def action_dismiss_rename(self) -> None:
        self.dismiss(None)
