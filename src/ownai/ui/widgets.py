"""Custom Textual widgets for the TUI.

Hides widget implementation details:
- Per-message rendering and in-place refresh while streaming
- Mapping store changes onto mounted widgets
- Input history management
- Status line formatting
"""

from collections.abc import Sequence

from rich.text import Text
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.events import Click
from textual.message import Message
from textual.widgets import Button, Static, TextArea

from ..memory import ChangeKind, ChatMessage, Sender, StoreChange
from .config import (
    INPUT_HISTORY_MAX_SIZE,
    MODEL_LABEL,
    NO_MODEL_LABEL,
    STREAMING_INDICATOR,
    TIMESTAMP_FORMAT,
    USER_LABEL,
)
from .rendering import render_content


class MessageView(Vertical):
    """One chat message: header, rendered body and optional stats.

    Clicking the message copies its raw content to the clipboard.
    """

    def __init__(self, message: ChatMessage, *args, **kwargs) -> None:
        role_class = "user-message" if message.sender == Sender.USER else "model-message"
        super().__init__(*args, classes=f"chat-message {role_class}", **kwargs)
        self._message = message
        self._header = Static(classes="message-header")
        self._body = Static(classes="message-content")
        self._stats = Static(classes="message-stats")

    @property
    def message_id(self) -> str:
        return self._message.id

    def compose(self):
        yield self._header
        yield self._body
        yield self._stats

    def on_mount(self) -> None:
        self._refresh_parts()

    def update_message(self, message: ChatMessage) -> None:
        """Re-render with the latest content of the same message."""
        self._message = message
        if self.is_mounted:
            self._refresh_parts()

    def _refresh_parts(self) -> None:
        message = self._message
        label = USER_LABEL if message.sender == Sender.USER else MODEL_LABEL
        timestamp = message.timestamp.astimezone().strftime(TIMESTAMP_FORMAT)
        suffix = f" {STREAMING_INDICATOR}" if message.is_streaming else ""
        self._header.update(Text(f"{label} [{timestamp}]{suffix}"))
        self._body.update(render_content(message.content, message.content_type))
        self._stats.update(Text(message.stats or ""))
        self._stats.display = bool(message.stats)
        self.set_class(message.is_streaming, "-streaming")

    def on_click(self, event: Click) -> None:
        event.stop()
        self.app.copy_to_clipboard(self._message.content)
        self.app.notify("Copied to clipboard", timeout=2)


class ChatHistoryWidget(VerticalScroll):
    """Scrollable timeline mirroring the current session's MessageStore."""

    BORDER_TITLE = "Chat"
    BORDER_SUBTITLE = "New Chat"
    ALLOW_MAXIMIZE = True

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._views: dict[str, MessageView] = {}

    def reset(self, messages: Sequence[ChatMessage]) -> None:
        """Replace everything shown with ``messages``."""
        self.remove_children()
        self._views.clear()
        for message in messages:
            self._mount_message(message)
        self.scroll_end(animate=False)

    def apply_change(self, change: StoreChange, message: ChatMessage | None) -> None:
        """Reflect one store mutation.

        Args:
            change: The store notification
            message: Current snapshot of the changed message, if any
        """
        if message is None:
            return
        view = self._views.get(message.id)
        if change.kind == ChangeKind.APPENDED and view is None:
            self._mount_message(message)
        elif view is not None:
            view.update_message(message)
        self.scroll_end(animate=False)

    def _mount_message(self, message: ChatMessage) -> None:
        view = MessageView(message)
        self._views[message.id] = view
        self.mount(view)


class StatusBar(Static):
    """One-line connection status and active model."""

    def show_status(self, status: str, address: str, model: str) -> None:
        self.update(Text(f"{address} / {model or NO_MODEL_LABEL}  |  {status}"))
        self.set_class(status.startswith("Connected"), "-connected")
        self.set_class(status.startswith("Error"), "-error")


class ChatInputBar(Horizontal):
    """Chat input bar with TextArea and Send button."""

    class Submitted(Message):
        """Message sent when user submits input."""

        def __init__(self, value: str) -> None:
            super().__init__()
            self.value = value

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._history: list[str] = []
        self._history_index: int = -1

    def compose(self):
        text_area = TextArea(id="chat-input", show_line_numbers=False)
        text_area.cursor_blink = False
        yield text_area
        yield Button("Send", id="send-btn", variant="success").with_tooltip(
            "Submit message (Ctrl+J)"
        )

    def on_mount(self) -> None:
        text_area = self.query_one("#chat-input", TextArea)
        text_area.focus()
        text_area.highlight_cursor_line = False

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "send-btn":
            self._submit()

    def on_key(self, event) -> None:
        """Handle keyboard shortcuts.

        Note: ctrl+enter cannot work in terminals (terminal doesn't pass
        ctrl/shift modifiers with Enter). Use ctrl+j as the submit shortcut.
        """
        if event.key == "ctrl+j":
            self._submit()
            event.prevent_default()
            event.stop()
        elif event.key == "up" and self._is_cursor_at_start():
            self._navigate_history(-1)
            event.prevent_default()
            event.stop()
        elif event.key == "down" and self._is_cursor_at_end():
            self._navigate_history(1)
            event.prevent_default()
            event.stop()

    def _is_cursor_at_start(self) -> bool:
        text_area = self.query_one("#chat-input", TextArea)
        return text_area.cursor_location == (0, 0)

    def _is_cursor_at_end(self) -> bool:
        text_area = self.query_one("#chat-input", TextArea)
        lines = text_area.text.split("\n")
        return text_area.cursor_location == (len(lines) - 1, len(lines[-1]))

    def _navigate_history(self, direction: int) -> None:
        if not self._history:
            return
        text_area = self.query_one("#chat-input", TextArea)
        if direction < 0:
            if self._history_index == -1:
                self._history_index = len(self._history) - 1
            elif self._history_index > 0:
                self._history_index -= 1
        else:
            if self._history_index < len(self._history) - 1:
                self._history_index += 1
            else:
                self._history_index = -1
                text_area.text = ""
                return
        text_area.text = self._history[self._history_index]

    def _submit(self) -> None:
        text_area = self.query_one("#chat-input", TextArea)
        value = text_area.text.strip()
        if not value:
            return
        if not self._history or self._history[-1] != value:
            self._history.append(value)
            del self._history[:-INPUT_HISTORY_MAX_SIZE]
        self._history_index = -1
        text_area.text = ""
        self.post_message(self.Submitted(value))

    def focus_input(self) -> None:
        """Focus the text input."""
        self.query_one("#chat-input", TextArea).focus()
