"""CSS styles for the TUI.

Hides layout and styling decisions from the application logic.
Uses Textual CSS features: nesting, pseudo-classes, variables.
"""

APP_CSS = """
Screen {
    layout: vertical;
    background: $background;
}

/* ============================================
   Chat History Panel
   ============================================ */
#chat-history {
    height: 1fr;
    background: $panel;
    border: round $primary 60%;
    border-title-color: $primary;
    border-title-style: bold;
    border-title-align: left;
    border-subtitle-color: $text-muted;
    border-subtitle-align: right;
    padding: 0 1;
    scrollbar-gutter: stable;

    &:focus-within {
        border: round $primary;
    }
}

.chat-message {
    height: auto;
    margin: 1 0 0 0;
    padding: 0 1;
}

.user-message {
    border-left: thick $secondary;
}

.model-message {
    border-left: thick $primary;
}

.model-message.-streaming {
    border-left: thick $accent;
}

.message-header {
    color: $text-muted;
    text-style: bold;
}

.message-content {
    height: auto;
}

.message-stats {
    color: $text-muted;
    text-style: italic;
}

/* ============================================
   Status Bar
   ============================================ */
#status-bar {
    height: 1;
    padding: 0 1;
    background: $surface;
    color: $text-muted;

    &.-connected {
        color: $success;
    }

    &.-error {
        color: $error;
    }
}

/* ============================================
   Input Bar
   ============================================ */
#chat-input-bar {
    height: auto;
    max-height: 10;
    padding: 0 1;
}

#chat-input {
    width: 1fr;
    height: auto;
    min-height: 3;
    max-height: 8;
    border: round $border;

    &:focus {
        border: round $primary;
    }
}

#send-btn {
    width: 10;
    margin: 0 0 0 1;
}
"""

MODAL_CSS = """
.modal {
    align: center middle;
    background: $background 70%;
}

.modal-dialog {
    width: 70;
    height: auto;
    max-height: 30;
    border: tall $accent;
    background: $surface;
    padding: 1 2;
}

.modal-title {
    width: 100%;
    text-align: center;
    text-style: bold;
    color: $accent;
    padding: 0 0 1 0;
}

.modal-hint {
    width: 100%;
    color: $text-muted;
    text-align: center;
    padding: 1 0 0 0;
}

.modal-dialog OptionList {
    height: auto;
    max-height: 18;
}

.modal-dialog Input {
    margin: 0 0 1 0;
}
"""
