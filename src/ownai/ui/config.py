"""UI configuration constants.

Centralizes magic numbers and display strings for the UI module.
"""

APP_TITLE = "ownai"
THEME_NAME = "catppuccin-mocha"

# Chat display configuration
TIMESTAMP_FORMAT = "%H:%M:%S"
USER_LABEL = "You"
MODEL_LABEL = "Model"
STREAMING_INDICATOR = "..."
NO_MODEL_LABEL = "---"

# Code rendering
SYNTAX_THEME = "monokai"
FALLBACK_LANGUAGE = "text"

# Input history configuration
INPUT_HISTORY_MAX_SIZE = 100  # Maximum entries in input history

# Notification timeouts (seconds)
NOTIFY_SHORT = 2
