"""Content-type classification for chat messages.

Hides the heuristics used to decide whether a message reads as code,
terminal output, markdown or plain prose.
"""

import re

from .models import ContentType

FENCE = "```"

_TERMINAL_MARKERS = ("$ ", "> ", "PS ")
_MARKDOWN_MARKERS = ("# ", "* ", "> ")
_MARKDOWN_LINK = re.compile(r"\[[^\]]*\]\([^)]*\)")


def classify(text: str) -> ContentType:
    """Classify message text.

    Rules are evaluated in order and the first match wins:
    fenced code, terminal-like prompts, markdown markers, plain text.

    Args:
        text: Raw message text (possibly partial while streaming)

    Returns:
        The derived ContentType
    """
    if FENCE in text:
        for line in text.splitlines():
            if line.startswith(FENCE):
                language = line[len(FENCE):].strip()
                return ContentType.code(language or "text")

    if any(marker in text for marker in _TERMINAL_MARKERS):
        return ContentType.terminal()

    if any(marker in text for marker in _MARKDOWN_MARKERS) or _MARKDOWN_LINK.search(text):
        return ContentType.markdown()

    return ContentType.text()
