"""Rich renderables for message content.

Hides how classified content is turned into something a terminal can show:
markdown prose, syntax-highlighted code blocks, or plain text.
"""

from rich.console import Group, RenderableType
from rich.markdown import Markdown
from rich.syntax import Syntax
from rich.text import Text

from ..content import ContentKind, ContentType, SegmentKind, parse_segments
from .config import FALLBACK_LANGUAGE, SYNTAX_THEME


def render_code(body: str, language: str) -> Syntax:
    """Render a code block with syntax highlighting."""
    return Syntax(
        body,
        language or FALLBACK_LANGUAGE,
        theme=SYNTAX_THEME,
        word_wrap=True,
        background_color="default",
    )


def render_content(content: str, content_type: ContentType) -> RenderableType:
    """Render message content according to its classification.

    Code fences become highlighted blocks; the prose around them is shown as
    markdown when the message looks like markdown, else as plain text.
    """
    if not content:
        return Text("")

    use_markdown = content_type.type in (ContentKind.MARKDOWN, ContentKind.CODE)
    parts: list[RenderableType] = []
    for segment in parse_segments(content, content_type):
        if segment.kind == SegmentKind.CODE:
            parts.append(render_code(segment.body, segment.language))
        elif use_markdown:
            parts.append(Markdown(segment.body))
        else:
            parts.append(Text(segment.body))

    if len(parts) == 1:
        return parts[0]
    return Group(*parts)
