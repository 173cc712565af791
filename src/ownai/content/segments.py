"""Split message text into renderable segments.

Hides the fenced-code-block grammar from renderers: they receive an ordered
list of text and code segments and never look at fence markers themselves.
"""

import re

from .models import ContentKind, ContentType, Segment, SegmentKind

# ```lang\n ... ``` with the language line optional; body is non-greedy
CODE_BLOCK_PATTERN = re.compile(r"```(?:([\w-]+)\n)?(.*?)```", re.DOTALL)

TERMINAL_LANGUAGE = "bash"


def parse_segments(text: str, content_type: ContentType | None = None) -> list[Segment]:
    """Parse message text into ordered segments.

    Args:
        text: Message content
        content_type: Previously classified type, used when no fenced
            block is present

    Returns:
        Segments covering the text left to right. Whitespace-only text
        between blocks is dropped.
    """
    segments: list[Segment] = []
    last_end = 0

    for match in CODE_BLOCK_PATTERN.finditer(text):
        preceding = text[last_end:match.start()]
        if preceding.strip():
            segments.append(Segment(kind=SegmentKind.TEXT, body=preceding))

        language = (match.group(1) or "").lower()
        segments.append(Segment(
            kind=SegmentKind.CODE,
            body=match.group(2).strip(),
            language=language,
        ))
        last_end = match.end()

    remainder = text[last_end:]
    if remainder.strip():
        segments.append(Segment(kind=SegmentKind.TEXT, body=remainder))

    if segments:
        return segments

    return [_single_segment(text, content_type or ContentType.text())]


def _single_segment(text: str, content_type: ContentType) -> Segment:
    """Build the fallback segment for text without fenced blocks."""
    if content_type.type == ContentKind.CODE:
        return Segment(kind=SegmentKind.CODE, body=text, language=content_type.language or "")
    if content_type.type == ContentKind.TERMINAL:
        return Segment(kind=SegmentKind.CODE, body=text, language=TERMINAL_LANGUAGE)
    return Segment(kind=SegmentKind.TEXT, body=text)
