"""Message content module for ownai.

Pure functions deriving presentation metadata from message text:
- classifier.py: content-type tag (text, code, terminal, markdown)
- segments.py: ordered text/code segments for renderers
"""

from .classifier import classify
from .models import ContentKind, ContentType, Segment, SegmentKind
from .segments import parse_segments

__all__ = [
    "ContentKind",
    "ContentType",
    "Segment",
    "SegmentKind",
    "classify",
    "parse_segments",
]
