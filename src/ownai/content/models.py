"""Data models for message content classification and segmentation."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ContentKind(str, Enum):
    """Presentation category of a message's text."""

    TEXT = "text"
    CODE = "code"
    TERMINAL = "terminal"
    MARKDOWN = "markdown"


class ContentType(BaseModel):
    """Derived content tag of a message.

    Only ``code`` carries a language. Serialized as
    ``{"type": "code", "language": "python"}``.
    """

    model_config = ConfigDict(frozen=True)

    type: ContentKind = Field(default=ContentKind.TEXT, description="Content category")
    language: str | None = Field(default=None, description="Language tag for code content")

    @classmethod
    def text(cls) -> "ContentType":
        return cls(type=ContentKind.TEXT)

    @classmethod
    def code(cls, language: str) -> "ContentType":
        return cls(type=ContentKind.CODE, language=language)

    @classmethod
    def terminal(cls) -> "ContentType":
        return cls(type=ContentKind.TERMINAL)

    @classmethod
    def markdown(cls) -> "ContentType":
        return cls(type=ContentKind.MARKDOWN)

    def __str__(self) -> str:
        if self.type == ContentKind.CODE:
            return f"code({self.language})"
        return self.type.value


class SegmentKind(str, Enum):
    """Kind of a rendered segment."""

    TEXT = "text"
    CODE = "code"


class Segment(BaseModel):
    """A contiguous piece of a message, ready for a renderer."""

    model_config = ConfigDict(frozen=True)

    kind: SegmentKind = Field(description="Segment kind: text or code")
    body: str = Field(description="Segment text")
    language: str = Field(default="", description="Code language (empty means unspecified)")
