"""Wire and event models for the Ollama HTTP API.

Response payloads are decoded through small, closed shapes instead of being
handled as open-ended dictionaries. Stream lines are tried against each
shape in turn; a line matching none of them is ignored.
"""

from enum import Enum
from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidatorFunctionWrapHandler,
    field_validator,
)


class ApiMessage(BaseModel):
    """One entry of the ``messages`` list sent to ``/api/chat``."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"] = Field(description="Role of the message sender")
    content: str = Field(description="Content of the message")


class ChatRequest(BaseModel):
    """Request body for a streaming chat completion."""

    model: str
    messages: list[ApiMessage]
    stream: bool = True
    options: dict[str, int] = Field(default_factory=dict)


class VersionResponse(BaseModel):
    """Body of ``GET /api/version``."""

    version: str


class ModelInfo(BaseModel):
    """A model descriptor from ``GET /api/tags``; only the name is used."""

    name: str


class TagsResponse(BaseModel):
    """Body of ``GET /api/tags``."""

    models: list[ModelInfo]


class ErrorLine(BaseModel):
    """Stream line reporting a server-side failure.

    Any ``error`` value ends the stream; non-string values are shown as text.
    """

    error: str

    @field_validator("error", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> str:
        return value if isinstance(value, str) else str(value)


class DoneLine(BaseModel):
    """Terminal success marker of a chat stream.

    The counters are optional; a value of the wrong type counts as absent.
    """

    done: Literal[True]
    eval_count: int | None = None
    eval_duration: float | None = None

    @field_validator("eval_count", "eval_duration", mode="wrap")
    @classmethod
    def _drop_invalid(cls, value: Any, handler: ValidatorFunctionWrapHandler) -> Any:
        try:
            return handler(value)
        except ValidationError:
            return None


class DeltaContent(BaseModel):
    content: str


class DeltaLine(BaseModel):
    """Stream line carrying an incremental content fragment."""

    message: DeltaContent


class StreamState(str, Enum):
    """Lifecycle of one chat stream."""

    IDLE = "idle"
    REQUESTING = "requesting"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (StreamState.COMPLETED, StreamState.FAILED, StreamState.CANCELLED)


class StreamDelta(BaseModel):
    """Incremental content fragment, to be appended exactly once."""

    model_config = ConfigDict(frozen=True)

    text: str


class StreamCompleted(BaseModel):
    """Terminal success event carrying the (possibly empty) stats string."""

    model_config = ConfigDict(frozen=True)

    stats: str = ""


class StreamFailed(BaseModel):
    """Terminal failure event."""

    model_config = ConfigDict(frozen=True)

    message: str


StreamEvent = StreamDelta | StreamCompleted | StreamFailed
