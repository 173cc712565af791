"""Model server client module for ownai.

Module structure (each module hides a design decision):
- endpoint.py: address/port normalisation into request URLs
- errors.py: failure taxonomy and transport error classification
- base.py: HTTP client lifecycle and typed JSON decoding
- probe.py / catalog.py: version check and model listing
- stream.py: newline-delimited JSON framing and the chat stream state machine
- monitor.py: connection status with stale-response suppression
"""

from .catalog import ModelCatalog, repair_selection
from .endpoint import build_url
from .errors import (
    FailureKind,
    OllamaConfigError,
    OllamaConnectionError,
    OllamaError,
    OllamaResponseError,
)
from .models import StreamCompleted, StreamDelta, StreamEvent, StreamFailed, StreamState
from .monitor import LatestOnly, ServerMonitor
from .probe import ConnectionProbe
from .stream import ChatStream, ChatStreamClient, LineBuffer, decode_event, format_stats

__all__ = [
    "ChatStream",
    "ChatStreamClient",
    "ConnectionProbe",
    "FailureKind",
    "LatestOnly",
    "LineBuffer",
    "ModelCatalog",
    "OllamaConfigError",
    "OllamaConnectionError",
    "OllamaError",
    "OllamaResponseError",
    "ServerMonitor",
    "StreamCompleted",
    "StreamDelta",
    "StreamEvent",
    "StreamFailed",
    "StreamState",
    "build_url",
    "decode_event",
    "format_stats",
    "repair_selection",
]
