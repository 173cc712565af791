"""Chat orchestration between the message store, sessions and the model server."""

from .controller import ChatController

__all__ = ["ChatController"]
