"""Factory for creating session storage backends."""

from typing import Any

from .base import SessionStorage


def create_session_storage(
    backend: str = "memory",
    **kwargs: Any
) -> SessionStorage:
    """Create a session storage backend.

    Args:
        backend: Backend type ("memory" or "sqlite")
        **kwargs: Backend-specific configuration
            For sqlite:
                - path: str | Path (database file)

    Returns:
        SessionStorage instance

    Raises:
        ValueError: If backend type is not supported
    """
    if backend == "memory":
        from .in_memory import InMemorySessionStorage
        return InMemorySessionStorage(**kwargs)

    elif backend == "sqlite":
        from .sqlite import SQLiteSessionStorage
        return SQLiteSessionStorage(**kwargs)

    raise ValueError(
        f"Unsupported session storage backend: {backend}. "
        f"Supported backends: memory, sqlite"
    )
