"""Application configuration.

Hides where settings come from (environment variables, ``.env`` files) and
provides the immutable ServerConfig snapshot captured per request.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_ADDRESS = "localhost"
DEFAULT_PORT = 11434
DEFAULT_CONTEXT_WINDOW = 4096
DEFAULT_MEMORY_PATH = Path.home() / ".ownai" / "sessions.db"


class ServerConfig(BaseModel):
    """Snapshot of the model server settings.

    Frozen so that a request started with one snapshot is never affected by
    later edits to the settings.
    """

    model_config = ConfigDict(frozen=True)

    address: str = Field(default=DEFAULT_ADDRESS, description="Host name, IP, or URL with scheme")
    port: str | int = Field(default=DEFAULT_PORT, description="Server port as entered by the user")
    model: str = Field(default="", description="Selected model name")
    context_window: int = Field(default=DEFAULT_CONTEXT_WINDOW, ge=1, description="num_ctx hint")

    def with_model(self, model: str) -> "ServerConfig":
        """Return a copy with a different selected model."""
        return self.model_copy(update={"model": model})


class AppSettings(BaseModel):
    """All settings the application reads on startup."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    memory_backend: str = Field(default="sqlite", description="Session storage: 'memory' or 'sqlite'")
    memory_path: Path = Field(default=DEFAULT_MEMORY_PATH, description="SQLite database path")
    log_level: str = Field(default="warning", description="Root log level name")


def load_settings(env_file: str | Path | None = None) -> AppSettings:
    """Load settings from the environment.

    Args:
        env_file: Optional explicit .env file; the default search is used otherwise

    Environment variables:
        OLLAMA_ADDRESS: Server address (default: localhost)
        OLLAMA_PORT: Server port (default: 11434)
        OLLAMA_MODEL: Selected model (default: none)
        OLLAMA_NUM_CTX: Context window hint (default: 4096)
        OWNAI_MEMORY_BACKEND: 'memory' or 'sqlite' (default: sqlite)
        OWNAI_MEMORY_PATH: SQLite database path (default: ~/.ownai/sessions.db)
        OWNAI_LOG_LEVEL: debug, info, warning or error (default: warning)
    """
    if env_file is not None:
        load_dotenv(env_file)
    else:
        load_dotenv()

    server = ServerConfig(
        address=os.getenv("OLLAMA_ADDRESS", DEFAULT_ADDRESS),
        port=os.getenv("OLLAMA_PORT", str(DEFAULT_PORT)),
        model=os.getenv("OLLAMA_MODEL", ""),
        context_window=int(os.getenv("OLLAMA_NUM_CTX", str(DEFAULT_CONTEXT_WINDOW))),
    )
    return AppSettings(
        server=server,
        memory_backend=os.getenv("OWNAI_MEMORY_BACKEND", "sqlite"),
        memory_path=Path(os.getenv("OWNAI_MEMORY_PATH", str(DEFAULT_MEMORY_PATH))).expanduser(),
        log_level=os.getenv("OWNAI_LOG_LEVEL", "warning"),
    )
