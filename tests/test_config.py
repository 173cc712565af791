"""Tests for settings loading and the ServerConfig snapshot."""
import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from ownai.config import DEFAULT_CONTEXT_WINDOW, ServerConfig, load_settings

ENV_VARS = (
    "OLLAMA_ADDRESS",
    "OLLAMA_PORT",
    "OLLAMA_MODEL",
    "OLLAMA_NUM_CTX",
    "OWNAI_MEMORY_BACKEND",
    "OWNAI_MEMORY_PATH",
    "OWNAI_LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Isolate os.environ from ownai variables and run from an empty directory."""
    environ = {key: value for key, value in os.environ.items() if key not in ENV_VARS}
    monkeypatch.setattr(os, "environ", environ)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_defaults(self):
        """Test the stock Ollama location."""
        config = ServerConfig()
        assert config.address == "localhost"
        assert config.port == 11434
        assert config.model == ""
        assert config.context_window == DEFAULT_CONTEXT_WINDOW

    def test_frozen(self):
        """Test that a snapshot cannot be edited in place."""
        config = ServerConfig()
        with pytest.raises(ValidationError):
            config.model = "llama2"

    def test_with_model(self):
        """Test that with_model returns a new snapshot."""
        config = ServerConfig(address="gpu-box", port="8080")
        updated = config.with_model("mistral")
        assert updated.model == "mistral"
        assert updated.address == "gpu-box"
        assert config.model == ""


class TestLoadSettings:
    """Tests for load_settings()."""

    def test_defaults(self, clean_env):
        """Test settings with no environment."""
        settings = load_settings()
        assert settings.server.address == "localhost"
        assert settings.server.port == "11434"
        assert settings.memory_backend == "sqlite"
        assert settings.log_level == "warning"

    def test_environment_overrides(self, clean_env, tmp_path):
        """Test that environment variables are honoured."""
        clean_env.setenv("OLLAMA_ADDRESS", "http://10.0.0.5")
        clean_env.setenv("OLLAMA_PORT", "9000")
        clean_env.setenv("OLLAMA_MODEL", "mistral")
        clean_env.setenv("OLLAMA_NUM_CTX", "8192")
        clean_env.setenv("OWNAI_MEMORY_BACKEND", "memory")
        clean_env.setenv("OWNAI_MEMORY_PATH", str(tmp_path / "db.sqlite"))

        settings = load_settings()

        assert settings.server.address == "http://10.0.0.5"
        assert settings.server.port == "9000"
        assert settings.server.model == "mistral"
        assert settings.server.context_window == 8192
        assert settings.memory_backend == "memory"
        assert settings.memory_path == tmp_path / "db.sqlite"

    def test_env_file(self, clean_env, tmp_path):
        """Test reading an explicit .env file."""
        env_file = tmp_path / "custom.env"
        env_file.write_text("OLLAMA_MODEL=phi\nOWNAI_LOG_LEVEL=debug\n", encoding="utf-8")
        settings = load_settings(Path(env_file))

        assert settings.server.model == "phi"
        assert settings.log_level == "debug"
