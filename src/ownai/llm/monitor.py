"""Connection status tracking with stale-response suppression.

Hides the supersede policy for probes and model fetches: a new attempt
cancels the outstanding one, and every completion is checked against a
monotonically increasing attempt counter so a slow, stale response can never
overwrite a fresher one.
"""

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

from ..config import ServerConfig
from .catalog import ModelCatalog, repair_selection
from .errors import OllamaError
from .probe import ConnectionProbe

logger = logging.getLogger(__name__)

T = TypeVar("T")

STATUS_DISCONNECTED = "Disconnected"


class LatestOnly:
    """Runs one awaitable at a time; superseded attempts resolve to None."""

    def __init__(self, name: str) -> None:
        self._name = name
        self._attempt = 0
        self._task: asyncio.Task | None = None

    @property
    def attempt(self) -> int:
        return self._attempt

    def cancel(self) -> None:
        """Supersede whatever is outstanding without starting anything new."""
        self._attempt += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def is_current(self, attempt: int) -> bool:
        return attempt == self._attempt

    async def run(self, awaitable: Awaitable[T]) -> tuple[int, T] | None:
        """Run ``awaitable`` as the latest attempt.

        Returns:
            ``(attempt, result)``, or None if a newer attempt superseded this one

        Raises:
            Whatever ``awaitable`` raises, unless superseded
        """
        self.cancel()
        attempt = self._attempt
        task = asyncio.ensure_future(awaitable)
        self._task = task
        try:
            result = await task
        except asyncio.CancelledError:
            if task.cancelled() and not self.is_current(attempt):
                logger.debug("%s attempt %d superseded", self._name, attempt)
                return None
            raise
        except Exception:
            if not self.is_current(attempt):
                logger.debug("%s attempt %d failed after being superseded", self._name, attempt)
                return None
            raise
        finally:
            if self._task is task:
                self._task = None
        if not self.is_current(attempt):
            return None
        return attempt, result


class ServerMonitor:
    """Tracks reachability, version and model list for the UI.

    ``status`` is a human-readable string displayed continuously until the
    next attempt changes it.
    """

    def __init__(
        self,
        probe: ConnectionProbe | None = None,
        catalog: ModelCatalog | None = None,
        selected_model: str = "",
    ) -> None:
        self._probe = probe or ConnectionProbe()
        self._catalog = catalog or ModelCatalog()
        self._probes = LatestOnly("probe")
        self._fetches = LatestOnly("model fetch")
        self.status = STATUS_DISCONNECTED
        self.version: str | None = None
        self.models: list[str] = []
        self.selected_model = selected_model

    @property
    def connected(self) -> bool:
        return self.version is not None

    async def check(self, config: ServerConfig, fetch_models: bool = False) -> str | None:
        """Probe the server, superseding any outstanding probe or fetch.

        Args:
            config: Settings snapshot for this attempt
            fetch_models: Also refresh the model list on success

        Returns:
            The server version, or None on failure or when superseded
        """
        self._fetches.cancel()
        self.version = None
        self.models = []
        self.status = f"Checking {config.address}:{config.port}..."

        try:
            outcome = await self._probes.run(self._probe.probe(config))
        except OllamaError as e:
            self.status = f"Error: {e.message}"
            logger.info("Probe failed: %s (%s)", e.message, e.kind.value)
            return None
        if outcome is None:
            return None

        _, version = outcome
        self.version = version
        if fetch_models:
            self.status = f"Connected to Ollama v{version}. Fetching models..."
            await self.refresh_models(config)
        else:
            self.status = f"Connected to Ollama v{version}."
        return version

    async def refresh_models(self, config: ServerConfig) -> list[str] | None:
        """Fetch the model list and repair the selection.

        Returns:
            Sorted model names, or None on failure or when superseded
        """
        try:
            outcome = await self._fetches.run(self._catalog.fetch(config))
        except OllamaError as e:
            self.status = f"Error fetching models: {e.message}"
            logger.info("Model fetch failed: %s (%s)", e.message, e.kind.value)
            return None
        if outcome is None:
            return None

        _, models = outcome
        self.models = models
        self.selected_model = repair_selection(models, self.selected_model)
        if self.version is not None:
            self.status = f"Connected to Ollama v{self.version} - Models loaded."
        else:
            self.status = "Connected - Models loaded."
        return models

    def disconnect(self) -> None:
        """Abandon outstanding work and forget the connection."""
        self._probes.cancel()
        self._fetches.cancel()
        self.status = STATUS_DISCONNECTED
        self.version = None
        self.models = []

    async def close(self) -> None:
        self.disconnect()
        await self._probe.close()
        await self._catalog.close()
