"""Listing of models available on the server."""

from ..config import ServerConfig
from .base import OllamaHTTPClient
from .endpoint import TAGS_PATH, build_url
from .models import TagsResponse

CATALOG_TIMEOUT = 10.0


def repair_selection(models: list[str], selected: str | None) -> str:
    """Keep the selection valid against a freshly fetched list.

    Args:
        models: Sorted model names
        selected: Previously selected model, if any

    Returns:
        ``selected`` when still available, otherwise the first model,
        or an empty string when the list is empty
    """
    if selected and selected in models:
        return selected
    return models[0] if models else ""


class ModelCatalog(OllamaHTTPClient):
    """Fetches the model list; the payload can be large so the timeout is longer."""

    timeout: float = CATALOG_TIMEOUT

    async def fetch(self, config: ServerConfig) -> list[str]:
        """Fetch model names sorted ascending (case-sensitive).

        Raises:
            OllamaConfigError, OllamaConnectionError, OllamaResponseError
        """
        url = build_url(config, TAGS_PATH)
        body = await self.get_json(url, self.timeout, TagsResponse)
        return sorted(model.name for model in body.models)
