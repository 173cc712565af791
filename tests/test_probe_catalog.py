"""Tests for the connection probe, the model catalog and selection repair."""
import httpx
import pytest
from hypothesis import given
from hypothesis import strategies as st

from ownai.config import ServerConfig
from ownai.llm import (
    ConnectionProbe,
    FailureKind,
    ModelCatalog,
    OllamaConfigError,
    OllamaConnectionError,
    OllamaResponseError,
    repair_selection,
)


def _transport(response: httpx.Response | Exception) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if isinstance(response, Exception):
            raise response
        return response

    return httpx.MockTransport(handler)


class TestConnectionProbe:
    """Tests for ConnectionProbe.probe()."""

    @pytest.mark.asyncio
    async def test_returns_version(self, ollama_transport, server_config):
        """Test that the version string is returned on success."""
        async with ConnectionProbe(transport=ollama_transport) as probe:
            assert await probe.probe(server_config) == "0.1.2"

    @pytest.mark.asyncio
    async def test_requests_version_endpoint_on_loopback(self, server_config):
        """Test that localhost requests go to 127.0.0.1/api/version."""
        seen: list[httpx.URL] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url)
            return httpx.Response(200, json={"version": "0.5.0"})

        async with ConnectionProbe(transport=httpx.MockTransport(handler)) as probe:
            await probe.probe(server_config)

        assert str(seen[0]) == "http://127.0.0.1:11434/api/version"

    @pytest.mark.asyncio
    async def test_invalid_port_sends_nothing(self):
        """Test that configuration errors are raised before any request."""
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        async with ConnectionProbe(transport=httpx.MockTransport(handler)) as probe:
            with pytest.raises(OllamaConfigError) as exc_info:
                await probe.probe(ServerConfig(port="99999"))

        assert exc_info.value.kind == FailureKind.INVALID_PORT

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("exc", "kind"), [
        (httpx.ConnectError("[Errno 111] Connection refused"), FailureKind.CONNECTION_REFUSED),
        (httpx.ConnectTimeout("timed out"), FailureKind.TIMED_OUT),
        (httpx.ConnectError("[Errno -2] Name or service not known"), FailureKind.HOST_NOT_FOUND),
    ])
    async def test_transport_failures(self, server_config, exc: Exception, kind: FailureKind):
        """Test that transport failures surface as connection errors."""
        async with ConnectionProbe(transport=_transport(exc)) as probe:
            with pytest.raises(OllamaConnectionError) as exc_info:
                await probe.probe(server_config)

        assert exc_info.value.kind == kind

    @pytest.mark.asyncio
    async def test_bad_status(self, server_config):
        """Test that a non-200 response is a bad-status error carrying the code."""
        async with ConnectionProbe(transport=_transport(httpx.Response(500, text="oops"))) as probe:
            with pytest.raises(OllamaResponseError) as exc_info:
                await probe.probe(server_config)

        assert exc_info.value.kind == FailureKind.BAD_STATUS
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [b"not json", b'{"name": "x"}', b"[]"])
    async def test_malformed_body(self, server_config, body: bytes):
        """Test that bodies without a version string are rejected."""
        async with ConnectionProbe(transport=_transport(httpx.Response(200, content=body))) as probe:
            with pytest.raises(OllamaResponseError) as exc_info:
                await probe.probe(server_config)

        assert exc_info.value.kind == FailureKind.MALFORMED_BODY


class TestModelCatalog:
    """Tests for ModelCatalog.fetch()."""

    @pytest.mark.asyncio
    async def test_models_sorted(self, ollama_transport, server_config):
        """Test that model names are returned sorted ascending."""
        async with ModelCatalog(transport=ollama_transport) as catalog:
            assert await catalog.fetch(server_config) == ["llama2", "mistral"]

    @pytest.mark.asyncio
    async def test_sort_is_case_sensitive(self, server_config):
        """Test that sorting uses plain string order."""
        response = httpx.Response(200, json={"models": [{"name": "b"}, {"name": "A"}, {"name": "a"}]})
        async with ModelCatalog(transport=_transport(response)) as catalog:
            assert await catalog.fetch(server_config) == ["A", "a", "b"]

    @pytest.mark.asyncio
    async def test_empty_list(self, server_config):
        """Test that an empty model list is valid."""
        async with ModelCatalog(transport=_transport(httpx.Response(200, json={"models": []}))) as catalog:
            assert await catalog.fetch(server_config) == []

    @pytest.mark.asyncio
    async def test_missing_models_key_is_malformed(self, server_config):
        """Test that a body without 'models' is malformed."""
        async with ModelCatalog(transport=_transport(httpx.Response(200, json={}))) as catalog:
            with pytest.raises(OllamaResponseError) as exc_info:
                await catalog.fetch(server_config)

        assert exc_info.value.kind == FailureKind.MALFORMED_BODY


class TestRepairSelection:
    """Tests for repair_selection()."""

    def test_empty_selection_takes_first(self):
        """Test that no selection picks the first model."""
        assert repair_selection(["llama2", "mistral"], "") == "llama2"

    def test_valid_selection_kept(self):
        """Test that an available selection is kept."""
        assert repair_selection(["llama2", "mistral"], "mistral") == "mistral"

    def test_stale_selection_replaced(self):
        """Test that a selection no longer offered is replaced."""
        assert repair_selection(["llama2"], "phi") == "llama2"

    def test_empty_list_clears(self):
        """Test that an empty list clears the selection."""
        assert repair_selection([], "llama2") == ""

    @given(
        st.lists(st.text(min_size=1), unique=True).map(sorted),
        st.text(),
    )
    def test_result_is_member_or_empty(self, models: list[str], selected: str):
        """Property test: the result is in the list, or empty only for an empty list."""
        result = repair_selection(models, selected)
        if models:
            assert result in models
            if selected in models:
                assert result == selected
            else:
                assert result == models[0]
        else:
            assert result == ""
