"""
Unit tests for the AI provider adapter.

HTTP traffic goes through httpx.MockTransport, so request envelopes can be
inspected without a network.
"""

import json
import pytest
import sys
from pathlib import Path

import httpx

sys.path.insert(0, str(Path(__file__).parent.parent / "app"))

from ai_providers import (
    ANTHROPIC_URL, OPENAI_URL, AnthropicProvider, OllamaProvider, OpenAIProvider, ProviderError,
    build_provider_registry, call_provider, list_local_models
)
from models import EventType, ProviderConfig


def recording_transport(response: httpx.Response):
    """MockTransport that records every request and returns `response`."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return response

    return httpx.MockTransport(handler), seen


class TestOllamaProvider:
    """Test the local Ollama backend."""

    @pytest.mark.asyncio
    async def test_request_shape(self):
        """Test model/prompt/stream:false is posted to /api/generate."""
        transport, seen = recording_transport(httpx.Response(200, json={"response": "[]"}))
        provider = OllamaProvider(base_url="http://ollama:11434/", transport=transport)

        text = await provider.send_prompt("hello", ProviderConfig(kind="ollama", model="qwen2.5"))

        assert text == "[]"
        assert str(seen[0].url) == "http://ollama:11434/api/generate"
        assert json.loads(seen[0].content) == {"model": "qwen2.5", "prompt": "hello", "stream": False}

    @pytest.mark.asyncio
    async def test_default_model(self):
        """Test the default model is used when none is configured."""
        transport, seen = recording_transport(httpx.Response(200, json={"response": "ok"}))
        provider = OllamaProvider(transport=transport)

        await provider.send_prompt("hi", ProviderConfig(kind="ollama"))

        assert json.loads(seen[0].content)["model"] == OllamaProvider.default_model

    @pytest.mark.asyncio
    async def test_server_error_is_unavailable(self):
        """Test a non-success status raises ProviderError."""
        transport, _ = recording_transport(httpx.Response(500, text="boom"))
        provider = OllamaProvider(transport=transport)

        with pytest.raises(ProviderError) as exc_info:
            await provider.send_prompt("hi", ProviderConfig(kind="ollama"))

        assert exc_info.value.reason == ProviderError.UNAVAILABLE
        assert "500" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_connection_error_is_unavailable(self):
        """Test transport failures become ProviderError."""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        provider = OllamaProvider(transport=httpx.MockTransport(handler))

        with pytest.raises(ProviderError):
            await provider.send_prompt("hi", ProviderConfig(kind="ollama"))

    @pytest.mark.asyncio
    async def test_malformed_body_is_unavailable(self):
        """Test a body without the text field raises ProviderError."""
        transport, _ = recording_transport(httpx.Response(200, json={"unexpected": True}))
        provider = OllamaProvider(transport=transport)

        with pytest.raises(ProviderError):
            await provider.send_prompt("hi", ProviderConfig(kind="ollama"))


class TestAnthropicProvider:
    """Test the Anthropic Messages API envelope."""

    @pytest.mark.asyncio
    async def test_request_and_response_paths(self):
        """Test headers, body and content[].text extraction."""
        transport, seen = recording_transport(
            httpx.Response(200, json={"content": [{"type": "text", "text": "generated"}]})
        )
        provider = AnthropicProvider(transport=transport)

        text = await provider.send_prompt("prompt", ProviderConfig(kind="anthropic", api_key="sk-ant"))

        request = seen[0]
        body = json.loads(request.content)
        assert text == "generated"
        assert str(request.url) == ANTHROPIC_URL
        assert request.headers["x-api-key"] == "sk-ant"
        assert request.headers["anthropic-version"] == "2023-06-01"
        assert body["model"] == AnthropicProvider.default_model
        assert body["messages"] == [{"role": "user", "content": "prompt"}]
        assert body["max_tokens"] > 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{"content": ["hello"]}, {"content": "hello"}, ["not", "an", "object"]])
    async def test_malformed_content_is_unavailable(self, body):
        """Test odd response shapes raise ProviderError, nothing else."""
        transport, _ = recording_transport(httpx.Response(200, json=body))
        provider = AnthropicProvider(transport=transport)

        with pytest.raises(ProviderError) as exc_info:
            await provider.send_prompt("prompt", ProviderConfig(kind="anthropic", api_key="sk-ant"))

        assert exc_info.value.reason == ProviderError.UNAVAILABLE

    @pytest.mark.asyncio
    async def test_missing_key_makes_no_request(self):
        """Test a missing API key fails before any HTTP traffic."""
        transport, seen = recording_transport(httpx.Response(200, json={}))
        provider = AnthropicProvider(transport=transport)

        with pytest.raises(ProviderError) as exc_info:
            await provider.send_prompt("prompt", ProviderConfig(kind="anthropic", api_key=""))

        assert exc_info.value.reason == ProviderError.MISSING_CREDENTIALS
        assert seen == []


class TestOpenAIProvider:
    """Test the OpenAI Chat Completions envelope."""

    @pytest.mark.asyncio
    async def test_request_and_response_paths(self):
        """Test bearer auth, body and choices[0].message.content extraction."""
        transport, seen = recording_transport(
            httpx.Response(200, json={"choices": [{"message": {"content": "generated"}}]})
        )
        provider = OpenAIProvider(transport=transport)

        text = await provider.send_prompt("prompt", ProviderConfig(kind="openai", api_key="sk-oa", model="gpt-4o"))

        request = seen[0]
        body = json.loads(request.content)
        assert text == "generated"
        assert str(request.url) == OPENAI_URL
        assert request.headers["authorization"] == "Bearer sk-oa"
        assert body == {"model": "gpt-4o", "messages": [{"role": "user", "content": "prompt"}]}

    @pytest.mark.asyncio
    async def test_null_content_is_an_error(self):
        """Test a response without text raises ProviderError."""
        transport, _ = recording_transport(
            httpx.Response(200, json={"choices": [{"message": {"content": None}}]})
        )
        provider = OpenAIProvider(transport=transport)

        with pytest.raises(ProviderError):
            await provider.send_prompt("prompt", ProviderConfig(kind="openai", api_key="sk-oa"))


class TestRegistry:
    """Test the provider registry."""

    def test_registry_has_all_kinds(self):
        """Test one provider per supported kind."""
        registry = build_provider_registry()

        assert set(registry) == {"ollama", "anthropic", "openai"}
        assert not registry["ollama"].requires_api_key
        assert registry["anthropic"].requires_api_key
        assert registry["openai"].requires_api_key

    def test_registry_passes_settings(self):
        """Test URL and timeout reach the providers."""
        registry = build_provider_registry(ollama_url="http://gpu-box:11434", timeout=300.0)

        assert registry["ollama"].endpoint == "http://gpu-box:11434/api/generate"
        assert registry["openai"].timeout == 300.0


class TestCallProvider:
    """Test dispatch plus event reporting."""

    @pytest.mark.asyncio
    async def test_success_is_reported(self, provider_factory, mock_notify, ollama_config):
        """Test a successful call publishes a status event."""
        provider = provider_factory("ollama", response="[1]")

        text = await call_provider("p", ollama_config, {"ollama": provider}, notify=mock_notify)

        assert text == "[1]"
        provider.send_prompt.assert_awaited_once_with("p", ollama_config)
        event_type, message = mock_notify.await_args.args
        assert event_type == EventType.STATUS
        assert "ollama" in message

    @pytest.mark.asyncio
    async def test_failure_is_reported_and_raised(self, provider_factory, mock_notify, ollama_config, provider_error):
        """Test a failing call publishes an error event then raises."""
        provider = provider_factory("ollama", error=provider_error)

        with pytest.raises(ProviderError):
            await call_provider("p", ollama_config, {"ollama": provider}, notify=mock_notify)

        assert mock_notify.await_args.args[0] == EventType.ERROR

    @pytest.mark.asyncio
    async def test_unknown_kind(self, mock_notify):
        """Test an unregistered kind raises without calling anything."""
        with pytest.raises(ProviderError) as exc_info:
            await call_provider("p", ProviderConfig(kind="mystery"), {}, notify=mock_notify)

        assert exc_info.value.reason == ProviderError.UNKNOWN_PROVIDER

    @pytest.mark.asyncio
    async def test_broken_notifier_does_not_break_call(self, provider_factory, ollama_config):
        """Test a raising notifier is ignored."""
        async def broken(event_type, message):
            raise RuntimeError("sink down")

        provider = provider_factory("ollama", response="ok")

        assert await call_provider("p", ollama_config, {"ollama": provider}, notify=broken) == "ok"


class TestListLocalModels:
    """Test listing Ollama models."""

    @pytest.mark.asyncio
    async def test_lists_models(self):
        """Test names and sizes come from /api/tags."""
        transport, seen = recording_transport(httpx.Response(200, json={
            "models": [{"name": "llama3.2:3b", "size": 2019393189}, {"name": "qwen2.5"}]
        }))

        models = await list_local_models("http://localhost:11434", transport=transport)

        assert str(seen[0].url) == "http://localhost:11434/api/tags"
        assert models == [{"name": "llama3.2:3b", "size": 2019393189}, {"name": "qwen2.5", "size": 0}]

    @pytest.mark.asyncio
    async def test_unavailable_server(self):
        """Test an unreachable server raises ProviderError."""
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ProviderError):
            await list_local_models(transport=httpx.MockTransport(handler))
