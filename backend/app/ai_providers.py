"""
AI Provider Adapter
====================

One interface over the supported text-generation backends:

- ollama     local model server (/api/generate, non-streaming)
- anthropic  Anthropic Messages API
- openai     OpenAI Chat Completions API

Every provider takes a prompt and returns the generated text, or raises
ProviderError. No retries and no caching: a failed call is reported and the
caller decides what to do next.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from broadcast import Notifier, notify_safely
from models import EventType, ProviderConfig, ProviderKind

logger = logging.getLogger(__name__)

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
OPENAI_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_OLLAMA_URL = "http://localhost:11434"


class ProviderError(Exception):
    """AI backend could not produce text"""

    UNAVAILABLE = "unavailable"
    MISSING_CREDENTIALS = "missing_credentials"
    UNKNOWN_PROVIDER = "unknown_provider"

    def __init__(self, message: str, reason: str = UNAVAILABLE, provider: Optional[str] = None):
        super().__init__(message)
        self.reason = reason
        self.provider = provider


class AIProviderClient:
    """Base class: one POST per prompt, text pulled out of the JSON body"""

    kind: str = ""
    default_model: str = ""
    requires_api_key: bool = False

    def __init__(self, timeout: float = 120.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self.transport = transport

    @property
    def endpoint(self) -> str:
        raise NotImplementedError

    def build_headers(self, config: ProviderConfig) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    def build_payload(self, prompt: str, model: str) -> Dict[str, Any]:
        raise NotImplementedError

    def extract_text(self, data: Dict[str, Any]) -> str:
        raise NotImplementedError

    async def send_prompt(self, prompt: str, config: ProviderConfig) -> str:
        """Send the prompt and return the generated text"""
        if self.requires_api_key and not config.api_key:
            raise ProviderError(
                f"No API key configured for {self.kind}",
                reason=ProviderError.MISSING_CREDENTIALS,
                provider=self.kind,
            )

        model = config.model or self.default_model
        logger.info(f"[PROVIDER] Calling {self.kind} ({model})")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    self.endpoint,
                    headers=self.build_headers(config),
                    json=self.build_payload(prompt, model),
                )
        except httpx.HTTPError as e:
            raise ProviderError(f"{self.kind} request failed: {e}", provider=self.kind) from e

        if not response.is_success:
            raise ProviderError(f"{self.kind} error: {response.status_code}", provider=self.kind)

        try:
            text = self.extract_text(response.json())
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            raise ProviderError(f"{self.kind} returned an unexpected body: {e}", provider=self.kind) from e

        if not isinstance(text, str):
            raise ProviderError(f"{self.kind} returned no text", provider=self.kind)
        return text


class OllamaProvider(AIProviderClient):
    """Local Ollama server"""

    kind = ProviderKind.OLLAMA.value
    default_model = "llama3.2:3b"

    def __init__(self, base_url: str = DEFAULT_OLLAMA_URL, **kwargs):
        super().__init__(**kwargs)
        self.base_url = base_url.rstrip("/")

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/api/generate"

    def build_payload(self, prompt: str, model: str) -> Dict[str, Any]:
        return {"model": model, "prompt": prompt, "stream": False}

    def extract_text(self, data: Dict[str, Any]) -> str:
        return data["response"]


class AnthropicProvider(AIProviderClient):
    """Anthropic Claude Messages API"""

    kind = ProviderKind.ANTHROPIC.value
    default_model = "claude-sonnet-4-20250514"
    requires_api_key = True
    max_tokens = 4096

    @property
    def endpoint(self) -> str:
        return ANTHROPIC_URL

    def build_headers(self, config: ProviderConfig) -> Dict[str, str]:
        return {
            "x-api-key": config.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }

    def build_payload(self, prompt: str, model: str) -> Dict[str, Any]:
        return {
            "model": model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }

    def extract_text(self, data: Dict[str, Any]) -> str:
        # Non-object blocks raise AttributeError, reported as an unexpected body
        return "".join(block["text"] for block in data["content"] if block.get("type", "text") == "text")


class OpenAIProvider(AIProviderClient):
    """OpenAI Chat Completions API"""

    kind = ProviderKind.OPENAI.value
    default_model = "gpt-4o-mini"
    requires_api_key = True

    @property
    def endpoint(self) -> str:
        return OPENAI_URL

    def build_headers(self, config: ProviderConfig) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {config.api_key}",
            "Content-Type": "application/json",
        }

    def build_payload(self, prompt: str, model: str) -> Dict[str, Any]:
        return {"model": model, "messages": [{"role": "user", "content": prompt}]}

    def extract_text(self, data: Dict[str, Any]) -> str:
        return data["choices"][0]["message"]["content"]


def build_provider_registry(
    ollama_url: str = DEFAULT_OLLAMA_URL,
    timeout: float = 120.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, AIProviderClient]:
    """kind -> provider client, for every supported backend"""
    providers = [
        OllamaProvider(base_url=ollama_url, timeout=timeout, transport=transport),
        AnthropicProvider(timeout=timeout, transport=transport),
        OpenAIProvider(timeout=timeout, transport=transport),
    ]
    return {provider.kind: provider for provider in providers}


async def call_provider(
    prompt: str,
    config: ProviderConfig,
    providers: Dict[str, AIProviderClient],
    notify: Optional[Notifier] = None,
) -> str:
    """Send a prompt to the provider named by config.kind

    The outcome is published through `notify` before returning or raising.
    """
    provider = providers.get(config.kind)
    if provider is None:
        error = ProviderError(
            f"Unknown AI provider: {config.kind}",
            reason=ProviderError.UNKNOWN_PROVIDER,
            provider=config.kind,
        )
        await notify_safely(notify, EventType.ERROR, str(error))
        raise error

    try:
        text = await provider.send_prompt(prompt, config)
    except ProviderError as e:
        logger.warning(f"[PROVIDER] {config.kind} failed: {e}")
        await notify_safely(notify, EventType.ERROR, f"AI provider {config.kind} failed: {e}")
        raise

    logger.info(f"[PROVIDER] {config.kind} responded with {len(text)} chars")
    await notify_safely(notify, EventType.STATUS, f"AI provider {config.kind} responded ({len(text)} chars)")
    return text


async def list_local_models(
    ollama_url: str = DEFAULT_OLLAMA_URL,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[Dict[str, Any]]:
    """Models installed on the local Ollama server"""
    try:
        async with httpx.AsyncClient(timeout=2.0, transport=transport) as client:
            response = await client.get(f"{ollama_url.rstrip('/')}/api/tags")
        response.raise_for_status()
        models = response.json().get("models", [])
    except (httpx.HTTPError, ValueError) as e:
        raise ProviderError(f"Ollama not available: {e}", provider=ProviderKind.OLLAMA.value) from e

    return [{"name": m["name"], "size": m.get("size", 0)} for m in models if "name" in m]
