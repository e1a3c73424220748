"""Answer generation clients for the supported model providers."""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

import httpx
import ollama
import openai

from ..exceptions import ConfigurationError, RemoteErrorKind, TransientRemoteError
from ..logging_utils import get_logger
from ..remote_errors import from_httpx_error, from_openai_error, kind_for_status
from ..settings_store import SettingsStore
from .config import AI_PROVIDERS, ANTHROPIC_API_VERSION, DEFAULT_AI_PROVIDER, REQUEST_TIMEOUT

logger = get_logger(__name__)


class AnswerGenerationClient(ABC):
    """A chat model that turns a system prompt and user content into text."""

    provider: str = ""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_content: str,
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        """
        Run one completion.

        Args:
            system_prompt: Instructions for the model
            user_content: The user message
            model: Provider model name
            max_tokens: Output token limit
            temperature: Sampling temperature

        Returns:
            Raw model output text

        Raises:
            TransientRemoteError: On network, timeout or provider failures
        """

    async def aclose(self) -> None:
        """Release connections held by the client."""
        pass


class OpenAICompatibleClient(AnswerGenerationClient):
    """Chat completions through the ``openai`` SDK (OpenAI and Groq)."""

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        provider: str = "openai",
        timeout: float = REQUEST_TIMEOUT,
        client_factory: Callable[..., Any] = openai.AsyncOpenAI,
    ) -> None:
        self.provider = provider
        self._client = client_factory(
            api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0
        )

    async def complete(
        self,
        system_prompt: str,
        user_content: str,
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_content},
                ],
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except openai.OpenAIError as e:
            raise from_openai_error(e, self.provider) from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def aclose(self) -> None:
        await self._client.close()


class ClaudeClient(AnswerGenerationClient):
    """Anthropic Messages API over ``httpx``."""

    provider = "claude"

    def __init__(
        self,
        api_key: str,
        base_url: str = AI_PROVIDERS["claude"]["base_url"],
        timeout: float = REQUEST_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def complete(
        self,
        system_prompt: str,
        user_content: str,
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_API_VERSION,
            "content-type": "application/json",
        }
        payload = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_content}],
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    f"{self.base_url}/v1/messages", headers=headers, json=payload
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            raise from_httpx_error(e, self.provider) from e
        except ValueError as e:
            raise TransientRemoteError(f"claude returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise TransientRemoteError("claude returned an unexpected response body")
        blocks = data.get("content") or []
        return "".join(
            block.get("text", "") for block in blocks if block.get("type") == "text"
        )


class OllamaClient(AnswerGenerationClient):
    """Local models served by Ollama."""

    provider = "ollama"

    def __init__(
        self,
        base_url: str = AI_PROVIDERS["ollama"]["base_url"],
        timeout: float = REQUEST_TIMEOUT,
        client: Any = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self._owns_client = client is None
        self._client = client or ollama.AsyncClient(host=base_url)

    async def complete(
        self,
        system_prompt: str,
        user_content: str,
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        try:
            response = await asyncio.wait_for(
                self._client.chat(
                    model=model,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_content},
                    ],
                    options={"temperature": temperature, "num_predict": max_tokens},
                ),
                timeout=self.timeout,
            )
        except TimeoutError as e:
            raise TransientRemoteError(
                "ollama request timed out", RemoteErrorKind.TIMEOUT
            ) from e
        except ollama.ResponseError as e:
            raise TransientRemoteError(
                f"ollama error: {e.error}",
                kind_for_status(e.status_code),
                status_code=e.status_code,
            ) from e
        except ollama.RequestError as e:
            raise TransientRemoteError(f"ollama rejected the request: {e.error}") from e
        except (ConnectionError, httpx.HTTPError) as e:
            raise TransientRemoteError(
                f"ollama connection failed: {e}", RemoteErrorKind.NETWORK
            ) from e

        try:
            return response["message"]["content"] or ""
        except (KeyError, TypeError) as e:
            raise TransientRemoteError(f"ollama returned a malformed reply: {e}") from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.close()


def resolve_provider(settings: SettingsStore) -> str:
    """Read and validate the configured answer provider."""
    provider = settings.get("ai_provider", DEFAULT_AI_PROVIDER)
    if provider not in AI_PROVIDERS:
        raise ConfigurationError(f"Unknown AI provider '{provider}'", key="ai_provider")
    return provider


def create_client(
    settings: SettingsStore, provider: str | None = None
) -> tuple[AnswerGenerationClient, str]:
    """
    Build the client and model name for the configured provider.

    Args:
        settings: Settings store, read now
        provider: Provider name; defaults to the configured one

    Returns:
        (client, model) pair

    Raises:
        ConfigurationError: If the provider is unknown or its credential is missing
    """
    provider = provider or resolve_provider(settings)
    provider_config = AI_PROVIDERS.get(provider)
    if provider_config is None:
        raise ConfigurationError(f"Unknown AI provider '{provider}'", key="ai_provider")

    model = settings.get(provider_config["model_key"]) or provider_config["model"]

    if provider == "ollama":
        base_url = settings.get("ollama_base_url") or provider_config["base_url"]
        return OllamaClient(base_url=base_url), model

    api_key = settings.get(provider_config["credential_key"])
    if not api_key:
        raise ConfigurationError(
            f"{provider} API key not set", key=provider_config["credential_key"]
        )

    if provider == "claude":
        return ClaudeClient(api_key=api_key), model
    client = OpenAICompatibleClient(
        api_key=api_key, base_url=provider_config["base_url"], provider=provider
    )
    return client, model
