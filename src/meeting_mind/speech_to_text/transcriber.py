"""Remote speech-to-text through OpenAI-compatible transcription endpoints."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import openai

from ..exceptions import ConfigurationError
from ..logging_utils import get_logger
from ..remote_errors import from_openai_error
from ..retry import with_retry
from ..settings_store import SettingsStore
from .config import (
    DEFAULT_TRANSCRIPTION_PROVIDER,
    DEFAULT_TRANSCRIPTION_TIMEOUT,
    TRANSCRIPTION_MAX_ATTEMPTS,
    TRANSCRIPTION_PROVIDERS,
)
from .exceptions import TranscriptionError

logger = get_logger(__name__)

ClientFactory = Callable[..., Any]


class TranscriptionClient:
    """
    Transcribes WAV payloads with Groq or OpenAI Whisper models.

    The provider, its credential and the language hint are read from the
    settings store on every call, so changing them takes effect on the next
    segment.
    """

    def __init__(
        self,
        settings: SettingsStore,
        timeout: float = DEFAULT_TRANSCRIPTION_TIMEOUT,
        max_attempts: int = TRANSCRIPTION_MAX_ATTEMPTS,
        client_factory: ClientFactory = openai.AsyncOpenAI,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the client.

        Args:
            settings: Settings store holding provider choice and API keys
            timeout: Per-request timeout in seconds
            max_attempts: Attempts per segment, with exponential backoff
            client_factory: Builds the async SDK client
            sleep: Awaitable delay used between attempts
        """
        self.settings = settings
        self.timeout = timeout
        self.max_attempts = max_attempts
        self._client_factory = client_factory
        self._sleep = sleep

    def _resolve_provider(self) -> tuple[str, dict[str, Any], str]:
        provider = self.settings.get(
            "transcription_provider", DEFAULT_TRANSCRIPTION_PROVIDER
        )
        provider_config = TRANSCRIPTION_PROVIDERS.get(provider)
        if provider_config is None:
            raise ConfigurationError(
                f"Unknown transcription provider '{provider}'",
                key="transcription_provider",
            )

        api_key = self.settings.get(provider_config["credential_key"])
        if not api_key:
            raise ConfigurationError(
                f"{provider} API key not set for transcription",
                key=provider_config["credential_key"],
            )
        return provider, provider_config, api_key

    async def transcribe(self, audio_bytes: bytes, language: str | None = None) -> str:
        """
        Transcribe one WAV payload.

        Args:
            audio_bytes: Mono 16-bit WAV file contents
            language: ISO language hint; falls back to the configured one

        Returns:
            Transcribed text, stripped

        Raises:
            ConfigurationError: If the provider or its credential is missing
            RetriesExhaustedError: If every attempt failed
        """
        provider, provider_config, api_key = self._resolve_provider()
        if language is None:
            language = self.settings.get("transcription_language")

        client = self._client_factory(
            api_key=api_key,
            base_url=provider_config["base_url"],
            timeout=self.timeout,
            max_retries=0,
        )

        model = provider_config["model"]
        request: dict[str, Any] = {
            "model": model,
            "file": ("audio.wav", audio_bytes, "audio/wav"),
        }
        if language:
            request["language"] = language

        async def attempt() -> str:
            try:
                response = await client.audio.transcriptions.create(**request)
            except openai.OpenAIError as e:
                raise from_openai_error(e, provider) from e
            return _response_text(response)

        logger.trace(f"Sending {len(audio_bytes)} bytes to {provider} ({model})")
        async with client:
            text = await with_retry(
                attempt,
                max_attempts=self.max_attempts,
                sleep=self._sleep,
                label=f"{provider} transcription",
            )
        return text.strip()


def _response_text(response: Any) -> str:
    if isinstance(response, str):
        return response
    text = getattr(response, "text", None)
    if text is None and isinstance(response, dict):
        text = response.get("text")
    if text is None:
        raise TranscriptionError("Transcription response has no text")
    return text
