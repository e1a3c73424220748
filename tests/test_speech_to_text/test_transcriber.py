"""Tests for the remote transcription client."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from meeting_mind.exceptions import (
    ConfigurationError,
    RemoteErrorKind,
    RetriesExhaustedError,
)
from meeting_mind.settings_store import MemorySettingsStore
from meeting_mind.speech_to_text.transcriber import TranscriptionClient

GROQ_URL = "https://api.groq.com/openai/v1"


def status_error(cls: type, status: int) -> openai.APIStatusError:
    request = httpx.Request("POST", f"{GROQ_URL}/audio/transcriptions")
    response = httpx.Response(status, request=request)
    return cls("failed", response=response, body=None)


def make_factory(create: AsyncMock) -> MagicMock:
    """Client factory whose clients call ``create`` for transcriptions."""
    client = MagicMock()
    client.audio.transcriptions.create = create
    return MagicMock(return_value=client)


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.mark.unit
class TestTranscriptionClient:
    """Test cases for TranscriptionClient.transcribe()."""

    @pytest.mark.asyncio
    async def test_groq_is_default_provider(self) -> None:
        """Test that Groq's endpoint and Whisper model are used by default."""
        create = AsyncMock(return_value=SimpleNamespace(text="  hello world "))
        factory = make_factory(create)
        settings = MemorySettingsStore({"groq_api_key": "gsk-test"})
        client = TranscriptionClient(settings, client_factory=factory)

        text = await client.transcribe(b"RIFF....")

        assert text == "hello world"
        factory.assert_called_once()
        assert factory.call_args.kwargs["api_key"] == "gsk-test"
        assert factory.call_args.kwargs["base_url"] == GROQ_URL
        request = create.call_args.kwargs
        assert request["model"] == "whisper-large-v3"
        assert request["file"] == ("audio.wav", b"RIFF....", "audio/wav")
        assert "language" not in request

    @pytest.mark.asyncio
    async def test_openai_provider(self) -> None:
        create = AsyncMock(return_value=SimpleNamespace(text="hi"))
        factory = make_factory(create)
        settings = MemorySettingsStore(
            {"transcription_provider": "openai", "openai_api_key": "sk-test"}
        )

        await TranscriptionClient(settings, client_factory=factory).transcribe(b"x")

        assert factory.call_args.kwargs["base_url"] is None
        assert create.call_args.kwargs["model"] == "whisper-1"

    @pytest.mark.asyncio
    async def test_language_hint_passed(self) -> None:
        """Test that the configured language reaches the request."""
        create = AsyncMock(return_value=SimpleNamespace(text="hola"))
        settings = MemorySettingsStore(
            {"groq_api_key": "k", "transcription_language": "es"}
        )
        client = TranscriptionClient(settings, client_factory=make_factory(create))

        await client.transcribe(b"x")
        assert create.call_args.kwargs["language"] == "es"

        await client.transcribe(b"x", language="fr")
        assert create.call_args.kwargs["language"] == "fr"

    @pytest.mark.asyncio
    async def test_missing_credential_fails_before_network(self) -> None:
        """Test that no client is built when the API key is missing."""
        create = AsyncMock()
        factory = make_factory(create)
        client = TranscriptionClient(MemorySettingsStore(), client_factory=factory)

        with pytest.raises(ConfigurationError) as exc_info:
            await client.transcribe(b"x")

        assert exc_info.value.key == "groq_api_key"
        factory.assert_not_called()
        create.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_provider(self) -> None:
        settings = MemorySettingsStore({"transcription_provider": "nope"})
        client = TranscriptionClient(settings, client_factory=MagicMock())

        with pytest.raises(ConfigurationError):
            await client.transcribe(b"x")

    @pytest.mark.asyncio
    async def test_credential_read_on_every_call(self) -> None:
        """Test that a key changed between calls is used by the next call."""
        create = AsyncMock(return_value=SimpleNamespace(text="ok then"))
        factory = make_factory(create)
        settings = MemorySettingsStore({"groq_api_key": "first"})
        client = TranscriptionClient(settings, client_factory=factory)

        await client.transcribe(b"x")
        settings.set("groq_api_key", "second")
        await client.transcribe(b"x")

        assert [c.kwargs["api_key"] for c in factory.call_args_list] == [
            "first",
            "second",
        ]

    @pytest.mark.asyncio
    async def test_transient_failures_retried(self) -> None:
        """Test that rate limits are retried with exponential backoff."""
        create = AsyncMock(
            side_effect=[
                status_error(openai.RateLimitError, 429),
                status_error(openai.InternalServerError, 500),
                SimpleNamespace(text="third time lucky"),
            ]
        )
        sleep = RecordingSleep()
        settings = MemorySettingsStore({"groq_api_key": "k"})
        client = TranscriptionClient(
            settings, client_factory=make_factory(create), sleep=sleep
        )

        assert await client.transcribe(b"x") == "third time lucky"
        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_exhausted_retries_report_last_error(self) -> None:
        create = AsyncMock(side_effect=status_error(openai.AuthenticationError, 401))
        settings = MemorySettingsStore({"groq_api_key": "bad"})
        client = TranscriptionClient(
            settings, client_factory=make_factory(create), sleep=RecordingSleep()
        )

        with pytest.raises(RetriesExhaustedError) as exc_info:
            await client.transcribe(b"x")

        assert exc_info.value.kind is RemoteErrorKind.UNAUTHORIZED
        assert exc_info.value.status_code == 401
        assert create.await_count == 3

    @pytest.mark.asyncio
    async def test_timeout_mapped(self) -> None:
        request = httpx.Request("POST", GROQ_URL)
        create = AsyncMock(side_effect=openai.APITimeoutError(request=request))
        settings = MemorySettingsStore({"groq_api_key": "k"})
        client = TranscriptionClient(
            settings,
            client_factory=make_factory(create),
            max_attempts=1,
            sleep=RecordingSleep(),
        )

        with pytest.raises(RetriesExhaustedError) as exc_info:
            await client.transcribe(b"x")

        assert exc_info.value.kind is RemoteErrorKind.TIMEOUT

    @pytest.mark.asyncio
    async def test_client_closed_after_request(self) -> None:
        create = AsyncMock(return_value=SimpleNamespace(text="hi"))
        factory = make_factory(create)
        settings = MemorySettingsStore({"groq_api_key": "k"})

        await TranscriptionClient(settings, client_factory=factory).transcribe(b"x")

        factory.return_value.__aexit__.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_client_closed_after_failure(self) -> None:
        create = AsyncMock(side_effect=status_error(openai.InternalServerError, 500))
        factory = make_factory(create)
        settings = MemorySettingsStore({"groq_api_key": "k"})
        client = TranscriptionClient(settings, client_factory=factory, sleep=RecordingSleep())

        with pytest.raises(RetriesExhaustedError):
            await client.transcribe(b"x")

        factory.return_value.__aexit__.assert_awaited_once()
