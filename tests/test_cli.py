"""Tests for the command-line interface."""

import argparse
from io import StringIO
from unittest.mock import AsyncMock, Mock, patch

import pytest

from meeting_mind.answers.interfaces import ConsoleSurface
from meeting_mind.answers.presentation import AnswerPresenter
from meeting_mind.main import (
    MeetingMindCLI,
    build_settings,
    create_argument_parser,
    handle_arguments,
    parse_assignment,
)
from meeting_mind.settings_store import MemorySettingsStore
from meeting_mind.speech_to_text.exceptions import MicrophoneNotFoundError
from meeting_mind.speech_to_text.models import TranscriptFragment


def make_service() -> Mock:
    """Service double with async lifecycle methods and a real surface list."""
    service = Mock()
    service.start_listening = AsyncMock()
    service.stop_listening = AsyncMock()
    service.context.surfaces = []
    service.context.add_surface = service.context.surfaces.append
    return service


@pytest.mark.unit
class TestArgumentParser:
    """Test cases for CLI argument parsing."""

    def test_help_lists_options(self) -> None:
        parser = create_argument_parser()

        with patch("sys.stdout", new_callable=StringIO) as mock_stdout:
            with pytest.raises(SystemExit) as exc_info:
                parser.parse_args(["--help"])

        assert exc_info.value.code == 0
        help_output = mock_stdout.getvalue()
        for option in ("--verbose", "--trace", "--list-devices", "--set", "--dismiss-seconds"):
            assert option in help_output

    def test_defaults(self) -> None:
        args = create_argument_parser().parse_args([])

        assert args.verbose is False
        assert args.trace is False
        assert args.set == []
        assert args.config is None
        assert args.dismiss_seconds is None
        assert args.no_transcript is False

    def test_combined_arguments(self) -> None:
        """Test parsing multiple arguments together."""
        args = create_argument_parser().parse_args(
            ["-v", "--set", "a=1", "--set", "b=x", "--dismiss-seconds", "0"]
        )

        assert args.verbose is True
        assert args.set == ["a=1", "b=x"]
        assert args.dismiss_seconds == 0.0


@pytest.mark.unit
class TestParseAssignment:
    """Test cases for parse_assignment()."""

    def test_string_value(self) -> None:
        assert parse_assignment("ai_provider=claude") == ("ai_provider", "claude")

    def test_scalar_values_decoded(self) -> None:
        assert parse_assignment("overlay_dismiss_seconds=0") == ("overlay_dismiss_seconds", 0)
        assert parse_assignment("flag=true") == ("flag", True)

    def test_structured_values_kept_raw(self) -> None:
        assert parse_assignment('x=["a"]') == ("x", '["a"]')

    def test_empty_value_removes(self) -> None:
        assert parse_assignment("groq_api_key=") == ("groq_api_key", None)

    def test_missing_separator(self) -> None:
        with pytest.raises(ValueError):
            parse_assignment("groq_api_key")
        with pytest.raises(ValueError):
            parse_assignment("=value")


@pytest.mark.unit
class TestHandleArguments:
    """Test cases for handle_arguments()."""

    def parse(self, argv: list[str]) -> argparse.Namespace:
        return create_argument_parser().parse_args(argv)

    @patch("meeting_mind.main.configure_logging")
    def test_no_arguments_continue(self, mock_logging) -> None:
        assert handle_arguments(self.parse([]), MemorySettingsStore()) == (True, True)
        mock_logging.assert_called_once_with(verbose=False, trace=False)

    @patch("meeting_mind.main.configure_logging")
    def test_set_saves_and_stops(self, mock_logging) -> None:
        settings = MemorySettingsStore({"groq_api_key": "old"})
        args = self.parse(["--set", "ai_provider=ollama", "--set", "groq_api_key="])

        with patch("builtins.print") as mock_print:
            result = handle_arguments(args, settings)

        assert result == (True, False)
        assert settings.get("ai_provider") == "ollama"
        assert settings.get("groq_api_key") is None
        mock_print.assert_any_call("✅ ai_provider saved.")
        mock_print.assert_any_call("✅ groq_api_key removed.")

    @patch("meeting_mind.main.configure_logging")
    def test_invalid_set_fails(self, mock_logging) -> None:
        with patch("builtins.print"):
            result = handle_arguments(self.parse(["--set", "nonsense"]), MemorySettingsStore())
        assert result == (False, False)

    @patch("meeting_mind.main.configure_logging")
    @patch("meeting_mind.main.list_devices", return_value=True)
    def test_list_devices_stops(self, mock_list, mock_logging) -> None:
        result = handle_arguments(self.parse(["--list-devices"]), MemorySettingsStore())

        assert result == (True, False)
        mock_list.assert_called_once()

    def test_build_settings_dismiss_override(self, tmp_path) -> None:
        args = self.parse(
            ["--config", str(tmp_path / "config.json"), "--dismiss-seconds", "5"]
        )
        settings = build_settings(args)

        assert settings.path == tmp_path / "config.json"
        assert settings.get("overlay_dismiss_seconds") == 5.0


@pytest.mark.unit
class TestMeetingMindCLI:
    """Test cases for the MeetingMindCLI class."""

    def test_surfaces_registered(self) -> None:
        service = make_service()
        cli = MeetingMindCLI(MemorySettingsStore(), service=service)

        assert isinstance(service.context.surfaces[0], AnswerPresenter)
        assert isinstance(service.context.surfaces[1], ConsoleSurface)
        assert cli.presenter is service.context.surfaces[0]

    @pytest.mark.asyncio
    async def test_start_listening_success(self) -> None:
        service = make_service()
        cli = MeetingMindCLI(MemorySettingsStore(), service=service)

        with patch("builtins.print") as mock_print:
            await cli.start_listening()

        service.set_fragment_callback.assert_called_once()
        service.set_outcome_callback.assert_called_once()
        service.start_listening.assert_awaited_once()
        assert cli._running is True
        mock_print.assert_any_call("🎤 Starting MeetingMind...")

    @pytest.mark.asyncio
    async def test_start_listening_capture_error(self) -> None:
        """Test that a missing microphone is reported without raising."""
        service = make_service()
        service.start_listening.side_effect = MicrophoneNotFoundError("No microphone found")
        cli = MeetingMindCLI(MemorySettingsStore(), service=service)

        with patch("builtins.print") as mock_print:
            await cli.start_listening()

        assert cli._running is False
        mock_print.assert_any_call("❌ Error starting audio capture: No microphone found")

    @pytest.mark.asyncio
    async def test_stop_listening(self) -> None:
        service = make_service()
        cli = MeetingMindCLI(MemorySettingsStore(), service=service)
        cli._running = True

        with patch("builtins.print"):
            await cli.stop_listening()

        service.stop_listening.assert_awaited_once()
        assert cli._running is False

    def test_fragment_printing(self) -> None:
        cli = MeetingMindCLI(MemorySettingsStore(), service=make_service())
        fragment = TranscriptFragment(text="What is Raft?", timestamp=1.0, sequence=0)

        with patch("builtins.print") as mock_print:
            cli._on_fragment(fragment, "What is Raft?")

        mock_print.assert_called_once_with("[1] What is Raft?")

    def test_fragment_printing_disabled(self) -> None:
        cli = MeetingMindCLI(
            MemorySettingsStore(), service=make_service(), show_transcript=False
        )
        fragment = TranscriptFragment(text="What is Raft?", timestamp=1.0, sequence=0)

        with patch("builtins.print") as mock_print:
            cli._on_fragment(fragment, "What is Raft?")

        mock_print.assert_not_called()
