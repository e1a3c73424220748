"""Command-line interface for the live answer pipeline."""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from .answers.interfaces import ConsoleSurface
from .answers.models import AnswerOutcome
from .answers.presentation import AnswerPresenter
from .logging_utils import configure_logging
from .settings_store import SettingsStore
from .speech_to_text.audio_capture import (
    AudioCapture,
    AudioCaptureError,
    is_loopback_device,
)
from .speech_to_text.models import TranscriptFragment
from .speech_to_text.service import LiveAnswerService
from .speech_to_text.signal_buffer import SignalBuffer


class MeetingMindCLI:
    """Command-line front end: prints the transcript and the answers."""

    def __init__(
        self,
        settings: SettingsStore,
        service: LiveAnswerService | None = None,
        show_transcript: bool = True,
    ) -> None:
        """
        Initialize the CLI.

        Args:
            settings: Settings store used by the pipeline
            service: Optional LiveAnswerService instance. If None, creates a new one.
            show_transcript: Whether to print each transcript fragment
        """
        self._settings = settings
        self._service = service or LiveAnswerService(settings)
        self._show_transcript = show_transcript
        self._running = False
        self._fragment_count = 0

        self.presenter = AnswerPresenter(settings)
        self.console = ConsoleSurface()
        self._service.context.add_surface(self.presenter)
        self._service.context.add_surface(self.console)

    async def start_listening(self) -> None:
        """Start the pipeline."""
        try:
            print("🎤 Starting MeetingMind...")

            self._service.set_fragment_callback(self._on_fragment)
            self._service.set_outcome_callback(self._on_outcome)
            await self._service.start_listening()

            self._running = True
            provider = self._settings.get("ai_provider")
            print(f"✅ Listening. Answers from {provider} appear after each pause.")
            print("   Press Ctrl+C to stop.")

        except AudioCaptureError as e:
            self._running = False
            print(f"❌ Error starting audio capture: {e}")

    async def stop_listening(self) -> None:
        """Stop the pipeline."""
        if not self._running:
            return

        print("🛑 Stopping...")
        await self._service.stop_listening()
        await self.presenter.close()
        self._running = False

    def _on_fragment(self, fragment: TranscriptFragment, window: str) -> None:
        self._fragment_count += 1
        if self._show_transcript:
            print(f"[{self._fragment_count}] {fragment.text}")

    def _on_outcome(self, outcome: AnswerOutcome) -> None:
        if outcome.error:
            logging.debug(f"Answer cycle failed ({outcome.error_kind}): {outcome.error}")

    async def run(self) -> None:
        """
        Main CLI run loop.

        Handles startup, main loop, and graceful shutdown.
        """
        try:
            await self.start_listening()

            while self._running:
                await asyncio.sleep(0.1)

        except (KeyboardInterrupt, asyncio.CancelledError):
            print("\n👋 Goodbye!")
        finally:
            if self._running:
                await self.stop_listening()


async def main(settings: SettingsStore, show_transcript: bool = True) -> None:
    """Main entry point for the CLI application."""
    cli = MeetingMindCLI(settings, show_transcript=show_transcript)
    try:
        await cli.run()
    except KeyboardInterrupt:
        pass


def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        description="MeetingMind - live answers to questions heard in a meeting",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  meeting-mind                                  # Start with saved settings
  meeting-mind --verbose                        # Enable verbose logging
  meeting-mind --trace                          # Enable trace logging
  meeting-mind --list-devices                   # Show audio input devices
  meeting-mind --set groq_api_key=gsk_...       # Save a setting and exit
  meeting-mind --set ai_provider=claude         # Switch answer provider
  meeting-mind --dismiss-seconds 0              # Keep answers until dismissed

Controls:
  Ctrl+C    - Stop and exit gracefully
        """,
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging and debug information",
    )

    parser.add_argument(
        "--trace",
        action="store_true",
        help="Enable trace logging (most verbose, includes per-chunk detail)",
    )

    parser.add_argument(
        "--list-devices",
        action="store_true",
        help="List audio input devices and exit",
    )

    parser.add_argument(
        "--set",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Save a setting (repeatable) and exit; an empty value removes it",
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        metavar="PATH",
        help="Settings file (default: ~/.meeting-mind/config.json)",
    )

    parser.add_argument(
        "--dismiss-seconds",
        type=float,
        default=None,
        metavar="N",
        help="Auto-dismiss answers after N seconds for this run (0 = never)",
    )

    parser.add_argument(
        "--no-transcript",
        action="store_true",
        help="Do not print transcript fragments",
    )

    return parser


def parse_assignment(assignment: str) -> tuple[str, Any]:
    """
    Parse a ``KEY=VALUE`` pair.

    Values that decode as JSON (numbers, booleans, null) are stored decoded,
    everything else as a string. An empty value means removal (``None``).

    Raises:
        ValueError: If there is no '=' or the key is empty
    """
    key, sep, raw = assignment.partition("=")
    key = key.strip()
    if not sep or not key:
        raise ValueError(f"Expected KEY=VALUE, got '{assignment}'")

    raw = raw.strip()
    if not raw:
        return key, None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = raw
    if isinstance(value, (dict, list)):
        value = raw
    return key, value


def list_devices() -> bool:
    """
    Print the audio input devices.

    Returns:
        True if the devices could be listed
    """
    try:
        devices = AudioCapture(SignalBuffer()).list_input_devices()
    except Exception as e:
        logging.error(f"Error listing audio devices: {e}")
        return False

    if not devices:
        print("No audio input devices found.")
        return True

    for device in devices:
        marker = "  (system audio)" if is_loopback_device(device.name) else ""
        print(f"[{device.index}] {device.name}{marker}")
    return True


def build_settings(args: argparse.Namespace) -> SettingsStore:
    """Create the settings store for the parsed arguments."""
    overrides: dict[str, Any] = {}
    if args.dismiss_seconds is not None:
        overrides["overlay_dismiss_seconds"] = args.dismiss_seconds
    return SettingsStore(args.config, overrides=overrides)


def handle_arguments(
    args: argparse.Namespace, settings: SettingsStore
) -> tuple[bool, bool]:
    """
    Handle parsed command-line arguments.

    Args:
        args: Parsed arguments from argparse
        settings: Settings store the assignments are written to

    Returns:
        Tuple of (success, should_continue):
        - success: True if all operations succeeded, False if any failed
        - should_continue: True if execution should continue, False if it should stop
    """
    configure_logging(verbose=args.verbose, trace=args.trace)

    if args.set:
        try:
            updates = dict(parse_assignment(a) for a in args.set)
            settings.update(updates)
        except (ValueError, OSError) as e:
            print(f"❌ Could not save settings: {e}")
            return False, False
        for key, value in updates.items():
            print(f"✅ {key} {'removed' if value is None else 'saved'}.")
        return True, False

    if args.list_devices:
        return list_devices(), False

    return True, True


def cli_entry_with_args() -> None:
    """CLI entry point with argument parsing."""
    parser = create_argument_parser()

    try:
        args = parser.parse_args()
        settings = build_settings(args)

        success, should_continue = handle_arguments(args, settings)

        if not success:
            sys.exit(1)

        if not should_continue:
            sys.exit(0)

        asyncio.run(main(settings, show_transcript=not args.no_transcript))

    except KeyboardInterrupt:
        pass
    except SystemExit:
        raise
    except Exception as e:
        logging.error(f"Unexpected error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    cli_entry_with_args()
