"""Explicit pipeline state shared by the components of one pipeline."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .settings_store import SettingsStore
from .speech_to_text.signal_buffer import SignalBuffer
from .speech_to_text.transcript import UtteranceAccumulator

if TYPE_CHECKING:
    from .answers.interfaces import DisplaySurface


@dataclass
class PipelineContext:
    """
    Everything mutable that the pipeline components share.

    ``session`` increases on every capture start; work started under an older
    session (or after capture stopped) compares against it and discards its
    result.
    """

    settings: SettingsStore
    buffer: SignalBuffer = field(default_factory=SignalBuffer)
    accumulator: UtteranceAccumulator = field(default_factory=UtteranceAccumulator)
    surfaces: list["DisplaySurface"] = field(default_factory=list)
    session: int = 0
    listening: bool = False
    answer_in_flight: bool = False

    def begin_session(self) -> int:
        """Start a capture session and return its number."""
        self.session += 1
        self.listening = True
        return self.session

    def end_session(self) -> None:
        """Stop the current session and release buffered audio."""
        self.listening = False
        self.buffer.clear()

    def is_current(self, session: int | None) -> bool:
        """True if work tagged with ``session`` should still be delivered."""
        if session is None:
            return True
        return self.listening and session == self.session

    def add_surface(self, surface: "DisplaySurface") -> None:
        if surface not in self.surfaces:
            self.surfaces.append(surface)

    def remove_surface(self, surface: "DisplaySurface") -> None:
        if surface in self.surfaces:
            self.surfaces.remove(surface)
