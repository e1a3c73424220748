"""Overlay state machine: idle, loading, showing, with auto-dismiss."""

from collections.abc import Callable

from ..logging_utils import get_logger
from ..scheduling import TaskScheduler
from ..settings_store import SettingsStore
from .config import DEFAULT_DISMISS_SECONDS
from .interfaces import DisplaySurface
from .models import PresentationState, StructuredAnswer

logger = get_logger(__name__)

DISMISS_TIMER = "dismiss"

TransitionListener = Callable[
    [PresentationState, PresentationState, StructuredAnswer | None], None
]


def copy_text(answer: StructuredAnswer | None) -> str:
    """Question, answer and code snippet separated by blank lines, empties skipped."""
    if answer is None:
        return ""
    parts = [answer.question, answer.answer, answer.code_snippet]
    return "\n\n".join(p for p in parts if p)


class AnswerPresenter(DisplaySurface):
    """
    Tracks what the answer overlay shows.

    Registered as a display surface, it follows the orchestrator's
    notifications: ``question_processing`` moves to loading (superseding any
    shown answer), ``new_answer`` moves to showing and starts the auto-dismiss
    timer, ``dismiss`` returns to idle. At most one dismiss timer exists, and
    leaving showing for any reason cancels it.
    """

    def __init__(
        self,
        settings: SettingsStore,
        scheduler: TaskScheduler | None = None,
        clipboard: Callable[[str], None] | None = None,
    ) -> None:
        """
        Initialize the presenter.

        Args:
            settings: Source of ``overlay_dismiss_seconds``, read on each answer
            scheduler: Owner of the dismiss timer
            clipboard: Receives the text of a copy action
        """
        self.settings = settings
        self.scheduler = scheduler or TaskScheduler(owner="presenter")
        self._clipboard = clipboard
        self._listeners: list[TransitionListener] = []
        self.state = PresentationState.IDLE
        self.current_answer: StructuredAnswer | None = None
        self.notice: str | None = None

    def add_listener(self, listener: TransitionListener) -> None:
        self._listeners.append(listener)

    def dismiss_seconds(self) -> float:
        """Configured auto-dismiss duration; 0 or less means never."""
        value = self.settings.get("overlay_dismiss_seconds", DEFAULT_DISMISS_SECONDS)
        try:
            return float(value)
        except (TypeError, ValueError):
            logger.warning(
                f"⚠️ Invalid overlay_dismiss_seconds '{value}', "
                f"using {DEFAULT_DISMISS_SECONDS:.0f}s"
            )
            return DEFAULT_DISMISS_SECONDS

    @property
    def dismiss_pending(self) -> bool:
        return self.scheduler.is_scheduled(DISMISS_TIMER)

    def _transition(
        self, new_state: PresentationState, answer: StructuredAnswer | None = None
    ) -> None:
        previous = self.state
        if previous is PresentationState.SHOWING:
            self.scheduler.cancel(DISMISS_TIMER)

        self.state = new_state
        self.current_answer = answer
        logger.debug(f"Overlay {previous.value} → {new_state.value}")

        for listener in list(self._listeners):
            try:
                listener(previous, new_state, answer)
            except Exception as e:
                logger.error(f"❌ Presentation listener failed: {e}")

    def question_processing(self) -> None:
        if self.state is PresentationState.SHOWING:
            self._transition(PresentationState.IDLE)
        if self.state is PresentationState.IDLE:
            self.notice = None
            self._transition(PresentationState.LOADING)

    def new_answer(self, answer: StructuredAnswer) -> None:
        if not answer.is_displayable:
            logger.debug("Ignoring answer without a question")
            return

        self._transition(PresentationState.SHOWING, answer)

        seconds = self.dismiss_seconds()
        if seconds > 0:
            self.scheduler.schedule_once(DISMISS_TIMER, seconds, self._auto_dismiss)
            logger.trace(f"Auto-dismiss in {seconds:.1f}s")

    def dismiss(self) -> None:
        if self.state is not PresentationState.IDLE:
            self._transition(PresentationState.IDLE)

    def show_error(self, message: str) -> None:
        self.notice = message
        logger.debug(f"Notice: {message}")

    def _auto_dismiss(self) -> None:
        if self.state is PresentationState.SHOWING:
            logger.debug("⏱️ Auto-dismissing answer")
            self._transition(PresentationState.IDLE)

    def dismiss_requested(self) -> None:
        """User dismissed the overlay (or its notice)."""
        self.notice = None
        self.dismiss()

    def copy_text(self) -> str:
        return copy_text(self.current_answer)

    def copy_requested(self) -> str:
        """
        Copy the shown answer.

        Returns:
            The copied text (empty when nothing is shown)
        """
        text = self.copy_text()
        if text and self._clipboard is not None:
            self._clipboard(text)
        return text

    async def close(self) -> None:
        """Cancel the dismiss timer."""
        await self.scheduler.shutdown()
