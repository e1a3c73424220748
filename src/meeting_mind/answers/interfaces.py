"""Display surface interface and the console implementation used by the CLI."""

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable

from ..logging_utils import get_logger
from .models import StructuredAnswer

logger = get_logger(__name__)


class DisplaySurface(ABC):
    """A window (or console) that shows answers to the user."""

    @abstractmethod
    def question_processing(self) -> None:
        """An answer request was submitted."""

    @abstractmethod
    def new_answer(self, answer: StructuredAnswer) -> None:
        """A displayable answer arrived."""

    @abstractmethod
    def dismiss(self) -> None:
        """The current answer is no longer shown."""

    @abstractmethod
    def show_error(self, message: str) -> None:
        """Show a dismissible notice, distinct from an answer."""


def notify_surfaces(
    surfaces: Iterable[DisplaySurface],
    action: Callable[[DisplaySurface], None],
    event: str,
) -> None:
    """Deliver one notification to every surface; a failing surface is logged and skipped."""
    for surface in list(surfaces):
        try:
            action(surface)
        except Exception as e:
            logger.error(f"❌ {type(surface).__name__} failed handling {event}: {e}")


class ConsoleSurface(DisplaySurface):
    """Prints answers to standard output."""

    def __init__(self, printer: Callable[[str], None] = print) -> None:
        self._print = printer
        self.answer_count = 0

    def question_processing(self) -> None:
        self._print("💭 Thinking...")

    def new_answer(self, answer: StructuredAnswer) -> None:
        self.answer_count += 1
        self._print(f"\n❓ [{self.answer_count}] {answer.question}")
        if answer.answer:
            self._print(answer.answer)
        if answer.code_snippet:
            label = f" ({answer.language})" if answer.language else ""
            self._print(f"\n--- code{label} ---\n{answer.code_snippet}\n---")

    def dismiss(self) -> None:
        logger.debug("Answer dismissed")

    def show_error(self, message: str) -> None:
        self._print(f"⚠️ {message}")
