"""Data models for answer requests, parse results and presentation."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


@dataclass
class StructuredAnswer:
    """The only answer shape handed to presentation; text fields are plain strings."""

    has_question: bool = False
    question: str = ""
    answer: str = ""
    code_snippet: str | None = None
    language: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the wire field names."""
        return {
            "hasQuestion": self.has_question,
            "question": self.question,
            "answer": self.answer,
            "codeSnippet": self.code_snippet,
            "language": self.language,
        }

    @property
    def is_displayable(self) -> bool:
        return self.has_question


@dataclass
class AnswerRequest:
    """One answer request: the unanswered utterance and the live transcript."""

    utterance: str
    context: str
    session: int | None = None

    def user_content(self) -> str:
        """Render the user message sent to the model."""
        return f"Transcript:\n{self.context}\n\nLast utterance: {self.utterance}"


@dataclass
class Parsed:
    """Model output parsed into an answer as-is (after flattening)."""

    answer: StructuredAnswer


@dataclass
class Synthesized:
    """Answer reconstructed from the utterance and loose model text."""

    answer: StructuredAnswer
    reason: str = ""


@dataclass
class Unparseable:
    """Model output with nothing usable in it."""

    raw_text: str


ParseResult = Parsed | Synthesized | Unparseable


class PresentationState(Enum):
    """States of the answer overlay."""

    IDLE = "idle"
    LOADING = "loading"
    SHOWING = "showing"


class AnswerErrorKind(Enum):
    """Reportable reasons an answer cycle produced no answer."""

    CONFIGURATION = "configuration"
    BUSY = "busy"
    REMOTE = "remote"
    RETRIES_EXHAUSTED = "retries_exhausted"
    UNEXPECTED = "unexpected"


@dataclass
class AnswerOutcome:
    """Result of one answer cycle as reported by the orchestrator."""

    answer: StructuredAnswer | None = None
    error: str | None = None
    error_kind: AnswerErrorKind | None = None
    remote_kind: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None
