"""Turn raw model output into a StructuredAnswer."""

import json
import re
from typing import Any

from ..exceptions import MalformedResponseError
from ..logging_utils import get_logger
from .config import MAX_ANSWER_CHARS, MAX_QUESTION_CHARS, QUESTION_PREFIXES
from .models import Parsed, ParseResult, StructuredAnswer, Synthesized, Unparseable

logger = get_logger(__name__)

_QUESTION_PREFIX_RE = re.compile(
    r"^(" + "|".join(re.escape(p) for p in QUESTION_PREFIXES) + r")", re.IGNORECASE
)


def flatten_to_string(value: Any) -> str:
    """
    Render any JSON value as plain text.

    Strings pass through, ``None`` becomes an empty string, lists are joined
    with newlines and mappings become ``key`` lines followed by their own
    flattened value, separated by blank lines.

    Args:
        value: Decoded JSON value

    Returns:
        Plain text
    """
    if isinstance(value, str):
        return value
    if value is None:
        return ""
    if isinstance(value, list):
        return "\n".join(flatten_to_string(v) for v in value)
    if isinstance(value, dict):
        return "\n\n".join(f"{k}\n{flatten_to_string(v)}" for k, v in value.items())
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def find_json_span(text: str) -> tuple[int, int] | None:
    """Return (start, end) of the span from the first '{' to the last '}'."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return None
    return start, end + 1


def extract_json_object(text: str) -> dict[str, Any]:
    """
    Parse the JSON object embedded in model output.

    Args:
        text: Raw model output, possibly with prose around the object

    Returns:
        The decoded object

    Raises:
        MalformedResponseError: If there is no decodable object
    """
    span = find_json_span(text or "")
    if span is None:
        raise MalformedResponseError("No JSON object in model output")

    try:
        data = json.loads(text[span[0] : span[1]])
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"Invalid JSON in model output: {e}") from e

    if not isinstance(data, dict):
        raise MalformedResponseError("Model output JSON is not an object")
    return data


def looks_like_question(utterance: str) -> bool:
    """True if the utterance contains '?' or opens with an interrogative word."""
    if not utterance:
        return False
    return "?" in utterance or bool(_QUESTION_PREFIX_RE.match(utterance.strip()))


def answer_from_dict(data: dict[str, Any]) -> StructuredAnswer:
    """Build an answer from a decoded object, flattening structured fields."""
    code = data.get("codeSnippet")
    language = data.get("language")
    return StructuredAnswer(
        has_question=bool(data.get("hasQuestion")),
        question=flatten_to_string(data.get("question")),
        answer=flatten_to_string(data.get("answer")),
        code_snippet=None if code is None else flatten_to_string(code),
        language=None if language is None else str(language),
    )


def _remaining_text(text: str) -> str:
    span = find_json_span(text)
    remainder = text[span[1] :] if span else text
    return remainder.strip()[:MAX_ANSWER_CHARS] or text[:MAX_ANSWER_CHARS]


def parse_answer_response(text: str, utterance: str) -> ParseResult:
    """
    Parse model output for an utterance.

    Args:
        text: Raw model output
        utterance: The utterance the answer was requested for

    Returns:
        Parsed when the object is usable as-is, Synthesized when the answer had
        to be reconstructed, Unparseable when there is nothing to show
    """
    text = text or ""
    utterance = utterance or ""

    try:
        data = extract_json_object(text)
    except MalformedResponseError as e:
        logger.debug(f"⚠️ {e}, synthesizing answer")
        if not text.strip() and not looks_like_question(utterance):
            return Unparseable(raw_text=text)
        return Synthesized(
            answer=StructuredAnswer(
                has_question=True,
                question=utterance.strip()[:MAX_QUESTION_CHARS],
                answer=_remaining_text(text),
            ),
            reason=str(e),
        )

    answer = answer_from_dict(data)
    if not answer.has_question and looks_like_question(utterance):
        answer.has_question = True
        answer.question = answer.question or utterance.strip()[:MAX_QUESTION_CHARS]
        answer.answer = answer.answer or _remaining_text(text)
        return Synthesized(answer=answer, reason="utterance resembles a question")

    return Parsed(answer=answer)
