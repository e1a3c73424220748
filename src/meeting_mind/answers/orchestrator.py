"""Answer orchestration: one request at a time, retried, parsed and broadcast."""

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any

from ..context import PipelineContext
from ..exceptions import (
    ConcurrencyRejection,
    ConfigurationError,
    RetriesExhaustedError,
    TransientRemoteError,
)
from ..logging_utils import get_logger
from ..retry import BASE_RETRY_DELAY, MAX_ATTEMPTS, with_retry
from ..settings_store import SettingsStore
from .clients import AnswerGenerationClient, create_client
from .config import CONTEXT_FALLBACK_CHARS, MAX_TOKENS, SYSTEM_PROMPT, TEMPERATURE
from .interfaces import notify_surfaces
from .models import (
    AnswerErrorKind,
    AnswerOutcome,
    AnswerRequest,
    StructuredAnswer,
    Unparseable,
)
from .parsing import parse_answer_response

logger = get_logger(__name__)

ClientFactory = Callable[[SettingsStore], tuple[AnswerGenerationClient, str]]


def build_request(
    utterance: str, context: str, session: int | None = None
) -> AnswerRequest | None:
    """
    Normalize an utterance and transcript into a request.

    An empty utterance falls back to the tail of the transcript and an empty
    transcript falls back to the utterance.

    Returns:
        The request, or None when both are empty after trimming
    """
    utterance = (utterance or "").strip()
    context = (context or "").strip()
    if not utterance and not context:
        return None
    return AnswerRequest(
        utterance=utterance or context[-CONTEXT_FALLBACK_CHARS:],
        context=context or utterance,
        session=session,
    )


class AnswerOrchestrator:
    """
    Turns an utterance plus transcript into a displayed answer.

    At most one request is in flight; the provider, model and credential are
    resolved from settings on every request.
    """

    def __init__(
        self,
        context: PipelineContext,
        client_factory: ClientFactory = create_client,
        max_attempts: int = MAX_ATTEMPTS,
        base_delay: float = BASE_RETRY_DELAY,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            context: Pipeline state (settings, surfaces, in-flight flag)
            client_factory: Builds (client, model) from settings
            max_attempts: Attempts per request
            base_delay: Backoff delay after the first failed attempt
            sleep: Awaitable delay used between attempts
        """
        self.context = context
        self._client_factory = client_factory
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self._sleep = sleep
        self.requests_started = 0
        self.answers_shown = 0

    @property
    def in_flight(self) -> bool:
        return self.context.answer_in_flight

    async def request_answer(
        self, utterance: str, context: str, session: int | None = None
    ) -> StructuredAnswer | None:
        """
        Request an answer for an utterance.

        Args:
            utterance: The speech since the last silence episode
            context: Current transcript window
            session: Capture session the request belongs to

        Returns:
            The displayed answer, or None when there was nothing to ask, the
            model found no question, or the session ended meanwhile

        Raises:
            ConcurrencyRejection: If another request is in flight
            ConfigurationError: If the provider credential is missing
            RetriesExhaustedError: If every attempt failed
        """
        request = build_request(utterance, context, session)
        if request is None:
            logger.debug("Nothing to answer, empty utterance and transcript")
            return None

        if self.context.answer_in_flight:
            raise ConcurrencyRejection("Answer request already in progress")

        self.context.answer_in_flight = True
        try:
            client, model = self._client_factory(self.context.settings)
            self.requests_started += 1
            logger.info(f"💭 Requesting answer from {client.provider} ({model})")
            notify_surfaces(
                self.context.surfaces,
                lambda s: s.question_processing(),
                "question_processing",
            )

            async def attempt() -> str:
                try:
                    return await client.complete(
                        SYSTEM_PROMPT,
                        request.user_content(),
                        model,
                        MAX_TOKENS,
                        TEMPERATURE,
                    )
                except TransientRemoteError:
                    raise
                except Exception as e:
                    raise TransientRemoteError(
                        f"{client.provider} request failed: {type(e).__name__}: {e}"
                    ) from e

            start_time = time.time()
            try:
                raw_text = await with_retry(
                    attempt,
                    max_attempts=self.max_attempts,
                    base_delay=self.base_delay,
                    sleep=self._sleep,
                    label=f"{client.provider} answer",
                )
            except TransientRemoteError:
                self._dismiss_surfaces()
                raise
            finally:
                await self._close_client(client)
            logger.debug(f"Model responded in {time.time() - start_time:.2f}s")
        finally:
            self.context.answer_in_flight = False

        if not self.context.is_current(request.session):
            logger.debug("Capture stopped while answering, discarding result")
            self._dismiss_surfaces()
            return None

        result = parse_answer_response(raw_text, request.utterance)
        if isinstance(result, Unparseable):
            logger.warning("⚠️ Model returned nothing usable")
            self._dismiss_surfaces()
            return None

        answer = result.answer
        if not answer.has_question:
            logger.debug("No question detected, answer suppressed")
            self._dismiss_surfaces()
            return None

        self.answers_shown += 1
        logger.info(f"✅ Answer ready: {answer.question[:80]}")
        notify_surfaces(
            self.context.surfaces, lambda s: s.new_answer(answer), "new_answer"
        )
        return answer

    async def answer_cycle(
        self, utterance: str, context: str, session: int | None = None
    ) -> AnswerOutcome:
        """
        Run :meth:`request_answer` and report any failure to the surfaces.

        Returns:
            The outcome; failures never propagate
        """
        try:
            answer = await self.request_answer(utterance, context, session)
            return AnswerOutcome(answer=answer)
        except ConcurrencyRejection as e:
            logger.info(f"⏳ {e}")
            outcome = AnswerOutcome(error=str(e), error_kind=AnswerErrorKind.BUSY)
        except ConfigurationError as e:
            logger.warning(f"⚠️ {e}")
            outcome = AnswerOutcome(
                error=str(e), error_kind=AnswerErrorKind.CONFIGURATION
            )
        except RetriesExhaustedError as e:
            logger.error(f"❌ Answer request failed: {e}")
            outcome = AnswerOutcome(
                error=str(e),
                error_kind=AnswerErrorKind.RETRIES_EXHAUSTED,
                remote_kind=e.kind.value,
            )
        except TransientRemoteError as e:
            logger.error(f"❌ Answer request failed: {e}")
            outcome = AnswerOutcome(
                error=str(e), error_kind=AnswerErrorKind.REMOTE, remote_kind=e.kind.value
            )
        except Exception as e:
            logger.error(f"❌ Unexpected error answering: {e}", exc_info=True)
            self._dismiss_surfaces()
            outcome = AnswerOutcome(
                error=f"Answer request failed: {e}",
                error_kind=AnswerErrorKind.UNEXPECTED,
            )

        if self.context.is_current(session):
            notify_surfaces(
                self.context.surfaces,
                lambda s: s.show_error(outcome.error),
                "show_error",
            )
        return outcome

    async def _close_client(self, client: AnswerGenerationClient) -> None:
        try:
            await client.aclose()
        except Exception as e:
            logger.warning(f"⚠️ Could not close {client.provider} client: {e}")

    def _dismiss_surfaces(self) -> None:
        notify_surfaces(self.context.surfaces, lambda s: s.dismiss(), "dismiss")
