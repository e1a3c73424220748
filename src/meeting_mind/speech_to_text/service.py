"""Live pipeline: capture → chunking → transcription → silence → answer."""

import asyncio
import time
from collections.abc import Callable
from typing import Any

from ..answers.interfaces import notify_surfaces
from ..answers.models import AnswerErrorKind, AnswerOutcome
from ..answers.orchestrator import AnswerOrchestrator
from ..context import PipelineContext
from ..exceptions import ConfigurationError, TransientRemoteError
from ..logging_utils import get_logger
from ..scheduling import TaskScheduler
from ..settings_store import SettingsStore
from .audio_capture import AudioCapture, AudioCaptureError
from .chunk_emitter import ChunkEmitter
from .config import CHUNK_INTERVAL, DEFAULT_SAMPLE_RATE, SILENCE_CHECK_INTERVAL
from .exceptions import TranscriptionError
from .models import EncodedSegment, TranscriptFragment
from .silence import SilenceTrigger
from .transcriber import TranscriptionClient
from .transcript import UtteranceAccumulator

logger = get_logger(__name__)

CHUNK_TIMER = "chunk"
SILENCE_TIMER = "silence"

CaptureFactory = Callable[[PipelineContext, int], Any]

SYSTEM_AUDIO_WARNING = (
    "System audio device could not be opened, capturing the microphone only"
)


def default_capture_factory(context: PipelineContext, sample_rate: int) -> AudioCapture:
    """Build PyAudio capture for the device saved in settings."""
    return AudioCapture(
        context.buffer,
        sample_rate=sample_rate,
        device=context.settings.get("audio_input_device"),
    )


class LiveAnswerService:
    """Coordinates the capture, transcription and answer components."""

    def __init__(
        self,
        settings: SettingsStore,
        context: PipelineContext | None = None,
        transcriber: TranscriptionClient | None = None,
        orchestrator: AnswerOrchestrator | None = None,
        capture_factory: CaptureFactory = default_capture_factory,
        scheduler: TaskScheduler | None = None,
        clock: Callable[[], float] = time.monotonic,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        chunk_interval: float = CHUNK_INTERVAL,
        silence_check_interval: float = SILENCE_CHECK_INTERVAL,
    ) -> None:
        """
        Initialize the service.

        Args:
            settings: Settings store read by every component
            context: Shared pipeline state (created if None)
            transcriber: Speech-to-text client (created if None)
            orchestrator: Answer orchestrator (created if None)
            capture_factory: Builds the capture source for a session
            scheduler: Owner of the chunk and silence timers
            clock: Monotonic time source for silence timing and fragment stamps
            sample_rate: Capture sample rate in Hz
            chunk_interval: Seconds between buffer drains
            silence_check_interval: Seconds between sustained-silence checks
        """
        self.context = context or PipelineContext(
            settings=settings, accumulator=UtteranceAccumulator(clock=clock)
        )
        self.settings = settings
        self.sample_rate = sample_rate
        self.chunk_interval = chunk_interval
        self.silence_check_interval = silence_check_interval

        self._transcriber = transcriber or TranscriptionClient(settings)
        self._orchestrator = orchestrator or AnswerOrchestrator(self.context)
        self._capture_factory = capture_factory
        self._scheduler = scheduler or TaskScheduler(owner="pipeline")
        self._chunk_emitter = ChunkEmitter(
            self.context.buffer, sample_rate=sample_rate, clock=clock
        )
        self._silence_trigger = SilenceTrigger(clock=clock)

        self._capture: Any | None = None
        self._queue: asyncio.Queue[tuple[int, EncodedSegment]] | None = None
        self._worker_task: asyncio.Task | None = None
        self._answer_tasks: set[asyncio.Task] = set()
        self._last_transcription_error: str | None = None

        self._fragment_callback: Callable[[TranscriptFragment, str], None] | None = None
        self._outcome_callback: Callable[[AnswerOutcome], None] | None = None

    @property
    def orchestrator(self) -> AnswerOrchestrator:
        return self._orchestrator

    @property
    def silence_trigger(self) -> SilenceTrigger:
        return self._silence_trigger

    @property
    def chunk_emitter(self) -> ChunkEmitter:
        return self._chunk_emitter

    def set_fragment_callback(
        self, callback: Callable[[TranscriptFragment, str], None] | None
    ) -> None:
        """
        Set callback for accepted transcript fragments.

        Args:
            callback: Called with the fragment and the current transcript window
        """
        self._fragment_callback = callback

    def set_outcome_callback(self, callback: Callable[[AnswerOutcome], None] | None) -> None:
        """Set callback for the outcome of every answer cycle."""
        self._outcome_callback = callback

    def is_listening(self) -> bool:
        return self.context.listening

    async def start_listening(self) -> None:
        """Open capture and start the chunk, silence and transcription loops."""
        if self.context.listening:
            logger.warning("Service is already listening")
            return

        capture = self._capture_factory(self.context, self.sample_rate)
        try:
            logger.debug("🎤 Starting audio capture...")
            capture.start_capture()
        except AudioCaptureError as e:
            logger.error(f"Audio capture error: {e}")
            raise

        self._capture = capture
        self.context.accumulator.clear()
        self._chunk_emitter.reset()
        self._silence_trigger.reset()
        self._last_transcription_error = None
        session = self.context.begin_session()

        self._queue = asyncio.Queue()
        self._chunk_emitter.set_sink(lambda segment: self._enqueue(session, segment))
        self._worker_task = asyncio.create_task(
            self._transcription_worker(self._queue), name="pipeline:transcription"
        )
        self._scheduler.schedule_repeating(CHUNK_TIMER, self.chunk_interval, self.chunk_tick)
        self._scheduler.schedule_repeating(
            SILENCE_TIMER, self.silence_check_interval, self.silence_tick
        )

        if getattr(capture, "system_audio_warning", False):
            logger.warning(f"⚠️ {SYSTEM_AUDIO_WARNING}")
            self._report_error(SYSTEM_AUDIO_WARNING)

        logger.info(f"✅ Listening (session {session})")

    async def stop_listening(self) -> None:
        """Stop capture, cancel the timers and discard queued audio."""
        if not self.context.listening:
            return

        self.context.end_session()
        await self._scheduler.shutdown()

        if self._worker_task and not self._worker_task.done():
            self._worker_task.cancel()
            try:
                await self._worker_task
            except asyncio.CancelledError:
                pass
        if self._queue is not None:
            # Chunks left in the queue are never transcribed; release join() waiters
            while not self._queue.empty():
                self._queue.get_nowait()
                self._queue.task_done()
        self._worker_task = None
        self._queue = None
        self._chunk_emitter.set_sink(None)
        self._silence_trigger.reset()

        try:
            if self._capture is not None:
                self._capture.stop_capture()
        except Exception as e:
            logger.error(f"Error stopping audio capture: {e}")
        self._capture = None

        logger.info("🛑 Stopped listening")

    async def chunk_tick(self) -> None:
        """One chunk period: cut a segment and queue it for transcription."""
        await self._chunk_emitter.tick()

    def silence_tick(self) -> bool:
        """
        One silence check; starts an answer cycle when the trigger fires.

        Returns:
            True if the trigger fired
        """
        if not self._silence_trigger.check(self.context.buffer):
            return False
        self._on_silence()
        return True

    def _enqueue(self, session: int, segment: EncodedSegment) -> None:
        if self._queue is None or not self.context.is_current(session):
            return
        self._queue.put_nowait((session, segment))
        logger.trace(f"Queued chunk #{segment.sequence} ({self._queue.qsize()} pending)")

    async def _transcription_worker(self, queue: asyncio.Queue) -> None:
        while True:
            session, segment = await queue.get()
            try:
                await self._transcribe_segment(session, segment)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Error processing chunk #{segment.sequence}: {e}")
            finally:
                queue.task_done()

    async def _transcribe_segment(self, session: int, segment: EncodedSegment) -> None:
        try:
            text = await self._transcriber.transcribe(segment.wav_bytes)
        except ConfigurationError as e:
            logger.warning(f"⚠️ Transcription unavailable: {e}")
            if str(e) != self._last_transcription_error:
                self._last_transcription_error = str(e)
                self._report_error(str(e))
            return
        except (TransientRemoteError, TranscriptionError) as e:
            logger.error(f"❌ Transcription of chunk #{segment.sequence} failed: {e}")
            return

        if not self.context.is_current(session):
            logger.debug(
                f"Discarding transcript of chunk #{segment.sequence} from a stopped session"
            )
            return

        self._last_transcription_error = None
        fragment = self.context.accumulator.add_fragment(text, sequence=segment.sequence)
        if fragment is None:
            return

        logger.info(f"📝 {fragment.text}")
        if self._fragment_callback:
            try:
                self._fragment_callback(fragment, self.context.accumulator.current_window())
            except Exception as e:
                logger.error(f"Error in fragment callback: {e}")

    def _on_silence(self) -> None:
        task = asyncio.create_task(
            self._answer(self.context.session), name="pipeline:answer"
        )
        self._answer_tasks.add(task)
        task.add_done_callback(self._answer_tasks.discard)

    async def _flush_transcriptions(self) -> None:
        """Cut the audio buffered since the last chunk and wait for every transcript."""
        await self._chunk_emitter.tick()
        await self.wait_for_transcriptions()

    async def _answer(self, session: int) -> None:
        # The speech before the pause may still sit in the buffer or the queue
        await self._flush_transcriptions()
        if not self.context.is_current(session):
            return

        if self._orchestrator.in_flight:
            # Leave the utterance unanswered so the next pause picks it up
            logger.info("⏳ Answer request already in progress, keeping utterance")
            outcome = AnswerOutcome(
                error="Answer request already in progress",
                error_kind=AnswerErrorKind.BUSY,
            )
        else:
            accumulator = self.context.accumulator
            utterance = accumulator.take_utterance()
            window = accumulator.current_window()
            if not utterance.strip() and not window.strip():
                logger.debug("Silence with an empty transcript, nothing to answer")
                return
            outcome = await self._orchestrator.answer_cycle(utterance, window, session)

        if self._outcome_callback:
            try:
                self._outcome_callback(outcome)
            except Exception as e:
                logger.error(f"Error in outcome callback: {e}")

    async def wait_for_answers(self) -> None:
        """Wait for answer cycles already started."""
        if self._answer_tasks:
            await asyncio.gather(*self._answer_tasks)

    async def wait_for_transcriptions(self) -> None:
        """Wait until every queued chunk has been transcribed."""
        if self._queue is not None:
            await self._queue.join()

    def _report_error(self, message: str) -> None:
        notify_surfaces(
            self.context.surfaces, lambda s: s.show_error(message), "show_error"
        )

    def get_status(self) -> dict[str, Any]:
        """Snapshot of pipeline counters for debugging."""
        stats = self._chunk_emitter.stats
        return {
            "listening": self.context.listening,
            "session": self.context.session,
            "chunks_emitted": stats.emitted,
            "chunks_dropped_short": stats.dropped_short,
            "chunks_dropped_silent": stats.dropped_silent,
            "queued_chunks": self._queue.qsize() if self._queue else 0,
            "fragments": len(self.context.accumulator),
            "silence_triggers": self._silence_trigger.fire_count,
            "answer_in_flight": self.context.answer_in_flight,
            "system_audio_warning": bool(
                getattr(self._capture, "system_audio_warning", False)
            ),
        }
