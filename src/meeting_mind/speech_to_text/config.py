"""Configuration constants for audio capture, chunking and transcription."""

# Audio Configuration
DEFAULT_SAMPLE_RATE = 44100  # Hz, capture rate of every input source
DEFAULT_CHANNELS = 1  # Mono after mixing
DEFAULT_FRAMES_PER_BUFFER = 2048  # samples delivered per capture callback
TRANSCRIPTION_SAMPLE_RATE = 16000  # Hz, rate of the WAV payload sent for transcription
PCM_SAMPLE_WIDTH = 2  # bytes, 16-bit PCM
PCM_POSITIVE_SCALE = 0x7FFF
PCM_NEGATIVE_SCALE = 0x8000

# Chunk Emitter
CHUNK_INTERVAL = 3.0  # seconds between buffer drains
MIN_CHUNK_SAMPLES = 1000  # drains shorter than this are discarded
CHUNK_SILENCE_THRESHOLD = 0.01  # RMS below which a drained chunk is never transcribed

# Silence Trigger
SILENCE_CHECK_INTERVAL = 0.25  # seconds between sustained-silence checks
SILENCE_WINDOW_SLICES = 20  # most recent buffered slices measured per check
SUSTAINED_SILENCE_THRESHOLD = 0.01  # RMS below which a check counts as quiet
SILENCE_DURATION = 1.5  # seconds of continuous quiet before end-of-utterance fires

# Utterance Accumulator
ROLLING_WINDOW_SECONDS = 60.0  # transcript fragments older than this are evicted
MIN_FRAGMENT_LENGTH = 2  # normalized text shorter than this is rejected

# Known speech-to-text artifacts on near-silent audio (compared trimmed, lowercase)
HALLUCINATION_PHRASES = frozenset(
    {
        "thank you", "thank you.", "thanks.", "thanks for watching.",
        "thanks for watching", "thank you for watching.", "thank you for watching",
        "amen.", "amen", "beep.", "beep", "bye.", "bye", "goodbye.", "goodbye",
        "hello?", "hello.", "hello", "hmm.", "hmm", "hm.", "oh.", "ah.", "shh.", "shh",
        "you", "you.", ".", "..", "...", "the end.", "the end",
        "subtitles by the amara.org community",
        "thanks for listening.", "thanks for listening",
        "please subscribe.", "please subscribe",
        "like and subscribe.", "like and subscribe",
        "silence.", "silence", "so.", "so", "yeah.", "yeah",
    }
)

# Transcription providers (OpenAI-compatible audio endpoints)
TRANSCRIPTION_PROVIDERS = {
    "groq": {
        "base_url": "https://api.groq.com/openai/v1",
        "model": "whisper-large-v3",
        "credential_key": "groq_api_key",
    },
    "openai": {
        "base_url": None,
        "model": "whisper-1",
        "credential_key": "openai_api_key",
    },
}
DEFAULT_TRANSCRIPTION_PROVIDER = "groq"
DEFAULT_TRANSCRIPTION_TIMEOUT = 30.0  # seconds
TRANSCRIPTION_MAX_ATTEMPTS = 3

# Capture device selection
VIRTUAL_LOOPBACK_PATTERNS = ("cable", "vb-audio", "virtual cable", "blackhole")
VIRTUAL_DEVICE_PATTERNS = VIRTUAL_LOOPBACK_PATTERNS + ("voicemod", "virtual audio")
DEVICE_ALIAS_NAMES = ("default", "communications", "sysdefault", "pulse")

# Logging
AUDIO_LEVEL_LOG_INTERVAL = 5.0  # seconds - log capture levels every 5 seconds
