"""Custom exceptions for audio capture and transcription."""

from ..exceptions import MeetingMindError


class SpeechToTextError(MeetingMindError):
    """Base exception for speech-to-text errors."""

    pass


class AudioCaptureError(SpeechToTextError):
    """Exception raised for audio capture related errors."""

    pass


class MicrophoneNotFoundError(AudioCaptureError):
    """Exception raised when no input device can be opened."""

    pass


class TranscriptionError(SpeechToTextError):
    """Exception raised when a transcription response cannot be used."""

    pass
