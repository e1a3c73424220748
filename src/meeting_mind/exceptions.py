"""Error taxonomy shared by the transcription and answer pipeline."""

from enum import Enum


class MeetingMindError(Exception):
    """Base exception for MeetingMind errors."""

    pass


class ConfigurationError(MeetingMindError):
    """Raised when a required setting (usually a provider credential) is missing."""

    def __init__(self, message: str, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key


class RemoteErrorKind(str, Enum):
    """Failure categories reported by the remote providers."""

    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    NETWORK = "network"
    SERVER_ERROR = "server_error"


class TransientRemoteError(MeetingMindError):
    """Raised for network, timeout and provider-side failures of a remote call."""

    def __init__(
        self,
        message: str,
        kind: RemoteErrorKind = RemoteErrorKind.SERVER_ERROR,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


class RetriesExhaustedError(TransientRemoteError):
    """Raised when every retry attempt failed; carries the final attempt's error."""

    def __init__(self, attempts: int, last_error: Exception) -> None:
        kind = getattr(last_error, "kind", RemoteErrorKind.SERVER_ERROR)
        status_code = getattr(last_error, "status_code", None)
        super().__init__(
            f"All {attempts} attempts failed: {last_error}",
            kind=kind,
            status_code=status_code,
        )
        self.attempts = attempts
        self.last_error = last_error


class MalformedResponseError(MeetingMindError):
    """Raised when model output cannot be parsed into a structured answer."""

    pass


class ConcurrencyRejection(MeetingMindError):
    """Raised when an answer is requested while another one is still in flight."""

    pass
