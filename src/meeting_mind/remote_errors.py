"""Map provider SDK and HTTP failures onto TransientRemoteError."""

import httpx
import openai

from .exceptions import RemoteErrorKind, TransientRemoteError


def kind_for_status(status_code: int | None) -> RemoteErrorKind:
    """Classify an HTTP status code."""
    if status_code in (401, 403):
        return RemoteErrorKind.UNAUTHORIZED
    if status_code == 429:
        return RemoteErrorKind.RATE_LIMITED
    if status_code in (408, 504):
        return RemoteErrorKind.TIMEOUT
    return RemoteErrorKind.SERVER_ERROR


def from_openai_error(error: openai.OpenAIError, provider: str) -> TransientRemoteError:
    """
    Convert an ``openai`` SDK exception.

    Args:
        error: Exception raised by the SDK
        provider: Provider name for the message

    Returns:
        The equivalent TransientRemoteError
    """
    if isinstance(error, openai.APITimeoutError):
        return TransientRemoteError(f"{provider} request timed out", RemoteErrorKind.TIMEOUT)
    if isinstance(error, openai.APIConnectionError):
        return TransientRemoteError(
            f"{provider} connection failed: {error}", RemoteErrorKind.NETWORK
        )
    if isinstance(error, openai.APIStatusError):
        return TransientRemoteError(
            f"{provider} returned HTTP {error.status_code}: {error.message}",
            kind_for_status(error.status_code),
            status_code=error.status_code,
        )
    return TransientRemoteError(f"{provider} request failed: {error}")


def from_httpx_error(error: httpx.HTTPError, provider: str) -> TransientRemoteError:
    """Convert an ``httpx`` exception."""
    if isinstance(error, httpx.TimeoutException):
        return TransientRemoteError(f"{provider} request timed out", RemoteErrorKind.TIMEOUT)
    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        return TransientRemoteError(
            f"{provider} returned HTTP {status}: {error.response.text[:200]}",
            kind_for_status(status),
            status_code=status,
        )
    return TransientRemoteError(
        f"{provider} connection failed: {error}", RemoteErrorKind.NETWORK
    )
