from typing import Any


class NewsClientError(Exception):
    """Base class for every failure the display client turns into an error state."""


class HTTPStatusError(NewsClientError):
    """Non-2xx response from the query service or the workflow webhook."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status


class TransportError(NewsClientError):
    """Network unreachable, timeout, or an unreadable response body."""


class MalformedPayloadError(NewsClientError):
    """Response JSON is not an object (or null)."""


class ConfigurationError(NewsClientError):
    """An endpoint needed for the requested operation is not configured."""


def status_message(status: int, body: Any) -> str:
    """Prefer the body's error field; fall back to the numeric status."""
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, str) and err:
            return err
    return f"HTTP error! status: {status}"


def error_message(exc: Exception, fallback: str) -> str:
    msg = str(exc).strip()
    return msg or fallback

