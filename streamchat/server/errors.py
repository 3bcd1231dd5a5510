from __future__ import annotations

from typing import Any, Optional


class StreamChatError(Exception):
    """Base class for errors raised by the chat stream server."""


class SessionNotFoundError(StreamChatError):
    """The session id is unknown, already consumed or expired."""

    message = "Session not found or expired. Please try sending your message again."

    def __init__(self, session_id: str) -> None:
        super().__init__(self.message)
        self.session_id = session_id


class SessionCollisionError(StreamChatError):
    """A freshly generated session id is already in use."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session id collision for {session_id!r}")
        self.session_id = session_id


class InvalidRequestError(StreamChatError):
    """The request is missing required fields or has the wrong shape."""

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


def error_body(message: str, details: Optional[Any] = None) -> dict[str, Any]:
    body: dict[str, Any] = {"error": message}
    if details is not None:
        body["details"] = details
    return body
