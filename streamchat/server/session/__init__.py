"""In-memory, read-once session handoff between prepare and stream requests."""

from .dependencies import get_session_store
from .store import InMemorySessionStore

__all__ = ["InMemorySessionStore", "get_session_store"]
