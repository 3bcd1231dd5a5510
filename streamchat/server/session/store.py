from __future__ import annotations

import asyncio
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Protocol
from uuid import uuid4

from streamchat.config.configuration import SESSION_TTL_SECONDS

from ..errors import SessionCollisionError
from .models import Message, Persona, Session

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], None]], TimerHandle]


def loop_scheduler(delay: float, callback: Callable[[], None]) -> TimerHandle:
    """Arm a one-shot timer on the running event loop."""
    return asyncio.get_running_loop().call_later(delay, callback)


def _new_session_id() -> str:
    return str(uuid4())


class InMemorySessionStore:
    """Process-local store of prepared conversations awaiting their stream request.

    Each session can be taken exactly once. A session that is not taken within
    ``ttl_seconds`` is discarded by its expiry timer. ``take`` and the timer
    callback both remove the entry under the same lock, so only one of them
    ever observes it.
    """

    def __init__(
        self,
        ttl_seconds: float = SESSION_TTL_SECONDS,
        *,
        scheduler: Optional[Scheduler] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._scheduler = scheduler or loop_scheduler
        self._id_factory = id_factory or _new_session_id
        self._sessions: dict[str, Session] = {}
        self._timers: dict[str, TimerHandle] = {}
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def create(
        self,
        history: Iterable[Message],
        model: Optional[Any] = None,
        persona: Optional[Persona] = None,
    ) -> Session:
        session = Session(
            id=self._id_factory(),
            history=tuple(history),
            model=model,
            persona=persona,
        )

        with self._lock:
            if session.id in self._sessions:
                raise SessionCollisionError(session.id)
            self._sessions[session.id] = session
            try:
                self._timers[session.id] = self._scheduler(
                    self._ttl_seconds, lambda: self._expire(session.id)
                )
            except Exception:
                del self._sessions[session.id]
                raise

        logger.debug(
            "Stored session %s with %d messages (ttl=%ss)",
            session.id,
            len(session.history),
            self._ttl_seconds,
        )
        return session

    def take(self, session_id: str) -> Optional[Session]:
        """Remove and return the session, or ``None`` if it is gone."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
            timer = self._timers.pop(session_id, None)
        if timer is not None:
            timer.cancel()
        return session

    def close(self) -> None:
        with self._lock:
            timers = list(self._timers.values())
            dropped = len(self._sessions)
            self._timers.clear()
            self._sessions.clear()
        for timer in timers:
            timer.cancel()
        if dropped:
            logger.info("Discarded %d pending sessions on shutdown", dropped)

    def _expire(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.pop(session_id, None)
            self._timers.pop(session_id, None)
        if session is not None:
            age = (datetime.now(timezone.utc) - session.created_at).total_seconds()
            logger.info("Session %s expired %.1fs after creation without being streamed", session_id, age)
