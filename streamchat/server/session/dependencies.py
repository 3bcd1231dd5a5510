from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends

from streamchat.config import get_configuration

from .store import InMemorySessionStore

logger = logging.getLogger(__name__)

_SESSION_STORE: Optional[InMemorySessionStore] = None


def initialise_session_store() -> InMemorySessionStore:
    """Create session store instance using configuration."""
    global _SESSION_STORE
    if _SESSION_STORE is not None:
        return _SESSION_STORE

    store = InMemorySessionStore(get_configuration().session_ttl_seconds)
    _SESSION_STORE = store
    logger.info("Initialised session store with TTL %ss", store.ttl_seconds)
    return store


def set_session_store(store: Optional[InMemorySessionStore]) -> None:
    global _SESSION_STORE
    _SESSION_STORE = store


def get_session_store(_: InMemorySessionStore = Depends(initialise_session_store)) -> InMemorySessionStore:
    if _SESSION_STORE is None:
        raise RuntimeError("Session store has not been initialised")
    return _SESSION_STORE
