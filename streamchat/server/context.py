from __future__ import annotations

import logging
from typing import Iterable, Optional

from .session.models import Message, Persona

logger = logging.getLogger(__name__)


def build_context(persona: Optional[Persona], history: Iterable[Message]) -> list[Message]:
    """Assemble the messages sent upstream for a prepared session.

    Order is: persona system prompt, persona example exchanges, then the
    conversation history exactly as the caller sent it.
    """
    messages: list[Message] = []

    if persona is not None:
        logger.debug("Building chat context with client-provided persona")
        if persona.system:
            messages.append(Message(role="system", content=persona.system))
        for example in persona.examples:
            if example.user:
                messages.append(Message(role="user", content=example.user))
            if example.assistant:
                messages.append(Message(role="assistant", content=example.assistant))

    messages.extend(history)
    return messages


def build_legacy_context(system_prompt: str, history: Iterable[Message]) -> list[Message]:
    """Context for the single-step endpoint: fixed system prompt, then history."""
    return [Message(role="system", content=system_prompt), *history]
