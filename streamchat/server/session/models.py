from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, Optional

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True, slots=True)
class Message:
    role: Role
    content: str


@dataclass(frozen=True, slots=True)
class PersonaExample:
    user: Optional[str] = None
    assistant: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Persona:
    system: Optional[str] = None
    examples: tuple[PersonaExample, ...] = ()


@dataclass(frozen=True, slots=True)
class Session:
    id: str
    history: tuple[Message, ...]
    model: Optional[Any] = None
    persona: Optional[Persona] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
