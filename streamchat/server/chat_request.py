from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .session.models import Message, Persona, PersonaExample


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"] = Field(
        ..., description="The role of the message sender"
    )
    content: str = Field(..., description="The text content of the message")

    def to_message(self) -> Message:
        return Message(role=self.role, content=self.content)


class PersonaExampleRequest(BaseModel):
    user: Optional[str] = Field(None, description="Example user turn")
    assistant: Optional[str] = Field(None, description="Example assistant reply")


class PersonaRequest(BaseModel):
    system: Optional[str] = Field(None, description="System prompt placed before the conversation")
    examples: list[PersonaExampleRequest] = Field(
        default_factory=list, description="Example exchanges, in order"
    )

    @field_validator("examples", mode="before")
    @classmethod
    def _only_example_objects(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]

    def to_persona(self) -> Persona:
        return Persona(
            system=self.system,
            examples=tuple(
                PersonaExample(user=example.user, assistant=example.assistant)
                for example in self.examples
            ),
        )


class PrepareStreamRequest(BaseModel):
    messages: list[ChatMessage] = Field(
        ..., min_length=1, description="Conversation history, oldest first"
    )
    model: Optional[Any] = Field(
        None, description="Requested model, stored as sent; the model gate decides what is used"
    )
    persona: Optional[PersonaRequest] = Field(None, description="Optional persona seeding the chat")

    @field_validator("persona", mode="before")
    @classmethod
    def _persona_object_or_none(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, PersonaRequest)) else None

    def history(self) -> list[Message]:
        return [message.to_message() for message in self.messages]


class PrepareStreamResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId")
