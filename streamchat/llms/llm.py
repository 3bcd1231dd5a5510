from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, AsyncIterator, Iterable, Protocol, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from streamchat.config import ServerConfiguration, get_configuration
from streamchat.server.session.models import Message

logger = logging.getLogger(__name__)

_MESSAGE_TYPES = {
    "system": SystemMessage,
    "user": HumanMessage,
    "assistant": AIMessage,
}


class Upstream(Protocol):
    """Streaming chat completion: role-tagged messages in, text fragments out."""

    def stream(self, messages: Sequence[Message], model: str) -> AsyncIterator[str]: ...


def to_langchain_messages(messages: Iterable[Message]) -> list[BaseMessage]:
    return [_MESSAGE_TYPES[message.role](content=message.content) for message in messages]


def chunk_text(content: Any) -> str:
    """Extract the text carried by a streamed chunk's content."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, str):
                parts.append(item)
            elif isinstance(item, dict) and item.get("type") == "text":
                parts.append(str(item.get("text") or ""))
        return "".join(parts)
    raise TypeError(f"Unexpected chunk content type: {type(content).__name__}")


class ChatModelUpstream:
    """OpenAI-compatible chat model (OpenRouter by default) streamed through LangChain."""

    def __init__(self, config: ServerConfiguration) -> None:
        self._config = config
        if not config.api_key:
            logger.warning("OPENROUTER_API_KEY is not set in your environment. AI calls will fail.")

    def build_llm(self, model: str) -> ChatOpenAI:
        config = self._config
        extra_body: dict[str, Any] = {
            "reasoning": {
                "effort": config.reasoning_effort,
                "exclude": config.reasoning_exclude,
            },
        }
        if config.keep_alive:
            extra_body["keep_alive"] = config.keep_alive
        return ChatOpenAI(
            model=model,
            api_key=config.api_key or None,
            base_url=config.base_url,
            streaming=True,
            default_headers={
                "HTTP-Referer": config.site_url,
                "X-Title": config.site_name,
            },
            extra_body=extra_body,
        )

    async def stream(self, messages: Sequence[Message], model: str) -> AsyncIterator[str]:
        llm = self.build_llm(model)
        stop = [self._config.stop_sequence] if self._config.stop_sequence else None
        async for chunk in llm.astream(to_langchain_messages(messages), stop=stop):
            text = chunk_text(chunk.content)
            if text:
                yield text


@lru_cache(maxsize=1)
def get_upstream() -> Upstream:
    return ChatModelUpstream(get_configuration())
