from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Sequence

from fastapi.responses import StreamingResponse

from streamchat.llms.llm import Upstream

from .errors import error_body
from .session.models import Message

logger = logging.getLogger(__name__)

UPSTREAM_ERROR_MESSAGE = "Failed to get response from AI"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class RelayState(str, Enum):
    STARTED = "started"
    STREAMING = "streaming"
    ENDED = "ended"
    ERRORED = "errored"


def encode_frame(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False, separators=(',', ':'))}\n\n"


class StreamRelay:
    """Relays one upstream completion to the caller as SSE frames.

    Every non-empty fragment becomes a ``{"token": ...}`` frame as soon as it
    arrives. The stream finishes with exactly one ``{"end": true}`` or
    ``{"error": ...}`` frame; nothing is written after it.
    """

    def __init__(
        self,
        upstream: Upstream,
        messages: Sequence[Message],
        model: str,
        *,
        endpoint_name: str = "chat",
        is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> None:
        self._upstream = upstream
        self._messages = list(messages)
        self._model = model
        self._endpoint_name = endpoint_name
        self._is_disconnected = is_disconnected
        self.state = RelayState.STARTED

    @property
    def terminated(self) -> bool:
        return self.state in (RelayState.ENDED, RelayState.ERRORED)

    def response(self) -> StreamingResponse:
        return StreamingResponse(
            self.frames(),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    async def frames(self) -> AsyncIterator[str]:
        logger.info(
            "SSE stream initiated for %s. Model: %s. Using %d total messages in payload.",
            self._endpoint_name,
            self._model,
            len(self._messages),
        )
        fragments: Optional[AsyncIterator[str]] = None
        try:
            try:
                fragments = self._upstream.stream(self._messages, self._model)
                self.state = RelayState.STREAMING
                async for fragment in fragments:
                    if await self._caller_gone():
                        logger.info(
                            "Client disconnected from %s (Model: %s); abandoning upstream stream",
                            self._endpoint_name,
                            self._model,
                        )
                        return
                    if fragment:
                        yield encode_frame({"token": fragment})
            except Exception as exc:
                logger.error(
                    "Error during streaming for %s (Model: %s): %s",
                    self._endpoint_name,
                    self._model,
                    exc,
                )
                frame = self._terminate(RelayState.ERRORED, error_body(UPSTREAM_ERROR_MESSAGE, str(exc)))
                if frame is not None:
                    yield frame
                return

            frame = self._terminate(RelayState.ENDED, {"end": True})
            if frame is not None:
                yield frame
        finally:
            if fragments is not None:
                await _close_quietly(fragments)
            logger.info(
                "SSE stream ended for %s (Model: %s, state: %s)",
                self._endpoint_name,
                self._model,
                self.state.value,
            )

    def _terminate(self, state: RelayState, payload: dict[str, Any]) -> Optional[str]:
        if self.terminated:
            return None
        self.state = state
        return encode_frame(payload)

    async def _caller_gone(self) -> bool:
        if self._is_disconnected is None:
            return False
        return await self._is_disconnected()


async def _close_quietly(fragments: AsyncIterator[str]) -> None:
    aclose = getattr(fragments, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except Exception:  # noqa: BLE001 - the stream is already finished for the caller
        logger.debug("Error while closing upstream stream", exc_info=True)
