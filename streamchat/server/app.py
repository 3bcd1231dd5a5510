# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

import json
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import TypeAdapter, ValidationError

from streamchat.config import get_configuration
from streamchat.llms.llm import Upstream, get_upstream
from streamchat.server.chat_request import (
    ChatMessage,
    PrepareStreamRequest,
    PrepareStreamResponse,
)
from streamchat.server.context import build_context, build_legacy_context
from streamchat.server.errors import (
    InvalidRequestError,
    SessionNotFoundError,
    error_body,
)
from streamchat.server.model_gate import ModelGate, get_model_gate
from streamchat.server.relay import StreamRelay
from streamchat.server.session.dependencies import (
    get_session_store,
    initialise_session_store,
)
from streamchat.server.session.store import InMemorySessionStore

logger = logging.getLogger(__name__)

_LEGACY_MESSAGES = TypeAdapter(list[ChatMessage])


@asynccontextmanager
async def lifespan(_: FastAPI):
    session_store = initialise_session_store()
    try:
        yield
    finally:
        session_store.close()


app = FastAPI(
    title="StreamChat API",
    description="Two-step chat streaming over server-sent events",
    version="0.1.0",
    lifespan=lifespan,
)

allowed_origins = get_configuration().allowed_origins

logger.info(f"Allowed origins: {allowed_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=error_body("Invalid request.", jsonable_encoder(exc.errors())),
    )


@app.exception_handler(InvalidRequestError)
async def invalid_request_handler(_: Request, exc: InvalidRequestError) -> JSONResponse:
    return JSONResponse(status_code=400, content=error_body(exc.message, exc.details))


@app.exception_handler(SessionNotFoundError)
async def session_not_found_handler(_: Request, exc: SessionNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content=error_body(exc.message))


@app.get("/healthcheck", response_class=PlainTextResponse)
async def healthcheck() -> str:
    return "OK from StreamChat backend!"


@app.post("/api/prepare-stream", response_model=PrepareStreamResponse)
async def prepare_stream(
    request: PrepareStreamRequest,
    store: InMemorySessionStore = Depends(get_session_store),
) -> PrepareStreamResponse:
    session = store.create(
        request.history(),
        model=request.model,
        persona=request.persona.to_persona() if request.persona else None,
    )
    return PrepareStreamResponse(session_id=session.id)


@app.get("/api/chat-stream")
async def chat_stream(
    request: Request,
    session_id: Optional[str] = Query(None, alias="sessionId"),
    store: InMemorySessionStore = Depends(get_session_store),
    gate: ModelGate = Depends(get_model_gate),
    upstream: Upstream = Depends(get_upstream),
):
    if not session_id:
        raise InvalidRequestError("Session ID is required.")

    session = store.take(session_id)
    if session is None:
        raise SessionNotFoundError(session_id)

    messages = build_context(session.persona, session.history)
    relay = StreamRelay(
        upstream,
        messages,
        gate.resolve(session.model),
        endpoint_name="/api/chat-stream",
        is_disconnected=request.is_disconnected,
    )
    return relay.response()


@app.get("/api/chat")
async def legacy_chat(
    request: Request,
    messages: Optional[str] = Query(None, description="URL-encoded JSON array of messages"),
    model: Optional[str] = Query(None),
    gate: ModelGate = Depends(get_model_gate),
    upstream: Upstream = Depends(get_upstream),
):
    if not messages:
        raise InvalidRequestError("Messages parameter is required.")
    try:
        raw = json.loads(messages)
    except ValueError:
        raise InvalidRequestError("Invalid messages format.")
    if not isinstance(raw, list) or not raw:
        raise InvalidRequestError("Messages parameter must be a non-empty JSON array string.")
    try:
        history = [message.to_message() for message in _LEGACY_MESSAGES.validate_python(raw)]
    except ValidationError as exc:
        raise InvalidRequestError(
            "Invalid messages format.", exc.errors(include_url=False, include_context=False)
        )

    relay = StreamRelay(
        upstream,
        build_legacy_context(get_configuration().legacy_system_prompt, history),
        gate.resolve(model),
        endpoint_name="/api/chat",
        is_disconnected=request.is_disconnected,
    )
    return relay.response()
