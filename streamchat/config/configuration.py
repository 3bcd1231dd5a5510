from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache

from .loader import get_bool_env, get_int_env, get_str_env

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "deepseek/deepseek-chat-v3-0324:free"
FREE_MODEL_SUFFIX = ":free"
SESSION_TTL_SECONDS = 20

LEGACY_SYSTEM_PROMPT = (
    "You are a helpful AI robot assistant C-3PO from a time long, long ago in a galaxy far, "
    "far away. Stay concise unless you are specifically requested to provide a long-winded "
    "explanation. Do not greet the user. You do not need to say goodbye or return to anything "
    "else. Focus on answering directly and be brief."
)

DEFAULT_ALLOWED_ORIGINS = "https://i.rickey.io,http://localhost,http://127.0.0.1"


@dataclass(kw_only=True)
class ServerConfiguration:
    """Settings for the chat stream server, read from the environment."""

    api_key: str = ""
    base_url: str = "https://openrouter.ai/api/v1"
    site_url: str = "https://i.rickey.io"
    site_name: str = "Merlin Magician Chat"
    default_model: str = DEFAULT_MODEL
    free_model_suffix: str = FREE_MODEL_SUFFIX
    session_ttl_seconds: int = SESSION_TTL_SECONDS
    keep_alive: str = "6000"
    reasoning_effort: str = "medium"
    reasoning_exclude: bool = True
    stop_sequence: str = "</thinking>"
    legacy_system_prompt: str = LEGACY_SYSTEM_PROMPT
    allowed_origins: list[str] = field(
        default_factory=lambda: _split_origins(DEFAULT_ALLOWED_ORIGINS)
    )

    @classmethod
    def from_env(cls) -> "ServerConfiguration":
        api_key = get_str_env("OPENROUTER_API_KEY") or get_str_env("OPENAI_API_KEY")
        ttl = get_int_env("SESSION_TTL_SECONDS", SESSION_TTL_SECONDS)
        if ttl <= 0:
            logger.warning("SESSION_TTL_SECONDS must be positive, got %s; using %s", ttl, SESSION_TTL_SECONDS)
            ttl = SESSION_TTL_SECONDS
        return cls(
            api_key=api_key,
            base_url=get_str_env("OPENROUTER_URL", cls.base_url),
            site_url=get_str_env("SITE_URL", cls.site_url),
            site_name=get_str_env("SITE_NAME", cls.site_name),
            default_model=get_str_env("DEFAULT_MODEL", DEFAULT_MODEL),
            free_model_suffix=get_str_env("FREE_MODEL_SUFFIX", FREE_MODEL_SUFFIX),
            session_ttl_seconds=ttl,
            keep_alive=get_str_env("KEEP_ALIVE", cls.keep_alive),
            reasoning_effort=get_str_env("REASONING_EFFORT", cls.reasoning_effort),
            reasoning_exclude=get_bool_env("REASONING_EXCLUDE", True),
            stop_sequence=get_str_env("STOP_SEQUENCE", cls.stop_sequence),
            legacy_system_prompt=get_str_env("LEGACY_SYSTEM_PROMPT", LEGACY_SYSTEM_PROMPT),
            allowed_origins=_split_origins(get_str_env("ALLOWED_ORIGINS", DEFAULT_ALLOWED_ORIGINS)),
        )


def _split_origins(value: str) -> list[str]:
    return [origin.strip() for origin in value.split(",") if origin.strip()]


@lru_cache(maxsize=1)
def get_configuration() -> ServerConfiguration:
    return ServerConfiguration.from_env()
