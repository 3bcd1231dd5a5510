from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from streamchat.config.configuration import DEFAULT_MODEL, FREE_MODEL_SUFFIX, get_configuration

logger = logging.getLogger(__name__)


class ModelGate:
    """Decides which model a stream may use.

    Only identifiers carrying the free-tier suffix are forwarded as requested;
    anything else falls back to the server default so callers can never pick a
    metered model.
    """

    def __init__(self, default_model: str = DEFAULT_MODEL, free_suffix: str = FREE_MODEL_SUFFIX) -> None:
        self.default_model = default_model
        self.free_suffix = free_suffix

    def is_free(self, requested: Any) -> bool:
        return isinstance(requested, str) and bool(requested) and requested.endswith(self.free_suffix)

    def resolve(self, requested: Any = None) -> str:
        if self.is_free(requested):
            logger.info('Client requested a valid free model: "%s". Using it.', requested)
            return requested
        if requested:
            logger.warning(
                'Client requested a non-free model: "%s". Ignoring and falling back to default: "%s".',
                requested,
                self.default_model,
            )
        return self.default_model


@lru_cache(maxsize=1)
def get_model_gate() -> ModelGate:
    config = get_configuration()
    return ModelGate(config.default_model, config.free_model_suffix)
