# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

"""
Server script for running the StreamChat API.
"""

import argparse
import logging

import uvicorn

from streamchat.config import get_int_env, get_str_env

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the StreamChat API server")
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload (default: False)",
    )
    parser.add_argument(
        "--host",
        type=str,
        default=get_str_env("HOST", "0.0.0.0"),
        help="Host to bind the server to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=get_int_env("PORT", 3011),
        help="Port to bind the server to (default: 3011)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="info",
        choices=["debug", "info", "warning", "error", "critical"],
        help="Log level (default: info)",
    )

    args = parser.parse_args()

    logging.getLogger().setLevel(args.log_level.upper())

    logger.info("Starting StreamChat API server on %s:%s", args.host, args.port)
    logger.info("Ready to receive requests at /api/prepare-stream and /api/chat-stream.")
    uvicorn.run(
        "streamchat.server.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )
