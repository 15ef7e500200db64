#!/usr/bin/env python3
"""Main entry point for the tool orchestrator FastAPI server."""

import argparse
import logging
import signal
import sys
from typing import Any

import uvicorn
from dotenv import load_dotenv

# Load .env before config is imported anywhere
load_dotenv()

from config import SERVER_CONFIG  # noqa: E402

logger = logging.getLogger(__name__)

# TODO: The MCP SDK's stdio_client doesn't propagate signals to server subprocesses;
# spawn them in their own process group so Ctrl-C kills the whole tree.


def signal_handler(sig: Any, frame: Any) -> None:
    """Handle shutdown signals gracefully."""
    logger.info("\nShutdown signal received. Cleaning up...")
    sys.exit(0)


def main() -> None:
    """Run the FastAPI server."""
    parser = argparse.ArgumentParser(description="Tool Orchestrator Server")
    parser.add_argument(
        "--host",
        type=str,
        default=SERVER_CONFIG["host"],
        help=f"Host to bind to (default: {SERVER_CONFIG['host']})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=SERVER_CONFIG["port"],
        help=f"Port to run the server on (default: {SERVER_CONFIG['port']})",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=SERVER_CONFIG["log_level"],
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    args = parser.parse_args()

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Register signal handlers
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.info("Starting Tool Orchestrator Server...")
    logger.info(f"Listening on {args.host}:{args.port}")

    uvicorn.run(
        "api.server:app",
        host=args.host,
        port=args.port,
        reload=False,  # Disable auto-reload for better signal handling
        log_level=args.log_level.lower(),
    )


if __name__ == "__main__":
    main()
