"""
Milestone Tracker server launcher.

Entry point for the ``milestone-tracker`` console script: resolves host and
port from configuration and command-line options, then serves the FastAPI
app with uvicorn.
"""

import argparse
import socket
import sys
from typing import List, Optional

import uvicorn

from .config import get_config
from .utils.logging_config import get_logger, initialize_logging


class PortManager:
    """Manages port detection and allocation."""

    @staticmethod
    def find_free_port(host: str, start_port: int = 8000, max_attempts: int = 10) -> Optional[int]:
        """Find a free port starting from start_port."""
        for port in range(start_port, start_port + max_attempts):
            if PortManager.is_port_free(host, port):
                return port
        return None

    @staticmethod
    def is_port_free(host: str, port: int) -> bool:
        """Check if a port is available."""
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
                sock.bind((host, port))
                return True
        except OSError:
            return False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="milestone-tracker", description="Run the Milestone Tracker API server"
    )
    parser.add_argument("--host", help="Interface to bind (default from config)")
    parser.add_argument("--port", type=int, help="Port to bind (default from config)")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument(
        "--no-port-scan",
        action="store_true",
        help="Fail instead of trying the next ports when the port is taken",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the server launcher."""
    args = build_parser().parse_args(argv)
    config = get_config()

    initialize_logging(log_dir=config.app.log_dir, debug=config.server.debug)
    logger = get_logger("main")

    host = args.host or config.server.host
    requested_port = args.port or config.server.port

    if args.no_port_scan:
        port = requested_port if PortManager.is_port_free(host, requested_port) else None
    else:
        port = PortManager.find_free_port(host, requested_port)

    if port is None:
        logger.error(f"No available port found starting at {requested_port}")
        return 1
    if port != requested_port:
        logger.warning(f"Port {requested_port} is busy, using {port}")

    logger.info(f"Starting Milestone Tracker on http://{host}:{port}")
    uvicorn.run(
        "milestone_tracker.main:app",
        host=host,
        port=port,
        reload=args.reload or config.server.auto_reload,
        workers=1 if (args.reload or config.server.auto_reload) else config.server.workers,
        log_level="debug" if config.server.debug else "info",
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
