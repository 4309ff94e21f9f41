"""Main entry point for termrelay - runs the API server."""

import argparse
import logging
import os
import socket
import sys


def find_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        return s.getsockname()[1]


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run_server(host: str = "127.0.0.1", port: int = 0, log_level: str = "info") -> None:
    """Run the termrelay API server.

    Args:
        host: Host to bind to
        port: Port to run on (0 for ephemeral)
        log_level: Log level passed on to uvicorn
    """
    import uvicorn
    from termrelay.server.main import create_app

    if port == 0:
        port = find_free_port()

    app = create_app()
    print(f"Starting termrelay server on {host}:{port}")
    sys.stdout.flush()
    uvicorn.run(app, host=host, port=port, log_level=log_level.lower())


def main() -> int:
    """Main entry point for termrelay."""
    parser = argparse.ArgumentParser(description="termrelay: terminal and chat relay server")
    parser.add_argument(
        "--host",
        type=str,
        default=os.environ.get("TERMRELAY_HOST", "127.0.0.1"),
        help="Host to bind (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("TERMRELAY_PORT", "0")),
        help="Port to bind (default: 0 = ephemeral)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["debug", "info", "warning", "error"],
        default=os.environ.get("TERMRELAY_LOG_LEVEL", "info").lower(),
        help="Log level (default: info)",
    )
    args = parser.parse_args()

    configure_logging(args.log_level)

    try:
        run_server(host=args.host, port=args.port, log_level=args.log_level)
        return 0
    except KeyboardInterrupt:
        return 0
    except OSError as e:
        print(f"\nError: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
