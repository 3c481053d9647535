"""Car ledger main entry point."""

from __future__ import annotations

import argparse
import os
import sys

import uvicorn

from carledger.service.logging import configure_logging


def main(argv: list[str] | None = None) -> int:
    """Run the car ledger gateway under uvicorn."""
    parser = argparse.ArgumentParser(
        prog="carledger",
        description="Car Ledger - ledger-backed vehicle marketplace",
    )
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host to bind to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("CARLEDGER_PORT", "9090")),
        help="Port to listen on (default: 9090)",
    )
    parser.add_argument(
        "--db-path",
        help="SQLite world state path (overrides CARLEDGER_DB_PATH)",
    )
    parser.add_argument(
        "--seed",
        action="store_true",
        help="Run InitLedger on startup",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["debug", "info", "warning", "error", "critical"],
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Force JSON log output (default: auto-detect)",
    )

    args = parser.parse_args(argv)

    configure_logging(
        level=args.log_level.upper(),
        json_output=True if args.json_logs else None,
    )

    # The app factory reads its configuration from the environment
    os.environ["CARLEDGER_PORT"] = str(args.port)
    os.environ["CARLEDGER_LOG_LEVEL"] = args.log_level.upper()
    if args.db_path:
        os.environ["CARLEDGER_DB_PATH"] = args.db_path
    if args.seed:
        os.environ["CARLEDGER_SEED"] = "true"

    try:
        uvicorn.run(
            "carledger.service.app:create_app_from_env",
            host=args.host,
            port=args.port,
            reload=args.reload,
            log_level=args.log_level,
            factory=True,
        )
        return 0
    except KeyboardInterrupt:
        print("\nShutting down...")
        return 0


if __name__ == "__main__":
    sys.exit(main())
