"""Configuration primitives for the car ledger service."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


@dataclass(slots=True)
class LedgerConfig:
    """Runtime configuration for the car ledger service.

    Configuration Sources (priority order):
    1. Direct constructor arguments
    2. Environment variables (CARLEDGER_*)
    3. Default values

    Attributes:
        db_path: SQLite world state path, or ":memory:" (default: data/carledger.db)
        journal_path: Invocation journal JSONL path (default: data/journal.jsonl)
        journal_enabled: Record submitted transactions (default: True)
        port: Service port (default: 9090)
        seed_on_startup: Run InitLedger when the service starts (default: False)
        log_level: Log level name (default: INFO)
    """

    db_path: str = "data/carledger.db"
    journal_path: str = "data/journal.jsonl"
    journal_enabled: bool = True
    port: int = 9090
    seed_on_startup: bool = False
    log_level: str = "INFO"
    cors_origins: list[str] = field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
    )

    @classmethod
    def from_env(cls) -> LedgerConfig:
        """Create configuration from environment variables.

        Optional:
            CARLEDGER_DB_PATH: SQLite database path
            CARLEDGER_JOURNAL_PATH: Journal file path
            CARLEDGER_JOURNAL_ENABLED: 'true' or 'false'
            CARLEDGER_PORT: Service port (default: 9090)
            CARLEDGER_SEED: Seed the ledger on startup ('true' or 'false')
            CARLEDGER_LOG_LEVEL: DEBUG, INFO, WARNING or ERROR

        Raises:
            ValueError: a variable holds an unparseable value
        """
        log_level = os.environ.get("CARLEDGER_LOG_LEVEL", "INFO").upper()
        if log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"CARLEDGER_LOG_LEVEL is not a log level: {log_level!r}")

        return cls(
            db_path=os.environ.get("CARLEDGER_DB_PATH", "data/carledger.db"),
            journal_path=os.environ.get("CARLEDGER_JOURNAL_PATH", "data/journal.jsonl"),
            journal_enabled=_env_bool("CARLEDGER_JOURNAL_ENABLED", True),
            port=_env_int("CARLEDGER_PORT", 9090),
            seed_on_startup=_env_bool("CARLEDGER_SEED", False),
            log_level=log_level,
        )


__all__ = ["LedgerConfig"]
