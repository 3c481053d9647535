"""Service layer - FastAPI gateway and its configuration."""

from .app import create_ledger_app
from .config import LedgerConfig

__all__ = ["create_ledger_app", "LedgerConfig"]
