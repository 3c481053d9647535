"""Invocation Journal - append-only record of submitted transactions.

Every transaction submitted through the dispatcher is written here, whether
it committed or failed:
- Transaction history and debugging
- Failure analysis by error code
- Per-function usage statistics

Entries are JSON lines; the file is never rewritten.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class JournalEntry:
    """A single submitted invocation."""

    tx_id: str
    function: str
    args: list[str] = field(default_factory=list)
    status: str = "ok"  # "ok" or "error"
    error_code: str | None = None
    error: str | None = None
    timestamp: str = ""
    latency_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), default=str)


class InvocationJournal:
    """Append-only JSONL journal of transaction invocations.

    Example:
        journal = InvocationJournal("data/journal.jsonl")
        journal.record(
            tx_id="3f2a...",
            function="ChangeOwner",
            args=["car1", "person2", "true"],
            latency_ms=1.8,
        )
        journal.stats()["functions"]  # {"ChangeOwner": 1}
    """

    def __init__(
        self,
        journal_path: Path | str | None = None,
        auto_flush: bool = True,
    ):
        """Initialize the journal.

        Args:
            journal_path: Path to JSONL file. Defaults to data/journal.jsonl
            auto_flush: Whether to flush after each write
        """
        if journal_path is None:
            journal_path = Path.cwd() / "data" / "journal.jsonl"
        else:
            journal_path = Path(journal_path)

        self._journal_path = journal_path
        self._auto_flush = auto_flush

        # Ensure directory exists
        self._journal_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def journal_path(self) -> Path:
        """Get the journal file path."""
        return self._journal_path

    def record(
        self,
        tx_id: str,
        function: str,
        args: list[str] | tuple[str, ...] = (),
        error_code: str | None = None,
        error: str | None = None,
        latency_ms: float = 0.0,
    ) -> JournalEntry:
        """Append one invocation outcome.

        A non-empty ``error_code`` marks the invocation as failed.
        """
        entry = JournalEntry(
            tx_id=tx_id,
            function=function,
            args=[str(a) for a in args],
            status="error" if error_code else "ok",
            error_code=error_code,
            error=error,
            timestamp=datetime.now(timezone.utc).isoformat(),
            latency_ms=latency_ms,
        )
        self._write_entry(entry)
        logger.debug(f"Journal entry written: {entry.tx_id} {entry.function} {entry.status}")
        return entry

    def _write_entry(self, entry: JournalEntry) -> None:
        """Write a single entry to the journal file."""
        with open(self._journal_path, "a", encoding="utf-8") as f:
            f.write(entry.to_json() + "\n")
            if self._auto_flush:
                f.flush()

    def _read_all(self) -> list[dict[str, Any]]:
        if not self._journal_path.exists():
            return []
        with open(self._journal_path, "r", encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]

    def get(self, tx_id: str) -> JournalEntry | None:
        """Get an entry by transaction id."""
        for data in self._read_all():
            if data.get("tx_id") == tx_id:
                return JournalEntry(**data)
        return None

    def recent(self, n: int = 10) -> list[JournalEntry]:
        """Get the N most recent entries, oldest first."""
        if n <= 0:
            return []
        return [JournalEntry(**d) for d in self._read_all()[-n:]]

    def count(self) -> int:
        """Count total entries in journal."""
        if not self._journal_path.exists():
            return 0
        with open(self._journal_path, "r", encoding="utf-8") as f:
            return sum(1 for line in f if line.strip())

    def stats(self) -> dict[str, Any]:
        """Get journal statistics.

        Returns:
            Dict with entry count, per-function counts, per-error-code
            counts, failure rate and mean latency.
        """
        entries = self._read_all()
        if not entries:
            return {
                "total_entries": 0,
                "functions": {},
                "errors": {},
                "failure_rate": 0.0,
                "avg_latency_ms": 0.0,
            }

        functions: dict[str, int] = {}
        errors: dict[str, int] = {}
        failed = 0
        total_latency = 0.0

        for entry in entries:
            name = entry.get("function", "unknown")
            functions[name] = functions.get(name, 0) + 1

            if entry.get("status") == "error":
                failed += 1
                code = entry.get("error_code") or "unknown"
                errors[code] = errors.get(code, 0) + 1

            total_latency += entry.get("latency_ms", 0)

        return {
            "total_entries": len(entries),
            "functions": functions,
            "errors": errors,
            "failure_rate": failed / len(entries),
            "avg_latency_ms": total_latency / len(entries),
        }


__all__ = ["InvocationJournal", "JournalEntry"]
