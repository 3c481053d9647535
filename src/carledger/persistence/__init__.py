"""Persistence layer - world state, composite index and invocation journal."""

from .index import COLOUR_OWNER_INDEX, CompositeIndex
from .journal import InvocationJournal, JournalEntry
from .repository import EntityRepository
from .store import LedgerStore, SQLiteLedgerStore

__all__ = [
    "LedgerStore",
    "SQLiteLedgerStore",
    "EntityRepository",
    "CompositeIndex",
    "COLOUR_OWNER_INDEX",
    "InvocationJournal",
    "JournalEntry",
]
