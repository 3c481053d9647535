"""
Car Ledger - ledger-backed vehicle marketplace.

Cars and their owners live in an ordered key-value ledger and change only
through named transactions. A hand-maintained composite index keeps the
colour/owner queries in step with the stored records.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
