"""Test configuration for pytest."""

import pytest

from carledger.contract.handlers import CarContract
from carledger.persistence.store import SQLiteLedgerStore


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "conformance: API contract conformance tests")


@pytest.fixture
def store():
    """Empty in-memory world state."""
    with SQLiteLedgerStore(":memory:") as s:
        yield s


@pytest.fixture
def contract(store):
    """Contract over an empty world state."""
    return CarContract(store)


@pytest.fixture
def seeded(contract):
    """Contract over a world state seeded by InitLedger."""
    contract.init_ledger()
    return contract
