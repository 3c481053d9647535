"""End-to-end flows through the dispatcher over a real world state."""

from decimal import Decimal

import pytest

from carledger.contract.dispatch import TransactionDispatcher
from carledger.contract.handlers import CarContract
from carledger.errors import InvalidOperationError, StorageError
from carledger.persistence.journal import InvocationJournal
from carledger.persistence.store import SQLiteLedgerStore

pytestmark = pytest.mark.integration


class IndexWriteFailsStore(SQLiteLedgerStore):
    """World state that fails every composite-key write once armed."""

    armed = False

    def put_composite(self, index_name, parts, value):
        if self.armed:
            raise StorageError("Failed to write to world state: database is locked")
        super().put_composite(index_name, parts, value)


@pytest.fixture
def ledger(tmp_path):
    store = SQLiteLedgerStore(tmp_path / "world.db")
    dispatcher = TransactionDispatcher(
        CarContract(store), journal=InvocationJournal(tmp_path / "journal.jsonl")
    )
    dispatcher.submit("InitLedger")
    yield dispatcher
    store.close()


def ids(result):
    return sorted(c["Id"] for c in result.decoded())


class TestMarketplaceFlow:
    """Sequences of transactions and what the queries see afterwards."""

    def test_index_agrees_with_records_after_mutations(self, ledger):
        ledger.submit("ChangeCarColour", "car2", "blue")
        ledger.submit("ChangeOwner", "car2", "person2", "true")
        ledger.submit("ChangeOwner", "car5", "person2", "yes")
        ledger.submit("ChangeCarColour", "car5", "blue")
        ledger.submit("RepairCar", "car6")
        ledger.submit("ChangeOwner", "car6", "person1", "false")

        cars = ledger.evaluate("QueryAllCars").decoded()
        for car in cars:
            matching = ledger.evaluate(
                "QueryCarsByColorAndOwner", car["Colour"], car["OwnerId"]
            )
            assert car["Id"] in ids(matching)

        assert ids(ledger.evaluate("QueryCarsByColorAndOwner", "blue", "person2")) == [
            "car2",
            "car5",
        ]
        assert ids(ledger.evaluate("QueryCarsByOwner", "person1")) == ["car1", "car3", "car6"]
        assert ids(ledger.evaluate("QueryCarsByOwner", "person3")) == []

    def test_money_is_conserved_by_sales(self, ledger):
        def total():
            return sum(
                Decimal(ledger.evaluate("QueryPerson", p).decoded()["Money"])
                for p in ("person1", "person2", "person3")
            )

        before = total()
        ledger.submit("ChangeOwner", "car1", "person2", "true")
        ledger.submit("ChangeOwner", "car4", "person3", "true")
        ledger.submit("ChangeOwner", "car6", "person1", "true")
        assert total() == before

    def test_change_owner_car1(self, ledger):
        # Price 100 minus repairs 40 + 50
        ledger.submit("ChangeOwner", "car1", "person2", "true")

        car = ledger.evaluate("QueryCar", "car1").decoded()
        assert car["OwnerId"] == "person2"
        assert ledger.evaluate("QueryPerson", "person2").decoded()["Money"] == "3220.33"
        assert ledger.evaluate("QueryPerson", "person1").decoded()["Money"] == "8910.99"

    def test_scrap_then_repair_elsewhere(self, ledger):
        outcome = ledger.submit("AddMalfunction", "car3", "Gearbox", "260").decoded()
        assert outcome["Lifecycle"] == "scrapped"
        assert "car3" not in ids(ledger.evaluate("QueryAllCars"))

        ledger.submit("RepairCar", "car2")
        assert ledger.evaluate("QueryPerson", "person1").decoded()["Money"] == "8860.99"

    def test_journal_records_the_sequence(self, ledger):
        ledger.submit("RepairCar", "car5")
        with pytest.raises(InvalidOperationError):
            ledger.submit("RepairCar", "car5", "extra")

        names = [e.function for e in ledger.journal.recent(3)]
        assert names == ["InitLedger", "RepairCar", "RepairCar"]
        assert ledger.journal.stats()["errors"] == {"invalid_operation": 1}


class TestAtomicity:
    """A failure part-way through a transaction leaves no trace."""

    def test_failed_index_write_rolls_back_sale(self, tmp_path):
        store = IndexWriteFailsStore(tmp_path / "world.db")
        ledger = TransactionDispatcher(CarContract(store))
        ledger.submit("InitLedger")

        store.armed = True
        with pytest.raises(StorageError):
            ledger.submit("ChangeOwner", "car5", "person1", "true")
        store.armed = False

        assert ledger.evaluate("QueryCar", "car5").decoded()["OwnerId"] == "person3"
        assert ledger.evaluate("QueryPerson", "person1").decoded()["Money"] == "8900.99"
        assert ledger.evaluate("QueryPerson", "person3").decoded()["Money"] == "3333.33"
        assert ids(ledger.evaluate("QueryCarsByOwner", "person3")) == ["car5", "car6"]
        store.close()


class TestDurability:
    """Committed state survives reopening the database."""

    def test_reopen(self, tmp_path):
        path = tmp_path / "world.db"
        with SQLiteLedgerStore(path) as store:
            ledger = TransactionDispatcher(CarContract(store))
            ledger.submit("InitLedger")
            ledger.submit("ChangeCarColour", "car4", "orange")

        with SQLiteLedgerStore(path) as store:
            ledger = TransactionDispatcher(CarContract(store))
            assert ids(ledger.evaluate("QueryCarsByColor", "orange")) == ["car4"]
            assert ledger.evaluate("QueryCarsByColor", "green").decoded() == []
