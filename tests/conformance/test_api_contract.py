"""API contract tests for the car ledger gateway.

These pin the HTTP surface: routes, status codes, error bodies and the
JSON shape of returned records.
"""

import pytest
from fastapi.testclient import TestClient

from carledger.errors import StorageError
from carledger.persistence.journal import InvocationJournal
from carledger.persistence.store import SQLiteLedgerStore
from carledger.service.app import create_ledger_app
from carledger.service.config import LedgerConfig

pytestmark = pytest.mark.conformance


class FailingWritesStore(SQLiteLedgerStore):
    """World state whose writes fail once ``fail_writes`` is set."""

    fail_writes = False

    def _put_raw(self, key, value):
        if self.fail_writes:
            raise StorageError("Failed to write to world state: disk I/O error")
        super()._put_raw(key, value)


@pytest.fixture
def config(tmp_path):
    return LedgerConfig(
        db_path=":memory:",
        journal_path=str(tmp_path / "journal.jsonl"),
        seed_on_startup=True,
    )


@pytest.fixture
def client(config):
    app = create_ledger_app(config)
    with TestClient(app) as c:
        yield c


class TestProbes:
    """Tests for health and readiness endpoints."""

    def test_healthz(self, client):
        response = client.get("/healthz")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == "carledger"
        assert data["checks"]["world_state"]["status"] == "healthy"
        assert data["checks"]["journal"]["status"] == "healthy"

    def test_healthz_without_journal(self, config):
        config.journal_enabled = False
        with TestClient(create_ledger_app(config)) as client:
            data = client.get("/healthz").json()
        assert data["checks"]["journal"]["status"] == "not_configured"

    def test_ready(self, client):
        assert client.get("/ready").json() == {"ready": True, "service": "carledger"}

    def test_correlation_id_echoed(self, client):
        response = client.get("/ready", headers={"X-Correlation-ID": "abc-123"})
        assert response.headers["X-Correlation-ID"] == "abc-123"
        assert len(response.headers["X-Request-ID"]) == 8

    def test_correlation_id_generated(self, client):
        assert client.get("/ready").headers["X-Correlation-ID"]


class TestQueries:
    """Tests for the read-only routes."""

    def test_all_cars(self, client):
        response = client.get("/cars")
        assert response.status_code == 200
        assert [c["Id"] for c in response.json()] == [
            "car1",
            "car2",
            "car3",
            "car4",
            "car5",
            "car6",
        ]

    def test_single_car_shape(self, client):
        car = client.get("/cars/car1").json()
        assert set(car) == {
            "Id",
            "Brand",
            "Model",
            "Year",
            "Colour",
            "OwnerId",
            "Price",
            "MalfunctionList",
        }
        assert car["Brand"] == "Toyota"
        assert car["Year"] == 2001
        assert set(car["MalfunctionList"][0]) == {"Description", "RepairPrice"}

    def test_person(self, client):
        person = client.get("/persons/person2").json()
        assert person["Surname"] == "Polo"
        assert "docType" not in person

    def test_by_color(self, client):
        ids = [c["Id"] for c in client.get("/cars/color/blue").json()]
        assert ids == ["car1"]

    def test_by_owner(self, client):
        ids = [c["Id"] for c in client.get("/cars/owner/person3").json()]
        assert sorted(ids) == ["car5", "car6"]

    def test_by_color_and_owner(self, client):
        ids = [c["Id"] for c in client.get("/cars/green/person2").json()]
        assert ids == ["car4"]

    def test_money_fields_are_exact_strings(self, client):
        car = client.get("/cars/car1").json()
        assert car["Price"] == "100.00"
        assert car["MalfunctionList"][0]["RepairPrice"] == "40"
        assert client.get("/persons/person1").json()["Money"] == "8900.99"

    def test_colour_named_like_a_route_segment(self, client):
        client.post("/cars/color/car1/color")

        # Resolves to the by-colour route with "person1" as the colour
        assert client.get("/cars/color/person1").json() == []

        response = client.post(
            "/transactions/QueryCarsByColorAndOwner", json={"args": ["color", "person1"]}
        )
        assert [c["Id"] for c in response.json()["result"]] == ["car1"]

    def test_empty_query_returns_empty_list(self, client):
        response = client.get("/cars/color/purple")
        assert response.status_code == 200
        assert response.json() == []

    def test_missing_car_is_404(self, client):
        response = client.get("/cars/car99")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"
        assert "car99" in response.json()["detail"]

    def test_missing_person_is_404(self, client):
        assert client.get("/persons/nobody").status_code == 404


class TestMutations:
    """Tests for the routes that submit transactions."""

    def test_transfer_ownership(self, client):
        response = client.post("/cars/ownership/car5/person1/yes")
        assert response.status_code == 200
        body = response.json()
        assert body["function"] == "ChangeOwner"
        assert body["tx_id"]
        assert body["result"] is None

        assert client.get("/cars/car5").json()["OwnerId"] == "person1"
        assert client.get("/persons/person1").json()["Money"] == "8425.99"

    def test_transfer_refused_without_acceptance(self, client):
        response = client.post("/cars/ownership/car5/person1/no")
        assert response.status_code == 409
        assert response.json()["error"] == "invalid_operation"

    def test_transfer_to_current_owner_conflicts(self, client):
        assert client.post("/cars/ownership/car1/person1/yes").status_code == 409

    def test_change_color(self, client):
        assert client.post("/cars/color/car2/white").status_code == 200
        assert [c["Id"] for c in client.get("/cars/color/white").json()] == ["car2"]

    def test_add_malfunction(self, client):
        response = client.post("/cars/malfunction/car4/Broken Mirror/20.5")
        assert response.status_code == 200
        result = response.json()["result"]
        assert result["CarId"] == "car4"
        assert result["Lifecycle"] == "active"

        malfunctions = client.get("/cars/car4").json()["MalfunctionList"]
        assert malfunctions[-1]["Description"] == "Broken Mirror"

    def test_add_malfunction_scraps_car(self, client):
        response = client.post("/cars/malfunction/car1/Engine/11")
        assert response.json()["result"]["Lifecycle"] == "scrapped"
        assert client.get("/cars/car1").status_code == 404

    def test_bad_repair_price_conflicts(self, client):
        response = client.post("/cars/malfunction/car4/Noise/lots")
        assert response.status_code == 409
        assert response.json()["error"] == "invalid_operation"

    def test_out_of_range_repair_price_conflicts(self, client):
        response = client.post("/cars/malfunction/car6/Engine/1E+1000000")
        assert response.status_code == 409
        assert response.json()["error"] == "invalid_operation"

    def test_repair(self, client):
        assert client.post("/cars/repair/car5").status_code == 200
        assert client.get("/persons/person3").json()["Money"] == "3308.33"
        assert client.get("/cars/car5").json()["MalfunctionList"] == []

    def test_repair_missing_car_is_404(self, client):
        assert client.post("/cars/repair/car77").status_code == 404

    def test_reinit(self, client):
        client.post("/cars/color/car1/green")
        assert client.post("/ledger/init").status_code == 200
        assert client.get("/cars/car1").json()["Colour"] == "blue"


class TestGenericInvocation:
    """Tests for /transactions."""

    def test_lists_functions(self, client):
        functions = client.get("/transactions").json()["functions"]
        assert "ChangeOwner" in functions
        assert len(functions) == 11

    def test_submit_by_name(self, client):
        response = client.post("/transactions/ChangeCarColour", json={"args": ["car3", "red"]})
        assert response.status_code == 200
        assert client.get("/cars/car3").json()["Colour"] == "red"

    def test_unknown_transaction(self, client):
        response = client.post("/transactions/BurnItAll", json={"args": []})
        assert response.status_code == 409
        assert response.json()["error"] == "unknown_transaction"

    def test_wrong_arity(self, client):
        response = client.post("/transactions/RepairCar", json={"args": []})
        assert response.status_code == 409

    def test_too_many_args_rejected(self, client):
        response = client.post("/transactions/RepairCar", json={"args": ["x"] * 17})
        assert response.status_code == 422


class TestJournal:
    """Tests for the invocation journal routes."""

    def test_recent_includes_failures(self, client):
        client.post("/cars/repair/car5")
        client.post("/cars/repair/car77")

        entries = client.get("/journal/recent", params={"n": 2}).json()
        assert [e["function"] for e in entries] == ["RepairCar", "RepairCar"]
        assert entries[0]["status"] == "ok"
        assert entries[1]["error_code"] == "not_found"

    def test_stats_count_seed(self, client):
        stats = client.get("/journal/stats").json()
        assert stats["functions"] == {"InitLedger": 1}

    def test_disabled_journal_is_404(self, config):
        config.journal_enabled = False
        with TestClient(create_ledger_app(config)) as client:
            assert client.get("/journal/stats").status_code == 404


class TestStorageFailures:
    """Tests for store failures surfacing through the gateway."""

    def test_write_failure_is_503(self, config, tmp_path):
        store = FailingWritesStore(":memory:")
        app = create_ledger_app(
            config, store=store, journal=InvocationJournal(tmp_path / "j.jsonl")
        )
        with TestClient(app) as client:
            store.fail_writes = True
            response = client.post("/cars/color/car1/white")
            assert response.status_code == 503
            assert response.json()["error"] == "storage_error"

            store.fail_writes = False
            assert client.get("/cars/car1").json()["Colour"] == "blue"
