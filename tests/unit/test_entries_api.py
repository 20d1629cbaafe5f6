"""FastAPI-level tests for the ledger entry endpoints."""

from __future__ import annotations

from decimal import Decimal

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from ledger.app.api.dependencies import get_entry_service
from ledger.app.api.routers import entries
from ledger.app.domain.entrystore import (
    EntryService,
    InMemoryEntryStoreGateway,
    PostgresEntryStoreGateway,
)
from ledger.app.domain.entrystore.schema import create_schema
from ledger.app.infra.db import build_engine
from ledger.app.infra.events import EventEmitter
from ledger.app.infra.metrics import MetricsClient

pytestmark = [pytest.mark.api]


class RecordingEmitter(EventEmitter):
    def __init__(self) -> None:
        self.calls: list[dict[str, object]] = []

    def emit(self, topic: str, payload):  # type: ignore[override]
        self.calls.append({"topic": topic, "payload": payload})


class NullMetrics(MetricsClient):
    def increment(self, metric: str, value: int = 1) -> None:
        return None

    def gauge(self, metric: str, value: int) -> None:
        return None


def _build_client(service: EntryService) -> TestClient:
    app = FastAPI()
    app.include_router(entries.router)
    app.dependency_overrides[get_entry_service] = lambda: service
    return TestClient(app)


def _build_service(gateway=None) -> tuple[EntryService, RecordingEmitter]:
    emitter = RecordingEmitter()
    service = EntryService(
        gateway=gateway or InMemoryEntryStoreGateway(),
        event_emitter=emitter,
        metrics=NullMetrics(),
    )
    return service, emitter


@pytest.fixture()
def client() -> TestClient:
    service, _emitter = _build_service()
    return _build_client(service)


def _create(client: TestClient, **overrides) -> dict:
    body = {
        "name": "Rent",
        "description": "January",
        "date": "2024-01-01",
        "value": -1350,
    }
    body.update(overrides)
    response = client.post("/api/v1/entries", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_returns_created_entry(client):
    created = _create(client, name="Salary", value="4200.5")

    assert created["id"] == 1
    assert created["name"] == "Salary"
    assert created["date"] == "2024-01-01"
    assert Decimal(created["value"]) == Decimal("4200.50")
    assert created["created_at"] == created["updated_at"]


def test_create_ignores_unknown_fields(client):
    created = _create(client, id=99, created_at="1999-01-01T00:00:00Z", color="red")

    assert created["id"] == 1
    assert "color" not in created
    assert not created["created_at"].startswith("1999")


def test_create_without_name_returns_422_referencing_name(client):
    response = client.post(
        "/api/v1/entries", json={"date": "2024-01-01", "value": 10}
    )

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["error_code"] == "LEDGER-INVALID-ENTRY"
    assert detail["details"] == {"name": ["can't be blank"]}
    assert client.get("/api/v1/entries").json()["total"] == 0


def test_create_rejects_too_many_decimal_places(client):
    response = client.post(
        "/api/v1/entries",
        json={"name": "Coffee", "date": "2024-01-01", "value": "3.333"},
    )

    assert response.status_code == 422
    assert "value" in response.json()["detail"]["details"]


def test_show_returns_entry_and_404_when_missing(client):
    created = _create(client)

    found = client.get(f"/api/v1/entries/{created['id']}")
    missing = client.get("/api/v1/entries/999")

    assert found.status_code == 200
    assert found.json() == created
    assert missing.status_code == 404
    assert missing.json()["detail"]["error_code"] == "LEDGER-NOT-FOUND"
    assert missing.json()["detail"]["details"] == {"id": 999}


def test_patch_updates_only_submitted_fields(client):
    created = _create(client)

    response = client.patch(
        f"/api/v1/entries/{created['id']}", json={"description": "February"}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["description"] == "February"
    assert body["name"] == "Rent"
    assert Decimal(body["value"]) == Decimal("-1350")


def test_put_behaves_like_patch(client):
    created = _create(client)

    response = client.put(f"/api/v1/entries/{created['id']}", json={"value": 12})

    assert response.status_code == 200
    assert response.json()["name"] == "Rent"
    assert Decimal(response.json()["value"]) == Decimal("12")


def test_empty_patch_leaves_entry_unchanged(client):
    created = _create(client)

    response = client.patch(f"/api/v1/entries/{created['id']}", json={})

    assert response.status_code == 200
    assert response.json() == created


def test_patch_blank_name_rejected(client):
    created = _create(client)

    response = client.patch(f"/api/v1/entries/{created['id']}", json={"name": ""})

    assert response.status_code == 422
    assert response.json()["detail"]["details"] == {"name": ["can't be blank"]}
    assert client.get(f"/api/v1/entries/{created['id']}").json()["name"] == "Rent"


def test_update_missing_entry_returns_404(client):
    response = client.patch("/api/v1/entries/77", json={"name": "Ghost"})

    assert response.status_code == 404


def test_delete_returns_204_then_404(client):
    created = _create(client)

    deleted = client.delete(f"/api/v1/entries/{created['id']}")
    again = client.delete(f"/api/v1/entries/{created['id']}")

    assert deleted.status_code == 204
    assert deleted.content == b""
    assert again.status_code == 404
    assert client.get(f"/api/v1/entries/{created['id']}").status_code == 404


def test_list_orders_and_paginates(client):
    for name, value in (("A", 10), ("B", -5), ("C", 20)):
        _create(client, name=name, value=value)

    response = client.get(
        "/api/v1/entries",
        params={"order_by": "value", "direction": "ASC", "per_page": 2, "page": 1},
    )

    assert response.status_code == 200
    body = response.json()
    assert [Decimal(item["value"]) for item in body["result"]] == [
        Decimal("-5"),
        Decimal("10"),
    ]
    assert body["total"] == 3
    assert body["last_page"] == 2
    assert body["order_by"] == "value"
    assert body["direction"] == "ASC"
    assert body["page"] == 1
    assert body["per_page"] == 2
    assert body["search"] is None


def test_list_defaults_on_empty_store(client):
    body = client.get("/api/v1/entries").json()

    assert body == {
        "result": [],
        "direction": "ASC",
        "order_by": "id",
        "page": 1,
        "per_page": 25,
        "search": None,
        "total": 0,
        "last_page": 0,
    }


def test_list_search_matches_name_prefixes(client):
    _create(client, name="Grocery store")
    _create(client, name="Rent")
    _create(client, name="Grocery delivery")

    body = client.get("/api/v1/entries", params={"search": "groc"}).json()

    assert [item["name"] for item in body["result"]] == [
        "Grocery store",
        "Grocery delivery",
    ]
    assert body["total"] == 2
    assert body["search"] == "groc"


@pytest.mark.parametrize(
    "params",
    [
        {"order_by": "amount"},
        {"order_by": "name; DROP TABLE entries"},
        {"direction": "up"},
        {"per_page": "1000"},
    ],
)
def test_list_rejects_invalid_parameters(client, params):
    response = client.get("/api/v1/entries", params=params)

    assert response.status_code == 400
    assert response.json()["detail"]["error_code"] == "LEDGER-INVALID-QUERY"


def test_list_coerces_non_numeric_page(client):
    _create(client)

    body = client.get("/api/v1/entries", params={"page": "abc"}).json()

    assert body["page"] == 1
    assert len(body["result"]) == 1


def test_mutations_emit_events():
    service, emitter = _build_service()
    client = _build_client(service)

    created = _create(client)
    client.patch(f"/api/v1/entries/{created['id']}", json={"name": "Mortgage"})
    client.delete(f"/api/v1/entries/{created['id']}")

    assert [call["topic"] for call in emitter.calls] == [
        "entry.created",
        "entry.updated",
        "entry.deleted",
    ]


def test_crud_against_sql_gateway(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    create_schema(engine)
    service, _emitter = _build_service(PostgresEntryStoreGateway(engine=engine))
    client = _build_client(service)

    for name, value in (("Grocery store", 10), ("Rent", -5), ("Groceries", 20)):
        _create(client, name=name, value=value)
    listing = client.get(
        "/api/v1/entries",
        params={"search": "groc", "order_by": "value", "direction": "desc"},
    ).json()
    first = listing["result"][0]
    patched = client.patch(f"/api/v1/entries/{first['id']}", json={"value": "7.25"})
    deleted = client.delete(f"/api/v1/entries/{first['id']}")

    assert [item["name"] for item in listing["result"]] == ["Groceries", "Grocery store"]
    assert listing["direction"] == "DESC"
    assert Decimal(patched.json()["value"]) == Decimal("7.25")
    assert deleted.status_code == 204
    assert client.get("/api/v1/entries").json()["total"] == 2


def test_list_with_overlong_page_returns_empty_page(client):
    _create(client)

    response = client.get("/api/v1/entries", params={"page": "9" * 5000})

    assert response.status_code == 200
    body = response.json()
    assert body["result"] == []
    assert body["total"] == 1


def test_list_with_overlong_per_page_returns_400(client):
    response = client.get("/api/v1/entries", params={"per_page": "9" * 5000})

    assert response.status_code == 400
    assert response.json()["detail"]["error_code"] == "LEDGER-INVALID-QUERY"


def test_list_with_overlong_search_returns_400(client):
    response = client.get("/api/v1/entries", params={"search": "groc" * 100})

    assert response.status_code == 400
    assert "search" in response.json()["detail"]["details"]


def test_create_with_overlong_name_returns_422(client):
    response = client.post(
        "/api/v1/entries",
        json={"name": "x" * 256, "date": "2024-01-01", "value": 1},
    )

    assert response.status_code == 422
    assert response.json()["detail"]["details"] == {
        "name": ["is too long (maximum is 255 characters)"]
    }
    assert _create(client, name="x" * 255)["name"] == "x" * 255
