from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from agenda import models, schemas
from agenda.database import get_db
from agenda.main import app
from agenda.routers.appointments import get_mailer, get_now

NOW = datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def client(db, mailer, users):
    def _db():
        yield db

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_now] = lambda: NOW
    try:
        # Sin `with`: no corre el startup (no crea la BD real ni el scheduler)
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _as(user: models.User) -> dict:
    return {"X-User-Id": str(user.id)}


def _book(client, user, provider, date: str):
    return client.post("/appointments", json={"provider_id": provider.id, "date": date}, headers=_as(user))


def test_root(client) -> None:
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["ok"] is True


def test_requires_user_header(client) -> None:
    assert client.get("/appointments").status_code == 401
    assert client.get("/appointments", headers={"X-User-Id": "bob"}).status_code == 401


def test_book_and_conflict(client, users, db) -> None:
    r = _book(client, users["bob"], users["alice"], "2024-06-01T15:37:00Z")
    assert r.status_code == 200
    body = r.json()
    assert body["provider_id"] == users["alice"].id
    assert body["user_id"] == users["bob"].id
    assert body["canceled_at"] is None
    assert datetime.fromisoformat(body["date"].replace("Z", "+00:00")) == datetime(2024, 6, 1, 15, tzinfo=timezone.utc)

    notif = db.scalars(select(models.Notification)).one()
    assert notif.user_id == users["alice"].id
    assert "Bob" in notif.content

    r = _book(client, users["carol"], users["alice"], "2024-06-01T15:05:00Z")
    assert r.status_code == 409
    assert r.json() == {"error": {"code": "slot_taken", "message": "El horario no está disponible"}}


@pytest.mark.parametrize(
    "payload",
    [{}, {"provider_id": 1}, {"date": "2024-06-01T15:00:00Z"}, {"provider_id": "x", "date": "2024-06-01T15:00:00Z"}],
)
def test_book_validation_error(client, users, payload) -> None:
    r = client.post("/appointments", json=payload, headers=_as(users["bob"]))
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "validation_error"


def test_book_malformed_body_is_validation_error(client, users) -> None:
    r = client.post("/appointments", content="not json", headers={**_as(users["bob"]), "Content-Type": "application/json"})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "validation_error"


def test_book_past_and_non_provider(client, users) -> None:
    r = _book(client, users["bob"], users["alice"], "2024-05-01T15:00:00Z")
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "past_date"

    r = _book(client, users["bob"], users["carol"], "2024-06-01T15:00:00Z")
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "provider_not_found"


def test_cancel_flow(client, users, mailer) -> None:
    appt_id = _book(client, users["bob"], users["alice"], "2024-06-01T15:37:00Z").json()["id"]

    r = client.delete(f"/appointments/{appt_id}", headers=_as(users["alice"]))
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "forbidden"

    r = client.delete(f"/appointments/{appt_id}", headers=_as(users["bob"]))
    assert r.status_code == 200
    assert r.json()["canceled_at"] is not None
    assert [m["to_email"] for m in mailer.sent] == ["alice@example.com"]

    r = client.delete(f"/appointments/{appt_id}", headers=_as(users["bob"]))
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "already_canceled"


def test_cancel_too_late(client, users) -> None:
    appt_id = _book(client, users["bob"], users["alice"], "2024-06-01T11:00:00Z").json()["id"]

    r = client.delete(f"/appointments/{appt_id}", headers=_as(users["bob"]))
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "too_late"


def test_cancel_not_found(client, users) -> None:
    r = client.delete("/appointments/999", headers=_as(users["bob"]))
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "not_found"


def test_list_includes_provider_and_avatar(client, users) -> None:
    _book(client, users["bob"], users["alice"], "2024-06-02T09:00:00Z")
    _book(client, users["bob"], users["dave"], "2024-06-01T16:00:00Z")

    r = client.get("/appointments", params={"page": 1}, headers=_as(users["bob"]))
    assert r.status_code == 200
    items = r.json()
    assert [i["provider"]["name"] for i in items] == ["Dave", "Alice"]
    assert items[1]["provider"]["avatar"]["url"].endswith("/abc123.png")
    assert items[0]["provider"]["avatar"] is None
    assert {"past", "cancelable"} <= set(items[0])

    assert client.get("/appointments", headers=_as(users["carol"])).json() == []


def test_list_rejects_page_zero(client, users) -> None:
    r = client.get("/appointments", params={"page": 0}, headers=_as(users["bob"]))
    assert r.status_code == 400


def test_list_providers(client, users) -> None:
    r = client.get("/providers", headers=_as(users["bob"]))
    assert r.status_code == 200
    assert [p["name"] for p in r.json()] == ["Alice", "Dave"]
    assert "email" not in r.json()[0]


def test_error_body_matches_documented_schema(client, users) -> None:
    r = client.delete("/appointments/999", headers=_as(users["bob"]))
    assert r.status_code == 404
    assert schemas.ErrorResponse.model_validate(r.json()).error.code == "not_found"

    responses = client.get("/openapi.json").json()["paths"]["/appointments"]["post"]["responses"]
    for status in ("400", "409"):
        ref = responses[status]["content"]["application/json"]["schema"]["$ref"]
        assert ref.endswith("/ErrorResponse")
