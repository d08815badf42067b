import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlmodel import Session

from sortinghall import main
from sortinghall.database import get_session
from sortinghall.main import app
from sortinghall.models.row_call import RowCall, RowCallStatus
from sortinghall.routes import agilox_routes
from sortinghall.services.fleet_gateway import get_fleet_gateway


@pytest.fixture
def client(engine, gateway):
    def override_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_fleet_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_ping_and_health(client):
    assert client.get("/ping").json() == {"status": "ok"}
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["database"] == "ok"


def test_call_row_dispatches(client, gateway, hall):
    rows, tables = hall
    resp = client.post(f"/api/tables/{tables['Tisch 1'].id}/call-row", json={"row_id": rows["Reihe2"].id})
    assert resp.status_code == 200
    data = resp.json()
    assert data["created"] is True
    assert data["call"]["order_id"] == 1000
    assert data["call"]["status"] == "pending"
    assert gateway.moves == [("Reihe2", "Tisch 1")]


def test_call_row_twice_returns_existing(client, hall):
    rows, tables = hall
    url = f"/api/tables/{tables['Tisch 1'].id}/call-row"
    first = client.post(url, json={"row_id": rows["Reihe1"].id}).json()
    second = client.post(url, json={"row_id": rows["Reihe2"].id}).json()
    assert second["created"] is False
    assert second["reason"] == "already_pending"
    assert second["call"]["id"] == first["call"]["id"]


def test_call_row_unknown_row_is_404(client, hall):
    _, tables = hall
    resp = client.post(f"/api/tables/{tables['Tisch 1'].id}/call-row", json={"row_id": 999})
    assert resp.status_code == 404


def test_call_article(client, hall):
    rows, tables = hall
    resp = client.post(f"/api/tables/{tables['Tisch 1'].id}/call-article", json={"article": "Stahl"})
    assert resp.json()["call"]["row_id"] == rows["Reihe3"].id

    resp = client.post(f"/api/tables/{tables['Tisch 2'].id}/call-article", json={"article": "Glas"})
    assert resp.status_code == 200
    assert resp.json() == {"created": False, "reason": "no_candidate", "call": None}


def test_call_article_empty_is_422(client, hall):
    _, tables = hall
    resp = client.post(f"/api/tables/{tables['Tisch 1'].id}/call-article", json={"article": "  "})
    assert resp.status_code == 422


def test_cancel_route(client, gateway, hall):
    rows, tables = hall
    client.post(f"/api/tables/{tables['Tisch 1'].id}/call-row", json={"row_id": rows["Reihe2"].id})
    resp = client.post(f"/api/tables/{tables['Tisch 1'].id}/cancel")
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"
    assert gateway.cancelled == [1000]

    resp = client.post(f"/api/tables/{tables['Tisch 1'].id}/cancel")
    assert resp.status_code == 404


def test_pallet_routes(client, hall):
    rows, _ = hall
    row_id = rows["Reihe1"].id
    resp = client.post(f"/api/rows/{row_id}/pallets")
    assert resp.status_code == 200
    assert resp.json() == {"id": resp.json()["id"], "position_index": 3, "state": "occupied"}

    resp = client.delete(f"/api/rows/{row_id}/pallets")
    assert resp.status_code == 200
    assert resp.json()["state"] == "empty"

    resp = client.delete(f"/api/rows/{row_id}/pallets")
    assert resp.status_code == 409


def test_add_pallet_unknown_row_is_404(client, hall):
    assert client.post("/api/rows/999/pallets").status_code == 404


def test_article_route(client, hall):
    rows, _ = hall
    resp = client.put(f"/api/rows/{rows['Reihe1'].id}/article", json={"article": " Glas "})
    assert resp.status_code == 200
    assert resp.json()["article"] == "Glas"

    resp = client.put(f"/api/rows/{rows['Reihe2'].id}/article", json={"article": "Glas"})
    assert resp.status_code == 409
    assert "nicht leer" in resp.json()["detail"]


def test_manual_dispatch_route(client, gateway, hall):
    rows, tables = hall
    gateway.fail_begin = True
    client.post(f"/api/tables/{tables['Tisch 1'].id}/call-row", json={"row_id": rows["Reihe2"].id})

    gateway.fail_begin = False
    resp = client.post(f"/api/rows/{rows['Reihe2'].id}/dispatch")
    assert resp.status_code == 200
    assert resp.json()["dispatched"] is True
    assert resp.json()["call"]["order_id"] == 1000

    resp = client.post(f"/api/rows/{rows['Reihe2'].id}/dispatch")
    assert resp.json() == {"dispatched": False, "call": None}


def test_hall_rows_read_model(client, hall):
    rows, tables = hall
    client.post(f"/api/tables/{tables['Tisch 1'].id}/call-row", json={"row_id": rows["Reihe3"].id})
    client.post(f"/api/tables/{tables['Tisch 2'].id}/call-row", json={"row_id": rows["Reihe3"].id})

    data = client.get("/api/hall/rows").json()
    assert [r["name"] for r in data] == ["Reihe1", "Reihe2", "Reihe3"]
    reihe3 = data[2]
    assert reihe3["occupied_count"] == 1
    assert reihe3["available_count"] == 0
    assert len(reihe3["slots"]) == 4
    assert [c["table_id"] for c in reihe3["pending_calls"]] == [tables["Tisch 1"].id, tables["Tisch 2"].id]


def test_hall_tables_and_status(client, hall):
    rows, tables = hall
    assert client.get("/api/hall/status").json()["has_active"] is False

    client.post(f"/api/tables/{tables['Tisch 1'].id}/call-row", json={"row_id": rows["Reihe2"].id})
    client.post(f"/api/tables/{tables['Tisch 2'].id}/call-row", json={"row_id": rows["Reihe1"].id})

    overview = {t["name"]: t for t in client.get("/api/hall/tables").json()}
    assert overview["Tisch 1"]["pending_call"]["order_id"] == 1000
    assert overview["Tisch 1"]["activity"]["text"] == "Auftrag an Agilox gesendet, warte auf erste Reaktion"
    assert overview["Tisch 2"]["activity"]["text"] == "wartet auf Palette vom Lageristen"

    status = client.get("/api/hall/status").json()
    assert status["has_active"] is True
    assert status["row_name"] == "Reihe2"
    assert status["table_name"] == "Tisch 1"
    assert status["order_id"] == 1000

    single = client.get(f"/api/hall/tables/{tables['Tisch 2'].id}").json()
    assert single["pending_call"]["row_id"] == rows["Reihe1"].id
    assert client.get("/api/hall/tables/999").status_code == 404


def test_agilox_callback_route(client, engine, hall):
    rows, tables = hall
    client.post(f"/api/tables/{tables['Tisch 1'].id}/call-row", json={"row_id": rows["Reihe2"].id})

    resp = client.post(
        "/agilox/callback",
        json={"orderid": "1000", "action": "pickup", "status": "ok", "row": "Reihe2", "table": "Tisch 1"},
    )
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert resp.json()["matched"] is True

    resp = client.post("/agilox/callback", json={"orderid": 1000, "action": "drop", "status": "ok"})
    assert resp.json()["status"] == "delivered"

    with Session(engine) as session:
        call = session.get(RowCall, resp.json()["call_id"])
        assert call.status == RowCallStatus.DELIVERED


@pytest.mark.parametrize(
    "kwargs",
    [
        {"content": b"kein json", "headers": {"content-type": "application/json"}},
        {"content": b"", "headers": {"content-type": "application/json"}},
        {"json": [1, 2, 3]},
        {"json": "text"},
        {"json": {"orderid": "abc", "action": "drop", "status": "ok"}},
        {"json": {"orderid": 77, "action": "drop", "status": "ok"}},
    ],
)
def test_agilox_callback_always_acknowledges(client, hall, kwargs):
    resp = client.post("/agilox/callback", **kwargs)
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert resp.json()["matched"] is False


def test_agilox_callback_oversized_order_id(client, hall):
    resp = client.post("/agilox/callback", json={"orderid": 99999999999999999999, "action": "drop", "status": "ok"})
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert resp.json()["matched"] is False


def test_agilox_callback_acknowledges_on_database_error(client, monkeypatch, hall):
    class BrokenReconciler:
        def __init__(self, session):
            self.session = session

        def process(self, callback):
            raise OperationalError("UPDATE row_call", {}, Exception("database is locked"))

    monkeypatch.setattr(agilox_routes, "CallbackReconciler", BrokenReconciler)
    resp = client.post("/agilox/callback", json={"orderid": 1000, "action": "drop", "status": "ok"})
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "matched": False}


def test_table_activity_after_pallet_not_found(client, hall):
    rows, tables = hall
    client.post(f"/api/tables/{tables['Tisch 1'].id}/call-row", json={"row_id": rows["Reihe2"].id})
    resp = client.post("/agilox/callback", json={"orderid": 1000, "action": "pickup", "status": "pallet_not_found"})
    assert resp.json()["status"] == "cancelled"

    tile = client.get(f"/api/hall/tables/{tables['Tisch 1'].id}").json()
    assert tile["pending_call"] is None
    assert tile["last_call"]["status"] == "cancelled"
    assert tile["activity"] == {
        "text": "Palette in der Reihe nicht gefunden, Ruf kann nicht erfuellt werden",
        "severity": "error",
    }


def test_lifespan_runs_startup(monkeypatch):
    calls = []
    monkeypatch.setattr(main, "init_db", lambda: calls.append("init_db"))
    monkeypatch.setattr(main, "seed_hall_from_config", lambda: calls.append("seed"))
    monkeypatch.setattr(main, "bind_event_loop", lambda loop: calls.append("loop"))

    with TestClient(main.app) as client:
        assert calls == ["init_db", "seed", "loop"]
        assert client.get("/ping").json() == {"status": "ok"}
