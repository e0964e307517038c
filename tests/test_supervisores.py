import pytest
from flask import Flask

from gestor.database import Database
from gestor.supervisores import create_supervisores_blueprint


@pytest.fixture
def client():
    db = Database("sqlite://")
    app = Flask(__name__)
    app.register_blueprint(create_supervisores_blueprint(db))
    return app.test_client()


def _create(client, nome="Ana", email="ana@example.com"):
    resp = client.post("/supervisores", json={"nome": nome, "email": email, "telefone": ""})
    assert resp.status_code == 201
    return resp.get_json()


def test_create_returns_created_record(client):
    body = _create(client)
    assert body["nome"] == "Ana"
    assert body["email"] == "ana@example.com"
    assert body["ID"] >= 1
    assert body["DeletedAt"] is None


def test_list_contains_created(client):
    first = _create(client, "Ana")
    second = _create(client, "Bruno", "bruno@example.com")
    resp = client.get("/supervisores")
    assert resp.status_code == 200
    assert [s["ID"] for s in resp.get_json()] == [first["ID"], second["ID"]]


def test_list_empty_is_empty_array(client):
    resp = client.get("/supervisores")
    assert resp.status_code == 200
    assert resp.get_json() == []


def test_get_by_id_round_trip(client):
    created = _create(client)
    resp = client.get(f"/supervisores/{created['ID']}")
    assert resp.status_code == 200
    assert resp.get_json()["nome"] == created["nome"]
    assert resp.get_json()["ID"] == created["ID"]


def test_get_by_id_accepts_plus_sign(client):
    created = _create(client)
    resp = client.get(f"/supervisores/+{created['ID']}")
    assert resp.status_code == 200
    assert resp.get_json()["ID"] == created["ID"]


def test_get_missing_is_server_error(client):
    resp = client.get("/supervisores/42")
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "record not found"}


def test_get_negative_id_is_server_error(client):
    resp = client.get("/supervisores/-1")
    assert resp.status_code == 500
    assert "error" in resp.get_json()


@pytest.mark.parametrize("method", ["get", "put", "delete"])
def test_invalid_id(client, method):
    resp = getattr(client, method)("/supervisores/abc", json={})
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "Invalid supervisor ID"}


def test_update_rejects_negative_id(client):
    resp = client.put("/supervisores/-1", json={"nome": "X"})
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "Invalid supervisor ID"}


def test_update_changes_fields(client):
    created = _create(client)
    resp = client.put(f"/supervisores/{created['ID']}", json={"nome": "Carla"})
    assert resp.status_code == 200
    assert resp.get_json()["ID"] == created["ID"]
    fetched = client.get(f"/supervisores/{created['ID']}").get_json()
    assert fetched["nome"] == "Carla"


def test_delete_hides_record(client):
    created = _create(client)
    resp = client.delete(f"/supervisores/{created['ID']}")
    assert resp.status_code == 200
    assert resp.get_json() == {"message": "Supervisor deleted successfully"}
    assert client.get("/supervisores").get_json() == []
    assert client.get(f"/supervisores/{created['ID']}").status_code == 500


def test_create_bad_body(client):
    resp = client.post("/supervisores", data="{not json", content_type="application/json")
    assert resp.status_code == 400
    assert "error" in resp.get_json()


def test_create_wrong_type(client):
    resp = client.post("/supervisores", json={"nome": 5})
    assert resp.status_code == 400
    assert "nome" in resp.get_json()["error"]