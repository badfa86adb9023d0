import re

import pytest
from fastapi.testclient import TestClient

import pdf_generator
import session_store
from database import db
from main import app
from models import Landlord, Tenant


@pytest.fixture(autouse=True)
def clean_state():
    db.delete(Landlord.STORAGE_KEY)
    db.delete(Tenant.STORAGE_KEY)
    session_store._sessions.clear()
    yield
    session_store._sessions.clear()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def session_id(client):
    response = client.post("/sessions")
    assert response.status_code == 201
    return response.json()["session_id"]


def add_item(client, session_id, kind, title, amount):
    items = client.post(f"/sessions/{session_id}/items", json={"kind": kind}).json()["items"]
    item_id = items[-1]["id"]
    client.patch(f"/sessions/{session_id}/items/{item_id}", json={"field": "title", "value": title})
    response = client.patch(f"/sessions/{session_id}/items/{item_id}", json={"field": "amount", "value": amount})
    assert response.status_code == 200
    return item_id


def test_health(client):
    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert body["checks"]["database"] == "healthy"


def test_new_session_starts_empty(client):
    body = client.post("/sessions").json()

    assert body["items"] == []
    assert body["totals"] == {"subtotal": 0, "discount_total": 0, "total": 0}
    assert re.fullmatch(r"[0-9A-F]{8}", body["invoice_id"])
    assert body["landlord"] == {"name": "", "phone": ""}


def test_rent_with_loyalty_discount(client, session_id):
    add_item(client, session_id, "charge", "Rent", 15000)
    add_item(client, session_id, "discount", "Loyalty", 1000)

    body = client.get(f"/sessions/{session_id}/totals").json()

    assert body["subtotal"] == 15000
    assert body["discount_total"] == 1000
    assert body["total"] == 14000
    assert body["formatted"]["total"] == "₹14,000.00"


def test_over_discounting_gives_negative_total(client, session_id):
    add_item(client, session_id, "charge", "Rent", 500)
    add_item(client, session_id, "discount", "Advance", 800)

    assert client.get(f"/sessions/{session_id}/totals").json()["total"] == -300


def test_bad_amount_is_coerced_to_zero(client, session_id):
    item_id = add_item(client, session_id, "charge", "Rent", "lots")
    items = client.get(f"/sessions/{session_id}").json()["items"]
    assert items[0]["id"] == item_id
    assert items[0]["amount"] == 0


def test_removing_unknown_item_is_noop(client, session_id):
    add_item(client, session_id, "charge", "Rent", 1200)

    response = client.delete(f"/sessions/{session_id}/items/nope")

    assert response.status_code == 200
    assert len(response.json()["items"]) == 1
    assert response.json()["totals"]["total"] == 1200


def test_remove_item(client, session_id):
    item_id = add_item(client, session_id, "charge", "Rent", 1200)
    response = client.delete(f"/sessions/{session_id}/items/{item_id}")
    assert response.json()["items"] == []


def test_unknown_session_is_404(client):
    assert client.get("/sessions/missing").status_code == 404
    assert client.post("/sessions/missing/items", json={"kind": "charge"}).status_code == 404


def test_identity_is_remembered_for_the_next_session(client, session_id):
    response = client.put(f"/sessions/{session_id}/landlord", json={"field": "name", "value": "Asha Verma"})
    assert response.json() == {"name": "Asha Verma", "phone": ""}
    client.put(f"/sessions/{session_id}/tenant", json={"field": "address", "value": "Flat 4B, Pune"})

    body = client.post("/sessions").json()

    assert body["landlord"]["name"] == "Asha Verma"
    assert body["tenant"]["address"] == "Flat 4B, Pune"


def test_all_empty_identity_is_not_persisted(client, session_id):
    client.put(f"/sessions/{session_id}/tenant", json={"field": "name", "value": ""})
    assert db.get(Tenant.STORAGE_KEY) is None


def test_unknown_identity_field_is_rejected(client, session_id):
    response = client.put(f"/sessions/{session_id}/tenant", json={"field": "email", "value": "x"})
    assert response.status_code == 400


def test_reset_keeps_identity_and_issues_new_invoice(client, session_id):
    first = client.get(f"/sessions/{session_id}").json()
    add_item(client, session_id, "charge", "Rent", 1200)
    client.put(f"/sessions/{session_id}/landlord", json={"field": "phone", "value": "98765"})

    body = client.post(f"/sessions/{session_id}/reset").json()

    assert body["items"] == []
    assert body["landlord"]["phone"] == "98765"
    assert body["session_id"] == session_id
    assert body["invoice_id"] != first["invoice_id"]


def test_invoice_metadata_is_stable_within_a_session(client, session_id):
    first = client.get(f"/sessions/{session_id}").json()
    add_item(client, session_id, "charge", "Rent", 1200)
    second = client.get(f"/sessions/{session_id}").json()
    assert (first["invoice_id"], first["issue_date"]) == (second["invoice_id"], second["issue_date"])


def test_export_returns_pdf(client, session_id):
    add_item(client, session_id, "charge", "Rent", 15000)
    invoice_id = client.get(f"/sessions/{session_id}").json()["invoice_id"]

    response = client.post(f"/sessions/{session_id}/export")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert f"invoice-{invoice_id}.pdf" in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")


def test_export_failure_is_500_and_state_survives(client, session_id, monkeypatch):
    add_item(client, session_id, "charge", "Rent", 15000)

    def broken_render(instructions, output_path, title=None):
        raise RuntimeError("renderer crashed")

    monkeypatch.setattr(pdf_generator, "render_pdf", broken_render)
    response = client.post(f"/sessions/{session_id}/export")

    assert response.status_code == 500
    assert client.get(f"/sessions/{session_id}/totals").json()["total"] == 15000


def test_delete_session(client, session_id):
    assert client.delete(f"/sessions/{session_id}").status_code == 200
    assert client.get(f"/sessions/{session_id}").status_code == 404
    assert client.delete(f"/sessions/{session_id}").status_code == 404


def test_huge_amount_does_not_break_the_session(client, session_id):
    add_item(client, session_id, "charge", "Rent", 1e308)

    response = client.post(f"/sessions/{session_id}/items", json={"kind": "charge"})

    assert response.status_code == 201
    assert [item["amount"] for item in response.json()["items"]] == [0, 0]
    assert client.get(f"/sessions/{session_id}/totals").json()["total"] == 0
