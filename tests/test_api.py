# tests/test_api.py
import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from feeflow.core.db import get_db
from feeflow.core.security import create_access_token
from feeflow.main import create_app
from tests.conftest import TODAY, days_from_today


def auth(*roles):
    return {"Authorization": f"Bearer {create_access_token('user-1', list(roles))}"}


ADMIN = auth("ADMIN")
ACCOUNTANT = auth("ACCOUNTANT")


@pytest.fixture
def client(database, dispatcher):
    app = create_app(database=database, dispatcher=dispatcher, start_scheduler=False)

    def override_get_db():
        yield from database.get_session()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["database"]["status"] == "healthy"
    assert body["scheduler_running"] is False


def test_missing_token_is_rejected(client, seed):
    fee_id = seed(TODAY)
    response = client.get(f"/api/fee-dues/{fee_id}")
    assert response.status_code in (401, 403)


def test_invalid_token_is_rejected(client, seed):
    fee_id = seed(TODAY)
    response = client.get(f"/api/fee-dues/{fee_id}", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_role_without_access_is_forbidden(client, seed):
    fee_id = seed(TODAY)
    response = client.get(f"/api/fee-dues/{fee_id}", headers=auth("STUDENT"))
    assert response.status_code == 403


def test_get_fee_due(client, seed):
    fee_id = seed(days_from_today(3))
    response = client.get(f"/api/fee-dues/{fee_id}", headers=ACCOUNTANT)
    assert response.status_code == 200
    body = response.json()
    assert body["fee_due"]["status"] == "pending"
    assert body["student"]["name"] == "Asha Verma"
    assert body["fee_structure"]["name"] == "Tuition"


def test_get_unknown_fee_due(client):
    response = client.get(f"/api/fee-dues/{uuid.uuid4()}", headers=ACCOUNTANT)
    assert response.status_code == 404


def test_manual_reminder_ignores_flags_and_status(client, seed, load, gateway):
    fee_id = seed(date.today() + timedelta(days=10), status="partially_paid",
                  amount_paid=Decimal("100.00"), reminder_sent_7days=True)

    response = client.post(f"/api/fee-dues/{fee_id}/send-reminder", headers=ACCOUNTANT)

    assert response.status_code == 200
    body = response.json()
    assert body["days_until_due"] == 10
    assert set(body["results"]["outcomes"]) == {"student_email", "student_sms", "parent_email", "parent_sms"}
    assert len(gateway.calls) == 4

    fee_due = load(fee_id)
    assert fee_due.reminder_sent_7days is True
    assert fee_due.reminder_sent_3days is False
    assert fee_due.status == "partially_paid"


def test_manual_reminder_for_unknown_fee_due(client, gateway):
    response = client.post(f"/api/fee-dues/{uuid.uuid4()}/send-reminder", headers=ACCOUNTANT)
    assert response.status_code == 404
    assert gateway.calls == []


def test_mark_paid_in_full_sends_receipt(client, seed, load, add_payment, gateway):
    fee_id = seed(days_from_today(-1), status="overdue")
    payment_id = add_payment(fee_id, Decimal("5000.00"), receipt_number="RCP-0100")

    response = client.post(
        f"/api/fee-dues/{fee_id}/mark-paid",
        json={"payment_id": str(payment_id)},
        headers=ACCOUNTANT,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["fee_due"]["fee_due"]["status"] == "paid"
    assert set(body["confirmation"]["outcomes"]) == {"student_email", "parent_email"}
    assert all("RCP-0100" in e["body"] for e in gateway.emails)

    fee_due = load(fee_id)
    assert fee_due.amount_remaining == Decimal("0.00")
    assert fee_due.amount_paid == fee_due.amount


def test_partial_payment_without_reference_sends_nothing(client, seed, load, gateway):
    fee_id = seed(days_from_today(5))
    response = client.post(
        f"/api/fee-dues/{fee_id}/mark-paid",
        json={"amount_paid": "2000.00"},
        headers=ACCOUNTANT,
    )

    assert response.status_code == 200
    assert response.json()["confirmation"] is None
    assert gateway.calls == []
    fee_due = load(fee_id)
    assert fee_due.status == "partially_paid"
    assert fee_due.amount_remaining == fee_due.amount - fee_due.amount_paid


def test_overpayment_is_a_bad_request(client, seed, load):
    fee_id = seed(days_from_today(5))
    response = client.post(
        f"/api/fee-dues/{fee_id}/mark-paid",
        json={"amount_paid": "9000.00"},
        headers=ACCOUNTANT,
    )
    assert response.status_code == 400
    assert load(fee_id).amount_paid == Decimal("0.00")


def test_non_positive_payment_is_invalid(client, seed):
    fee_id = seed(days_from_today(5))
    response = client.post(
        f"/api/fee-dues/{fee_id}/mark-paid",
        json={"amount_paid": "0"},
        headers=ACCOUNTANT,
    )
    assert response.status_code == 422


def test_scheduler_status(client):
    response = client.get("/api/scheduler/status", headers=ACCOUNTANT)
    assert response.status_code == 200
    body = response.json()
    assert body["running"] is False
    assert set(body["jobs"]) == {"status_update", "reminders"}


def test_triggering_runs_requires_admin(client):
    response = client.post("/api/scheduler/run/status-update", headers=ACCOUNTANT)
    assert response.status_code == 403


def test_trigger_status_update(client, seed, load):
    fee_id = seed(TODAY)
    response = client.post(
        "/api/scheduler/run/status-update",
        params={"run_date": TODAY.isoformat()},
        headers=ADMIN,
    )
    assert response.status_code == 200
    assert response.json()["marked_due"] == 1
    assert load(fee_id).status == "due"


def test_trigger_reminders(client, seed, load, gateway):
    fee_id = seed(days_from_today(3))
    response = client.post(
        "/api/scheduler/run/reminders",
        params={"run_date": TODAY.isoformat()},
        headers=ADMIN,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["by_threshold"] == {"3days": 1}
    assert body["deliveries_attempted"] == 4
    assert load(fee_id).reminder_sent_3days is True


def test_mark_paid_with_unknown_payment_is_not_found(client, seed, load, gateway):
    fee_id = seed(days_from_today(5))
    response = client.post(
        f"/api/fee-dues/{fee_id}/mark-paid",
        json={"payment_id": str(uuid.uuid4())},
        headers=ACCOUNTANT,
    )

    assert response.status_code == 404
    assert "Payment" in response.json()["detail"]
    assert gateway.calls == []
    fee_due = load(fee_id)
    assert fee_due.status == "pending"
    assert fee_due.amount_remaining == fee_due.amount
