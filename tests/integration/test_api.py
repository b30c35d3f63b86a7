"""Integration tests for API endpoints"""

from datetime import date, timedelta
from fastapi.testclient import TestClient
from lending_engine.infrastructure.database.models import ContractRow, HolidayRow


def test_health_check(client: TestClient):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "lending_recompute_contracts_total" in response.text


def test_request_id_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "abc-123"})

    assert response.headers["X-Request-ID"] == "abc-123"


def test_recompute_then_read_pending_status(client: TestClient, create_company, create_contract):
    """Test the full flow: recompute, then read the persisted status"""
    create_company()
    contract_id = create_contract(movements=[(3300, date(2024, 1, 4), True)])

    response = client.post("/v1/jobs/recompute")
    assert response.status_code == 200
    assert response.json() == {"updated": 1, "unchanged": 0, "failed": []}

    response = client.get(f"/v1/contracts/{contract_id}/pending")
    assert response.status_code == 200
    data = response.json()
    assert data["contract_id"] == contract_id
    assert data["payments_up_to_date"] == 3
    assert data["payments_late"] == 7
    assert data["pending_amount_cents"] == 7700
    assert data["color"] == "red"
    assert data["last_payment_date"] == "2024-01-04"


def test_recompute_reports_failures(client: TestClient, create_company, create_contract):
    create_company()
    broken = create_contract(with_modality=False)

    response = client.post("/v1/jobs/recompute", params={"company_id": "acme"})

    assert response.status_code == 200
    data = response.json()
    assert data["updated"] == 0
    assert data["failed"][0]["contract_id"] == broken


def test_pending_status_not_computed(client: TestClient, create_company, create_contract):
    create_company()
    contract_id = create_contract()

    assert client.get(f"/v1/contracts/{contract_id}/pending").status_code == 404
    assert client.get("/v1/contracts/does-not-exist/pending").status_code == 404


def test_schedule_endpoint(client: TestClient, create_company, create_contract):
    create_company()
    contract_id = create_contract(movements=[(1650, date(2024, 1, 2), True)])

    response = client.get(f"/v1/contracts/{contract_id}/schedule")

    assert response.status_code == 200
    data = response.json()
    assert data["total_cents"] == 11000
    assert data["payed_cents"] == 1650
    installments = data["installments"]
    assert len(installments) == 10
    assert installments[0]["due_date"] == "2024-01-02"
    assert installments[0]["status"] == "up_to_date"
    assert installments[1]["status"] == "incomplete"
    assert installments[1]["paid_cents"] == 550
    assert installments[2]["status"] == "late"
    assert "2024-01-07" not in [inst["due_date"] for inst in installments]


def test_schedule_unknown_contract(client: TestClient):
    assert client.get("/v1/contracts/missing/schedule").status_code == 404


def test_schedule_without_modality(client: TestClient, create_company, create_contract):
    create_company()
    contract_id = create_contract(with_modality=False)

    assert client.get(f"/v1/contracts/{contract_id}/schedule").status_code == 422


def test_create_rest_days_is_idempotent(client: TestClient, db, create_company):
    create_company()

    first = client.post("/v1/companies/acme/rest-days", json={"through_date": "2024-01-31"})
    second = client.post("/v1/companies/acme/rest-days", json={"through_date": "2024-01-31"})

    assert first.status_code == 200
    assert first.json()["created"] == 7
    assert first.json()["dates"][0] == "2023-12-17"
    assert second.json() == {"created": 0, "dates": []}
    assert db.query(HolidayRow).count() == 7


def test_create_rest_days_unknown_company(client: TestClient):
    response = client.post("/v1/companies/ghost/rest-days", json={"through_date": "2024-01-31"})

    assert response.status_code == 422


def test_create_rest_days_beyond_horizon(client: TestClient, create_company):
    create_company()

    response = client.post("/v1/companies/acme/rest-days", json={"through_date": "2100-01-01"})

    assert response.status_code == 422


def test_calendar_lookup(client: TestClient, create_company):
    create_company()

    sunday = client.get("/v1/companies/acme/calendar/2024-01-14")
    monday = client.get("/v1/companies/acme/calendar/2024-01-15")

    assert sunday.json()["payable"] is False
    assert monday.json() == {"company_id": "acme", "day": "2024-01-15", "payable": True}


def test_work_queue(client: TestClient, create_company, create_contract):
    """Test queues are built from persisted statuses"""
    create_company()
    create_contract()
    create_contract(movements=[(1100 * 9, date(2024, 1, 2), True)])  # Only the last installment owed, due Jan 12
    create_contract(movements=[(1100 * 10, date(2024, 1, 2), True)])  # Settled, deactivated by the run
    client.post("/v1/jobs/recompute")

    response = client.get("/v1/companies/acme/work-queue")

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert data["late"]["count"] == 2
    assert data["late"]["percent"] == 100.0
    assert data["updated"]["count"] == 0
    assert data["expired"]["count"] == 0


def test_purge_finished(client: TestClient, db, now, create_company, create_contract):
    create_company()
    create_contract(is_active=False, finished_at=now - timedelta(days=30))
    create_contract()

    response = client.post("/v1/jobs/purge-finished")

    assert response.status_code == 200
    assert response.json() == {"purged": 1}
    assert db.query(ContractRow).count() == 1
