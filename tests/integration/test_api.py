"""Integration tests for API endpoints"""

import httpx
import pytest
from fastapi.testclient import TestClient
from budgetly.api.dependencies import get_advisor_client
from budgetly.infrastructure.clients.advisor import AdvisorClient
from mock_services.advisor_server.main import app as advisor_app

UID = "user_123"


def _add_income(client: TestClient, amount: float = 50000, month: str = "2024-01") -> dict:
    response = client.post(
        f"/v1/users/{UID}/income",
        json={"month": month, "entry": {"label": "Salary", "amount": amount, "source": "Employer"}},
    )
    assert response.status_code == 200, response.text
    return response.json()


def _add_expense(client: TestClient, amount: float, category: str = "Food", month: str = "2024-01") -> dict:
    response = client.post(
        f"/v1/users/{UID}/expenses",
        json={
            "month": month,
            "expense": {"type": "one-time", "label": category, "amount": amount, "category": category},
        },
    )
    assert response.status_code == 200, response.text
    return response.json()


def _use_advisor(client: TestClient, transport: httpx.AsyncBaseTransport) -> None:
    client.app.dependency_overrides[get_advisor_client] = lambda: AdvisorClient(
        base_url="http://advisor.test", transport=transport
    )


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient, user: dict):
    """Test Prometheus metrics endpoint"""
    _add_income(client)

    response = client.get("/metrics")
    assert response.status_code == 200
    assert "budgetly_ledger_writes_total" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-42"})
    assert response.headers["X-Request-ID"] == "req-42"


# Users


def test_sign_in_is_find_or_create(client: TestClient, user: dict):
    assert user["uid"] == UID
    assert user["savings"] == 0
    assert user["months"] == {}

    again = client.post("/v1/users", json={"uid": UID, "email": "other@example.com", "name": "Other"})
    assert again.status_code == 200
    assert again.json()["name"] == "Asha"


def test_sign_in_validates_email(client: TestClient):
    response = client.post("/v1/users", json={"uid": "u2", "email": "not-an-email", "name": "X"})
    assert response.status_code == 422


def test_email_taken_by_another_user_is_409(client: TestClient, user: dict):
    response = client.post("/v1/users", json={"uid": "user_456", "email": "asha@example.com", "name": "Imposter"})
    assert response.status_code == 409


def test_update_profile(client: TestClient, user: dict):
    response = client.put(f"/v1/users/{UID}", json={"savings": 120000, "occupation": "Engineer"})

    assert response.status_code == 200
    data = response.json()
    assert data["savings"] == 120000
    assert data["occupation"] == "Engineer"
    assert data["name"] == "Asha"


def test_unknown_user_is_404(client: TestClient):
    assert client.get("/v1/users/ghost").status_code == 404
    assert client.get("/v1/users/ghost/dashboard").status_code == 404
    response = client.post(
        "/v1/users/ghost/income",
        json={"month": "2024-01", "entry": {"label": "Salary", "amount": 10}},
    )
    assert response.status_code == 404


# Income & expenses


def test_income_crud(client: TestClient, user: dict):
    document = _add_income(client)
    entry = document["months"]["2024-01"]["income"][0]
    assert entry["amount"] == 50000
    assert entry["date"] == "2024-01-01"

    response = client.put(
        f"/v1/users/{UID}/income/{entry['id']}",
        json={"month": "2024-01", "entry": {"label": "Salary", "amount": 55000, "source": "Employer"}},
    )
    assert response.status_code == 200
    assert response.json()["months"]["2024-01"]["income"][0]["amount"] == 55000

    listing = client.get(f"/v1/users/{UID}/income", params={"month": "2024-01"}).json()
    assert listing["total_income"] == 55000

    response = client.delete(f"/v1/users/{UID}/income/{entry['id']}", params={"month": "2024-01"})
    assert response.status_code == 200
    assert response.json()["months"] == {}


def test_entry_date_must_match_month(client: TestClient, user: dict):
    response = client.post(
        f"/v1/users/{UID}/income",
        json={"month": "2024-01", "entry": {"label": "Salary", "amount": 10, "date": "2024-02-01"}},
    )
    assert response.status_code == 422
    assert client.get(f"/v1/users/{UID}").json()["months"] == {}


@pytest.mark.parametrize(
    "expense",
    [
        {"type": "one-time", "label": "Lunch", "amount": 0, "category": "Food"},
        {"type": "one-time", "label": "", "amount": 10, "category": "Food"},
        {"type": "weekly", "label": "Lunch", "amount": 10, "category": "Food"},
        {"label": "Lunch", "amount": 10, "category": "Food"},
        {"type": "emi", "label": "Phone - EMI 1/12", "amount": 1000, "category": "EMI"},
    ],
)
def test_invalid_expense_bodies(client: TestClient, user: dict, expense: dict):
    response = client.post(f"/v1/users/{UID}/expenses", json={"month": "2024-01", "expense": expense})
    assert response.status_code == 422


def test_expense_crud(client: TestClient, user: dict):
    document = _add_expense(client, 1200, "Food")
    expense = document["months"]["2024-01"]["expenses"][0]
    assert expense["type"] == "one-time"

    response = client.put(
        f"/v1/users/{UID}/expenses/{expense['id']}",
        json={
            "month": "2024-01",
            "expense": {"type": "one-time", "label": "Groceries", "amount": 1500, "category": "Food"},
        },
    )
    assert response.status_code == 200
    assert response.json()["months"]["2024-01"]["expenses"][0]["label"] == "Groceries"

    _add_expense(client, 700, "Transport", month="2024-02")
    listing = client.get(f"/v1/users/{UID}/expenses").json()
    assert listing["total_expenses"] == 2200
    assert [e["month"] for e in listing["expenses"]] == ["2024-01", "2024-02"]

    february = client.get(f"/v1/users/{UID}/expenses", params={"month": "2024-02"}).json()
    assert february["total_expenses"] == 700


def test_delete_missing_entry_is_404_and_ledger_unchanged(client: TestClient, user: dict):
    before = _add_expense(client, 1200)

    response = client.delete(f"/v1/users/{UID}/expenses/does-not-exist", params={"month": "2024-01"})
    assert response.status_code == 404

    after = client.get(f"/v1/users/{UID}").json()
    assert after["months"] == before["months"]


def test_income_id_cannot_be_deleted_as_expense(client: TestClient, user: dict):
    income_id = _add_income(client)["months"]["2024-01"]["income"][0]["id"]

    response = client.delete(f"/v1/users/{UID}/expenses/{income_id}", params={"month": "2024-01"})
    assert response.status_code == 404


# EMIs


def test_create_emi_writes_all_installments(client: TestClient, user: dict):
    response = client.post(
        f"/v1/users/{UID}/emis",
        json={"product_name": "Phone", "total_amount": 12000, "duration_months": 12, "start_month": "2024-01"},
    )

    assert response.status_code == 200
    months = response.json()["months"]
    assert sorted(months) == [f"2024-{m:02d}" for m in range(1, 13)]
    first = months["2024-01"]["expenses"][0]
    assert first["label"] == "Phone - EMI 1/12"
    assert first["amount"] == 1000
    assert first["emi_details"]["remaining_months"] == 11

    emis = client.get(f"/v1/users/{UID}/emis").json()
    assert emis["total_active"] == 1
    assert emis["total_monthly_emi"] == 1000
    assert emis["total_emi_amount"] == 12000
    assert emis["active"][0]["end_month"] == "2024-12"


def test_create_emi_is_idempotent_and_detects_conflicts(client: TestClient, user: dict):
    body = {"product_name": "TV", "total_amount": 6000, "duration_months": 6, "start_month": "2024-01"}

    first = client.post(f"/v1/users/{UID}/emis", json=body).json()
    second = client.post(f"/v1/users/{UID}/emis", json=body)
    assert second.status_code == 200
    assert second.json()["months"] == first["months"]

    conflict = client.post(f"/v1/users/{UID}/emis", json={**body, "total_amount": 9000})
    assert conflict.status_code == 409


def test_create_emi_validation(client: TestClient, user: dict):
    response = client.post(
        f"/v1/users/{UID}/emis",
        json={"product_name": "Car", "total_amount": 500000, "duration_months": 121, "start_month": "2024-01"},
    )
    assert response.status_code == 422
    assert client.get(f"/v1/users/{UID}").json()["months"] == {}


def test_pay_and_delete_emi(client: TestClient, user: dict):
    body = {"product_name": "TV", "total_amount": 2000, "duration_months": 2, "start_month": "2024-01"}
    client.post(f"/v1/users/{UID}/emis", json=body)

    assert client.post(f"/v1/users/{UID}/emis/TV/pay").status_code == 200
    assert client.post(f"/v1/users/{UID}/emis/TV/pay").status_code == 200
    assert client.post(f"/v1/users/{UID}/emis/TV/pay").status_code == 422

    emis = client.get(f"/v1/users/{UID}/emis").json()
    assert emis["active"] == []
    assert emis["completed"][0]["paid_months"] == 2
    assert emis["completed"][0]["progress"] == 100

    response = client.delete(f"/v1/users/{UID}/emis/TV")
    assert response.status_code == 200
    assert response.json()["months"] == {}
    assert client.delete(f"/v1/users/{UID}/emis/TV").status_code == 404


def test_reconciliation_and_repair(client: TestClient, user: dict):
    body = {"product_name": "Bike", "total_amount": 3000, "duration_months": 3, "start_month": "2024-01"}
    months = client.post(f"/v1/users/{UID}/emis", json=body).json()["months"]
    second = months["2024-02"]["expenses"][0]["id"]
    client.delete(f"/v1/users/{UID}/expenses/{second}", params={"month": "2024-02"})

    report = client.get(f"/v1/users/{UID}/emis/reconciliation").json()
    assert report["incomplete"] == [{"product_name": "Bike", "duration": 3, "present": [1, 3], "missing": [2]}]

    repaired = client.post(f"/v1/users/{UID}/emis/Bike/repair")
    assert repaired.status_code == 200
    assert repaired.json()["months"]["2024-02"]["expenses"][0]["label"] == "Bike - EMI 2/3"
    assert client.get(f"/v1/users/{UID}/emis/reconciliation").json()["incomplete"] == []


def test_emi_product_name_with_slash(client: TestClient, user: dict):
    body = {"product_name": "AC 1.5/Inverter", "total_amount": 3000, "duration_months": 3, "start_month": "2024-01"}
    months = client.post(f"/v1/users/{UID}/emis", json=body).json()["months"]
    assert months["2024-01"]["expenses"][0]["label"] == "AC 1.5/Inverter - EMI 1/3"

    paid = client.post(f"/v1/users/{UID}/emis/AC 1.5%2FInverter/pay")
    assert paid.status_code == 200
    assert paid.json()["months"]["2024-01"]["expenses"][0]["emi_details"]["paid"] is True

    second = months["2024-02"]["expenses"][0]["id"]
    client.delete(f"/v1/users/{UID}/expenses/{second}", params={"month": "2024-02"})
    repaired = client.post(f"/v1/users/{UID}/emis/AC 1.5/Inverter/repair")
    assert repaired.status_code == 200
    assert repaired.json()["months"]["2024-02"]["expenses"][0]["label"] == "AC 1.5/Inverter - EMI 2/3"

    deleted = client.delete(f"/v1/users/{UID}/emis/AC 1.5%2FInverter")
    assert deleted.status_code == 200
    assert deleted.json()["months"] == {}


# Dashboard & reports


def test_dashboard_metrics(client: TestClient, user: dict):
    _add_income(client, 50000)
    _add_expense(client, 15000, "Housing")
    _add_expense(client, 5000, "Food")

    response = client.get(f"/v1/users/{UID}/dashboard", params={"month": "2024-01"})

    assert response.status_code == 200
    data = response.json()
    assert data["metrics"]["total_income"] == 50000
    assert data["metrics"]["current_savings"] == 30000
    assert data["metrics"]["expense_ratio"] == 40
    assert data["available_months"] == ["2024-01"]
    assert data["alerts"][0]["title"] == "Great Financial Health"
    assert data["insights"][0] == "Your highest spending category is Housing (₹15,000.00)"


def test_dashboard_rejects_bad_month(client: TestClient, user: dict):
    response = client.get(f"/v1/users/{UID}/dashboard", params={"month": "2024-13"})
    assert response.status_code == 422


def test_savings_and_reports(client: TestClient, user: dict):
    client.put(f"/v1/users/{UID}", json={"savings": 10000})
    _add_income(client, 50000, month="2024-01")
    _add_expense(client, 20000, month="2024-01")
    _add_income(client, 30000, month="2024-02")
    _add_expense(client, 35000, "Travel", month="2024-02")

    savings = client.get(f"/v1/users/{UID}/savings").json()
    assert [p["savings"] for p in savings["history"]] == [30000, -5000]
    assert savings["total_savings"] == 25000
    assert savings["accumulated_savings"] == 10000

    reports = client.get(f"/v1/users/{UID}/reports").json()["reports"]
    assert [r["month"] for r in reports] == ["2024-02", "2024-01"]
    assert reports[0]["top_categories"] == [{"category": "Travel", "amount": 35000}]


def test_insight_falls_back_to_rules(client: TestClient, user: dict):
    _add_income(client, 50000)
    _add_expense(client, 15000, "Housing")

    response = client.post(f"/v1/users/{UID}/reports/2024-01/insight")

    assert response.status_code == 200
    data = response.json()
    assert data["source"] == "rules"
    assert data["insight"].startswith("In 2024-01 you earned ₹50,000.00 and spent ₹15,000.00")


def test_insight_from_advisor(client: TestClient, user: dict):
    _add_income(client, 50000)
    _add_expense(client, 15000, "Housing")
    _use_advisor(client, httpx.ASGITransport(app=advisor_app))

    data = client.post(f"/v1/users/{UID}/reports/2024-01/insight").json()

    assert data["source"] == "advisor"
    assert "Housing" in data["insight"]


# Suggestions


def test_risky_emi_suggestion(client: TestClient, user: dict):
    _add_income(client, 10000)

    response = client.post(
        f"/v1/users/{UID}/suggestions",
        json={"payment_type": "emi", "product_name": "Phone", "monthly_emi": 3000, "duration": 12, "month": "2024-01"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["suggestion"]["classification"] == "risky"
    assert data["suggestion"]["price"] == 36000
    assert data["suggestion"]["emi_amount"] == 3000
    assert data["rule_reasons"][0] == "EMI (₹3,000.00) exceeds 25% of monthly income"
    assert data["advisor_used"] is False
    assert data["suggestion"]["reason"] == ". ".join(data["rule_reasons"])


def test_one_time_suggestion_is_good(client: TestClient, user: dict):
    _add_income(client, 100000)
    _add_expense(client, 20000)

    response = client.post(
        f"/v1/users/{UID}/suggestions",
        json={"payment_type": "one-time", "product_name": "Chair", "price": 5000, "month": "2024-01"},
    )

    data = response.json()
    assert data["suggestion"]["classification"] == "good"
    assert data["suggestion"]["emi_amount"] is None
    assert data["metrics"]["expense_ratio"] == 20


@pytest.mark.parametrize(
    "body",
    [
        {"product_name": "Chair", "price": 5000},
        {"payment_type": "one-time", "product_name": "Chair", "price": 20_000_000},
        {"payment_type": "emi", "product_name": "Car", "monthly_emi": 1000, "duration": 200},
        {"payment_type": "emi", "product_name": "Car", "duration": 12},
    ],
)
def test_invalid_suggestion_requests(client: TestClient, user: dict, body: dict):
    response = client.post(f"/v1/users/{UID}/suggestions", json=body)
    assert response.status_code == 422


def test_advisor_rewords_reason_but_keeps_classification(client: TestClient, user: dict):
    _add_income(client, 10000)
    _use_advisor(client, httpx.ASGITransport(app=advisor_app))

    data = client.post(
        f"/v1/users/{UID}/suggestions",
        json={
            "payment_type": "emi",
            "product_name": "Phone",
            "monthly_emi": 3000,
            "duration": 12,
            "month": "2024-01",
            "use_advisor": True,
        },
    ).json()

    assert data["advisor_used"] is True
    assert data["suggestion"]["classification"] == "risky"
    assert data["suggestion"]["reason"] == "Phone looks risky: EMI (₹3,000.00) exceeds 25% of monthly income."


def test_advisor_failure_falls_back_to_rules(client: TestClient, user: dict):
    _add_income(client, 10000)
    _use_advisor(client, httpx.MockTransport(lambda request: httpx.Response(503)))

    response = client.post(
        f"/v1/users/{UID}/suggestions",
        json={"payment_type": "one-time", "product_name": "Chair", "price": 100, "month": "2024-01", "use_advisor": True},
    )

    assert response.status_code == 200
    assert response.json()["advisor_used"] is False


def test_suggestion_history_stats_and_delete(client: TestClient, user: dict):
    _add_income(client, 10000)
    for name, price in [("Chair", 100), ("Desk", 200), ("Sofa", 20000)]:
        client.post(
            f"/v1/users/{UID}/suggestions",
            json={"payment_type": "one-time", "product_name": name, "price": price, "month": "2024-01"},
        )

    history = client.get(f"/v1/users/{UID}/suggestions").json()["suggestions"]
    assert [s["product_name"] for s in history] == ["Sofa", "Desk", "Chair"]
    assert len(client.get(f"/v1/users/{UID}/suggestions", params={"limit": 2}).json()["suggestions"]) == 2

    stats = client.get(f"/v1/users/{UID}/suggestions/stats").json()["stats"]
    assert stats["good"] == {"count": 2, "total_value": 300}
    assert stats["moderate"] == {"count": 1, "total_value": 20000}

    assert client.delete(f"/v1/users/{UID}/suggestions/{history[0]['id']}").status_code == 204
    assert client.delete(f"/v1/users/{UID}/suggestions/{history[0]['id']}").status_code == 404
    assert client.delete(f"/v1/users/{UID}/suggestions/not-a-uuid").status_code == 400
