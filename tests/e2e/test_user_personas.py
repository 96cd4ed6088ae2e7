"""
E2E tests walking the loan lifecycle through the HTTP API as each persona.

Personas:
- borrower_steady: applies, is approved and repays every EMI until the loan closes
- borrower_rejected: turned down at verification, reapplies and is turned down by an admin
- borrower_eager: tries to hold two applications or loans at once
- verifier / admin: review staff driving the approval workflow
"""

import pytest
from fastapi.testclient import TestClient


VERIFIER = {"X-User-Id": "verifier_ops", "X-User-Role": "VERIFIER"}
ADMIN = {"X-User-Id": "admin_ops", "X-User-Role": "ADMIN"}


def customer(user_id: str):
    return {"X-User-Id": user_id, "X-User-Role": "USER"}


def apply(client: TestClient, user_id: str, amount=60000, tenure=12):
    return client.post(
        "/v1/applications",
        json={"amount": amount, "tenure_months": tenure, "employment_status": "EMPLOYED"},
        headers=customer(user_id),
    )


def approve(client: TestClient, application_id: str, rate=10.5):
    client.post(f"/v1/applications/{application_id}/verify", json={"outcome": "VERIFIED"}, headers=VERIFIER)
    return client.post(
        f"/v1/applications/{application_id}/approve",
        json={"outcome": "APPROVED", "interest_rate": rate},
        headers=ADMIN,
    )


@pytest.mark.e2e
def test_borrower_steady_repays_in_full(client: TestClient):
    """
    borrower_steady: pays the EMI each month
    Expected: loan closes after exactly `tenure` payments and a new application is accepted
    """
    application = apply(client, "borrower_steady").json()["data"]
    loan = approve(client, application["id"]).json()["data"]["loan"]
    emi = loan["emi"]

    payments = 0
    paid_off = False
    principal_left = loan["principal_left"]
    while not paid_off:
        amount = round(min(emi, principal_left), 2)
        response = client.post(
            f"/v1/loans/{loan['id']}/payments",
            json={"amount": amount},
            headers=customer("borrower_steady"),
        )
        assert response.status_code == 201, response.json()
        data = response.json()["data"]
        principal_left = data["loan"]["principal_left"]
        paid_off = data["paid_off"]
        payments += 1
        assert payments <= 12, "Loan should close within its tenure"

    assert payments == 12
    assert principal_left == 0

    transactions = client.get(
        f"/v1/loans/{loan['id']}/transactions",
        params={"limit": 50},
        headers=customer("borrower_steady"),
    ).json()["data"]
    assert len(transactions) == 12
    assert round(sum(t["amount"] for t in transactions), 2) == 60000.0

    schedule = client.get(f"/v1/loans/{loan['id']}/schedule", headers=customer("borrower_steady")).json()["data"]
    assert schedule["schedule"][0]["status"] == "PAID"

    assert client.get("/v1/loans/active", headers=customer("borrower_steady")).status_code == 404
    assert apply(client, "borrower_steady", amount=5000).status_code == 201


@pytest.mark.e2e
def test_borrower_rejected_twice(client: TestClient):
    """
    borrower_rejected: fails verification, then fails final approval
    Expected: each rejection frees the borrower to reapply and no loan is ever created
    """
    first = apply(client, "borrower_rejected").json()["data"]
    rejected = client.post(
        f"/v1/applications/{first['id']}/verify",
        json={"outcome": "REJECTED", "rejection_reason": "Payslips missing"},
        headers=VERIFIER,
    )
    assert rejected.json()["data"]["status"] == "REJECTED"

    second = apply(client, "borrower_rejected").json()["data"]
    client.post(f"/v1/applications/{second['id']}/verify", json={"outcome": "VERIFIED"}, headers=VERIFIER)
    decision = client.post(
        f"/v1/applications/{second['id']}/approve",
        json={"outcome": "REJECTED", "rejection_reason": "Debt-to-income too high"},
        headers=ADMIN,
    )
    assert decision.status_code == 200
    assert decision.json()["data"]["loan"] is None

    # Terminal decisions stick
    retry = approve(client, second["id"])
    assert retry.status_code == 409

    history = client.get("/v1/applications", headers=customer("borrower_rejected")).json()["data"]
    assert {a["status"] for a in history} == {"REJECTED"}
    assert client.get("/v1/loans", headers=customer("borrower_rejected")).json()["data"] == []


@pytest.mark.e2e
def test_borrower_eager_limited_to_one_of_each(client: TestClient):
    """
    borrower_eager: applies repeatedly
    Expected: one active application at a time, and no new application while a loan is unpaid
    """
    first = apply(client, "borrower_eager").json()["data"]
    duplicate = apply(client, "borrower_eager", amount=2000)
    assert duplicate.status_code == 409
    assert duplicate.json()["details"]["reason"] == "pending application exists"

    assert approve(client, first["id"]).status_code == 200

    with_loan = apply(client, "borrower_eager", amount=2000)
    assert with_loan.status_code == 409
    assert with_loan.json()["details"]["reason"] == "active loan exists"


@pytest.mark.e2e
def test_admin_dashboard_tracks_portfolio(client: TestClient):
    """
    admin: reviews the dashboard after mixed activity
    Expected: counts reflect each persona's state
    """
    steady = apply(client, "borrower_a", amount=10000).json()["data"]
    loan = approve(client, steady["id"]).json()["data"]["loan"]
    client.post(f"/v1/loans/{loan['id']}/payments", json={"amount": 10000}, headers=customer("borrower_a"))

    active = apply(client, "borrower_b", amount=20000).json()["data"]
    approve(client, active["id"])

    apply(client, "borrower_c", amount=3000)

    data = client.get("/v1/stats/dashboard", headers=ADMIN).json()["data"]
    assert data["borrowers"] == 2
    assert data["repaid_loans"] == 1
    assert data["active_loans"] == 1
    assert data["cash_disbursed"] == 30000.0
    assert data["cash_received"] == 10000.0
    assert data["pending_applications"] == 1
    assert data["approved_applications"] == 2
    assert data["total_applications"] == 3
