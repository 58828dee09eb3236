"""Integration tests for API endpoints"""

import pytest
from fastapi.testclient import TestClient

from crediario.config import settings


@pytest.fixture
def customer_id(client: TestClient, customer_payload: dict) -> str:
    response = client.post("/v1/customers", json=customer_payload)
    assert response.status_code == 201
    return response.json()["customer_id"]


@pytest.fixture
def installment_note(client: TestClient, customer_id: str) -> dict:
    """
    R$ 300,00 in 3 monthly installments issued 2024-04-10.

    At the test instant (2024-06-15) May and June are overdue, July is not.
    """
    response = client.post(
        f"/v1/customers/{customer_id}/notes",
        json={
            "amount_cents": 30000,
            "issue_date": "2024-04-10",
            "due_date": "2024-07-10",
            "installment": True,
            "installment_count": 3,
        },
    )
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def direct_note(client: TestClient, customer_id: str) -> dict:
    """R$ 100,00 due 2024-06-20, paid without installments"""
    response = client.post(
        f"/v1/customers/{customer_id}/notes",
        json={"amount_cents": 10000, "issue_date": "2024-06-01", "due_date": "2024-06-20"},
    )
    assert response.status_code == 201
    return response.json()


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "crediario_payment_operations" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


class TestCustomers:
    def test_create_customer_normalises_documents(self, client: TestClient, customer_payload: dict):
        response = client.post("/v1/customers", json=customer_payload)

        assert response.status_code == 201
        data = response.json()
        assert data["cpf"] == "52998224725"
        assert data["phone"] == "11987654321"
        assert data["eligibility"] == "eligible"

    def test_duplicate_cpf_conflicts(self, client: TestClient, customer_payload: dict, customer_id: str):
        response = client.post("/v1/customers", json={**customer_payload, "name": "Other"})
        assert response.status_code == 409

    def test_invalid_cpf(self, client: TestClient, customer_payload: dict):
        response = client.post("/v1/customers", json={**customer_payload, "cpf": "123.456.789-00"})
        assert response.status_code == 422

    def test_unknown_customer(self, client: TestClient):
        assert client.get("/v1/customers/missing").status_code == 404

    def test_customer_view_with_statistics(self, client: TestClient, customer_id: str, installment_note: dict):
        response = client.get(f"/v1/customers/{customer_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["customer"]["name"] == "Maria Souza"
        assert [n["note_id"] for n in data["notes"]] == [installment_note["note_id"]]
        assert data["statistics"]["total_cents"] == 30000
        assert data["statistics"]["overdue_cents"] == 20000
        assert data["statistics"]["pending_cents"] == 10000
        assert data["statistics"]["outstanding_count"] == 3

    def test_ineligible_customer_needs_manager_override(self, client: TestClient, customer_id: str):
        toggled = client.patch(f"/v1/customers/{customer_id}/eligibility")
        assert toggled.json()["eligibility"] == "not_eligible"

        note = {"amount_cents": 5000, "issue_date": "2024-06-01", "due_date": "2024-07-01"}
        assert client.post(f"/v1/customers/{customer_id}/notes", json=note).status_code == 403

        override = client.post(f"/v1/customers/{customer_id}/notes", json={**note, "manager_override": True})
        assert override.status_code == 201


class TestNotes:
    def test_installment_note_schedule(self, installment_note: dict):
        assert installment_note["status"] == "overdue"
        assert [i["due_date"] for i in installment_note["installments"]] == ["2024-05-10", "2024-06-10", "2024-07-10"]
        assert [i["status"] for i in installment_note["installments"]] == ["overdue", "overdue", "pending"]

    def test_default_installment_count(self, client: TestClient, customer_id: str):
        response = client.post(
            f"/v1/customers/{customer_id}/notes",
            json={"amount_cents": 9999, "issue_date": "2024-06-01", "due_date": "2024-08-01", "installment": True},
        )

        assert response.status_code == 201
        amounts = [i["amount_cents"] for i in response.json()["installments"]]
        assert len(amounts) == settings.default_installments
        assert sum(amounts) == 9999

    def test_invalid_dates(self, client: TestClient, customer_id: str):
        response = client.post(
            f"/v1/customers/{customer_id}/notes",
            json={"amount_cents": 1000, "issue_date": "2024-06-01", "due_date": "2024-05-01"},
        )
        assert response.status_code == 422

    def test_edit_keeps_paid_installments(self, client: TestClient, installment_note: dict):
        first = installment_note["installments"][0]
        client.post("/v1/payments", json={"installment_id": first["installment_id"], "amount_cents": 10000, "method": "pix"})

        response = client.put(
            f"/v1/notes/{installment_note['note_id']}",
            json={
                "amount_cents": 40000,
                "issue_date": "2024-04-10",
                "due_date": "2024-08-10",
                "installment": True,
                "installment_count": 4,
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert len(data["installments"]) == 4
        assert data["installments"][0]["installment_id"] == first["installment_id"]
        assert data["installments"][0]["status"] == "paid_late"
        assert data["amount_paid_cents"] == 10000

    def test_edit_unknown_note(self, client: TestClient):
        response = client.put(
            "/v1/notes/missing",
            json={"amount_cents": 1000, "issue_date": "2024-06-01", "due_date": "2024-07-01", "installment": False},
        )
        assert response.status_code == 404


class TestPayments:
    def test_pay_installment(self, client: TestClient, installment_note: dict):
        first = installment_note["installments"][0]

        response = client.post(
            "/v1/payments",
            json={"installment_id": first["installment_id"], "amount_cents": 10000, "method": "pix", "notes": "via app"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["operation"] == "installment"
        assert data["applied_cents"] == 10000
        assert data["remainder_cents"] == 0
        assert data["payments"][0]["notes"] == "via app"
        note = data["notes"][0]
        assert note["amount_paid_cents"] == 10000
        assert note["installments"][0]["paid"] is True
        assert note["installments"][0]["paid_late"] is True

    def test_overpaying_installment_is_rejected(self, client: TestClient, installment_note: dict):
        first = installment_note["installments"][0]

        response = client.post(
            "/v1/payments",
            json={"installment_id": first["installment_id"], "amount_cents": 15000, "method": "cash"},
        )

        assert response.status_code == 422
        assert response.json()["detail"]["due_cents"] == 10000

    def test_overpaying_installment_is_capped_when_configured(
        self, client: TestClient, installment_note: dict, monkeypatch
    ):
        monkeypatch.setattr(settings, "overpayment_policy", "cap")
        first = installment_note["installments"][0]

        response = client.post(
            "/v1/payments",
            json={"installment_id": first["installment_id"], "amount_cents": 15000, "method": "cash"},
        )

        assert response.status_code == 200
        assert response.json()["applied_cents"] == 10000
        assert response.json()["remainder_cents"] == 5000

    def test_paying_settled_installment_conflicts(self, client: TestClient, installment_note: dict):
        first = installment_note["installments"][0]
        body = {"installment_id": first["installment_id"], "amount_cents": 10000, "method": "cash"}
        assert client.post("/v1/payments", json=body).status_code == 200

        assert client.post("/v1/payments", json={**body, "amount_cents": 1}).status_code == 409

    def test_pay_note_cascades_by_due_date(self, client: TestClient, installment_note: dict):
        response = client.post(
            "/v1/payments",
            json={"note_id": installment_note["note_id"], "amount_cents": 15000, "method": "card"},
        )

        assert response.status_code == 200
        installments = response.json()["notes"][0]["installments"]
        assert [i["amount_paid_cents"] for i in installments] == [10000, 5000, 0]

    def test_pay_direct_note(self, client: TestClient, direct_note: dict):
        response = client.post(
            "/v1/payments",
            json={"note_id": direct_note["note_id"], "amount_cents": 4000, "method": "check"},
        )

        assert response.status_code == 200
        note = response.json()["notes"][0]
        assert note["amount_paid_cents"] == 4000
        assert note["payments"][0]["installment_id"] is None

    def test_distribution_across_customer(
        self, client: TestClient, customer_id: str, installment_note: dict, direct_note: dict
    ):
        """Overdue installments first (May, June), then June 20 direct note, then July"""
        response = client.post(
            "/v1/payments",
            json={"customer_id": customer_id, "amount_cents": 45000, "method": "cash"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["operation"] == "distribution"
        assert data["applied_cents"] == 40000
        assert data["remainder_cents"] == 5000
        assert data["applied_cents"] + data["remainder_cents"] == data["requested_cents"]
        assert [p["amount_cents"] for p in data["payments"]] == [10000, 10000, 10000, 10000]
        assert {n["status"] for n in data["notes"]} == {"paid", "paid_late"}

        view = client.get(f"/v1/customers/{customer_id}").json()
        assert view["statistics"]["paid_cents"] == 40000
        assert view["statistics"]["outstanding_count"] == 0

    def test_partial_distribution_pays_overdue_only(
        self, client: TestClient, customer_id: str, installment_note: dict, direct_note: dict
    ):
        response = client.post(
            "/v1/payments",
            json={"customer_id": customer_id, "amount_cents": 20000, "method": "cash"},
        )

        data = response.json()
        assert [n["note_id"] for n in data["notes"]] == [installment_note["note_id"]]
        assert [i["paid"] for i in data["notes"][0]["installments"]] == [True, True, False]

    def test_request_needs_exactly_one_target(self, client: TestClient, installment_note: dict):
        response = client.post(
            "/v1/payments",
            json={
                "note_id": installment_note["note_id"],
                "customer_id": installment_note["customer_id"],
                "amount_cents": 100,
                "method": "cash",
            },
        )
        assert response.status_code == 422

    @pytest.mark.parametrize("amount", [0, -500])
    def test_non_positive_amount(self, client: TestClient, installment_note: dict, amount: int):
        response = client.post(
            "/v1/payments",
            json={"note_id": installment_note["note_id"], "amount_cents": amount, "method": "cash"},
        )
        assert response.status_code == 422

    def test_unknown_targets(self, client: TestClient):
        for target in ({"installment_id": "nope"}, {"note_id": "nope"}, {"customer_id": "nope"}):
            response = client.post("/v1/payments", json={**target, "amount_cents": 100, "method": "cash"})
            assert response.status_code == 404


class TestPaymentChanges:
    @pytest.fixture
    def paid(self, client: TestClient, installment_note: dict) -> dict:
        response = client.post(
            "/v1/payments",
            json={"note_id": installment_note["note_id"], "amount_cents": 15000, "method": "cash"},
        )
        return response.json()

    def test_edit_payment(self, client: TestClient, paid: dict):
        payment_id = paid["payments"][0]["payment_id"]

        response = client.put(f"/v1/payments/{payment_id}", json={"amount_cents": 7000, "method": "pix"})

        assert response.status_code == 200
        data = response.json()
        assert data["note"]["amount_paid_cents"] == 12000
        assert data["history_entry"]["amount_before_cents"] == 10000
        assert data["history_entry"]["amount_after_cents"] == 7000
        first = data["note"]["installments"][0]
        assert first["paid"] is False
        assert first["payments"][0]["edited"] is True
        assert first["payments"][0]["method"] == "pix"

    def test_edit_above_installment_amount(self, client: TestClient, paid: dict):
        payment_id = paid["payments"][1]["payment_id"]
        response = client.put(f"/v1/payments/{payment_id}", json={"amount_cents": 10001})
        assert response.status_code == 422

    def test_delete_payment(self, client: TestClient, paid: dict, customer_id: str):
        payment_id = paid["payments"][0]["payment_id"]

        response = client.delete(f"/v1/payments/{payment_id}")

        assert response.status_code == 200
        assert response.json()["note"]["amount_paid_cents"] == 5000
        assert response.json()["note"]["installments"][0]["payments"] == []

        assert client.delete(f"/v1/payments/{payment_id}").status_code == 404

    def test_delete_direct_payment(self, client: TestClient, direct_note: dict):
        paid = client.post(
            "/v1/payments",
            json={"note_id": direct_note["note_id"], "amount_cents": 10000, "method": "cash"},
        ).json()
        assert paid["notes"][0]["status"] == "paid"

        response = client.delete(f"/v1/payments/{paid['payments'][0]['payment_id']}")

        assert response.json()["note"]["status"] == "pending"
        assert response.json()["note"]["amount_paid_cents"] == 0


@pytest.fixture
def other_customer_id(client: TestClient, customer_payload: dict) -> str:
    response = client.post(
        "/v1/customers",
        json={**customer_payload, "name": "Ana Lima", "cpf": "111.444.777-35", "nickname": "Aninha"},
    )
    assert response.status_code == 201
    return response.json()["customer_id"]


class TestCustomerList:
    def test_lists_by_name(self, client: TestClient, customer_id: str, other_customer_id: str):
        response = client.get("/v1/customers")

        assert response.status_code == 200
        assert [c["name"] for c in response.json()["customers"]] == ["Ana Lima", "Maria Souza"]

    def test_search_by_name_nickname_or_cpf(self, client: TestClient, customer_id: str, other_customer_id: str):
        def names(q: str) -> list:
            return [c["name"] for c in client.get("/v1/customers", params={"q": q}).json()["customers"]]

        assert names("souza") == ["Maria Souza"]
        assert names("aninha") == ["Ana Lima"]
        assert names("111.444") == ["Ana Lima"]
        assert names("nobody") == []

    def test_filter_by_eligibility(self, client: TestClient, customer_id: str, other_customer_id: str):
        client.patch(f"/v1/customers/{other_customer_id}/eligibility")

        blocked = client.get("/v1/customers", params={"eligibility": "not_eligible"}).json()["customers"]

        assert [c["customer_id"] for c in blocked] == [other_customer_id]


class TestPaymentHistory:
    @pytest.fixture
    def paid(self, client: TestClient, installment_note: dict, direct_note: dict) -> None:
        client.post(
            "/v1/payments",
            json={"note_id": installment_note["note_id"], "amount_cents": 15000, "method": "cash"},
        )
        client.post(
            "/v1/payments",
            json={"note_id": direct_note["note_id"], "amount_cents": 4000, "method": "pix"},
        )

    def test_customer_history(self, client: TestClient, customer_id: str, paid, direct_note: dict):
        response = client.get("/v1/payments/history", params={"customer_id": customer_id})

        assert response.status_code == 200
        data = response.json()
        assert data["customer_id"] == customer_id
        assert data["total_cents"] == 19000
        assert len(data["payments"]) == 3
        assert {p["installment_number"] for p in data["payments"]} == {1, 2, None}
        assert {p["customer_name"] for p in data["payments"]} == {"Maria Souza"}
        direct = [p for p in data["payments"] if p["installment_number"] is None][0]
        assert direct["note_id"] == direct_note["note_id"]
        assert direct["payment"]["amount_cents"] == 4000

    def test_filter_by_method(self, client: TestClient, customer_id: str, paid):
        data = client.get("/v1/payments/history", params={"customer_id": customer_id, "method": "pix"}).json()

        assert [p["payment"]["method"] for p in data["payments"]] == ["pix"]
        assert data["total_cents"] == 4000

    def test_filter_by_paid_date(self, client: TestClient, customer_id: str, paid):
        def count(**params) -> int:
            return len(client.get("/v1/payments/history", params=params).json()["payments"])

        assert count(paid_from="2024-06-15", paid_to="2024-06-15") == 3
        assert count(paid_to="2024-06-14") == 0
        assert count(paid_from="2024-06-16") == 0

    def test_limit(self, client: TestClient, customer_id: str, paid):
        data = client.get("/v1/payments/history", params={"customer_id": customer_id, "limit": 1}).json()
        assert len(data["payments"]) == 1

    def test_only_requested_customer(self, client: TestClient, customer_id: str, other_customer_id: str, paid):
        note = client.post(
            f"/v1/customers/{other_customer_id}/notes",
            json={"amount_cents": 2000, "issue_date": "2024-06-01", "due_date": "2024-07-01"},
        ).json()
        client.post("/v1/payments", json={"note_id": note["note_id"], "amount_cents": 500, "method": "cash"})

        mine = client.get("/v1/payments/history", params={"customer_id": other_customer_id}).json()
        everyone = client.get("/v1/payments/history").json()

        assert [p["customer_name"] for p in mine["payments"]] == ["Ana Lima"]
        assert mine["total_cents"] == 500
        assert len(everyone["payments"]) == 4

    def test_deleted_payment_leaves_history(self, client: TestClient, customer_id: str, paid):
        history = client.get("/v1/payments/history", params={"customer_id": customer_id}).json()
        doomed = history["payments"][0]["payment"]["payment_id"]

        assert client.delete(f"/v1/payments/{doomed}").status_code == 200

        after = client.get("/v1/payments/history", params={"customer_id": customer_id}).json()
        assert doomed not in [p["payment"]["payment_id"] for p in after["payments"]]
        assert len(after["payments"]) == 2

    def test_unknown_customer(self, client: TestClient):
        assert client.get("/v1/payments/history", params={"customer_id": "missing"}).status_code == 404

    def test_inverted_date_range(self, client: TestClient):
        response = client.get("/v1/payments/history", params={"paid_from": "2024-06-20", "paid_to": "2024-06-10"})
        assert response.status_code == 422
