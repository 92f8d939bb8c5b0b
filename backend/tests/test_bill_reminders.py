from datetime import date, timedelta

import pytest

from conftest import account_balance, register
from tasks import daily_tasks
from utils.cache import report_cache
from utils.dates import today_local


def in_days(days):
    return (today_local() + timedelta(days=days)).isoformat()


@pytest.fixture
def make_bill(client, auth_headers):
    def _make(**payload):
        payload.setdefault("amount", "150.00")
        payload.setdefault("due_date", in_days(5))
        response = client.post("/bill-reminders/", headers=auth_headers, json=payload)
        assert response.status_code == 201, response.text
        return response.json()
    return _make


class TestBills:
    def test_create(self, make_bill):
        bill = make_bill(name="Internet", due_date=in_days(2), remind_days_before=3)
        assert bill["status"] == "PENDING"
        assert bill["days_until_due"] == 2
        assert bill["is_due_soon"] is True

    def test_bad_recurrence(self, client, auth_headers):
        response = client.post("/bill-reminders/", headers=auth_headers, json={
            "name": "Rent", "amount": "10", "due_date": in_days(1), "recurrence": "daily"
        })
        assert response.status_code == 422

    def test_upcoming_and_overdue(self, client, auth_headers, make_bill):
        make_bill(name="Power", due_date=in_days(3), amount="120.00")
        make_bill(name="Water", due_date=in_days(6), amount="80.50")
        make_bill(name="Insurance", due_date=in_days(40))
        make_bill(name="Phone", due_date=in_days(-2))

        body = client.get("/bill-reminders/upcoming?days=7", headers=auth_headers).json()
        assert [b["name"] for b in body["upcoming"]] == ["Power", "Water"]
        assert [b["name"] for b in body["overdue"]] == ["Phone"]
        assert body["upcoming_count"] == 2
        assert body["overdue_count"] == 1
        assert body["upcoming_total"] == 200.5

    def test_list_filters(self, client, auth_headers, make_bill):
        make_bill(name="Power", due_date=in_days(3))
        make_bill(name="Insurance", due_date=in_days(40))

        bills = client.get(f"/bill-reminders/?due_before={in_days(10)}", headers=auth_headers).json()
        assert [b["name"] for b in bills] == ["Power"]
        assert client.get("/bill-reminders/?status=PAID", headers=auth_headers).json() == []

    def test_update_and_delete(self, client, auth_headers, make_bill):
        bill = make_bill(name="Power")
        response = client.patch(f"/bill-reminders/{bill['id']}", headers=auth_headers, json={"amount": "99.90"})
        assert response.json()["amount"] == 99.9

        assert client.delete(f"/bill-reminders/{bill['id']}", headers=auth_headers).status_code == 204
        assert client.get(f"/bill-reminders/{bill['id']}", headers=auth_headers).status_code == 404


class TestPayBill:
    def test_one_off_bill_becomes_paid(self, client, auth_headers, checking, food_category, make_bill):
        bill = make_bill(name="Dentist", amount="200.00", account_id=checking["id"])
        response = client.post(f"/bill-reminders/{bill['id']}/pay", headers=auth_headers)
        assert response.status_code == 200, response.text
        body = response.json()

        assert body["bill"]["status"] == "PAID"
        assert body["bill"]["last_paid_at"] is not None
        assert body["transaction"]["description"] == "Bill: Dentist"
        assert body["transaction"]["tags"] == ["bill"]
        assert account_balance(client, auth_headers, checking["id"]) == 800.0

        again = client.post(f"/bill-reminders/{bill['id']}/pay", headers=auth_headers)
        assert again.status_code == 400

    def test_recurring_bill_rolls_forward(self, client, auth_headers, checking, make_bill):
        bill = make_bill(name="Rent", amount="1000.00", due_date="2024-01-31", recurrence="monthly")
        response = client.post(f"/bill-reminders/{bill['id']}/pay", headers=auth_headers, json={
            "account_id": checking["id"], "date": "2024-01-30"
        })
        body = response.json()
        assert body["bill"]["status"] == "PENDING"
        assert body["bill"]["due_date"] == "2024-02-29"
        assert body["transaction"]["date"] == "2024-01-30"

    def test_pay_without_transaction(self, client, auth_headers, checking, make_bill):
        bill = make_bill(name="Gift")
        body = client.post(f"/bill-reminders/{bill['id']}/pay", headers=auth_headers,
                           json={"create_transaction": False}).json()
        assert body["transaction"] is None
        assert body["bill"]["status"] == "PAID"
        assert account_balance(client, auth_headers, checking["id"]) == 1000.0

    def test_pay_needs_an_account(self, client, auth_headers, make_bill):
        bill = make_bill(name="Gift")
        assert client.post(f"/bill-reminders/{bill['id']}/pay", headers=auth_headers).status_code == 400

    def test_pay_from_unknown_account(self, client, auth_headers, make_bill):
        bill = make_bill(name="Gift")
        response = client.post(f"/bill-reminders/{bill['id']}/pay", headers=auth_headers, json={"account_id": 9999})
        assert response.status_code == 404


class TestDailyTasks:
    def test_marks_overdue_bills(self, client, auth_headers, tenant_id, db_session, make_bill):
        late = make_bill(name="Phone", due_date=in_days(-1))
        make_bill(name="Power", due_date=in_days(3))

        result = daily_tasks.run_tenant_tasks(db_session, tenant_id, today_local())
        assert result["overdue_bills"] == 1

        bill = client.get(f"/bill-reminders/{late['id']}", headers=auth_headers).json()
        assert bill["status"] == "OVERDUE"

        # overdue bills can still be paid
        assert client.post(f"/bill-reminders/{late['id']}/pay", headers=auth_headers,
                           json={"create_transaction": False}).json()["bill"]["status"] == "PAID"

    def test_counts_budget_alerts_and_clears_cache(self, client, auth_headers, tenant_id, db_session, checking,
                                                   food_category, make_transaction):
        client.post("/budgets/", headers=auth_headers, json={"category_id": food_category, "amount": "100.00"})
        make_transaction(description="Feast", amount="150.00", type="EXPENSE",
                         from_account_id=checking["id"], category_id=food_category)
        client.get("/reports/dashboard", headers=auth_headers)
        assert report_cache.stats()["size"] > 0

        result = daily_tasks.run_tenant_tasks(db_session, tenant_id, today_local())
        assert result["budget_alerts"] == 1
        assert report_cache.stats()["size"] == 0

    def test_nothing_to_do(self, tenant_id, db_session):
        assert daily_tasks.run_tenant_tasks(db_session, tenant_id, date(2024, 1, 1)) == {"overdue_bills": 0, "budget_alerts": 0}

    def test_failing_tenant_does_not_stop_the_run(self, client, tenant_id, db_session, monkeypatch):
        _, other_headers = register(client, "bia@example.com")
        other_tenant = other_headers["X-Tenant-ID"]
        run_one = daily_tasks.run_tenant_tasks

        def failing_for_first_tenant(db, current_tenant, today):
            if current_tenant == tenant_id:
                raise RuntimeError("unexpected failure")
            return run_one(db, current_tenant, today)

        monkeypatch.setattr(daily_tasks, "SessionLocal", lambda: db_session)
        monkeypatch.setattr(daily_tasks, "run_tenant_tasks", failing_for_first_tenant)

        results = daily_tasks.run_daily_tasks(date(2024, 1, 1))
        assert list(results) == [other_tenant]
