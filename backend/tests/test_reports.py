from datetime import timedelta

import pytest

from conftest import register
from utils.cache import report_cache
from utils.dates import today_local


@pytest.fixture
def activity(checking, savings, food_category, salary_category, make_transaction):
    today = today_local()
    make_transaction(description="Salary", amount="3000.00", type="INCOME", date=today.isoformat(),
                     to_account_id=checking["id"], category_id=salary_category)
    make_transaction(description="Market", amount="400.00", type="EXPENSE", date=today.isoformat(),
                     from_account_id=checking["id"], category_id=food_category)
    make_transaction(description="Uncategorized", amount="100.00", type="EXPENSE",
                     date=(today - timedelta(days=2)).isoformat(), from_account_id=checking["id"])
    make_transaction(description="Save", amount="1000.00", type="TRANSFER", date=today.isoformat(),
                     from_account_id=checking["id"], to_account_id=savings["id"])
    reversed_tx = make_transaction(description="Mistake", amount="999.00", type="EXPENSE", date=today.isoformat(),
                                   from_account_id=checking["id"], category_id=food_category)
    return reversed_tx


class TestDashboard:
    def test_dashboard(self, client, auth_headers, activity):
        client.post(f"/transactions/{activity['id']}/reverse", headers=auth_headers)

        response = client.get("/reports/dashboard?period=week", headers=auth_headers)
        assert response.status_code == 200
        assert response.headers["cache-control"] == "private, max-age=300"
        body = response.json()

        totals = body["summary"]["transactions"]
        assert totals["income"] == 3000.0
        assert totals["expense"] == 500.0
        assert totals["transfer"] == 1000.0
        assert totals["net"] == 2500.0
        assert body["summary"]["accounts"]["total_balance"] == 3500.0
        assert len(body["charts"]["daily_flow"]) == 8
        assert body["charts"]["expenses_by_category"][0]["category_name"] == "Food"
        assert body["charts"]["expenses_by_category"][1]["category_name"] == "Other"

    def test_custom_period_needs_dates(self, client, auth_headers):
        assert client.get("/reports/dashboard?period=custom", headers=auth_headers).status_code == 400

    def test_unknown_period(self, client, auth_headers):
        assert client.get("/reports/dashboard?period=decade", headers=auth_headers).status_code == 422


class TestCashFlow:
    def test_cash_flow(self, client, auth_headers, activity, savings):
        body = client.get("/reports/cash-flow", headers=auth_headers).json()
        assert body["group_by"] == "day"
        assert body["totals"]["expense"] == 1499.0
        assert sum(point["count"] for point in body["timeline"]) == 5
        assert body["by_category"][0]["category_name"] == "Salary"

        body = client.get(f"/reports/cash-flow?account_id={savings['id']}", headers=auth_headers).json()
        assert body["totals"] == {"income": 0.0, "expense": 0.0, "transfer": 1000.0, "net": 0.0, "count": 1}

    def test_year_groups_by_month(self, client, auth_headers):
        body = client.get("/reports/cash-flow?period=year", headers=auth_headers).json()
        assert body["group_by"] == "month"
        assert body["timeline"] == []


class TestCategorySpending:
    def test_category_spending(self, client, auth_headers, activity):
        start = (today_local() - timedelta(days=7)).isoformat()
        body = client.get(f"/reports/category-spending?start_date={start}", headers=auth_headers).json()

        assert body["summary"]["total_spent"] == 1499.0
        food = body["categories"][0]
        assert food["category_name"] == "Food"
        assert food["count"] == 2
        assert food["previous_period"] == 0.0
        assert food["change"] == 0.0
        assert food["trend"] == "stable"
        assert food["color"] == "#8884d8"
        assert body["insights"]["most_expensive"] == {"category_name": "Food", "total": 1399.0}

    def test_change_against_previous_period(self, client, auth_headers, activity, checking, food_category,
                                            make_transaction):
        make_transaction(description="Old market", amount="700.00", type="EXPENSE",
                         date=(today_local() - timedelta(days=10)).isoformat(),
                         from_account_id=checking["id"], category_id=food_category)
        start = (today_local() - timedelta(days=7)).isoformat()
        body = client.get(f"/reports/category-spending?start_date={start}", headers=auth_headers).json()

        food = body["categories"][0]
        assert food["previous_period"] == 700.0
        assert food["change"] == 99.86
        assert food["trend"] == "up"

    def test_inverted_range(self, client, auth_headers):
        response = client.get("/reports/category-spending?start_date=2024-02-01&end_date=2024-01-01",
                              headers=auth_headers)
        assert response.status_code == 400


class TestExpenses:
    def test_expenses(self, client, auth_headers, activity):
        client.post(f"/transactions/{activity['id']}/reverse", headers=auth_headers)
        body = client.get("/reports/expenses?period=week", headers=auth_headers).json()
        assert body["summary"] == {"total": 500.0, "count": 2, "average": 250.0, "largest": 400.0}
        assert body["top_expenses"][0]["description"] == "Market"

        body = client.get("/reports/expenses?period=week&category=Food", headers=auth_headers).json()
        assert body["summary"]["count"] == 1


class TestOtherReports:
    def test_investments_report(self, client, auth_headers):
        client.post("/investments/", headers=auth_headers, json={
            "symbol": "BTC", "name": "Bitcoin", "type": "CRYPTO", "quantity": "0.5",
            "average_price": "100000.00", "current_price": "120000.00"
        })
        response = client.get("/reports/investments", headers=auth_headers)
        assert response.headers["cache-control"] == "private, max-age=900"
        assert response.json()["portfolio"]["gain_loss"] == 10000.0

    def test_goals_report(self, client, auth_headers):
        target = (today_local() + timedelta(days=200)).isoformat()
        client.post("/goals/", headers=auth_headers, json={
            "name": "House", "target_amount": "100000", "target_date": target
        })
        body = client.get("/reports/goals?status=ACTIVE", headers=auth_headers).json()
        assert body["summary"]["total_goals"] == 1
        assert body["by_status"][0]["name"] == "ACTIVE"

        body = client.get("/reports/goals?status=COMPLETED", headers=auth_headers).json()
        assert body["goals"] == []


class TestReportCache:
    def test_second_call_is_a_hit(self, client, auth_headers):
        client.get("/reports/dashboard", headers=auth_headers)
        client.get("/reports/dashboard", headers=auth_headers)
        stats = client.get("/reports/cache/stats", headers=auth_headers).json()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["size"] == 1

    def test_writes_invalidate_tenant_reports(self, client, auth_headers, checking, make_transaction):
        first = client.get("/reports/dashboard", headers=auth_headers).json()
        make_transaction(description="Salary", amount="10.00", type="INCOME", to_account_id=checking["id"])
        second = client.get("/reports/dashboard", headers=auth_headers).json()

        assert first["summary"]["transactions"]["income"] == 0.0
        assert second["summary"]["transactions"]["income"] == 10.0

    def test_failed_writes_keep_cache(self, client, auth_headers, checking):
        client.get("/reports/dashboard", headers=auth_headers)
        client.post("/transactions/", headers=auth_headers, json={
            "description": "Bad", "amount": "10.00", "type": "INCOME"
        })
        assert report_cache.stats()["size"] == 1

    def test_invalidate_by_type(self, client, auth_headers):
        client.get("/reports/dashboard", headers=auth_headers)
        client.get("/reports/trial-balance", headers=auth_headers)

        body = client.post("/reports/cache/invalidate", headers=auth_headers, json={"type": "dashboard"}).json()
        assert body == {"invalidated": 1, "type": "dashboard"}
        assert report_cache.stats()["size"] == 1

        body = client.post("/reports/cache/invalidate", headers=auth_headers).json()
        assert body == {"invalidated": 1, "type": None}

    def test_clear_only_touches_own_tenant(self, client, auth_headers):
        _, other_headers = register(client, "other@example.com")
        client.get("/reports/dashboard", headers=auth_headers)
        client.get("/reports/dashboard", headers=other_headers)

        assert client.delete("/reports/cache", headers=auth_headers).json() == {"cleared": 1}
        assert report_cache.stats()["size"] == 1
