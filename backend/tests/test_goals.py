from datetime import date, datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from crud.goals import calculate_metrics
from models.goal import GoalStatus


def future(days=120):
    return (date.today() + timedelta(days=days)).isoformat()


@pytest.fixture
def make_goal(client, auth_headers):
    def _make(expected_status=201, **payload):
        payload.setdefault("target_date", future())
        response = client.post("/goals/", headers=auth_headers, json=payload)
        assert response.status_code == expected_status, response.text
        return response.json()
    return _make


class TestGoalMetrics:
    def _goal(self, **overrides):
        values = dict(
            target_amount=Decimal("1000"),
            current_amount=Decimal("250"),
            target_date=date(2024, 12, 31),
            created_at=datetime(2024, 1, 1, 10, 0),
            status=GoalStatus.ACTIVE,
        )
        values.update(overrides)
        return SimpleNamespace(**values)

    def test_progress_and_daily_target(self):
        metrics = calculate_metrics(self._goal(), today=date(2024, 12, 1))
        assert metrics["progress_percentage"] == 25.0
        assert metrics["remaining_amount"] == 750.0
        assert metrics["days_remaining"] == 30
        assert metrics["daily_target"] == 25.0
        assert metrics["is_overdue"] is False

    def test_behind_schedule(self):
        metrics = calculate_metrics(self._goal(), today=date(2024, 12, 1))
        assert metrics["expected_progress"] > 90
        assert metrics["is_on_track"] is False

    def test_overdue(self):
        metrics = calculate_metrics(self._goal(), today=date(2025, 1, 10))
        assert metrics["days_remaining"] == -10
        assert metrics["is_overdue"] is True
        assert metrics["daily_target"] == 750.0

    def test_completed_goal_is_never_overdue(self):
        goal = self._goal(current_amount=Decimal("1200"), status=GoalStatus.COMPLETED)
        metrics = calculate_metrics(goal, today=date(2025, 1, 10))
        assert metrics["progress_percentage"] == 100.0
        assert metrics["is_overdue"] is False
        assert metrics["is_on_track"] is True


class TestCreateGoal:
    def test_create(self, make_goal):
        goal = make_goal(name="Trip", target_amount="5000.00", current_amount="500.00", category="travel")
        assert goal["status"] == "ACTIVE"
        assert goal["progress_percentage"] == 10.0
        assert goal["remaining_amount"] == 4500.0

    def test_target_date_in_the_past(self, make_goal):
        make_goal(expected_status=400, name="Late", target_amount="100", target_date="2020-01-01")

    def test_current_above_target(self, make_goal):
        make_goal(expected_status=400, name="Odd", target_amount="100", current_amount="200")

    def test_duplicate_name(self, make_goal):
        make_goal(name="Car", target_amount="100")
        make_goal(expected_status=409, name="car", target_amount="100")

    def test_bad_recurrence(self, make_goal):
        make_goal(expected_status=422, name="Car", target_amount="100", recurrence="weekly")


class TestContributions:
    def test_contribution_completes_goal(self, client, auth_headers, make_goal):
        goal = make_goal(name="Laptop", target_amount="1000.00", current_amount="900.00")
        response = client.post(f"/goals/{goal['id']}/contribute", headers=auth_headers, json={"amount": "150.00"})
        assert response.status_code == 200
        body = response.json()
        assert body["current_amount"] == 1050.0
        assert body["status"] == "COMPLETED"
        assert body["completed_at"] is not None
        assert body["progress_percentage"] == 100.0

    def test_paused_goal_rejects_contributions(self, client, auth_headers, make_goal):
        goal = make_goal(name="Laptop", target_amount="1000.00")
        client.patch(f"/goals/{goal['id']}", headers=auth_headers, json={"status": "PAUSED"})
        response = client.post(f"/goals/{goal['id']}/contribute", headers=auth_headers, json={"amount": "10"})
        assert response.status_code == 400


class TestListGoals:
    def test_filters_and_sorting(self, client, auth_headers, make_goal):
        make_goal(name="Emergency fund", target_amount="1000", current_amount="900", category="safety",
                  target_date=future(300))
        make_goal(name="Trip", target_amount="1000", current_amount="100", category="travel", priority=1,
                  target_date=future(20))

        def names(query=""):
            return [g["name"] for g in client.get(f"/goals/?{query}", headers=auth_headers).json()]

        assert names() == ["Trip", "Emergency fund"]
        assert names("category=travel") == ["Trip"]
        assert names("priority=1") == ["Trip"]
        assert names("search=fund") == ["Emergency fund"]
        assert names("min_progress=50") == ["Emergency fund"]
        assert names("sort_by=progress_percentage&sort_order=desc") == ["Emergency fund", "Trip"]
        assert names("status=COMPLETED") == []

    def test_dashboard(self, client, auth_headers, make_goal):
        make_goal(name="Emergency fund", target_amount="1000", current_amount="900", target_date=future(300))
        make_goal(name="Trip", target_amount="1000", current_amount="100", category="travel", target_date=future(20))

        dashboard = client.get("/goals/dashboard", headers=auth_headers).json()
        assert dashboard["overview"]["total_goals"] == 2
        assert dashboard["overview"]["total_target"] == 2000.0
        assert dashboard["overview"]["overall_progress"] == 50.0
        assert [g["name"] for g in dashboard["alerts"]["urgent"]] == ["Trip"]
        assert [g["name"] for g in dashboard["alerts"]["near_completion"]] == ["Emergency fund"]
        assert {group["name"] for group in dashboard["by_category"]} == {"travel", "Uncategorized"}


class TestUpdateGoal:
    def test_rename_conflict(self, client, auth_headers, make_goal):
        make_goal(name="Car", target_amount="100")
        other = make_goal(name="House", target_amount="100")
        response = client.patch(f"/goals/{other['id']}", headers=auth_headers, json={"name": "CAR"})
        assert response.status_code == 409

    def test_reaching_target_by_update_completes(self, client, auth_headers, make_goal):
        goal = make_goal(name="Car", target_amount="100")
        body = client.patch(f"/goals/{goal['id']}", headers=auth_headers, json={"current_amount": "100"}).json()
        assert body["status"] == "COMPLETED"

    def test_delete(self, client, auth_headers, make_goal):
        goal = make_goal(name="Car", target_amount="100")
        assert client.delete(f"/goals/{goal['id']}", headers=auth_headers).status_code == 204
        assert client.get(f"/goals/{goal['id']}", headers=auth_headers).status_code == 404
