from decimal import Decimal
from types import SimpleNamespace

import pytest

from conftest import account_balance
from crud import ledger
from models.entry import Entry
from models.transaction import TransactionType


SYSTEM = {"INCOME": SimpleNamespace(id=90), "EXPENSE": SimpleNamespace(id=91)}


class TestBuildEntries:
    def test_income_debits_destination(self):
        entries = ledger.build_entries(TransactionType.INCOME, Decimal("100"), None, 1, SYSTEM)
        assert entries[0] == {"account_id": 1, "debit": Decimal("100.00"), "credit": Decimal("0")}
        assert entries[1]["account_id"] == 90
        assert entries[1]["credit"] == Decimal("100.00")

    def test_expense_credits_source(self):
        entries = ledger.build_entries(TransactionType.EXPENSE, Decimal("40.5"), 2, None, SYSTEM)
        assert entries[0]["account_id"] == 91
        assert entries[1] == {"account_id": 2, "debit": Decimal("0"), "credit": Decimal("40.50")}

    def test_transfer_moves_between_accounts(self):
        entries = ledger.build_entries(TransactionType.TRANSFER, Decimal("10"), 1, 2, SYSTEM)
        assert [e["account_id"] for e in entries] == [2, 1]

    def test_missing_account(self):
        with pytest.raises(ValueError):
            ledger.build_entries(TransactionType.EXPENSE, Decimal("10"), None, None, SYSTEM)


class TestValidateEntries:
    def test_unbalanced(self):
        with pytest.raises(ValueError, match="not balanced"):
            ledger.validate_entries([
                {"account_id": 1, "debit": Decimal("10"), "credit": Decimal("0")},
                {"account_id": 2, "debit": Decimal("0"), "credit": Decimal("9")},
            ])

    def test_debit_and_credit_on_same_entry(self):
        with pytest.raises(ValueError):
            ledger.validate_entries([
                {"account_id": 1, "debit": Decimal("10"), "credit": Decimal("10")},
                {"account_id": 2, "debit": Decimal("0"), "credit": Decimal("0")},
            ])

    def test_single_entry(self):
        with pytest.raises(ValueError):
            ledger.validate_entries([{"account_id": 1, "debit": Decimal("10"), "credit": Decimal("0")}])

    def test_within_tolerance(self):
        ledger.validate_entries([
            {"account_id": 1, "debit": Decimal("10.00"), "credit": Decimal("0")},
            {"account_id": 2, "debit": Decimal("0"), "credit": Decimal("10.00")},
        ])


class TestBalances:
    def test_income_expense_transfer(self, client, auth_headers, checking, savings, make_transaction):
        make_transaction(description="Salary", amount="500.00", type="INCOME", to_account_id=checking["id"])
        make_transaction(description="Market", amount="200.00", type="EXPENSE", from_account_id=checking["id"])
        make_transaction(description="Save", amount="300.00", type="TRANSFER",
                         from_account_id=checking["id"], to_account_id=savings["id"])

        assert account_balance(client, auth_headers, checking["id"]) == 1000.0
        assert account_balance(client, auth_headers, savings["id"]) == 300.0

    def test_pending_does_not_move_balance(self, client, auth_headers, checking, make_transaction):
        make_transaction(description="Rent", amount="700.00", type="EXPENSE",
                         from_account_id=checking["id"], status="PENDING")
        assert account_balance(client, auth_headers, checking["id"]) == 1000.0

    def test_completing_pending_moves_balance(self, client, auth_headers, checking, make_transaction):
        tx = make_transaction(description="Rent", amount="700.00", type="EXPENSE",
                              from_account_id=checking["id"], status="PENDING")
        response = client.patch(f"/transactions/{tx['id']}", headers=auth_headers, json={"status": "COMPLETED"})
        assert response.status_code == 200
        assert account_balance(client, auth_headers, checking["id"]) == 300.0

    def test_system_accounts_track_income_and_expense(self, client, auth_headers, checking, make_transaction):
        make_transaction(description="Salary", amount="500.00", type="INCOME", to_account_id=checking["id"])
        make_transaction(description="Market", amount="120.00", type="EXPENSE", from_account_id=checking["id"])

        accounts = client.get("/accounts/?include_system=true", headers=auth_headers).json()["data"]
        by_type = {a["type"]: a for a in accounts if a["is_system"]}
        assert by_type["INCOME"]["balance"] == 500.0
        assert by_type["EXPENSE"]["balance"] == 120.0

    def test_every_transaction_posts_balanced_entries(self, db_session, checking, savings, make_transaction):
        make_transaction(description="Salary", amount="500.00", type="INCOME", to_account_id=checking["id"])
        make_transaction(description="Save", amount="50.00", type="TRANSFER",
                         from_account_id=checking["id"], to_account_id=savings["id"])

        entries = db_session.query(Entry).all()
        assert len(entries) == 4
        assert sum(e.debit for e in entries) == sum(e.credit for e in entries)


class TestTrialBalance:
    def test_trial_balance_is_balanced(self, client, auth_headers, checking, savings, make_transaction):
        make_transaction(description="Salary", amount="800.00", type="INCOME", to_account_id=checking["id"])
        make_transaction(description="Market", amount="99.90", type="EXPENSE", from_account_id=checking["id"])
        make_transaction(description="Save", amount="100.00", type="TRANSFER",
                         from_account_id=checking["id"], to_account_id=savings["id"])

        response = client.get("/reports/trial-balance", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["balanced"] is True
        assert body["total_debit"] == body["total_credit"] == 999.9
        assert response.headers["cache-control"] == "private, max-age=300"


class TestBalanceHistory:
    def test_history_has_one_point_per_day(self, client, auth_headers, checking, make_transaction):
        make_transaction(description="Salary", amount="250.00", type="INCOME", to_account_id=checking["id"])
        response = client.get(f"/accounts/{checking['id']}/balance-history?days=7", headers=auth_headers)
        assert response.status_code == 200
        history = response.json()
        assert len(history) == 7
        assert history[0]["balance"] == 1000.0
        assert history[-1]["balance"] == 1250.0
        assert history[-1]["daily_change"] == 250.0
        assert history[-1]["transactions"] == 1
