class TestCreateAccount:
    def test_create_account(self, client, auth_headers):
        response = client.post("/accounts/", headers=auth_headers, json={
            "name": "  Nubank  ", "type": "checking", "opening_balance": "150.25"
        })
        assert response.status_code == 201
        body = response.json()
        assert body["name"] == "Nubank"
        assert body["type"] == "CHECKING"
        assert body["currency"] == "BRL"
        assert body["balance"] == 150.25

    def test_duplicate_name_conflicts(self, client, auth_headers, checking):
        response = client.post("/accounts/", headers=auth_headers, json={"name": "checking", "type": "CASH"})
        assert response.status_code == 409

    def test_unknown_type_rejected(self, client, auth_headers):
        response = client.post("/accounts/", headers=auth_headers, json={"name": "Ledger", "type": "INCOME"})
        assert response.status_code == 422

    def test_negative_opening_balance_only_for_credit_cards(self, client, auth_headers, make_account):
        response = client.post("/accounts/", headers=auth_headers, json={
            "name": "Wallet", "type": "CASH", "opening_balance": -10
        })
        assert response.status_code == 400

        card = make_account("Visa", "CREDIT_CARD", -500)
        assert card["balance"] == -500.0


class TestListAccounts:
    def test_system_accounts_hidden_by_default(self, client, auth_headers, checking):
        body = client.get("/accounts/", headers=auth_headers).json()
        assert [a["name"] for a in body["data"]] == ["Checking"]
        assert body["pagination"]["total"] == 1

    def test_summary(self, client, auth_headers, checking, savings, make_account):
        make_account("Old", "CASH", 20)
        client.patch(f"/accounts/{savings['id']}", headers=auth_headers, json={"is_active": False})

        summary = client.get("/accounts/", headers=auth_headers).json()["summary"]
        assert summary["total_accounts"] == 3
        assert summary["active_accounts"] == 2
        assert summary["inactive_accounts"] == 1
        assert summary["total_balance"] == 1020.0
        by_type = {item["type"]: item for item in summary["by_type"]}
        assert by_type["CHECKING"]["balance"] == 1000.0

    def test_filters(self, client, auth_headers, checking, savings):
        body = client.get("/accounts/?type=savings", headers=auth_headers).json()
        assert [a["id"] for a in body["data"]] == [savings["id"]]

        body = client.get("/accounts/?search=check", headers=auth_headers).json()
        assert [a["id"] for a in body["data"]] == [checking["id"]]


class TestAccountDetail:
    def test_recent_transactions(self, client, auth_headers, checking, make_transaction):
        make_transaction(description="Coffee", amount="8.50", type="EXPENSE", from_account_id=checking["id"])
        body = client.get(f"/accounts/{checking['id']}", headers=auth_headers).json()
        assert body["balance"] == 991.5
        assert body["recent_transactions"][0]["description"] == "Coffee"

    def test_unknown_account(self, client, auth_headers):
        assert client.get("/accounts/999", headers=auth_headers).status_code == 404


class TestUpdateAccount:
    def test_rename(self, client, auth_headers, checking):
        response = client.patch(f"/accounts/{checking['id']}", headers=auth_headers, json={"name": "Main"})
        assert response.status_code == 200
        assert response.json()["name"] == "Main"

    def test_rename_to_existing_name(self, client, auth_headers, checking, savings):
        response = client.patch(f"/accounts/{checking['id']}", headers=auth_headers, json={"name": "Savings"})
        assert response.status_code == 409

    def test_name_cannot_be_nulled(self, client, auth_headers, checking):
        response = client.patch(f"/accounts/{checking['id']}", headers=auth_headers, json={"name": None})
        assert response.status_code == 422

    def test_type_locked_after_transactions(self, client, auth_headers, checking, make_transaction):
        make_transaction(description="Coffee", amount="8.50", type="EXPENSE", from_account_id=checking["id"])
        response = client.patch(f"/accounts/{checking['id']}", headers=auth_headers, json={"type": "SAVINGS"})
        assert response.status_code == 400

    def test_system_account_is_read_only(self, client, auth_headers):
        accounts = client.get("/accounts/?include_system=true", headers=auth_headers).json()["data"]
        system_id = next(a["id"] for a in accounts if a["is_system"])
        response = client.patch(f"/accounts/{system_id}", headers=auth_headers, json={"name": "Mine"})
        assert response.status_code == 400


class TestDeleteAccount:
    def test_unused_account_is_deleted(self, client, auth_headers, savings):
        response = client.delete(f"/accounts/{savings['id']}", headers=auth_headers)
        assert response.json()["result"] == "deleted"
        assert client.get(f"/accounts/{savings['id']}", headers=auth_headers).status_code == 404

    def test_used_account_is_deactivated(self, client, auth_headers, checking, make_transaction):
        make_transaction(description="Coffee", amount="8.50", type="EXPENSE", from_account_id=checking["id"])
        response = client.delete(f"/accounts/{checking['id']}", headers=auth_headers)
        assert response.json()["result"] == "deactivated"

        account = client.get(f"/accounts/{checking['id']}", headers=auth_headers).json()
        assert account["is_active"] is False

    def test_inactive_account_rejects_transactions(self, client, auth_headers, checking, make_transaction):
        make_transaction(description="Coffee", amount="8.50", type="EXPENSE", from_account_id=checking["id"])
        client.delete(f"/accounts/{checking['id']}", headers=auth_headers)
        make_transaction(expected_status=400, description="Tea", amount="5.00", type="EXPENSE",
                         from_account_id=checking["id"])
