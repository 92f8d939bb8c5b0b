from conftest import register


class TestTenantHeader:
    def test_missing_tenant_header(self, client, auth_headers):
        response = client.get("/accounts/", headers={"Authorization": auth_headers["Authorization"]})
        assert response.status_code == 422

    def test_foreign_tenant_forbidden(self, client, auth_headers):
        headers = {**auth_headers, "X-Tenant-ID": "9999"}
        assert client.get("/accounts/", headers=headers).status_code == 403

    def test_current_tenant(self, client, auth_headers, tenant_id):
        response = client.get("/tenants/current", headers=auth_headers)
        assert response.status_code == 200
        assert str(response.json()["id"]) == tenant_id


class TestTenantIsolation:
    def test_accounts_are_isolated(self, client, auth_headers, checking):
        _, other_headers = register(client, "bruno@example.com", name="Bruno")

        other_accounts = client.get("/accounts/", headers=other_headers).json()
        assert other_accounts["data"] == []
        assert client.get(f"/accounts/{checking['id']}", headers=other_headers).status_code == 404

    def test_transactions_are_isolated(self, client, auth_headers, checking, food_category, make_transaction):
        tx = make_transaction(description="Lunch", amount="25.00", type="EXPENSE",
                              from_account_id=checking["id"], category_id=food_category)
        _, other_headers = register(client, "carla@example.com", name="Carla")

        assert client.get(f"/transactions/{tx['id']}", headers=other_headers).status_code == 404
        assert client.get("/transactions/", headers=other_headers).json()["pagination"]["total"] == 0

    def test_cannot_post_against_foreign_account(self, client, checking):
        _, other_headers = register(client, "dani@example.com", name="Dani")
        response = client.post("/transactions/", headers=other_headers, json={
            "description": "Sneaky", "amount": "10.00", "type": "EXPENSE", "from_account_id": checking["id"],
        })
        assert response.status_code == 404

    def test_same_account_name_in_two_tenants(self, client, make_account):
        make_account("Wallet", "CASH")
        _, other_headers = register(client, "edu@example.com", name="Edu")
        response = client.post("/accounts/", headers=other_headers, json={"name": "Wallet", "type": "CASH"})
        assert response.status_code == 201


class TestInitialization:
    def test_initialize_is_idempotent(self, client, auth_headers):
        response = client.post("/tenants/initialize", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["accounts_created"] == 0
        assert body["categories_created"] == 0

        system = client.get("/accounts/?include_system=true", headers=auth_headers).json()["data"]
        assert sorted(a["type"] for a in system if a["is_system"]) == ["EXPENSE", "INCOME"]
