class TestCategories:
    def test_defaults_are_seeded(self, client, auth_headers):
        categories = client.get("/categories/", headers=auth_headers).json()
        assert len(categories) == 12
        assert all(c["is_system"] for c in categories)

    def test_filter_by_type(self, client, auth_headers):
        income = client.get("/categories/?type=income", headers=auth_headers).json()
        assert {c["name"] for c in income} == {"Salary", "Investment Income", "Other Income"}

    def test_create(self, client, auth_headers):
        response = client.post("/categories/", headers=auth_headers, json={
            "name": "Pets", "type": "EXPENSE", "color": "#123abc", "icon": "paw"
        })
        assert response.status_code == 201
        assert response.json()["is_system"] is False

    def test_same_name_different_type_allowed(self, client, auth_headers):
        response = client.post("/categories/", headers=auth_headers, json={"name": "Food", "type": "INCOME"})
        assert response.status_code == 201

    def test_duplicate_conflicts(self, client, auth_headers):
        response = client.post("/categories/", headers=auth_headers, json={"name": "food", "type": "EXPENSE"})
        assert response.status_code == 409

    def test_bad_color(self, client, auth_headers):
        response = client.post("/categories/", headers=auth_headers, json={
            "name": "Pets", "type": "EXPENSE", "color": "red"
        })
        assert response.status_code == 422

    def test_parent_must_share_type(self, client, auth_headers, salary_category, food_category):
        response = client.post("/categories/", headers=auth_headers, json={
            "name": "Restaurants", "type": "EXPENSE", "parent_id": salary_category
        })
        assert response.status_code == 400

        response = client.post("/categories/", headers=auth_headers, json={
            "name": "Restaurants", "type": "EXPENSE", "parent_id": food_category
        })
        assert response.status_code == 201

    def test_unknown_parent(self, client, auth_headers):
        response = client.post("/categories/", headers=auth_headers, json={
            "name": "Restaurants", "type": "EXPENSE", "parent_id": 9999
        })
        assert response.status_code == 404

    def test_cannot_be_own_parent(self, client, auth_headers, food_category):
        response = client.patch(f"/categories/{food_category}", headers=auth_headers, json={"parent_id": food_category})
        assert response.status_code == 400

    def test_parent_chain_cannot_loop(self, client, auth_headers):
        def create(name, parent_id=None):
            response = client.post("/categories/", headers=auth_headers, json={
                "name": name, "type": "EXPENSE", "parent_id": parent_id
            })
            assert response.status_code == 201, response.text
            return response.json()["id"]

        pets = create("Pets")
        dogs = create("Dogs", pets)
        puppies = create("Puppies", dogs)

        for descendant in (dogs, puppies):
            response = client.patch(f"/categories/{pets}", headers=auth_headers, json={"parent_id": descendant})
            assert response.status_code == 400

        response = client.patch(f"/categories/{puppies}", headers=auth_headers, json={"parent_id": pets})
        assert response.status_code == 200
        assert response.json()["parent_id"] == pets


class TestDeleteCategory:
    def test_system_category_cannot_be_deleted(self, client, auth_headers, food_category):
        assert client.delete(f"/categories/{food_category}", headers=auth_headers).status_code == 400

    def test_unused_category_is_deleted(self, client, auth_headers):
        created = client.post("/categories/", headers=auth_headers, json={"name": "Pets", "type": "EXPENSE"}).json()
        response = client.delete(f"/categories/{created['id']}", headers=auth_headers)
        assert response.json()["result"] == "deleted"

    def test_used_category_is_deactivated(self, client, auth_headers, checking, make_transaction):
        created = client.post("/categories/", headers=auth_headers, json={"name": "Pets", "type": "EXPENSE"}).json()
        make_transaction(description="Vet", amount="90.00", type="EXPENSE",
                         from_account_id=checking["id"], category_id=created["id"])

        response = client.delete(f"/categories/{created['id']}", headers=auth_headers)
        assert response.json()["result"] == "deactivated"


class TestCategoryUsage:
    def test_usage_counts_completed_only(self, client, auth_headers, checking, food_category, make_transaction):
        make_transaction(description="Lunch", amount="30.00", type="EXPENSE",
                         from_account_id=checking["id"], category_id=food_category)
        make_transaction(description="Dinner", amount="45.00", type="EXPENSE",
                         from_account_id=checking["id"], category_id=food_category)
        make_transaction(description="Later", amount="99.00", type="EXPENSE", status="PENDING",
                         from_account_id=checking["id"], category_id=food_category)

        usage = client.get("/categories/stats/usage", headers=auth_headers).json()
        assert usage == [{
            "category_id": food_category,
            "name": "Food",
            "type": "EXPENSE",
            "color": "#ff7300",
            "transaction_count": 2,
            "total_amount": 75.0,
        }]
