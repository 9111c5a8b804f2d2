"""End-to-end tests of the JSON API through the Flask test client."""

import datetime as dt

import pytest


def _food_id(client, headers):
    cats = client.get("/categories", headers=headers).get_json()
    return next(c["id"] for c in cats if c["name"] == "Продукты")


class TestAuthEndpoints:
    def test_register_returns_token_and_user(self, client):
        resp = client.post("/auth/register", json={"login": "alice", "password": "secret123", "email": "a@x.io"})
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["token"]
        assert body["user"]["login"] == "alice"
        assert body["user"]["isAdmin"] is False

    def test_login_and_me(self, client, register):
        register("alice")
        resp = client.post("/auth/login", json={"login": "alice", "password": "secret123"})
        assert resp.status_code == 200
        token = resp.get_json()["token"]
        me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.get_json()["user"]["login"] == "alice"

    def test_bad_credentials(self, client, register):
        register("alice")
        resp = client.post("/auth/login", json={"login": "alice", "password": "wrong-one"})
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Invalid login or password"}

    def test_duplicate_login_conflicts(self, client, register):
        register("alice")
        resp = client.post("/auth/register", json={"login": "alice", "password": "secret123"})
        assert resp.status_code == 409

    def test_missing_and_invalid_tokens(self, client):
        assert client.get("/transactions").status_code == 401
        assert client.get("/transactions").get_json() == {"error": "Access token required"}
        resp = client.get("/transactions", headers={"Authorization": "Bearer nonsense"})
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Invalid token"}

    def test_expired_token(self, app, client, register):
        headers = register("alice")
        app.config["TOKEN_MAX_AGE"] = -1
        resp = client.get("/auth/me", headers=headers)
        assert resp.status_code == 401
        assert resp.get_json() == {"error": "Token expired"}

    def test_non_object_body_rejected(self, client):
        resp = client.post("/auth/register", json=["alice"])
        assert resp.status_code == 400


class TestLedgerScenario:
    def test_alice_lifecycle(self, client, register):
        headers = register("alice")
        cats = client.get("/categories", headers=headers).get_json()
        assert len(cats) == 8
        food = _food_id(client, headers)

        resp = client.post(
            "/transactions",
            json={"type": "expense", "amount": 500, "date": "2024-03-01", "categoryId": food},
            headers=headers,
        )
        assert resp.status_code == 201
        txn = resp.get_json()
        assert txn["amount"] == 500
        assert isinstance(txn["id"], str)

        listed = client.get("/transactions", headers=headers).get_json()
        assert len(listed) == 1
        assert listed[0]["category"]["name"] == "Продукты"
        assert listed[0]["date"] == "2024-03-01"

        blocked = client.delete(f"/categories/{food}", headers=headers)
        assert blocked.status_code == 400
        assert blocked.get_json()["transactionCount"] == 1

        assert client.delete(f"/transactions/{txn['id']}", headers=headers).status_code == 200
        assert client.get("/transactions", headers=headers).get_json() == []
        resp = client.delete(f"/categories/{food}", headers=headers)
        assert resp.status_code == 200
        assert resp.get_json() == {"message": "Category deleted successfully"}

    def test_other_users_rows_are_invisible(self, client, register):
        alice = register("alice")
        bob = register("bob")
        food = _food_id(client, alice)
        txn = client.post(
            "/transactions",
            json={"type": "expense", "amount": 5, "date": "2024-03-01", "categoryId": food},
            headers=alice,
        ).get_json()

        assert client.get(f"/transactions/{txn['id']}", headers=bob).status_code == 404
        assert client.delete(f"/transactions/{txn['id']}", headers=bob).status_code == 404
        resp = client.post(
            "/transactions",
            json={"type": "expense", "amount": 5, "date": "2024-03-01", "categoryId": food},
            headers=bob,
        )
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "Category not found"}

    def test_oversized_amount_is_a_validation_error(self, client, register):
        headers = register("alice")
        food = _food_id(client, headers)
        resp = client.post(
            "/transactions",
            json={"type": "expense", "amount": "1e30", "date": "2024-03-01", "categoryId": food},
            headers=headers,
        )
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "Invalid amount"}

    def test_future_month_rejected(self, client, register):
        headers = register("alice")
        food = _food_id(client, headers)
        future = f"{dt.date.today().year + 1}-01-01"
        resp = client.post(
            "/transactions",
            json={"type": "expense", "amount": 5, "date": future, "categoryId": food},
            headers=headers,
        )
        assert resp.status_code == 400
        planned = client.post(
            "/planned-expenses", json={"amount": 5, "date": future, "categoryId": food}, headers=headers
        )
        assert planned.status_code == 201

    def test_transaction_update_and_filters(self, client, register):
        headers = register("alice")
        food = _food_id(client, headers)
        for day in ("2024-01-05", "2024-02-05"):
            client.post(
                "/transactions",
                json={"type": "expense", "amount": 10, "date": day, "categoryId": food},
                headers=headers,
            )
        listed = client.get("/transactions?from=2024-02-01&to=2024-02-29", headers=headers).get_json()
        assert [t["date"] for t in listed] == ["2024-02-05"]

        resp = client.put(
            f"/transactions/{listed[0]['id']}",
            json={"type": "income", "amount": 99.99, "date": "2024-02-06", "category": {"id": food}},
            headers=headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["type"] == "income"
        assert resp.get_json()["amount"] == 99.99

    def test_category_create_and_duplicate(self, client, register):
        headers = register("alice")
        resp = client.post("/categories", json={"name": "Books", "color": "#123456", "icon": "Book"}, headers=headers)
        assert resp.status_code == 201
        dup = client.post("/categories", json={"name": "Books", "color": "#123456", "icon": "Book"}, headers=headers)
        assert dup.status_code == 409


class TestSavingsAndGoals:
    def test_phone_goal_exceeds_target(self, client, register):
        headers = register("alice")
        goal = client.post("/goals", json={"title": "Phone", "targetAmount": 1000}, headers=headers).get_json()
        assert goal["currentAmount"] == 0

        resp = client.put(f"/goals/{goal['id']}", json={"currentAmount": 1500}, headers=headers)
        assert resp.status_code == 200
        fetched = client.get(f"/goals/{goal['id']}", headers=headers).get_json()
        assert fetched["currentAmount"] == 1500
        assert fetched["targetAmount"] == 1000
        assert fetched["title"] == "Phone"

    def test_goal_adjust_floor(self, client, register):
        headers = register("alice")
        goal = client.post("/goals", json={"title": "Trip", "targetAmount": 300}, headers=headers).get_json()
        client.post(f"/goals/{goal['id']}/adjust", json={"delta": 100}, headers=headers)
        resp = client.post(f"/goals/{goal['id']}/adjust", json={"delta": -250}, headers=headers)
        assert resp.get_json()["currentAmount"] == 0

    def test_empty_goal_update(self, client, register):
        headers = register("alice")
        goal = client.post("/goals", json={"title": "Trip", "targetAmount": 300}, headers=headers).get_json()
        resp = client.put(f"/goals/{goal['id']}", json={}, headers=headers)
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "No fields to update"}

    def test_savings_crud(self, client, register):
        headers = register("alice")
        saving = client.post("/savings", json={"amount": 200, "date": "2024-03-03"}, headers=headers)
        assert saving.status_code == 201
        saving_id = saving.get_json()["id"]
        resp = client.put(f"/savings/{saving_id}", json={"amount": 250, "date": "2024-03-03"}, headers=headers)
        assert resp.get_json()["amount"] == 250
        assert client.delete(f"/savings/{saving_id}", headers=headers).status_code == 200
        assert client.get(f"/savings/{saving_id}", headers=headers).status_code == 404


class TestProfileAndAdmin:
    def test_profile(self, client, register):
        headers = register("alice", name="Alice")
        resp = client.put("/profile", json={"firstName": "Alice", "age": 30}, headers=headers)
        assert resp.status_code == 200
        body = client.get("/profile", headers=headers).get_json()
        assert body["firstName"] == "Alice"
        assert body["age"] == 30
        assert body["name"] == "Alice"

    def test_admin_requires_admin(self, client, register):
        headers = register("alice")
        resp = client.get("/admin/users", headers=headers)
        assert resp.status_code == 403

    def test_admin_manages_users(self, client, register):
        admin = register("admin")
        register("alice")
        users = client.get("/admin/users", headers=admin).get_json()["users"]
        alice = next(u for u in users if u["login"] == "alice")
        admin_row = next(u for u in users if u["login"] == "admin")
        assert admin_row["loginCount"] == 0

        resp = client.put(f"/admin/users/{alice['id']}", json={"lastName": "Smith"}, headers=admin)
        assert resp.get_json()["user"]["lastName"] == "Smith"

        assert client.delete(f"/admin/users/{admin_row['id']}", headers=admin).status_code == 403
        assert client.delete(f"/admin/users/{alice['id']}", headers=admin).status_code == 200
        assert client.post("/auth/login", json={"login": "alice", "password": "secret123"}).status_code == 401


class TestSummaryEndpoints:
    @pytest.fixture
    def seeded(self, client, register):
        headers = register("alice")
        cats = {c["name"]: c["id"] for c in client.get("/categories", headers=headers).get_json()}
        rows = [
            ("income", 1000, "2024-02-10", "Зарплата"),
            ("expense", 300, "2024-03-01", "Продукты"),
            ("expense", 200, "2024-03-04", "Транспорт"),
            ("income", 500, "2024-03-15", "Зарплата"),
        ]
        for tx_type, amount, date, cat in rows:
            client.post(
                "/transactions",
                json={"type": tx_type, "amount": amount, "date": date, "categoryId": cats[cat]},
                headers=headers,
            )
        client.post("/planned-expenses", json={"amount": 250, "date": "2024-03-20", "categoryId": cats["Продукты"]},
                    headers=headers)
        client.post("/savings", json={"amount": 150, "date": "2024-03-05"}, headers=headers)
        return headers

    def test_summary(self, client, seeded):
        body = client.get("/summary?from=2024-03-01&to=2024-03-31", headers=seeded).get_json()
        assert body["totals"] == {"income": 500, "expense": 500, "balance": 0}
        assert body["startingBalance"] == 1000
        assert body["balanceHistory"][-1]["balance"] == 1000
        assert body["expensesByCategory"][0]["categoryName"] == "Продукты"
        assert body["savings"]["percentage"] == 30
        assert body["transactionCount"] == 3

    def test_weekly(self, client, seeded):
        body = client.get("/summary/weekly?year=2024&month=3", headers=seeded).get_json()
        weeks = body["weeks"]
        assert len(weeks) == 5
        assert weeks[0]["expense"] == 300
        assert weeks[1]["expense"] == 200
        assert weeks[2]["income"] == 500

    def test_planned(self, client, seeded):
        body = client.get("/summary/planned?year=2024&month=3", headers=seeded).get_json()
        row = body["categories"][0]
        assert row["categoryName"] == "Продукты"
        assert row["plannedAmount"] == 250
        assert row["spentAmount"] == 300
        assert row["remaining"] == -50
        assert row["over"] is True

    def test_bad_month(self, client, seeded):
        assert client.get("/summary/weekly?year=2024&month=13", headers=seeded).status_code == 400

    def test_same_day_history_follows_entry_order(self, client, register):
        headers = register("bob")
        food = _food_id(client, headers)
        for tx_type, amount in (("income", 100), ("expense", 30)):
            client.post(
                "/transactions",
                json={"type": tx_type, "amount": amount, "date": "2024-03-01", "categoryId": food},
                headers=headers,
            )
        history = client.get("/summary", headers=headers).get_json()["balanceHistory"]
        assert [p["balance"] for p in history] == [100, 70]

    def test_weekly_for_last_representable_month(self, client, seeded):
        resp = client.get("/summary/weekly?year=9999&month=12", headers=seeded)
        assert resp.status_code == 200
        assert resp.get_json()["weeks"][-1]["end"] == "9999-12-31"

    def test_monthly_savings_percentage(self, client, seeded):
        months = client.get("/summary", headers=seeded).get_json()["savings"]["monthly"]
        assert months == [{"month": "2024-03", "total": 150, "percentage": 30}]
