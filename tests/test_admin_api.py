"""
Tests for the admin routes.
"""

from datetime import datetime, timezone

from fastapi.testclient import TestClient

from courseapi.api.services.subscriptions import SubscriptionLedger
from courseapi.api.services.transactions import TransactionStore
from courseapi.core.config import TransactionStatus


class TestAdminAccess:
    def test_regular_user_is_forbidden(self, client: TestClient, free_headers):
        response = client.get("/api/admin/stats", headers=free_headers)

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "ADMIN_REQUIRED"

    def test_anonymous_is_unauthorized(self, client):
        assert client.get("/api/admin/stats").status_code == 401


class TestAdminStats:
    def test_stats(self, client, session, admin_headers, free_user, premium_user):
        store = TransactionStore(session)
        store.create_pending(user_id=premium_user.id, external_payment_id="pi_paid", amount=5.0, currency="usd",
                             status=TransactionStatus.SUCCEEDED)
        store.create_pending(user_id=free_user.id, external_payment_id="pi_open", amount=5.0, currency="usd")

        response = client.get("/api/admin/stats", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total_users"] == 3
        assert data["premium_users"] == 1
        assert data["conversion_rate"] == 33.33
        assert data["total_transactions"] == 2
        assert data["total_revenue"] == 5.0
        assert data["average_revenue"] == 2.5
        assert len(data["recent_transactions"]) == 2
        assert len(data["recent_users"]) == 3

    def test_stats_without_transactions(self, client, admin_headers):
        data = client.get("/api/admin/stats", headers=admin_headers).json()

        assert data["total_transactions"] == 0
        assert data["average_revenue"] == 0.0


class TestAdminTransactions:
    def test_lists_all_transactions_newest_first_with_user(self, client, session, admin_headers,
                                                          free_user, premium_user):
        store = TransactionStore(session)
        newer = store.create_pending(user_id=free_user.id, external_payment_id="pi_newer", amount=5.0,
                                     currency="usd")
        older = store.create_pending(user_id=premium_user.id, external_payment_id="pi_older", amount=5.0,
                                     currency="usd", status=TransactionStatus.SUCCEEDED)
        older.created_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
        newer.created_at = datetime(2024, 2, 1, tzinfo=timezone.utc)
        session.add_all([older, newer])
        session.commit()

        response = client.get("/api/admin/transactions", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert [t["payment_intent_id"] for t in data] == ["pi_newer", "pi_older"]
        assert data[0]["user"] == {"id": free_user.id, "name": "Free", "email": "free@example.com"}
        assert data[1]["user"]["email"] == "premium@example.com"
        assert data[1]["status"] == "succeeded"

    def test_empty_ledger(self, client, admin_headers):
        response = client.get("/api/admin/transactions", headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == []

    def test_requires_admin(self, client, free_headers):
        assert client.get("/api/admin/transactions", headers=free_headers).status_code == 403


class TestAdminUsers:
    def test_list_users(self, client, admin_headers, free_user):
        response = client.get("/api/admin/users", headers=admin_headers)

        assert response.status_code == 200
        assert {u["email"] for u in response.json()} == {"admin@example.com", "free@example.com"}

    def test_get_user_with_transactions(self, client, session, admin_headers, free_user):
        TransactionStore(session).create_pending(
            user_id=free_user.id, external_payment_id="pi_1", amount=5.0, currency="usd"
        )

        response = client.get(f"/api/admin/users/{free_user.id}", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["email"] == "free@example.com"
        assert [t["payment_intent_id"] for t in data["transactions"]] == ["pi_1"]

    def test_get_unknown_user(self, client, admin_headers):
        assert client.get("/api/admin/users/missing", headers=admin_headers).status_code == 404

    def test_update_user_profile(self, client, session, admin_headers, free_user):
        response = client.put(
            f"/api/admin/users/{free_user.id}",
            json={"name": "Renamed", "role": "admin"},
            headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["role"] == "admin"
        assert response.json()["name"] == "Renamed"

    def test_update_cannot_change_subscription(self, client, session, admin_headers, free_user):
        response = client.put(
            f"/api/admin/users/{free_user.id}",
            json={"subscription": "premium"},
            headers=admin_headers
        )

        assert response.status_code == 200
        assert SubscriptionLedger(session).is_premium(free_user.id) is False

    def test_update_rejects_invalid_email(self, client, admin_headers, free_user):
        response = client.put(
            f"/api/admin/users/{free_user.id}",
            json={"email": "not-an-email"},
            headers=admin_headers
        )

        assert response.status_code == 422


class TestAdminCourse:
    def test_get_course_includes_answers(self, client, admin_headers, course):
        response = client.get("/api/admin/course", headers=admin_headers)

        assert response.status_code == 200
        databases = response.json()["sections"][0]
        assert len(databases["questions"]) == 5
        assert databases["questions"][0]["answer"] == "Answer for indexes."

    def test_update_course(self, client, admin_headers, course):
        response = client.put("/api/admin/course", json={"price": 7.5}, headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["price"] == 7.5

    def test_negative_price_is_rejected(self, client, admin_headers, course):
        response = client.put("/api/admin/course", json={"price": -1}, headers=admin_headers)

        assert response.status_code == 422

    def test_section_lifecycle(self, client, admin_headers, course):
        created = client.post("/api/admin/sections", json={"title": "System Design"}, headers=admin_headers)
        assert created.status_code == 201
        assert created.json()["id"] == "system-design"

        duplicate = client.post("/api/admin/sections", json={"title": "System Design"}, headers=admin_headers)
        assert duplicate.status_code == 400

        updated = client.put(
            "/api/admin/sections/system-design",
            json={"free_questions_count": 2, "icon": "fas fa-sitemap"},
            headers=admin_headers
        )
        assert updated.status_code == 200
        assert updated.json()["free_questions_count"] == 2

        deleted = client.delete("/api/admin/sections/system-design", headers=admin_headers)
        assert deleted.status_code == 200

        assert client.delete("/api/admin/sections/system-design", headers=admin_headers).status_code == 404

    def test_question_lifecycle_updates_totals(self, client, admin_headers, course):
        created = client.post(
            "/api/admin/sections/design-patterns/questions",
            json={"title": "Factory Method", "question": "What is it?", "answer": "A creator hook.",
                  "difficulty": "beginner"},
            headers=admin_headers
        )
        assert created.status_code == 201
        assert created.json()["id"] == "factory-method"

        course_data = client.get("/api/admin/course", headers=admin_headers).json()
        assert course_data["total_questions"] == 8

        updated = client.put(
            "/api/admin/sections/databases/questions/sharding",
            json={"is_free": True},
            headers=admin_headers
        )
        assert updated.status_code == 200
        assert updated.json()["is_free"] is True

        deleted = client.delete("/api/admin/sections/design-patterns/questions/factory-method",
                                headers=admin_headers)
        assert deleted.status_code == 200

        course_data = client.get("/api/admin/course", headers=admin_headers).json()
        assert course_data["total_questions"] == 7

    def test_question_in_unknown_section(self, client, admin_headers, course):
        response = client.post(
            "/api/admin/sections/missing/questions",
            json={"title": "X", "question": "?", "answer": "!"},
            headers=admin_headers
        )

        assert response.status_code == 404
