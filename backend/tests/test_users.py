"""
Tests for /api/v1/users/me
==========================
Covers:
- Profile read with defaults filled in for missing preferences
- Partial preference updates merge with stored values
- Name validation
- Missing profile row → 404

Run: pytest tests/test_users.py -v
"""

from __future__ import annotations

from conftest import AUTH_HEADER, OTHER_AUTH_HEADER, USER_ID


class TestGetMe:

    def test_profile_with_default_preferences(self, client):
        resp = client.get("/api/v1/users/me", headers=AUTH_HEADER)

        assert resp.status_code == 200
        data = resp.json()
        assert data["id"] == USER_ID
        assert data["name"] == "Test Student"
        assert data["preferences"] == {
            "language": "en",
            "timezone": "Asia/Riyadh",
            "daily_available_minutes": 480,
            "notifications": True,
        }

    def test_missing_profile(self, client, fake_db):
        fake_db.tables["users"] = [u for u in fake_db.rows("users") if u["id"] == USER_ID]

        resp = client.get("/api/v1/users/me", headers=OTHER_AUTH_HEADER)

        assert resp.status_code == 404
        assert resp.json()["detail"]["code"] == "user_not_found"


class TestUpdateMe:

    def test_partial_preferences_merge(self, client, fake_db):
        resp = client.put(
            "/api/v1/users/me",
            json={"preferences": {"daily_available_minutes": 240}},
            headers=AUTH_HEADER,
        )

        assert resp.status_code == 200
        prefs = resp.json()["preferences"]
        assert prefs["daily_available_minutes"] == 240
        assert prefs["timezone"] == "Asia/Riyadh"

        stored = fake_db.rows("users")[0]["preferences"]
        assert stored["daily_available_minutes"] == 240
        assert stored["timezone"] == "Asia/Riyadh"

    def test_rename(self, client):
        resp = client.put("/api/v1/users/me", json={"name": "  Sara  "}, headers=AUTH_HEADER)

        assert resp.status_code == 200
        assert resp.json()["name"] == "Sara"

    def test_name_too_short(self, client):
        resp = client.put("/api/v1/users/me", json={"name": "S"}, headers=AUTH_HEADER)
        assert resp.status_code == 422

    def test_minutes_out_of_range(self, client):
        resp = client.put(
            "/api/v1/users/me",
            json={"preferences": {"daily_available_minutes": 2000}},
            headers=AUTH_HEADER,
        )
        assert resp.status_code == 422

    def test_empty_update_returns_profile(self, client):
        resp = client.put("/api/v1/users/me", json={}, headers=AUTH_HEADER)
        assert resp.status_code == 200
        assert resp.json()["id"] == USER_ID
