"""
Tests for Auth API endpoints and token handling.
"""
import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient

from desirable.core.security import create_access_token, get_user_id_from_token
from desirable.main import app
from desirable.services.cosmos_db_service import ConcurrencyConflictError, cosmos_db_service


REGISTRATION = {
    "name": "Nieuwe Gebruiker",
    "email": "New.User@example.com",
    "password": "geheim123",
    "motherLanguage": "Portuguese",
    "invitationCode": " welcome1 "
}


@pytest.fixture
def invitation_code():
    return {"id": "WELCOME1", "code": "WELCOME1", "isUsed": False, "_etag": "etag-c"}


@pytest.fixture
def registration_db(invitation_code):
    """Patch the storage calls made during registration, recording their order."""
    calls = []

    def recorder(name, result=None):
        async def record(*args, **kwargs):
            calls.append(name)
            return result if result is not None else args[0]
        return AsyncMock(side_effect=record)

    with patch.object(cosmos_db_service, "get_user_by_email", new=AsyncMock(return_value=None)), \
         patch.object(cosmos_db_service, "get_invitation_code", new=AsyncMock(return_value=invitation_code)) as get_code, \
         patch.object(cosmos_db_service, "mark_invitation_code_used", new=recorder("mark_code")) as mark_code, \
         patch.object(cosmos_db_service, "create_user", new=recorder("create_user")) as create_user, \
         patch.object(cosmos_db_service, "create_user_progress", new=recorder("create_progress")) as create_progress, \
         patch("desirable.api.v1.endpoints.auth.get_password_hash", return_value="hashed"):
        yield {
            "calls": calls,
            "get_code": get_code,
            "mark_code": mark_code,
            "create_user": create_user,
            "create_progress": create_progress
        }


class TestRegister:
    """Tests for POST /auth/register"""

    def test_register_success(self, registration_db):
        response = TestClient(app).post("/api/auth/register", json=REGISTRATION)

        assert response.status_code == 201
        body = response.json()
        assert body["email"] == "new.user@example.com"
        assert body["name"] == "Nieuwe Gebruiker"
        assert get_user_id_from_token(body["token"]) == body["_id"]

        registration_db["get_code"].assert_awaited_once_with("WELCOME1")
        assert registration_db["calls"] == ["mark_code", "create_user", "create_progress"]

        user = registration_db["create_user"].call_args.args[0]
        assert user["passwordHash"] == "hashed"
        assert user["motherLanguage"] == "Portuguese"
        assert user["learningSubject"] == "dutch"

        progress = registration_db["create_progress"].call_args.args[0]
        assert progress["id"] == f"progress_{body['_id']}_dutch"
        assert progress["skillLevels"] == {
            "vocabulary": 1.0, "grammar": 1.0, "conversation": 1.0, "reading": 1.0, "listening": 1.0
        }
        assert progress["isInAdjustmentMode"] is False

    def test_register_existing_email(self, registration_db):
        with patch.object(cosmos_db_service, "get_user_by_email", new=AsyncMock(return_value={"id": "u1"})):
            response = TestClient(app).post("/api/auth/register", json=REGISTRATION)

        assert response.status_code == 400
        assert response.json()["detail"] == "User with this email already exists"

    def test_register_used_code(self, registration_db, invitation_code):
        invitation_code["isUsed"] = True

        response = TestClient(app).post("/api/auth/register", json=REGISTRATION)

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid or already used invitation code"
        registration_db["create_user"].assert_not_called()

    def test_register_unknown_code(self, registration_db):
        registration_db["get_code"].return_value = None

        response = TestClient(app).post("/api/auth/register", json=REGISTRATION)

        assert response.status_code == 400

    def test_register_code_consumed_concurrently(self, registration_db):
        registration_db["mark_code"].side_effect = ConcurrencyConflictError("modified")

        response = TestClient(app).post("/api/auth/register", json=REGISTRATION)

        assert response.status_code == 400
        registration_db["create_user"].assert_not_called()

    def test_register_short_password(self, registration_db):
        response = TestClient(app).post("/api/auth/register", json={**REGISTRATION, "password": "abc"})

        assert response.status_code == 400


class TestLogin:
    """Tests for POST /auth/login"""

    def test_login_success(self, sample_user_data):
        with patch.object(cosmos_db_service, "get_user_by_email", new=AsyncMock(return_value=sample_user_data)) as lookup, \
             patch("desirable.api.v1.endpoints.auth.verify_password", return_value=True):
            response = TestClient(app).post("/api/auth/login", json={
                "email": "Test@Example.com",
                "password": "geheim123"
            })

        assert response.status_code == 200
        assert response.json()["_id"] == "test_user_123"
        lookup.assert_awaited_once_with("test@example.com")

    def test_login_wrong_password(self, sample_user_data):
        with patch.object(cosmos_db_service, "get_user_by_email", new=AsyncMock(return_value=sample_user_data)), \
             patch("desirable.api.v1.endpoints.auth.verify_password", return_value=False):
            response = TestClient(app).post("/api/auth/login", json={
                "email": "test@example.com",
                "password": "wrong"
            })

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"

    def test_login_unknown_user(self):
        with patch.object(cosmos_db_service, "get_user_by_email", new=AsyncMock(return_value=None)):
            response = TestClient(app).post("/api/auth/login", json={
                "email": "nobody@example.com",
                "password": "whatever"
            })

        assert response.status_code == 401


class TestCurrentUser:
    """Tests for GET /auth/me and bearer token checks."""

    def test_me_with_valid_token(self, sample_user_data):
        token = create_access_token("test_user_123")
        with patch.object(cosmos_db_service, "get_user", new=AsyncMock(return_value=sample_user_data)):
            response = TestClient(app).get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        body = response.json()
        assert body["_id"] == "test_user_123"
        assert body["motherLanguage"] == "English"
        assert "passwordHash" not in body

    def test_expired_token(self):
        token = create_access_token("test_user_123", expires_delta=timedelta(seconds=-10))

        response = TestClient(app).get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_token_for_deleted_user(self):
        token = create_access_token("gone")
        with patch.object(cosmos_db_service, "get_user", new=AsyncMock(return_value=None)):
            response = TestClient(app).get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_garbage_token(self):
        assert get_user_id_from_token("not.a.token") is None
