"""HTTP tests for registration, login and bearer-token checks."""
import pytest

from signage.services.auth import create_access_token
from tests.factories import add_user

pytestmark = pytest.mark.api


class TestRegister:
    def test_register_returns_token_and_user(self, client):
        response = client.post(
            "/api/auth/register",
            json={"username": "alice", "email": "Alice@Example.com", "password": "pw"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["token"]
        assert body["user"]["username"] == "alice"
        assert body["user"]["email"] == "alice@example.com"
        assert body["user"]["role"] == "user"
        assert "password" not in body["user"]

    def test_duplicate_email_is_rejected(self, client, db):
        """Registering with an email already in use fails with 400."""
        add_user(db, "alice")

        response = client.post(
            "/api/auth/register",
            json={"username": "someone-else", "email": "alice@example.com", "password": "pw"},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Username or email already exists"

    def test_invalid_email_is_a_validation_error(self, client):
        response = client.post(
            "/api/auth/register",
            json={"username": "bob", "email": "not-an-email", "password": "pw"},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Validation error"

    @pytest.mark.parametrize("email", ["a@b..c", "a@.b.c", "alice@", "@example.com"])
    def test_malformed_email_is_rejected(self, client, email):
        """Addresses with empty domain labels or missing parts never create a user."""
        response = client.post(
            "/api/auth/register",
            json={"username": "bob", "email": email, "password": "pw"},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Validation error"


class TestLogin:
    def test_login_with_valid_credentials(self, client, db):
        add_user(db, "alice", password="hunter2")

        response = client.post("/api/auth/login", json={"username": "alice", "password": "hunter2"})

        assert response.status_code == 200
        assert response.json()["user"]["username"] == "alice"

    @pytest.mark.parametrize("username, password", [("alice", "wrong"), ("nobody", "hunter2")])
    def test_bad_credentials_are_rejected(self, client, db, username, password):
        add_user(db, "alice", password="hunter2")

        response = client.post("/api/auth/login", json={"username": username, "password": password})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid username or password"


class TestBearerChecks:
    def test_missing_token_is_401(self, client):
        response = client.post("/api/devices", json={"name": "Lobby", "deviceId": "disp-1"})

        assert response.status_code == 401
        assert response.json()["message"] == "Access denied. No token provided."

    def test_garbage_token_is_403(self, client):
        response = client.post(
            "/api/devices",
            json={"name": "Lobby", "deviceId": "disp-1"},
            headers={"Authorization": "Bearer not-a-jwt"},
        )

        assert response.status_code == 403
        assert response.json()["message"] == "Invalid token"

    def test_token_for_deleted_user_is_404(self, client):
        headers = {"Authorization": f"Bearer {create_access_token('gone')}"}

        response = client.post("/api/devices", json={"name": "Lobby", "deviceId": "disp-1"}, headers=headers)

        assert response.status_code == 404
        assert response.json()["message"] == "User not found"
