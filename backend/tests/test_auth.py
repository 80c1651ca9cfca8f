"""
Registration, login, token handling and the authorization guard
"""
import jwt
import pytest
from datetime import timedelta

from config import settings
from dependencies import hash_password, verify_password, create_token, decode_token
from utils.errors import UnauthenticatedError


class TestPasswordsAndTokens:
    def test_password_hashing(self):
        hashed = hash_password("testpassword123")

        assert hashed != "testpassword123"
        assert verify_password("testpassword123", hashed) is True
        assert verify_password("wrongpassword", hashed) is False

    def test_malformed_hash_does_not_verify(self):
        assert verify_password("anything", "not-a-bcrypt-hash") is False

    def test_token_carries_user_id_and_expiry(self):
        token = create_token("test-user-id")

        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        assert payload["sub"] == "test-user-id"
        assert payload["exp"] - payload["iat"] == settings.token_lifetime_hours * 3600
        assert decode_token(token) == "test-user-id"

    def test_expired_token_rejected(self):
        token = create_token("test-user-id", lifetime=timedelta(seconds=-10))

        with pytest.raises(UnauthenticatedError) as exc:
            decode_token(token)
        assert exc.value.message == "Token expired"

    def test_foreign_signature_rejected(self):
        token = jwt.encode({"sub": "u1"}, "some-other-secret", algorithm="HS256")

        with pytest.raises(UnauthenticatedError) as exc:
            decode_token(token)
        assert exc.value.message == "Invalid token"


class TestRegister:
    def test_register_returns_token_and_public_user(self, client):
        response = client.post("/register", json={
            "username": "alice", "email": "alice@example.com", "password": "secret123"
        })

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "User Registered successfully"
        assert body["user"]["username"] == "alice"
        assert "password" not in body["user"]
        assert decode_token(body["token"]) == body["user"]["id"]

    def test_missing_fields_reported_together(self, client):
        response = client.post("/register", json={"email": "alice@example.com"})

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "message": "All fields are required",
            "fields": {"username": True, "email": False, "password": True},
        }

    def test_short_password(self, client):
        response = client.post("/register", json={
            "username": "alice", "email": "alice@example.com", "password": "12345"
        })

        assert response.status_code == 400
        assert response.json()["field"] == "password"
        assert response.json()["message"] == "Password must be at least 6 characters"

    def test_username_with_spaces_accepted(self, client):
        response = client.post("/register", json={
            "username": "John Doe", "email": "john@example.com", "password": "secret123"
        })

        assert response.status_code == 201
        assert response.json()["user"]["username"] == "John Doe"

    def test_invalid_email(self, client):
        response = client.post("/register", json={
            "username": "alice", "email": "not-an-email", "password": "secret123"
        })

        assert response.status_code == 400
        assert response.json()["field"] == "email"

    @pytest.mark.parametrize("username,email,field", [
        ("someone", "alice@example.com", "email"),
        ("alice", "other@example.com", "username"),
    ])
    def test_duplicate_names_colliding_field(self, client, register, username, email, field):
        register("alice")

        response = client.post("/register", json={
            "username": username, "email": email, "password": "secret123"
        })

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": f"{field} already in use", "field": field}

    def test_stored_password_is_hashed(self, client, store):
        client.post("/register", json={
            "username": "alice", "email": "alice@example.com", "password": "secret123"
        })

        stored = next(iter(store.users.values()))
        assert stored["password"] != "secret123"
        assert verify_password("secret123", stored["password"])


class TestLogin:
    def test_login_success(self, client, register):
        _, user = register("alice", password="secret123")

        response = client.post("/login", json={"email": "alice@example.com", "password": "secret123"})

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Login Successful"
        assert body["user"] == user
        assert decode_token(body["token"]) == user["id"]

    @pytest.mark.parametrize("email,password", [
        ("alice@example.com", "wrong-password"),
        ("nobody@example.com", "secret123"),
        ("alice@example.com", ""),
    ])
    def test_invalid_credentials(self, client, register, email, password):
        register("alice", password="secret123")

        response = client.post("/login", json={"email": email, "password": password})

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Invalid credentials"}


class TestGuard:
    def test_me_returns_current_user(self, client, register):
        headers, user = register("alice")

        response = client.get("/me", headers=headers)

        assert response.status_code == 200
        assert response.json() == {"success": True, "user": user}

    def test_missing_token(self, client):
        response = client.get("/me")

        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "No token provided"}

    def test_wrong_scheme(self, client):
        response = client.get("/me", headers={"Authorization": "Token abc"})
        assert response.status_code == 401

    def test_garbage_token(self, client):
        response = client.get("/me", headers={"Authorization": "Bearer not.a.jwt"})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token"

    def test_token_for_deleted_user(self, client):
        token = create_token("ghost-user")

        response = client.get("/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["message"] == "User not found"
