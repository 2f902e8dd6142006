"""
Tests for authentication endpoints.
"""
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from app.core.auth.cookies import ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE
from app.core.auth.security import create_refresh_token, decode_token
from app.schemas.auth import UserRegister

SIGNUP_URL = "/api/auth/signup"
LOGIN_URL = "/api/auth/login"


def signup_body(**overrides):
    body = {
        "name": "New User",
        "email": "new@example.com",
        "password": "Secret123",
        "confirmPassword": "Secret123",
    }
    body.update(overrides)
    return body


class TestUserRegisterSchema:
    """Unit tests for UserRegister validation."""

    def test_email_is_normalized(self):
        """Test that email is lowercased and stripped."""
        user = UserRegister(**signup_body(email="  New@Example.COM "))
        assert user.email == "new@example.com"

    def test_passwords_must_match(self):
        """Test that a mismatched confirmation is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            UserRegister(**signup_body(confirmPassword="Different123"))
        assert "Passwords don't match" in str(exc_info.value)

    def test_weak_password_rejected(self):
        """Test that a password without a digit is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            UserRegister(**signup_body(password="NoDigitsHere", confirmPassword="NoDigitsHere"))
        assert "one number" in str(exc_info.value)

    def test_name_markup_is_escaped(self):
        user = UserRegister(**signup_body(name="<b>Kim</b>"))
        assert "<b>" not in user.name


class TestSignup:
    """Tests for POST /api/auth/signup."""

    def test_signup_success(self, client):
        """Test successful signup returns user, tokens and cookies."""
        response = client.post(SIGNUP_URL, json=signup_body())

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        user = body["data"]["user"]
        assert user["email"] == "new@example.com"
        assert user["name"] == "New User"
        assert user["lastLoginAt"] is not None
        assert "passwordHash" not in user
        assert body["data"]["tokens"]["accessToken"]
        assert body["data"]["tokens"]["refreshToken"]
        assert ACCESS_TOKEN_COOKIE in response.cookies
        assert REFRESH_TOKEN_COOKIE in response.cookies

    def test_signup_default_preferences(self, client):
        """Test default preferences when none are supplied."""
        response = client.post(SIGNUP_URL, json=signup_body())

        prefs = response.json()["data"]["user"]["preferences"]
        assert prefs["language"] == "ko"
        assert prefs["theme"] == "system"
        assert prefs["autoSave"] is True
        assert prefs["hapticFeedback"] is False

    def test_signup_haptic_feedback_follows_mobile_device(self, client, mobile_device):
        response = client.post(SIGNUP_URL, json=signup_body(deviceInfo=mobile_device))

        assert response.json()["data"]["user"]["preferences"]["hapticFeedback"] is True

    def test_signup_explicit_preferences_kept(self, client):
        response = client.post(
            SIGNUP_URL,
            json=signup_body(preferences={"language": "en", "theme": "dark"}),
        )

        prefs = response.json()["data"]["user"]["preferences"]
        assert prefs["language"] == "en"
        assert prefs["theme"] == "dark"

    def test_signup_duplicate_email(self, client, test_user):
        """Test that a registered email returns 409."""
        response = client.post(SIGNUP_URL, json=signup_body(email=test_user.email))

        assert response.status_code == 409
        assert response.json() == {
            "success": False,
            "error": "User with this email already exists",
        }

    def test_signup_duplicate_email_case_insensitive(self, client, test_user):
        response = client.post(SIGNUP_URL, json=signup_body(email="TEST@example.com"))

        assert response.status_code == 409

    def test_signup_password_mismatch_is_400(self, client):
        response = client.post(SIGNUP_URL, json=signup_body(confirmPassword="Other1234"))

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Validation failed"
        assert body["details"]

    def test_signup_tracks_registration(self, client):
        with patch(
            "app.api.endpoints.auth.AnalyticsTracker.track_user_registered"
        ) as mock_track:
            client.post(SIGNUP_URL, json=signup_body())

        mock_track.assert_called_once()
        assert mock_track.call_args.kwargs["email"] == "new@example.com"


class TestLogin:
    """Tests for POST /api/auth/login."""

    def test_login_success(self, client, test_user):
        response = client.post(
            LOGIN_URL, json={"email": test_user.email, "password": "Password123"}
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["user"]["id"] == test_user.id
        assert data["user"]["lastLoginAt"] is not None
        payload = decode_token(data["tokens"]["accessToken"])
        assert payload["user_id"] == test_user.id
        assert payload["type"] == "access"

    def test_login_wrong_password(self, client, test_user):
        """Test that a wrong password returns 401 with a generic message."""
        response = client.post(
            LOGIN_URL, json={"email": test_user.email, "password": "WrongPass1"}
        )

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid email or password"

    def test_login_unknown_email(self, client):
        response = client.post(
            LOGIN_URL, json={"email": "nobody@example.com", "password": "Password123"}
        )

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid email or password"

    def test_login_remember_me_sets_longer_refresh_cookie(self, client, test_user):
        short = client.post(
            LOGIN_URL, json={"email": test_user.email, "password": "Password123"}
        )
        long = client.post(
            LOGIN_URL,
            json={
                "email": test_user.email,
                "password": "Password123",
                "rememberMe": True,
            },
        )

        short_payload = decode_token(short.json()["data"]["tokens"]["refreshToken"])
        long_payload = decode_token(long.json()["data"]["tokens"]["refreshToken"])
        assert long_payload["exp"] > short_payload["exp"]


class TestRefreshAndLogout:
    """Tests for token refresh, logout and /me."""

    def test_refresh_with_bearer_refresh_token(self, client, test_user):
        token = create_refresh_token(test_user.id, test_user.email)

        response = client.post(
            "/api/auth/refresh", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 200
        assert response.json()["data"]["tokens"]["accessToken"]

    def test_refresh_rejects_access_token(self, client, auth_headers):
        response = client.post("/api/auth/refresh", headers=auth_headers)

        assert response.status_code == 401

    def test_refresh_with_cookie(self, client, test_user):
        client.cookies.set(
            REFRESH_TOKEN_COOKIE, create_refresh_token(test_user.id, test_user.email)
        )

        response = client.post("/api/auth/refresh")

        assert response.status_code == 200

    def test_logout_without_auth(self, client):
        """Test that logout succeeds for anonymous callers."""
        response = client.post("/api/auth/logout")

        assert response.status_code == 200
        assert response.json()["data"]["message"] == "Logged out successfully"

    def test_logout_clears_cookies(self, client, auth_headers):
        response = client.post("/api/auth/logout", headers=auth_headers)

        set_cookie = response.headers.get_list("set-cookie")
        assert any(c.startswith(f"{ACCESS_TOKEN_COOKIE}=") for c in set_cookie)
        assert any(c.startswith(f"{REFRESH_TOKEN_COOKIE}=") for c in set_cookie)

    def test_me_returns_profile(self, client, test_user, auth_headers):
        response = client.get("/api/auth/me", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["data"]["user"]["email"] == test_user.email

    def test_me_with_access_cookie(self, client, test_user):
        client.post(LOGIN_URL, json={"email": test_user.email, "password": "Password123"})

        response = client.get("/api/auth/me")

        assert response.status_code == 200

    def test_me_requires_auth(self, client):
        response = client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_me_rejects_garbage_token(self, client):
        response = client.get(
            "/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == 401
