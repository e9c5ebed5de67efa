# Tests for the mock OAuth provider (api/mock_provider.py, api/backend.py)
# Created: 2026-10-12

import pytest
from fastapi.testclient import TestClient

from authflow.api.backend import MockProviderBackend
from authflow.api.serve import create_mock_app


@pytest.fixture
def backend():
    return MockProviderBackend()


@pytest.fixture
def client(backend):
    return TestClient(create_mock_app(backend))


class TestAuthorize:
    def test_google(self, client):
        resp = client.get(
            "/oauth/google/authorize",
            params={
                "client_id": "YOUR_GOOGLE_CLIENT_ID",
                "redirect_uri": "http://localhost:8765/oauth/google/callback",
                "state": "s1",
                "scope": "openid email profile",
            },
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["message"] == "Authorization initiated"
        assert data["authUrl"].startswith("https://accounts.google.com/o/oauth2/v2/auth?")
        assert "state=s1" in data["authUrl"]

    def test_google_rejects_unknown_client(self, client):
        resp = client.get("/oauth/google/authorize", params={"client_id": "someone-else"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid client_id"}

    def test_github_accepts_any_client(self, client):
        resp = client.get("/oauth/github/authorize", params={"client_id": "anything"})
        assert resp.status_code == 200

    def test_unknown_provider(self, client):
        resp = client.get("/oauth/facebook/authorize")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Provider not found"}


class TestToken:
    def test_form_body(self, client):
        resp = client.post(
            "/oauth/google/token",
            data={"code": "any", "client_id": "x", "grant_type": "authorization_code"},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["access_token"] == "google-token-123"
        assert data["token_type"] == "Bearer"
        assert data["expires_in"] == 3600

    def test_json_body(self, client):
        resp = client.post(
            "/oauth/github/token", json={"code": "any", "grant_type": "authorization_code"}
        )
        assert resp.status_code == 200
        assert resp.json()["access_token"] == "github-token-456"
        assert resp.json()["scope"] == "user:email read:user"

    def test_wrong_grant_type(self, client):
        resp = client.post("/oauth/google/token", data={"grant_type": "client_credentials"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "invalid_grant"}

    def test_missing_grant_type(self, client):
        resp = client.post("/oauth/github/token", json={"code": "x"})
        assert resp.status_code == 400

    def test_unknown_provider(self, client):
        resp = client.post("/oauth/facebook/token", data={"grant_type": "authorization_code"})
        assert resp.status_code == 404


class TestProfile:
    def test_google_userinfo(self, client):
        resp = client.get(
            "/oauth/google/userinfo", headers={"Authorization": "Bearer google-token-123"}
        )
        assert resp.status_code == 200
        assert resp.json()["id"] == "google-user-123"
        assert resp.json()["email"] == "user@gmail.com"

    def test_github_user(self, client):
        resp = client.get("/oauth/github/user", headers={"Authorization": "Bearer github-token-456"})
        assert resp.status_code == 200
        assert resp.json()["login"] == "githubuser"

    def test_missing_bearer(self, client):
        resp = client.get("/oauth/google/userinfo")
        assert resp.status_code == 401
        assert resp.json() == {"error": "Unauthorized"}

    def test_wrong_token(self, client):
        resp = client.get("/oauth/google/userinfo", headers={"Authorization": "Bearer github-token-456"})
        assert resp.status_code == 401
        assert resp.json() == {"error": "Invalid token"}


class TestCallback:
    def test_echo(self, client):
        resp = client.get("/oauth/google/callback", params={"code": "abc", "state": "s1"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["code"] == "abc"
        assert data["state"] == "s1"
        assert data["provider"] == "google"

    def test_error(self, client):
        resp = client.get("/oauth/github/callback", params={"error": "access_denied"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "access_denied"}

    def test_missing_code(self, client):
        resp = client.get("/oauth/github/callback")
        assert resp.status_code == 400
        assert resp.json() == {"error": "No authorization code provided"}


class TestHealthAndUsers:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "OK"
        assert data["providers"] == ["google", "github"]
        assert data["timestamp"]

    def test_list_users(self, client):
        resp = client.get("/mock/users/github")
        assert resp.status_code == 200
        assert [u["id"] for u in resp.json()] == ["github-user-789", "github-dev-101"]

    def test_list_users_unknown_provider(self, client):
        assert client.get("/mock/users/facebook").status_code == 404

    def test_create_user(self, client, backend):
        resp = client.post("/mock/users/google", json={"email": "new@gmail.com", "id": "ignored"})
        assert resp.status_code == 200
        user = resp.json()
        assert user["id"].startswith("google-user-")
        assert user["id"] != "ignored"
        assert user["provider"] == "google"
        assert len(backend.list_users("google")) == 3

    def test_backends_are_isolated(self):
        first = MockProviderBackend()
        first.add_user("google", {"email": "x@y.z"})
        assert len(MockProviderBackend().list_users("google")) == 2

    def test_cors(self, client):
        resp = client.get("/health", headers={"Origin": "http://localhost:3000"})
        assert resp.headers["access-control-allow-origin"] == "*"
