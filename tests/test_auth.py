from unittest.mock import MagicMock

from fastapi import status

from app.models.user import User
from app.services.errors import AuthError, AuthErrorKind


def _register_payload(email: str = "newuser@example.com", name: str = "New User") -> dict:
    return {"name": name, "email": email, "password": "password123"}


def test_register_success(client, db, email_sender):
    response = client.post("/api/auth/register", json=_register_payload())

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["success"] is True
    assert data["needsVerification"] is True
    assert data["user"]["email"] == "newuser@example.com"
    assert data["user"]["name"] == "New User"
    assert data["user"]["emailVerified"] is False
    assert "password" not in response.text
    email_sender.send.assert_called_once()

    user = db.query(User).filter(User.email == "newuser@example.com").first()
    assert user is not None
    assert user.email_verified is False


def test_register_duplicate_email(client, verified_user):
    response = client.post("/api/auth/register", json=_register_payload(email="Test@Example.com"))
    assert response.status_code == status.HTTP_409_CONFLICT
    data = response.json()
    assert data["success"] is False
    assert data["error"] == "conflict"
    assert "already exists" in data["message"]


def test_register_password_too_short(client):
    payload = _register_payload()
    payload["password"] = "short"
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["error"] == "validation_error"


def test_register_invalid_email(client):
    payload = _register_payload()
    payload["email"] = "not-an-email"
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["message"] == "Please enter a valid email address"


def test_register_missing_field(client):
    response = client.post("/api/auth/register", json={"email": "a@example.com"})
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json() == {
        "success": False,
        "error": "validation_error",
        "message": "name: Field required",
    }


def test_login_non_string_password_uses_error_body(client):
    response = client.post("/api/auth/login", json={"email": "test@example.com", "password": 123})
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    data = response.json()
    assert data["success"] is False
    assert data["error"] == "validation_error"
    assert data["message"].startswith("password:")
    assert "detail" not in data


def test_login_unverified_email_blocked(client, unverified_user):
    response = client.post(
        "/api/auth/login",
        json={"email": "pending@example.com", "password": "testpassword123"},
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN
    data = response.json()
    assert data["error"] == "unverified_email"
    assert data["needsVerification"] is True
    assert "set-cookie" not in response.headers


def test_login_wrong_email_and_wrong_password_match(client, verified_user):
    wrong_email = client.post(
        "/api/auth/login",
        json={"email": "wrong@example.com", "password": "testpassword123"},
    )
    wrong_password = client.post(
        "/api/auth/login",
        json={"email": "test@example.com", "password": "wrongpassword"},
    )
    assert wrong_email.status_code == wrong_password.status_code == status.HTTP_401_UNAUTHORIZED
    assert wrong_email.json() == wrong_password.json()
    assert "needsVerification" not in wrong_email.json()


def test_login_sets_session_cookie(client, verified_user):
    response = client.post(
        "/api/auth/login",
        json={"email": "test@example.com", "password": "testpassword123"},
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["success"] is True
    assert data["user"]["email"] == "test@example.com"
    assert len(data["token"].split(".")) == 3

    cookie = response.headers["set-cookie"].lower()
    assert cookie.startswith("auth-token=")
    assert "httponly" in cookie
    assert "max-age=604800" in cookie
    assert "samesite=lax" in cookie
    assert "path=/" in cookie


def test_me_with_bearer_token(client, auth_headers):
    response = client.get("/api/auth/me", headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["user"]["email"] == "test@example.com"
    assert data["user"]["name"] == "Test User"
    assert data["user"]["emailVerified"] is True
    assert "createdAt" in data["user"]


def test_me_with_cookie_from_login(client, verified_user):
    client.post(
        "/api/auth/login",
        json={"email": "test@example.com", "password": "testpassword123"},
    )
    response = client.get("/api/auth/me")
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["user"]["email"] == "test@example.com"


def test_me_requires_authentication(client):
    response = client.get("/api/auth/me")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_me_rejects_garbage_token(client):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer invalid_token_here"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_verify_email_wrong_code(client):
    client.post("/api/auth/register", json=_register_payload())
    response = client.post(
        "/api/auth/verify-email",
        json={"email": "newuser@example.com", "code": "ZZZZZZ"},
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["error"] == "invalid_code"


def test_verify_email_then_login(client, sent_code):
    client.post("/api/auth/register", json=_register_payload())
    response = client.post(
        "/api/auth/verify-email",
        json={"email": "newuser@example.com", "code": sent_code()},
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["user"]["emailVerified"] is True

    login = client.post(
        "/api/auth/login",
        json={"email": "newuser@example.com", "password": "password123"},
    )
    assert login.status_code == status.HTTP_200_OK


def test_resend_verification(client, email_sender):
    client.post("/api/auth/register", json=_register_payload())
    response = client.post("/api/auth/resend-verification", json={"email": "newuser@example.com"})
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"success": True}
    assert email_sender.send.call_count == 2


def test_resend_verification_unknown_email(client):
    response = client.post("/api/auth/resend-verification", json={"email": "ghost@example.com"})
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["error"] == "not_found"


def test_resend_verification_already_verified(client, verified_user):
    response = client.post("/api/auth/resend-verification", json={"email": "test@example.com"})
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["error"] == "already_verified"


def test_logout_revokes_session_and_clears_cookie(client, session_token, auth_headers):
    response = client.post("/api/auth/logout", headers=auth_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"success": True}
    assert "max-age=0" in response.headers["set-cookie"].lower()

    me = client.get("/api/auth/me", headers=auth_headers)
    assert me.status_code == status.HTTP_401_UNAUTHORIZED


def test_logout_without_token_succeeds(client):
    response = client.post("/api/auth/logout")
    assert response.status_code == status.HTTP_200_OK


def test_logout_clears_cookie_when_storage_is_down(client, auth_headers):
    client.app.state.auth_service.logout = MagicMock(
        side_effect=AuthError(AuthErrorKind.SERVICE_UNAVAILABLE)
    )

    response = client.post("/api/auth/logout", headers=auth_headers)

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.json()["error"] == "service_unavailable"
    assert response.headers["retry-after"] == "5"
    assert "max-age=0" in response.headers["set-cookie"].lower()


def test_full_flow_over_http(client, sent_code):
    register = client.post(
        "/api/auth/register",
        json={"name": "Alice", "email": "alice@x.com", "password": "secret1"},
    )
    assert register.json()["needsVerification"] is True

    early = client.post("/api/auth/login", json={"email": "alice@x.com", "password": "secret1"})
    assert early.json()["error"] == "unverified_email"

    bad = client.post("/api/auth/verify-email", json={"email": "alice@x.com", "code": "ZZZZZZ"})
    assert bad.json()["error"] == "invalid_code"

    good = client.post("/api/auth/verify-email", json={"email": "alice@x.com", "code": sent_code()})
    assert good.json()["user"]["emailVerified"] is True

    login = client.post("/api/auth/login", json={"email": "alice@x.com", "password": "secret1"})
    headers = {"Authorization": f"Bearer {login.json()['token']}"}
    assert client.get("/api/auth/me", headers=headers).json()["user"]["name"] == "Alice"

    client.post("/api/auth/logout", headers=headers)
    client.cookies.clear()
    assert client.get("/api/auth/me", headers=headers).status_code == status.HTTP_401_UNAUTHORIZED
