from datetime import timedelta

from conftest import grant_role, run_sql, query_one, skip_lookup
from samrambhak.api.routes import auth_routes
from samrambhak.utils.dates import utcnow


def signin(client, mobile_number, password="secret123"):
    return client.post("/api/mobile-auth", json={
        "action": "signin", "mobile_number": mobile_number, "password": password,
    })


def test_signup_creates_user_profile_and_session(client):
    response = client.post("/api/mobile-auth", json={
        "action": "signup",
        "mobile_number": "9876543210",
        "password": "secret123",
        "full_name": "Asha Kumar",
        "username": "Asha_K",
        "date_of_birth": "1990-05-01",
    })
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert len(data["session_token"]) == 64
    assert data["user"]["username"] == "asha_k"

    profile = query_one("SELECT username, date_of_birth FROM profiles WHERE user_id = :uid",
                        {"uid": data["user"]["user_id"]})
    assert profile["username"] == "asha_k"
    assert str(profile["date_of_birth"]).startswith("1990-05-01")


def test_signup_requires_mobile_and_password(client):
    response = client.post("/api/mobile-auth", json={"action": "signup", "full_name": "X", "username": "xyz"})
    assert response.status_code == 400
    assert response.json() == {"error": "Mobile number and password are required"}


def test_signup_requires_name_and_username(client):
    response = client.post("/api/mobile-auth", json={
        "action": "signup", "mobile_number": "9876543210", "password": "secret123",
    })
    assert response.status_code == 400
    assert response.json()["error"] == "Full name and username are required for signup"


def test_signup_rejects_bad_username(client):
    response = client.post("/api/mobile-auth", json={
        "action": "signup", "mobile_number": "9876543210", "password": "secret123",
        "full_name": "A", "username": "no spaces!",
    })
    assert response.status_code == 400
    assert "Username must be 3-30 characters" in response.json()["error"]


def test_signup_duplicate_mobile_and_username(client, alice):
    response = client.post("/api/mobile-auth", json={
        "action": "signup", "mobile_number": alice["mobile_number"], "password": "secret123",
        "full_name": "Other", "username": "other",
    })
    assert response.status_code == 400
    assert response.json()["error"] == "This mobile number is already registered"

    response = client.post("/api/mobile-auth", json={
        "action": "signup", "mobile_number": "9000000001", "password": "secret123",
        "full_name": "Other", "username": "ALICE",
    })
    assert response.status_code == 400
    assert response.json()["error"] == "This username is already taken"


def test_signin_success_returns_roles_and_marks_online(client, alice):
    grant_role(alice["user_id"], "content_moderator")
    response = signin(client, alice["mobile_number"])
    assert response.status_code == 200
    data = response.json()
    assert data["roles"] == ["content_moderator"]
    assert data["user"]["is_online"] is True
    assert data["session_token"] != alice["token"]

    # earlier session is still valid
    response = client.post("/api/mobile-auth", json={"action": "validate_session"}, headers=alice["headers"])
    assert response.status_code == 200


def test_signin_wrong_password_or_unknown_number(client, alice):
    assert signin(client, alice["mobile_number"], "wrong-pass").status_code == 401
    response = signin(client, "9999999999")
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid mobile number or password"


def test_signin_deactivated_account(client, alice):
    run_sql("UPDATE users SET is_active = FALSE WHERE user_id = :uid", {"uid": alice["user_id"]})
    response = signin(client, alice["mobile_number"])
    assert response.status_code == 403


def test_deactivated_session_is_anonymous_on_public_handlers(client, alice, bob):
    run_sql("UPDATE users SET is_active = FALSE WHERE user_id = :uid", {"uid": alice["user_id"]})

    response = client.post("/api/posts", json={"action": "feed"}, headers=alice["headers"])
    assert response.status_code == 200

    # another account can still sign in from the same client
    response = client.post("/api/mobile-auth", json={"action": "signin", "mobile_number": bob["mobile_number"],
                                                    "password": "secret123"}, headers=alice["headers"])
    assert response.status_code == 200
    assert response.json()["user"]["username"] == "bob"

    # handlers that need a user still refuse the account
    response = client.post("/api/notifications", json={"action": "list"}, headers=alice["headers"])
    assert response.status_code == 403
    assert response.json()["error"] == "Account deactivated"


def test_signout_deactivates_session(client, alice):
    response = client.post("/api/mobile-auth", json={"action": "signout"}, headers=alice["headers"])
    assert response.status_code == 200

    response = client.post("/api/mobile-auth", json={"action": "validate_session"}, headers=alice["headers"])
    assert response.status_code == 401


def test_expired_session_is_rejected(client, alice):
    run_sql("UPDATE user_sessions SET expires_at = :past WHERE session_token = :token",
            {"past": utcnow() - timedelta(days=1), "token": alice["token"]})
    response = client.post("/api/mobile-auth", json={"action": "validate_session"}, headers=alice["headers"])
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid or expired session"


def test_admin_validate_with_body_token(client, admin):
    response = client.post("/api/mobile-auth", json={"action": "admin_validate", "session_token": admin["token"]})
    assert response.status_code == 200
    data = response.json()
    assert data["roles"] == ["super_admin"]
    assert data["user"]["username"] == "superadmin"


def test_admin_validate_deactivated_account(client, admin):
    run_sql("UPDATE users SET is_active = FALSE WHERE user_id = :uid", {"uid": admin["user_id"]})
    response = client.post("/api/mobile-auth", json={"action": "admin_validate", "session_token": admin["token"]})
    assert response.status_code == 403
    assert response.json()["error"] == "Account deactivated"


def test_admin_validate_errors(client):
    response = client.post("/api/mobile-auth", json={"action": "admin_validate"})
    assert response.status_code == 400
    assert response.json()["error"] == "Session token is required"

    response = client.post("/api/mobile-auth", json={"action": "admin_validate", "session_token": "nope"})
    assert response.status_code == 401


def test_unknown_action(client):
    response = client.post("/api/mobile-auth", json={"action": "teleport"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid action"}


def test_missing_action_is_validation_error(client):
    response = client.post("/api/mobile-auth", json={"mobile_number": "9876543210"})
    assert response.status_code == 400
    assert response.json()["error"].startswith("action")


def test_signup_race_on_unique_columns(client, alice, monkeypatch):
    skip_lookup(monkeypatch, auth_routes, "FROM users WHERE mobile_number")
    response = client.post("/api/mobile-auth", json={
        "action": "signup", "mobile_number": alice["mobile_number"], "password": "secret123",
        "full_name": "Other", "username": "other",
    })
    assert response.status_code == 400
    assert response.json()["error"] == "This mobile number is already registered"

    monkeypatch.setattr(auth_routes, "username_taken", lambda db, username: False)
    response = client.post("/api/mobile-auth", json={
        "action": "signup", "mobile_number": "9000000002", "password": "secret123",
        "full_name": "Other", "username": "alice",
    })
    assert response.status_code == 400
    assert response.json()["error"] == "This username is already taken"
    assert query_one("SELECT COUNT(*) AS n FROM users")["n"] == 1
