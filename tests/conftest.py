"""
Shared fixtures.

Every test gets its own SQLite database built from the table definitions,
an in-memory activity log instead of MongoDB and a recording email client
instead of Resend.
"""

import sqlite3
from datetime import date, datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text

# Store timestamps the way the handlers compare them (ISO text, space separated)
sqlite3.register_adapter(datetime, lambda value: value.isoformat(" "))
sqlite3.register_adapter(date, lambda value: value.isoformat())

from samrambhak.core.auth import pwd_context  # noqa: E402
from samrambhak.core.config import get_settings  # noqa: E402
from samrambhak.db import postgres  # noqa: E402
from samrambhak.db.schema import init_schema  # noqa: E402
from samrambhak.main import app  # noqa: E402
from samrambhak.services import activity_log_service, email_client  # noqa: E402

# Minimum bcrypt cost keeps signups fast
pwd_context.update(bcrypt__rounds=4)


class FakeActivityLog:
    def __init__(self):
        self.entries = []

    def log(self, admin_id, action, target_type, target_id, details=None):
        self.entries.append({
            "admin_id": admin_id,
            "action": action,
            "target_type": target_type,
            "target_id": target_id,
            "details": details or {},
        })
        return str(len(self.entries))

    def recent(self, limit=100, target_type=None):
        entries = [e for e in self.entries if target_type is None or e["target_type"] == target_type]
        return list(reversed(entries))[:limit]

    def actions(self):
        return [e["action"] for e in self.entries]


class FakeEmailClient:
    def __init__(self):
        self.sent = []

    def send_verification_email(self, to, full_name, link):
        self.sent.append({"to": to, "full_name": full_name, "link": link})
        return "test-message-id"


@pytest.fixture(autouse=True)
def database(tmp_path):
    engine = postgres.init_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture(autouse=True)
def activity_log(monkeypatch):
    fake = FakeActivityLog()
    monkeypatch.setattr(activity_log_service, "_activity_log", fake)
    return fake


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    fake = FakeEmailClient()
    monkeypatch.setattr(email_client, "_email_client", fake)
    return fake


@pytest.fixture(autouse=True)
def settings(tmp_path, monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "media_root", str(tmp_path / "media"))
    monkeypatch.setattr(settings, "resend_api_key", "")
    return settings


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def register(client):
    """Sign up a user; returns {user_id, token, headers}."""
    counter = {"n": 0}

    def _register(username=None, mobile_number=None, password="secret123",
                  full_name="Test User", date_of_birth=None):
        counter["n"] += 1
        username = username or f"user{counter['n']}"
        mobile_number = mobile_number or f"98765{counter['n']:05d}"
        payload = {
            "action": "signup",
            "mobile_number": mobile_number,
            "password": password,
            "full_name": full_name,
            "username": username,
        }
        if date_of_birth:
            payload["date_of_birth"] = date_of_birth
        response = client.post("/api/mobile-auth", json=payload)
        assert response.status_code == 200, response.text
        data = response.json()
        token = data["session_token"]
        return {
            "user_id": data["user"]["user_id"],
            "token": token,
            "headers": {"X-Session-Token": token},
            "mobile_number": mobile_number,
            "username": username,
        }

    return _register


def grant_role(user_id: int, role: str) -> None:
    with postgres.get_db_session() as db:
        db.execute(
            text("INSERT INTO user_roles (user_id, role) VALUES (:uid, :role)"),
            {"uid": user_id, "role": role}
        )


def run_sql(sql: str, params: dict = None) -> None:
    with postgres.get_db_session() as db:
        db.execute(text(sql), params or {})


def query_one(sql: str, params: dict = None):
    with postgres.get_db_session() as db:
        return postgres.fetch_one(db, sql, params)


@pytest.fixture
def alice(register):
    return register(username="alice", full_name="Alice A")


@pytest.fixture
def bob(register):
    return register(username="bob", full_name="Bob B")


@pytest.fixture
def admin(register):
    user = register(username="superadmin", full_name="Super Admin")
    grant_role(user["user_id"], "super_admin")
    return user


@pytest.fixture
def moderator(register):
    user = register(username="moderator", full_name="Content Moderator")
    grant_role(user["user_id"], "content_moderator")
    return user


@pytest.fixture
def manager(register):
    user = register(username="catmanager", full_name="Category Manager")
    grant_role(user["user_id"], "category_manager")
    return user


def query_all(sql: str, params: dict = None) -> list:
    with postgres.get_db_session() as db:
        return postgres.fetch_all(db, sql, params)


def skip_lookup(monkeypatch, module, marker: str):
    """
    Make a route module's fetch_one miss rows for queries containing marker,
    as if a concurrent request inserted them after the check.
    """
    real_fetch_one = module.fetch_one

    def fetch_one(db, sql, params=None):
        if marker in sql:
            return None
        return real_fetch_one(db, sql, params)

    monkeypatch.setattr(module, "fetch_one", fetch_one)
