from datetime import date, datetime, timedelta, timezone

import pytest
import requests
from sqlalchemy import text

from conftest import run_sql
from samrambhak.db.postgres import get_db_session
from samrambhak.services import email_client
from samrambhak.services.email_client import EmailClient, EmailDeliveryError
from samrambhak.services.moderation_service import find_blocked_word
from samrambhak.services.notification_service import notify
from samrambhak.services.profile_service import profile_completion
from samrambhak.utils.dates import date_part, to_naive_utc


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self.payload = payload or {}
        self.text = str(self.payload)

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)

    def json(self):
        return self.payload


def test_email_client_posts_to_resend(settings, monkeypatch):
    monkeypatch.setattr(settings, "resend_api_key", "re_123")
    calls = []

    def fake_post(url, headers, json, timeout):
        calls.append({"url": url, "headers": headers, "json": json})
        return FakeResponse(payload={"id": "msg_1"})

    monkeypatch.setattr(email_client.requests, "post", fake_post)
    message_id = EmailClient().send_verification_email("a@example.com", "Asha", "http://app/verify-email?token=t")

    assert message_id == "msg_1"
    assert calls[0]["url"] == settings.resend_api_url
    assert calls[0]["headers"]["Authorization"] == "Bearer re_123"
    assert calls[0]["json"]["to"] == ["a@example.com"]
    assert "http://app/verify-email?token=t" in calls[0]["json"]["html"]


def test_email_client_raises_on_provider_error(monkeypatch):
    monkeypatch.setattr(email_client.requests, "post", lambda *args, **kwargs: FakeResponse(status_code=422))
    with pytest.raises(EmailDeliveryError):
        EmailClient().send("a@example.com", "subject", "<p>hi</p>")


def test_delivery_failure_returns_502(client, alice, settings, outbox, monkeypatch):
    monkeypatch.setattr(settings, "resend_api_key", "re_123")

    def failing(*args, **kwargs):
        raise EmailDeliveryError("down")

    monkeypatch.setattr(outbox, "send_verification_email", failing)
    response = client.post("/api/send-verification-email", json={"email": "a@example.com"}, headers=alice["headers"])
    assert response.status_code == 502


def test_find_blocked_word_matches_whole_words_only():
    run_sql("INSERT INTO blocked_words (word) VALUES ('spam'), ('fake news')")
    run_sql("INSERT INTO blocked_words (word, is_active) VALUES ('idiot', FALSE)")
    with get_db_session() as db:
        assert find_blocked_word(db, "No SPAM please") == "spam"
        assert find_blocked_word(db, "spamming is different") is None
        assert find_blocked_word(db, "this is Fake News!") == "fake news"
        assert find_blocked_word(db, "you idiot") is None
        assert find_blocked_word(db, None) is None


def test_notify_skips_the_actor(alice):
    with get_db_session() as db:
        notify(db, alice["user_id"], alice["user_id"], "like", "self")
        count = db.execute(text("SELECT COUNT(*) FROM notifications")).scalar()
    assert count == 0


def test_profile_completion():
    row = {"full_name": "A", "username": "a", "avatar_url": None, "bio": "", "location": "X",
           "date_of_birth": date(1990, 1, 1), "email": None}
    result = profile_completion(row)
    assert result == {"percentage": 57, "missing_fields": ["avatar_url", "bio", "email"], "is_complete": False}


def test_date_helpers():
    assert date_part("1990-05-01T00:00:00.000Z") == "1990-05-01"
    assert date_part("1990-05-01 10:00:00") == "1990-05-01"
    assert date_part(date(1990, 5, 1)) == "1990-05-01"
    assert date_part(None) is None

    aware = datetime(2024, 1, 1, 5, 30, tzinfo=timezone(timedelta(hours=5, minutes=30)))
    assert to_naive_utc(aware) == datetime(2024, 1, 1, 0, 0)
    assert to_naive_utc(datetime(2024, 1, 1)) == datetime(2024, 1, 1)
