import pytest
from pymongo.errors import ServerSelectionTimeoutError

from conftest import run_sql, query_one


def manage(client, user=None, **payload):
    return client.post("/api/admin-manage", json=payload, headers=user["headers"] if user else {})


def post_actions(client, user=None, **payload):
    return client.post("/api/admin-post-actions", json=payload, headers=user["headers"] if user else {})


def blocked_words(client, user=None, **payload):
    return client.post("/api/manage-blocked-words", json=payload, headers=user["headers"] if user else {})


@pytest.fixture
def community_id(client, alice):
    response = client.post("/api/manage-community", json={"action": "create", "name": "Farmers"},
                           headers=alice["headers"])
    return response.json()["community"]["community_id"]


@pytest.fixture
def post_id(client, alice):
    response = client.post("/api/posts", json={"action": "create", "content": "Buy cheap followers"},
                           headers=alice["headers"])
    return response.json()["post"]["post_id"]


# ------------------------------------------------------------
# admin-manage
# ------------------------------------------------------------

def test_admin_manage_requires_admin(client, alice):
    assert manage(client, action="stats").status_code == 401
    response = manage(client, alice, action="stats")
    assert response.status_code == 403
    assert response.json()["error"] == "Unauthorized: Admin access required"


def test_list_entities_with_creator(client, manager, alice, community_id):
    response = manage(client, manager, action="list", entity_type="communities")
    assert response.status_code == 200
    rows = response.json()["data"]
    assert rows[0]["community_id"] == community_id
    assert rows[0]["creator"]["username"] == "alice"
    assert rows[0]["member_count"] == 1
    assert "author_user_id" not in rows[0]

    response = manage(client, manager, action="list", entity_type="planets")
    assert response.status_code == 400
    assert response.json()["error"] == "Unknown entity type: planets"


def test_approve_community(client, admin, bob, community_id, activity_log):
    response = manage(client, admin, action="update", entity_type="communities", entity_id=community_id,
                      updates={"approval_status": "approved"})
    assert response.status_code == 200

    listed = client.post("/api/manage-community", json={"action": "list"}, headers=bob["headers"]).json()
    assert [c["community_id"] for c in listed["communities"]] == [community_id]

    entry = activity_log.entries[-1]
    assert entry["action"] == "update_community"
    assert entry["target_id"] == community_id
    assert entry["details"] == {"updates": {"approval_status": "approved"}}


def test_disable_and_enable_community(client, admin, community_id):
    manage(client, admin, action="update", entity_type="communities", entity_id=community_id,
           updates={"is_disabled": True, "disabled_reason": "Spam"})
    row = query_one("SELECT is_disabled, disabled_at, disabled_reason FROM communities")
    assert row["is_disabled"]
    assert row["disabled_at"] is not None
    assert row["disabled_reason"] == "Spam"

    manage(client, admin, action="update", entity_type="communities", entity_id=community_id,
           updates={"is_disabled": False})
    row = query_one("SELECT is_disabled, disabled_at, disabled_reason FROM communities")
    assert not row["is_disabled"]
    assert row["disabled_at"] is None
    assert row["disabled_reason"] is None


def test_update_validation(client, admin, community_id):
    response = manage(client, admin, action="update", entity_type="communities", entity_id=community_id)
    assert response.json()["error"] == "Missing entity_id or updates"

    response = manage(client, admin, action="update", entity_type="communities", entity_id=community_id,
                      updates={"created_by": 1})
    assert response.json()["error"] == "Field not allowed: created_by"

    response = manage(client, admin, action="update", entity_type="communities", entity_id=community_id,
                      updates={"approval_status": "maybe"})
    assert response.status_code == 400

    response = manage(client, admin, action="update", entity_type="communities", entity_id=community_id,
                      updates={"is_disabled": "yes"})
    assert response.status_code == 400

    response = manage(client, admin, action="update", entity_type="jobs", entity_id=999,
                      updates={"status": "closed"})
    assert response.status_code == 404


def test_feature_business_and_delete_job(client, admin, alice):
    business = client.post("/api/businesses", json={"action": "create", "name": "Spice Co"},
                           headers=alice["headers"]).json()["business"]
    response = manage(client, admin, action="update", entity_type="businesses",
                      entity_id=business["business_id"], updates={"is_featured": True, "approval_status": "approved"})
    assert response.status_code == 200
    listed = client.post("/api/businesses", json={"action": "list"}).json()["businesses"]
    assert listed[0]["is_featured"] is True

    job = client.post("/api/manage-jobs", json={"action": "create", "title": "Picker", "description": "Farm"},
                      headers=alice["headers"]).json()["job"]
    response = manage(client, admin, action="delete", entity_type="jobs", entity_id=job["job_id"])
    assert response.status_code == 200
    assert query_one("SELECT COUNT(*) AS n FROM jobs")["n"] == 0


def test_delete_community_cascades(client, admin, community_id, activity_log):
    response = manage(client, admin, action="delete", entity_type="communities", entity_id=community_id)
    assert response.status_code == 200
    assert query_one("SELECT COUNT(*) AS n FROM community_members")["n"] == 0
    assert activity_log.actions() == ["delete_community"]


def test_stats(client, admin, alice, community_id, post_id):
    stats = manage(client, admin, action="stats").json()["stats"]
    assert stats["users"] == 2
    assert stats["posts"] == 1
    assert stats["pending_approvals"]["communities"] == 1
    assert stats["pending_reports"] == 0


def test_activity_logs(client, admin, community_id):
    manage(client, admin, action="delete", entity_type="communities", entity_id=community_id)
    logs = manage(client, admin, action="activity_logs").json()["logs"]
    assert [log["action"] for log in logs] == ["delete_community"]


def test_activity_logs_unavailable(client, admin, activity_log, monkeypatch):
    def unavailable(*args, **kwargs):
        raise ServerSelectionTimeoutError("no mongo")

    monkeypatch.setattr(activity_log, "recent", unavailable)
    response = manage(client, admin, action="activity_logs")
    assert response.status_code == 503


def test_failed_log_write_does_not_fail_action(client, admin, community_id, activity_log, monkeypatch):
    def unavailable(*args, **kwargs):
        raise ServerSelectionTimeoutError("no mongo")

    monkeypatch.setattr(activity_log, "log", unavailable)
    response = manage(client, admin, action="delete", entity_type="communities", entity_id=community_id)
    assert response.status_code == 200


# ------------------------------------------------------------
# admin-post-actions
# ------------------------------------------------------------

def test_post_actions_need_content_moderator(client, manager, admin, post_id):
    response = post_actions(client, manager, action="list")
    assert response.status_code == 403
    assert response.json()["error"] == "Unauthorized: content_moderator role required"
    # super_admin always passes
    assert post_actions(client, admin, action="list").status_code == 200


def test_hide_and_unhide(client, moderator, bob, post_id, activity_log):
    response = post_actions(client, moderator, action="hide", post_id=post_id)
    assert response.status_code == 200
    assert query_one("SELECT hidden_reason FROM posts")["hidden_reason"] == "Hidden by admin due to report"
    assert client.post("/api/posts", json={"action": "feed"}, headers=bob["headers"]).json()["posts"] == []

    # moderators still see hidden posts
    listed = post_actions(client, moderator, action="list").json()["posts"]
    assert listed[0]["is_hidden"] is True

    post_actions(client, moderator, action="unhide", post_id=post_id)
    row = query_one("SELECT is_hidden, hidden_reason FROM posts")
    assert not row["is_hidden"]
    assert row["hidden_reason"] is None
    assert activity_log.actions() == ["hide_post", "unhide_post"]


def test_feature_and_delete(client, moderator, post_id):
    post_actions(client, moderator, action="feature", post_id=post_id)
    assert query_one("SELECT is_featured FROM posts")["is_featured"]
    post_actions(client, moderator, action="unfeature", post_id=post_id)
    assert not query_one("SELECT is_featured FROM posts")["is_featured"]

    assert post_actions(client, moderator, action="delete", post_id=post_id).status_code == 200
    assert post_actions(client, moderator, action="delete", post_id=post_id).status_code == 404


def test_reports(client, moderator, bob, post_id, activity_log):
    client.post("/api/posts", json={"action": "report", "post_id": post_id, "reason": "spam"},
                headers=bob["headers"])

    reports = post_actions(client, moderator, action="list_reports", status="pending").json()["reports"]
    assert len(reports) == 1
    assert reports[0]["post_content"] == "Buy cheap followers"
    assert reports[0]["reporter"]["username"] == "bob"
    report_id = reports[0]["report_id"]

    response = post_actions(client, moderator, action="resolve_report", report_id=report_id, status="pending")
    assert response.status_code == 400

    response = post_actions(client, moderator, action="resolve_report", report_id=report_id, status="dismissed")
    assert response.json()["message"] == "Report dismissed"
    report = query_one("SELECT status, resolved_by FROM reports")
    assert report == {"status": "dismissed", "resolved_by": moderator["user_id"]}

    assert post_actions(client, moderator, action="list_reports", status="pending").json()["reports"] == []
    assert activity_log.entries[-1]["details"] == {"status": "dismissed"}


# ------------------------------------------------------------
# manage-blocked-words
# ------------------------------------------------------------

def test_blocked_words_crud(client, moderator, activity_log):
    response = blocked_words(client, moderator, action="add", words=[" Spam ", "scam", "spam"])
    assert response.json()["added"] == ["spam", "scam"]

    response = blocked_words(client, moderator, action="add", word="SCAM")
    assert response.status_code == 400
    assert response.json()["error"] == "One or more words already exist"

    words = blocked_words(client, moderator, action="list").json()["words"]
    assert [w["word"] for w in words] == ["scam", "spam"]
    scam_id, spam_id = words[0]["word_id"], words[1]["word_id"]

    response = blocked_words(client, moderator, action="update", word_id=scam_id, word="spam")
    assert response.json()["error"] == "This word already exists"

    response = blocked_words(client, moderator, action="update", word_id=scam_id, is_active=False)
    assert response.status_code == 200
    assert blocked_words(client, moderator, action="list").json()["words"][0]["is_active"] is False

    assert blocked_words(client, moderator, action="delete", word_id=spam_id).status_code == 200
    response = blocked_words(client, moderator, action="delete", word_id=spam_id)
    assert response.status_code == 404
    assert response.json()["error"] == "Word not found"

    assert activity_log.actions() == ["add_blocked_words", "update_blocked_word", "delete_blocked_word"]


def test_blocked_words_add_requires_a_word(client, moderator):
    response = blocked_words(client, moderator, action="add", words=["  "])
    assert response.status_code == 400
    assert response.json()["error"] == "At least one word is required"


def test_inactive_word_is_not_enforced(client, moderator, alice):
    blocked_words(client, moderator, action="add", word="rude")
    word_id = query_one("SELECT word_id FROM blocked_words")["word_id"]
    blocked_words(client, moderator, action="update", word_id=word_id, is_active=False)

    response = client.post("/api/posts", json={"action": "create", "content": "a rude word"},
                           headers=alice["headers"])
    assert response.status_code == 200


def test_unknown_admin_action(client, admin):
    response = blocked_words(client, admin, action="purge")
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid action"
