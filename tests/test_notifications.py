def notifications(client, user=None, **payload):
    return client.post("/api/notifications", json=payload, headers=user["headers"] if user else {})


def like_a_post(client, author, liker):
    post = client.post("/api/posts", json={"action": "create", "content": "hi"}, headers=author["headers"]).json()
    client.post("/api/posts", json={"action": "toggle_like", "post_id": post["post"]["post_id"]},
                headers=liker["headers"])
    return post["post"]["post_id"]


def test_requires_session(client):
    assert notifications(client, action="list").status_code == 401


def test_list_and_unread_count(client, alice, bob):
    post_id = like_a_post(client, alice, bob)
    like_a_post(client, alice, bob)

    data = notifications(client, alice, action="list").json()
    assert data["unread_count"] == 2
    oldest = data["notifications"][1]
    assert oldest["type"] == "like"
    assert oldest["data"] == {"post_id": post_id}
    assert oldest["is_read"] is False

    assert notifications(client, bob, action="list").json()["unread_count"] == 0


def test_mark_read(client, alice, bob):
    like_a_post(client, alice, bob)
    notification_id = notifications(client, alice, action="list").json()["notifications"][0]["notification_id"]

    # someone else's notification looks missing
    assert notifications(client, bob, action="mark_read", notification_id=notification_id).status_code == 404

    assert notifications(client, alice, action="mark_read", notification_id=notification_id).status_code == 200
    assert notifications(client, alice, action="list").json()["unread_count"] == 0


def test_mark_all_read(client, alice, bob):
    like_a_post(client, alice, bob)
    like_a_post(client, alice, bob)

    response = notifications(client, alice, action="mark_all_read")
    assert response.json() == {"success": True, "updated": 2}
    assert notifications(client, alice, action="list").json()["unread_count"] == 0
