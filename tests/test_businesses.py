import pytest

from conftest import run_sql, query_one
from samrambhak.api.routes import business_routes


def businesses(client, user=None, **payload):
    return client.post("/api/businesses", json=payload, headers=user["headers"] if user else {})


def create(client, user, name, **extra):
    response = businesses(client, user, action="create", name=name, **extra)
    assert response.status_code == 200, response.text
    return response.json()["business"]["business_id"]


def approve(business_id):
    run_sql("UPDATE businesses SET approval_status = 'approved' WHERE business_id = :bid", {"bid": business_id})


@pytest.fixture
def bakery(client, alice):
    business_id = create(client, alice, "Alice Bakery", category="food", description="Fresh sourdough daily")
    approve(business_id)
    return business_id


def test_create_business_defaults(client, alice):
    response = businesses(client, alice, action="create", name="Loom Works")
    data = response.json()
    assert data["business"]["category"] == "other"
    assert data["business"]["approval_status"] == "pending"
    assert data["business"]["owner"]["username"] == "alice"

    response = businesses(client, alice, action="create", name="  ")
    assert response.status_code == 400
    assert response.json()["error"] == "Business name is required"


def test_pending_business_only_visible_to_owner(client, alice, bob):
    business_id = create(client, alice, "Hidden Shop")
    assert businesses(client, bob, action="get", business_id=business_id).status_code == 404
    assert businesses(client, alice, action="get", business_id=business_id).status_code == 200
    assert businesses(client, bob, action="list").json()["businesses"] == []

    mine = businesses(client, alice, action="my_businesses").json()["businesses"]
    assert [b["name"] for b in mine] == ["Hidden Shop"]


def test_list_filters(client, alice, bakery):
    salon = create(client, alice, "Style Salon", category="beauty")
    approve(salon)

    names = [b["name"] for b in businesses(client, action="list").json()["businesses"]]
    assert set(names) == {"Alice Bakery", "Style Salon"}

    response = businesses(client, action="list", category="food")
    assert [b["name"] for b in response.json()["businesses"]] == ["Alice Bakery"]

    response = businesses(client, action="list", search="SOURDOUGH")
    assert [b["name"] for b in response.json()["businesses"]] == ["Alice Bakery"]


def test_featured_listed_first(client, alice, bakery):
    salon = create(client, alice, "Style Salon")
    approve(salon)
    run_sql("UPDATE businesses SET is_featured = TRUE WHERE business_id = :bid", {"bid": bakery})

    names = [b["name"] for b in businesses(client, action="list").json()["businesses"]]
    assert names[0] == "Alice Bakery"


def test_update_and_delete_are_owner_only(client, alice, bob, bakery):
    response = businesses(client, bob, action="update", business_id=bakery, name="Bob's now")
    assert response.status_code == 403

    response = businesses(client, alice, action="update", business_id=bakery, location="Pune", website_url="")
    assert response.status_code == 200
    business = response.json()["business"]
    assert business["location"] == "Pune"
    assert business["website_url"] is None

    assert businesses(client, bob, action="delete", business_id=bakery).status_code == 403
    assert businesses(client, alice, action="delete", business_id=bakery).status_code == 200
    assert businesses(client, alice, action="get", business_id=bakery).status_code == 404


def test_delete_business_keeps_posts(client, alice, bakery):
    client.post("/api/posts", json={"action": "create", "content": "Sale!", "business_id": bakery},
                headers=alice["headers"])
    businesses(client, alice, action="delete", business_id=bakery)
    post = query_one("SELECT business_id, content FROM posts")
    assert post == {"business_id": None, "content": "Sale!"}


def test_follow_and_unfollow(client, alice, bob, bakery):
    response = businesses(client, bob, action="follow", business_id=bakery)
    assert response.json() == {"success": True, "following": True, "follower_count": 1}

    response = businesses(client, bob, action="follow", business_id=bakery)
    assert response.status_code == 400
    assert response.json()["error"] == "You are already following this business"

    business = businesses(client, bob, action="get", business_id=bakery).json()["business"]
    assert business["is_following"] is True
    assert business["follower_count"] == 1

    response = businesses(client, bob, action="unfollow", business_id=bakery)
    assert response.json()["follower_count"] == 0
    # unfollowing again is harmless
    assert businesses(client, bob, action="unfollow", business_id=bakery).status_code == 200

def test_concurrent_duplicate_follow(client, bob, bakery, monkeypatch):
    businesses(client, bob, action="follow", business_id=bakery)

    real_load = business_routes._load

    def load_not_following(db, business_id, viewer):
        row = real_load(db, business_id, viewer)
        return dict(row, is_following=False) if row else row

    monkeypatch.setattr(business_routes, "_load", load_not_following)
    response = businesses(client, bob, action="follow", business_id=bakery)
    assert response.status_code == 400
    assert response.json()["error"] == "You are already following this business"



def test_cannot_follow_pending_business(client, alice, bob):
    business_id = create(client, alice, "Not yet")
    assert businesses(client, bob, action="follow", business_id=business_id).status_code == 404
