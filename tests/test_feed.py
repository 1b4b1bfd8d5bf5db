"""Tests for the /api/feed endpoints."""

from datetime import datetime

import pytest
from bson import ObjectId


@pytest.fixture
def post(client, admin_token, bearer) -> dict:
    response = client.post(
        "/api/feed",
        json={"imageUrl": "https://cdn.example.com/chart.png", "caption": "Weekly chart"},
        headers=bearer(admin_token),
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestCreatePost:
    """POST /api/feed."""

    def test_admin_creates_post(self, post, mongo_db):
        assert post["imageUrl"] == "https://cdn.example.com/chart.png"
        assert post["caption"] == "Weekly chart"
        assert post["likes"] == []
        assert post["comments"] == []
        assert post["createdBy"]["email"] == "admin@x.com"
        assert mongo_db["feedposts"].find_one({"_id": ObjectId(post["id"])})["image_url"] == post["imageUrl"]

    @pytest.mark.parametrize(
        "payload",
        [
            {"caption": "no image"},
            {"imageUrl": "https://cdn.example.com/a.png"},
            {"imageUrl": "", "caption": "empty image"},
        ],
    )
    def test_missing_fields_rejected(self, client, admin_token, bearer, payload):
        response = client.post("/api/feed", json=payload, headers=bearer(admin_token))

        assert response.status_code == 400
        assert response.json() == {"error": "Image URL and caption are required"}

    def test_non_admin_is_forbidden_and_nothing_is_stored(self, client, user_token, bearer, mongo_db):
        response = client.post(
            "/api/feed",
            json={"imageUrl": "https://cdn.example.com/a.png", "caption": "c"},
            headers=bearer(user_token),
        )

        assert response.status_code == 403
        assert mongo_db["feedposts"].count_documents({}) == 0


class TestListPosts:
    """GET /api/feed."""

    def test_lists_newest_first_without_tier_filter(self, client, user_token, bearer, mongo_db):
        for day, caption in ((1, "first"), (2, "second")):
            mongo_db["feedposts"].insert_one(
                {
                    "image_url": "https://cdn.example.com/x.png",
                    "caption": caption,
                    "likes": [],
                    "comments": [],
                    "created_by": None,
                    "created_at": datetime(2024, 1, day),
                }
            )

        response = client.get("/api/feed", headers=bearer(user_token))

        assert response.status_code == 200
        assert [p["caption"] for p in response.json()] == ["second", "first"]
        assert response.json()[0]["createdBy"] is None

    def test_since_filter(self, client, user_token, bearer, mongo_db):
        for month in (1, 5):
            mongo_db["feedposts"].insert_one(
                {
                    "image_url": "https://cdn.example.com/x.png",
                    "caption": f"month {month}",
                    "likes": [],
                    "comments": [],
                    "created_by": None,
                    "created_at": datetime(2024, month, 1),
                }
            )

        response = client.get("/api/feed", params={"since": "2024-03-01T00:00:00+00:00"}, headers=bearer(user_token))

        assert [p["caption"] for p in response.json()] == ["month 5"]

    def test_unparsable_since_matches_nothing(self, client, user_token, bearer, post):
        response = client.get("/api/feed", params={"since": "not a date"}, headers=bearer(user_token))

        assert response.status_code == 200
        assert response.json() == []

    def test_comment_authors_are_resolved(self, client, signup, bearer, post):
        user = signup("a@x.com")
        client.post(f"/api/feed/{post['id']}/comment", json={"text": "Nice"}, headers=bearer(user["token"]))

        listed = client.get("/api/feed", headers=bearer(user["token"])).json()

        comment = listed[0]["comments"][0]
        assert comment["user"] == {"id": user["user"]["id"], "email": "a@x.com"}
        assert comment["text"] == "Nice"
        assert listed[0]["createdBy"]["email"] == "admin@x.com"


class TestLike:
    """POST /api/feed/{id}/like."""

    def test_double_toggle_restores_likes(self, client, signup, bearer, post):
        user = signup("a@x.com")
        url = f"/api/feed/{post['id']}/like"

        liked = client.post(url, headers=bearer(user["token"]))
        unliked = client.post(url, headers=bearer(user["token"]))

        assert liked.status_code == unliked.status_code == 200
        assert user["user"]["id"] in liked.json()["likes"]
        assert user["user"]["id"] not in unliked.json()["likes"]
        assert unliked.json()["likes"] == post["likes"]

    def test_likes_from_different_users_accumulate(self, client, signup, bearer, post, mongo_db):
        first = signup("a@x.com")
        second = signup("b@x.com")
        url = f"/api/feed/{post['id']}/like"

        client.post(url, headers=bearer(first["token"]))
        response = client.post(url, headers=bearer(second["token"]))

        assert response.json()["likes"] == [first["user"]["id"], second["user"]["id"]]
        stored = mongo_db["feedposts"].find_one({"_id": ObjectId(post["id"])})
        assert stored["likes"] == [first["user"]["id"], second["user"]["id"]]

    def test_unknown_post(self, client, user_token, bearer):
        response = client.post(f"/api/feed/{ObjectId()}/like", headers=bearer(user_token))

        assert response.status_code == 404
        assert response.json() == {"error": "Feed post not found"}

    def test_malformed_post_id(self, client, user_token, bearer):
        response = client.post("/api/feed/not-an-id/like", headers=bearer(user_token))

        assert response.status_code == 404

    def test_requires_authentication(self, client, post):
        response = client.post(f"/api/feed/{post['id']}/like")

        assert response.status_code == 401


class TestComment:
    """POST /api/feed/{id}/comment."""

    def test_comments_are_appended_in_order(self, client, signup, bearer, post):
        user = signup("a@x.com")
        url = f"/api/feed/{post['id']}/comment"

        client.post(url, json={"text": "first"}, headers=bearer(user["token"]))
        response = client.post(url, json={"text": "second"}, headers=bearer(user["token"]))

        assert response.status_code == 200
        comments = response.json()["comments"]
        assert [c["text"] for c in comments] == ["first", "second"]
        assert comments[0]["id"] != comments[1]["id"]
        assert comments[1]["user"]["email"] == "a@x.com"
        assert comments[1]["createdAt"]

    def test_empty_text_rejected(self, client, user_token, bearer, post, mongo_db):
        response = client.post(f"/api/feed/{post['id']}/comment", json={"text": ""}, headers=bearer(user_token))

        assert response.status_code == 400
        assert response.json() == {"error": "Comment text is required"}
        assert mongo_db["feedposts"].find_one({"_id": ObjectId(post["id"])})["comments"] == []

    def test_text_checked_before_post_lookup(self, client, user_token, bearer):
        response = client.post(f"/api/feed/{ObjectId()}/comment", json={}, headers=bearer(user_token))

        assert response.status_code == 400

    def test_unknown_post(self, client, user_token, bearer):
        response = client.post(f"/api/feed/{ObjectId()}/comment", json={"text": "hi"}, headers=bearer(user_token))

        assert response.status_code == 404
        assert response.json() == {"error": "Feed post not found"}


class TestPostDeletedMidRequest:
    """The post vanishes between the lookup and the write."""

    @pytest.fixture
    def stale_post(self, post, mongo_db, monkeypatch):
        import feed

        doc = mongo_db["feedposts"].find_one({"_id": ObjectId(post["id"])})
        mongo_db["feedposts"].delete_one({"_id": doc["_id"]})
        monkeypatch.setattr(feed, "_get_post", lambda post_id: doc)
        return post

    def test_like(self, client, user_token, bearer, stale_post):
        response = client.post(f"/api/feed/{stale_post['id']}/like", headers=bearer(user_token))

        assert response.status_code == 404
        assert response.json() == {"error": "Feed post not found"}

    def test_comment(self, client, user_token, bearer, stale_post, mongo_db):
        response = client.post(
            f"/api/feed/{stale_post['id']}/comment", json={"text": "late"}, headers=bearer(user_token)
        )

        assert response.status_code == 404
        assert mongo_db["feedposts"].count_documents({}) == 0
