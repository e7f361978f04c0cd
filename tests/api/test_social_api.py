"""
API tests for recommendations, reviews and shared lists between friends.
"""

import pytest

FIGHT_CLUB = {"external_id": "550", "media_type": "movie", "title": "Fight Club"}


class TestRecommendationEndpoints:
    """/api/recommendations"""

    @pytest.mark.asyncio
    async def test_send_receive_and_mark(self, api, register):
        alice, alice_headers = await register("Alice")
        bob, bob_headers = await register("Bob")

        r = await api.post(
            "/api/recommendations",
            json={**FIGHT_CLUB, "to_user_id": bob["id"], "sent_message": "trust me"},
            headers=alice_headers,
        )
        assert r.status_code == 201
        rec = r.json()
        assert (rec["status"], rec["from_user_id"]) == ("pending", alice["id"])

        r = await api.get("/api/recommendations", headers=bob_headers)
        assert [x["id"] for x in r.json()] == [rec["id"]]
        r = await api.get("/api/recommendations", params={"direction": "sent"}, headers=alice_headers)
        assert [x["id"] for x in r.json()] == [rec["id"]]

        r = await api.put(f"/api/recommendations/{rec['id']}/status", json={"status": "hit"}, headers=bob_headers)
        assert r.json()["status"] == "hit"
        assert r.json()["consumed_at"] is not None

        r = await api.get("/api/recommendations/stats", headers=bob_headers)
        assert r.json() == {"hits": 1, "misses": 0, "queue": 0, "sent": 0}

        r = await api.get("/api/recommendations/friends", headers=bob_headers)
        assert r.json() == [
            {"user_id": alice["id"], "display_name": "Alice", "pending_count": 0, "total_count": 1, "hit_count": 1, "miss_count": 0}
        ]

    @pytest.mark.asyncio
    async def test_permissions(self, api, register):
        alice, alice_headers = await register("Alice")
        bob, bob_headers = await register("Bob")
        rec = (await api.post("/api/recommendations", json={**FIGHT_CLUB, "to_user_id": bob["id"]}, headers=alice_headers)).json()

        # only the recipient marks it
        r = await api.put(f"/api/recommendations/{rec['id']}/status", json={"status": "miss"}, headers=alice_headers)
        assert r.status_code == 403
        r = await api.put(f"/api/recommendations/{rec['id']}/sender-note", json={"note": "hm"}, headers=bob_headers)
        assert r.status_code == 403
        r = await api.put(f"/api/recommendations/{rec['id']}/recipient-note", json={"note": "later"}, headers=bob_headers)
        assert r.json()["recipient_note"] == "later"

        r = await api.post("/api/recommendations", json={**FIGHT_CLUB, "to_user_id": bob["id"]}, headers=alice_headers)
        assert r.status_code == 422
        r = await api.post("/api/recommendations", json={**FIGHT_CLUB, "to_user_id": alice["id"]}, headers=alice_headers)
        assert r.status_code == 422

        assert (await api.delete(f"/api/recommendations/{rec['id']}", headers=bob_headers)).status_code == 204
        assert (await api.delete(f"/api/recommendations/{rec['id']}", headers=alice_headers)).status_code == 404


class TestReviewEndpoints:
    """/api/reviews"""

    @pytest.mark.asyncio
    async def test_review_and_friends_view(self, api, register):
        _, alice_headers = await register("Alice")
        _, bob_headers = await register("Bob")

        r = await api.put("/api/reviews", json={**FIGHT_CLUB, "rating": 5, "review_text": "classic"}, headers=alice_headers)
        assert r.status_code == 200
        review = r.json()
        assert review["is_edited"] is False

        r = await api.put("/api/reviews", json={**FIGHT_CLUB, "rating": 4}, headers=alice_headers)
        assert r.json()["is_edited"] is True
        assert r.json()["id"] == review["id"]

        params = {"external_id": "550", "media_type": "movie"}
        r = await api.get("/api/reviews/friends", params=params, headers=bob_headers)
        assert [(x["display_name"], x["rating"]) for x in r.json()] == [("Alice", 4)]

        r = await api.get("/api/reviews/mine", params=params, headers=bob_headers)
        assert r.status_code == 200
        assert r.json() is None

        r = await api.put("/api/reviews", json={**FIGHT_CLUB, "rating": 4, "is_public": False}, headers=alice_headers)
        r = await api.get("/api/reviews/friends", params=params, headers=bob_headers)
        assert r.json() == []

        assert (await api.delete(f"/api/reviews/{review['id']}", headers=bob_headers)).status_code == 404
        assert (await api.delete(f"/api/reviews/{review['id']}", headers=alice_headers)).status_code == 204

    @pytest.mark.asyncio
    async def test_empty_review_is_422(self, api, register):
        _, headers = await register()
        r = await api.put("/api/reviews", json=FIGHT_CLUB, headers=headers)
        assert r.status_code == 422


class TestListEndpoints:
    """/api/lists"""

    @pytest.mark.asyncio
    async def test_share_and_edit(self, api, register):
        _, owner_headers = await register("Owner")
        editor, editor_headers = await register("Editor")
        _, outsider_headers = await register("Outsider")

        r = await api.post("/api/lists", json={"media_domain": "movies-tv", "title": "Friday nights"}, headers=owner_headers)
        assert r.status_code == 201
        ml = r.json()

        # private lists look missing to everyone else
        assert (await api.get(f"/api/lists/{ml['id']}", headers=outsider_headers)).status_code == 404

        r = await api.post(f"/api/lists/{ml['id']}/members", json={"user_ids": [editor["id"]], "role": "editor"}, headers=owner_headers)
        assert r.json() == {"shared": 1}
        assert (await api.get(f"/api/lists/{ml['id']}/role", headers=editor_headers)).json() == {"role": "editor"}

        r = await api.post(f"/api/lists/{ml['id']}/items", json={**FIGHT_CLUB, "release_date": "1999-10-15"}, headers=editor_headers)
        assert r.status_code == 201
        assert r.json()["year"] == 1999

        r = await api.get("/api/lists", headers=editor_headers)
        assert [(x["id"], x["item_count"]) for x in r.json()] == [(ml["id"], 1)]

        r = await api.get(f"/api/lists/{ml['id']}/members", headers=owner_headers)
        assert r.json() == [{"user_id": editor["id"], "display_name": "Editor", "role": "editor"}]

        r = await api.put(f"/api/lists/{ml['id']}/members/{editor['id']}", json={"role": "viewer"}, headers=owner_headers)
        assert r.json() == {"user_id": editor["id"], "display_name": "Editor", "role": "viewer"}

        r = await api.post(f"/api/lists/{ml['id']}/items", json={**FIGHT_CLUB, "external_id": "551"}, headers=editor_headers)
        assert r.status_code == 403

        r = await api.patch(f"/api/lists/{ml['id']}", json={"is_public": True}, headers=owner_headers)
        assert r.json()["is_public"] is True
        assert (await api.get(f"/api/lists/{ml['id']}/items", headers=outsider_headers)).status_code == 200

        assert (await api.delete(f"/api/lists/{ml['id']}/members/{editor['id']}", headers=editor_headers)).status_code == 204
        assert (await api.delete(f"/api/lists/{ml['id']}", headers=outsider_headers)).status_code == 403
        assert (await api.delete(f"/api/lists/{ml['id']}", headers=owner_headers)).status_code == 204

    @pytest.mark.asyncio
    async def test_bad_domain_is_422(self, api, register):
        _, headers = await register()
        r = await api.post("/api/lists", json={"media_domain": "podcasts", "title": "x"}, headers=headers)
        assert r.status_code == 422
        r = await api.get("/api/lists", params={"domain": "podcasts"}, headers=headers)
        assert r.status_code == 422
