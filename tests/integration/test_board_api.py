"""Board endpoints over HTTP: posts, the daily limit, comments and thumbs."""

import pytest
from conftest import auth_headers


async def _create_post(client, content="hello board", board_id="general", **kwargs):
    return await client.post("/api/v1/posts", json={"board_id": board_id, "content": content}, **kwargs)


class TestPosts:
    @pytest.mark.asyncio
    async def test_boards(self, client):
        data = (await client.get("/api/v1/boards")).json()
        assert {b["id"] for b in data["boards"]} == {"general", "art", "help"}

    @pytest.mark.asyncio
    async def test_create_and_read(self, authed_client, user):
        resp = await _create_post(authed_client)
        assert resp.status_code == 201
        post = resp.json()["post"]
        assert post["author"]["username"] == "alice"
        assert post["push_count"] == 0
        assert resp.json()["flair_outcome"] == "not_requested"

        fetched = await authed_client.get(f"/api/v1/posts/{post['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["content"] == "hello board"

    @pytest.mark.asyncio
    async def test_one_post_per_day(self, authed_client):
        await _create_post(authed_client)
        resp = await _create_post(authed_client, content="again")

        assert resp.status_code == 429
        assert resp.json() == {"success": False, "message": "You can only make one post per day"}
        can = (await authed_client.get("/api/v1/users/me/can-post")).json()
        assert can == {"can_post": False}

    @pytest.mark.asyncio
    async def test_unknown_board(self, authed_client):
        resp = await _create_post(authed_client, board_id="nowhere")
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_unowned_flair(self, authed_client):
        resp = await authed_client.post(
            "/api/v1/posts", json={"board_id": "general", "content": "hi", "flair_id": "crown_badge"}
        )
        assert resp.status_code == 403
        assert (await authed_client.get("/api/v1/users/me/can-post")).json() == {"can_post": True}

    @pytest.mark.asyncio
    async def test_empty_content(self, authed_client):
        resp = await _create_post(authed_client, content="")
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_missing_post(self, client):
        assert (await client.get("/api/v1/posts/missing")).status_code == 404

    @pytest.mark.asyncio
    async def test_edit_own_post_only(self, authed_client, other_user):
        post = (await _create_post(authed_client)).json()["post"]

        resp = await authed_client.patch(
            f"/api/v1/posts/{post['id']}",
            json={"content": "hijacked"},
            headers=auth_headers(other_user.id, other_user.email),
        )
        assert resp.status_code == 403

        resp = await authed_client.patch(f"/api/v1/posts/{post['id']}", json={"content": "edited"})
        assert resp.status_code == 200
        assert resp.json()["content"] == "edited"


class TestCommentsAndThumbs:
    @pytest.mark.asyncio
    async def test_comment_bumps_and_lists(self, authed_client, other_user):
        post = (await _create_post(authed_client)).json()["post"]
        bob = auth_headers(other_user.id, other_user.email)

        resp = await authed_client.post(
            "/api/v1/comments", json={"post_id": post["id"], "content": "nice"}, headers=bob
        )
        assert resp.status_code == 201
        assert resp.json()["author"]["username"] == "bob"

        comments = (await authed_client.get("/api/v1/comments", params={"post_id": post["id"]})).json()
        assert [c["content"] for c in comments["comments"]] == ["nice"]

        feed = (await authed_client.get("/api/v1/posts", params={"board_id": "general"})).json()
        assert feed["total"] == 1
        assert feed["posts"][0]["push_count"] == 1
        assert feed["posts"][0]["comment_count"] == 1

    @pytest.mark.asyncio
    async def test_comment_listing_shows_thumbs(self, authed_client, other_user):
        post = (await _create_post(authed_client)).json()["post"]
        bob = auth_headers(other_user.id, other_user.email)
        comment = (await authed_client.post(
            "/api/v1/comments", json={"post_id": post["id"], "content": "nice"}, headers=bob
        )).json()
        assert comment["thumb_count"] == 0

        resp = await authed_client.post("/api/v1/thumbs", json={"comment_id": comment["id"]})
        assert resp.json() == {"action": "added", "thumb_count": 1}

        mine = (await authed_client.get("/api/v1/comments", params={"post_id": post["id"]})).json()
        assert mine["comments"][0]["thumb_count"] == 1
        assert mine["comments"][0]["user_has_thumbed"] is True

        theirs = (await authed_client.get(
            "/api/v1/comments", params={"post_id": post["id"]}, headers=bob
        )).json()
        assert theirs["comments"][0]["thumb_count"] == 1
        assert theirs["comments"][0]["user_has_thumbed"] is False

    @pytest.mark.asyncio
    async def test_comment_on_missing_post(self, authed_client):
        resp = await authed_client.post("/api/v1/comments", json={"post_id": "missing", "content": "hi"})
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_thumb_toggle(self, authed_client, other_user):
        post = (await _create_post(authed_client)).json()["post"]
        bob = auth_headers(other_user.id, other_user.email)

        resp = await authed_client.post("/api/v1/thumbs", json={"post_id": post["id"]}, headers=bob)
        assert resp.json() == {"action": "added", "thumb_count": 1}

        feed = (await authed_client.get("/api/v1/posts", headers=bob)).json()
        assert feed["posts"][0]["user_has_thumbed"] is True

        resp = await authed_client.post("/api/v1/thumbs", json={"post_id": post["id"]}, headers=bob)
        assert resp.json() == {"action": "removed", "thumb_count": 0}

    @pytest.mark.asyncio
    async def test_thumb_needs_exactly_one_target(self, authed_client):
        resp = await authed_client.post("/api/v1/thumbs", json={})
        assert resp.status_code == 422
        resp = await authed_client.post("/api/v1/thumbs", json={"post_id": "a", "comment_id": "b"})
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_thumb_missing_target(self, authed_client):
        resp = await authed_client.post("/api/v1/thumbs", json={"comment_id": "missing"})
        assert resp.status_code == 404
