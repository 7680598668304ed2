"""
Snapstream Backend — Upload & Feed Endpoint Tests
===================================================

What:  Uploading posts, serving their images, feed listings, single-post
       lookup and deletion.
Why:   The visibility rules (private posts, private accounts) are enforced on
       every read path and must agree with each other.

Test Strategy:
    ✅ Upload round trip: 201, then the same bytes come back from image_url
    ✅ Non-images and mislabelled files are rejected without storing anything
    ✅ Private posts: absent from every other user's listing, 403 on direct access
    ✅ Sorting (newest / oldest / popular) and pagination metadata
    ✅ Following feed only shows followed accounts
    ✅ Delete: uploader only; image file removed only once the delete commits
    ✅ Page numbers are bounded; username lookups ignore case
"""

import uuid
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from snapstream.database import async_session_factory
from snapstream.models.post import Post
from snapstream.services.file_service import file_service
from snapstream.services.post_service import parse_tags


class TestParseTags:

    def test_normalizes_and_deduplicates(self):
        assert parse_tags("Beach, Sunset,,beach ") == ["beach", "sunset"]

    def test_empty(self):
        assert parse_tags(None) == []
        assert parse_tags("  ,  ") == []


class TestUpload:

    @pytest.mark.asyncio
    async def test_upload_round_trip(self, test_client, alice, png_bytes):
        response = await test_client.post(
            "/api/upload",
            headers=alice["headers"],
            files={"image": ("holiday.png", png_bytes, "image/png")},
            data={"caption": "  Golden hour  ", "tags": "Beach, Sunset"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "File uploaded successfully"
        post = body["post"]
        assert post["original_name"] == "holiday.png"
        assert post["caption"] == "Golden hour"
        assert post["tags"] == ["beach", "sunset"]
        assert post["is_private"] is False
        assert post["like_count"] == 0
        assert post["comment_count"] == 0
        assert post["uploader"]["username"] == "alice"
        assert post["image_url"] == f"/api/upload/{post['id']}"

        image = await test_client.get(post["image_url"])
        assert image.status_code == 200
        assert image.headers["content-type"] == "image/png"
        assert image.headers["cache-control"].startswith("public")
        assert image.content == png_bytes

    @pytest.mark.asyncio
    async def test_upload_requires_token(self, test_client, png_bytes):
        response = await test_client.post(
            "/api/upload",
            files={"image": ("a.png", png_bytes, "image/png")},
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_non_image_content_type_rejected(self, test_client, alice):
        response = await test_client.post(
            "/api/upload",
            headers=alice["headers"],
            files={"image": ("notes.txt", b"hello", "text/plain")},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Only image files are allowed"

    @pytest.mark.asyncio
    async def test_mislabelled_file_rejected(self, test_client, alice):
        response = await test_client.post(
            "/api/upload",
            headers=alice["headers"],
            files={"image": ("fake.png", b"this is plain text", "image/png")},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Uploaded file is not a valid image"

        feed = await test_client.get("/api/feed/my-posts", headers=alice["headers"])
        assert feed.json()["total_count"] == 0

    @pytest.mark.asyncio
    async def test_caption_too_long(self, test_client, alice, png_bytes):
        response = await test_client.post(
            "/api/upload",
            headers=alice["headers"],
            files={"image": ("a.png", png_bytes, "image/png")},
            data={"caption": "x" * 1001},
        )
        assert response.status_code == 400


class TestPrivatePosts:

    @pytest.mark.asyncio
    async def test_private_post_hidden_from_others(self, test_client, alice, bob, create_post):
        public = await create_post(alice, caption="public")
        await create_post(alice, caption="private", is_private=True)

        feed = (await test_client.get("/api/feed", headers=bob["headers"])).json()
        assert [p["id"] for p in feed["posts"]] == [public["id"]]
        assert feed["total_count"] == 1

        user_posts = (await test_client.get("/api/feed/user/alice", headers=bob["headers"])).json()
        assert [p["id"] for p in user_posts["posts"]] == [public["id"]]

        profile = (await test_client.get("/api/profile/alice", headers=bob["headers"])).json()
        assert [p["id"] for p in profile["posts"]] == [public["id"]]
        assert profile["user"]["post_count"] == 1

    @pytest.mark.asyncio
    async def test_private_post_visible_to_owner(self, test_client, alice, create_post):
        private = await create_post(alice, is_private=True)

        mine = (await test_client.get("/api/feed/my-posts", headers=alice["headers"])).json()
        assert [p["id"] for p in mine["posts"]] == [private["id"]]

        public_feed = (await test_client.get("/api/feed", headers=alice["headers"])).json()
        assert public_feed["posts"] == []

        detail = await test_client.get(f"/api/feed/{private['id']}", headers=alice["headers"])
        assert detail.status_code == 200

        image = await test_client.get(private["image_url"], headers=alice["headers"])
        assert image.status_code == 200
        assert image.headers["cache-control"].startswith("private")

    @pytest.mark.asyncio
    async def test_private_post_direct_access_forbidden(self, test_client, alice, bob, create_post):
        private = await create_post(alice, is_private=True)

        detail = await test_client.get(f"/api/feed/{private['id']}", headers=bob["headers"])
        assert detail.status_code == 403
        assert detail.json()["message"] == "This post is private"

        image = await test_client.get(private["image_url"], headers=bob["headers"])
        assert image.status_code == 403

        anonymous = await test_client.get(private["image_url"])
        assert anonymous.status_code == 403


class TestFeedListing:

    @pytest.mark.asyncio
    async def test_sorting(self, test_client, alice, bob, create_post):
        first = await create_post(alice, caption="first")
        second = await create_post(alice, caption="second")
        await test_client.post(f"/api/interactions/like/{first['id']}", headers=bob["headers"])

        newest = (await test_client.get("/api/feed", headers=bob["headers"])).json()
        oldest = (await test_client.get("/api/feed?sort=oldest", headers=bob["headers"])).json()
        popular = (await test_client.get("/api/feed?sort=popular", headers=bob["headers"])).json()

        assert [p["id"] for p in newest["posts"]] == [second["id"], first["id"]]
        assert [p["id"] for p in oldest["posts"]] == [first["id"], second["id"]]
        assert [p["id"] for p in popular["posts"]] == [first["id"], second["id"]]
        assert popular["posts"][0]["is_liked"] is True
        assert popular["posts"][0]["like_count"] == 1

    @pytest.mark.asyncio
    async def test_invalid_sort(self, test_client, alice):
        response = await test_client.get("/api/feed?sort=random", headers=alice["headers"])
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_pagination(self, test_client, alice, create_post):
        for i in range(3):
            await create_post(alice, caption=f"post {i}")

        page1 = await test_client.get("/api/feed?page=1&limit=2", headers=alice["headers"])
        page2 = await test_client.get("/api/feed?page=2&limit=2", headers=alice["headers"])

        assert page1.headers["X-Total-Count"] == "3"
        body1, body2 = page1.json(), page2.json()
        assert (body1["page"], body1["limit"], body1["total_count"]) == (1, 2, 3)
        assert len(body1["posts"]) == 2 and body1["has_more"] is True
        assert len(body2["posts"]) == 1 and body2["has_more"] is False

    @pytest.mark.asyncio
    async def test_limit_bounds(self, test_client, alice):
        assert (await test_client.get("/api/feed?limit=0", headers=alice["headers"])).status_code == 400
        assert (await test_client.get("/api/feed?limit=101", headers=alice["headers"])).status_code == 400
        assert (await test_client.get("/api/feed?page=0", headers=alice["headers"])).status_code == 400

    @pytest.mark.asyncio
    async def test_page_upper_bound(self, test_client, alice):
        last = await test_client.get("/api/feed?page=10000", headers=alice["headers"])
        beyond = await test_client.get("/api/feed?page=10001", headers=alice["headers"])
        huge = await test_client.get("/api/feed?page=1000000000000000000", headers=alice["headers"])

        assert last.status_code == 200
        assert last.json()["posts"] == []
        assert beyond.status_code == 400
        assert huge.status_code == 400
        assert huge.json()["details"]["errors"][0]["field"] == "page"

    @pytest.mark.asyncio
    async def test_following_feed(self, test_client, alice, bob, carol, create_post):
        from_bob = await create_post(bob, caption="bob's")
        await create_post(carol, caption="carol's")
        await create_post(bob, caption="bob's private", is_private=True)

        await test_client.post(f"/api/profile/follow/{bob['id']}", headers=alice["headers"])

        feed = (await test_client.get("/api/feed/following", headers=alice["headers"])).json()
        assert [p["id"] for p in feed["posts"]] == [from_bob["id"]]

    @pytest.mark.asyncio
    async def test_unknown_user_posts(self, test_client, alice):
        response = await test_client.get("/api/feed/user/nobody", headers=alice["headers"])
        assert response.status_code == 404
        assert response.json()["message"] == "User not found"

    @pytest.mark.asyncio
    async def test_user_posts_lookup_ignores_case(self, test_client, alice, create_post):
        post = await create_post(alice, caption="case")

        response = await test_client.get("/api/feed/user/ALICE", headers=alice["headers"])

        assert response.status_code == 200
        assert [p["id"] for p in response.json()["posts"]] == [post["id"]]


class TestSinglePost:

    @pytest.mark.asyncio
    async def test_get_post_with_comments(self, test_client, alice, bob, create_post):
        post = await create_post(alice)
        await test_client.post(
            f"/api/interactions/comment/{post['id']}",
            headers=bob["headers"],
            json={"text": "Nice!"},
        )

        response = await test_client.get(f"/api/feed/{post['id']}")

        assert response.status_code == 200
        body = response.json()
        assert body["comment_count"] == 1
        assert body["comments"][0]["text"] == "Nice!"
        assert body["comments"][0]["username"] == "bob"

    @pytest.mark.asyncio
    async def test_unknown_post(self, test_client, alice):
        response = await test_client.get(f"/api/feed/{uuid.uuid4()}", headers=alice["headers"])
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_malformed_post_id(self, test_client, alice):
        response = await test_client.get("/api/feed/not-a-uuid", headers=alice["headers"])
        assert response.status_code == 400


class TestDeletePost:

    @pytest.mark.asyncio
    async def test_only_uploader_can_delete(self, test_client, alice, bob, create_post):
        post = await create_post(alice)

        response = await test_client.delete(f"/api/feed/{post['id']}", headers=bob["headers"])

        assert response.status_code == 403
        assert response.json()["message"] == "You can only delete your own posts"

    @pytest.mark.asyncio
    async def test_delete_removes_post_and_image(self, test_client, alice, bob, create_post):
        post = await create_post(alice)
        await test_client.post(f"/api/interactions/like/{post['id']}", headers=bob["headers"])
        await test_client.post(
            f"/api/interactions/comment/{post['id']}",
            headers=bob["headers"],
            json={"text": "gone soon"},
        )
        async with async_session_factory() as session:
            row = await session.get(Post, uuid.UUID(post["id"]))
            image_path = file_service.resolve_path(row.storage_path)
        assert image_path.exists()

        response = await test_client.delete(f"/api/feed/{post['id']}", headers=alice["headers"])

        assert response.status_code == 200
        assert response.json()["message"] == "Post deleted successfully"
        assert not image_path.exists()
        missing = await test_client.get(f"/api/feed/{post['id']}", headers=alice["headers"])
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_failed_commit_keeps_image(self, test_client, alice, create_post):
        post = await create_post(alice)
        async with async_session_factory() as session:
            row = await session.get(Post, uuid.UUID(post["id"]))
            image_path = file_service.resolve_path(row.storage_path)

        failing_commit = AsyncMock(side_effect=OperationalError("COMMIT", {}, Exception("disk I/O error")))
        with patch.object(AsyncSession, "commit", failing_commit):
            response = await test_client.delete(f"/api/feed/{post['id']}", headers=alice["headers"])

        assert response.status_code == 500
        assert response.json()["message"] == "Could not delete the post. Please try again."
        assert image_path.exists()
        still_there = await test_client.get(f"/api/feed/{post['id']}", headers=alice["headers"])
        assert still_there.status_code == 200
