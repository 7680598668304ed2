"""
Snapstream Backend — Like & Comment Endpoint Tests
====================================================

Test Strategy:
    ✅ Like toggle: two calls restore the original state, counts agree
    ✅ Likes from several users are counted once each
    ✅ Comments: trimmed, empty → 400, too long → 400, listed oldest first
    ✅ Only the comment's author can delete it (not the post owner)
    ✅ Private posts of other users cannot be liked or commented on
"""

import uuid

import pytest


class TestLikes:

    @pytest.mark.asyncio
    async def test_like_toggle_pair_restores_state(self, test_client, alice, bob, create_post):
        post = await create_post(alice)
        url = f"/api/interactions/like/{post['id']}"

        liked = await test_client.post(url, headers=bob["headers"])
        assert liked.status_code == 200
        assert liked.json() == {"message": "Post liked", "likes": 1, "is_liked": True}

        unliked = await test_client.post(url, headers=bob["headers"])
        assert unliked.json() == {"message": "Post unliked", "likes": 0, "is_liked": False}

        detail = (await test_client.get(f"/api/feed/{post['id']}", headers=bob["headers"])).json()
        assert detail["like_count"] == 0
        assert detail["is_liked"] is False

    @pytest.mark.asyncio
    async def test_likes_from_several_users(self, test_client, alice, bob, carol, create_post):
        post = await create_post(alice)
        url = f"/api/interactions/like/{post['id']}"

        await test_client.post(url, headers=bob["headers"])
        response = await test_client.post(url, headers=carol["headers"])
        assert response.json()["likes"] == 2

        as_alice = (await test_client.get(f"/api/feed/{post['id']}", headers=alice["headers"])).json()
        assert as_alice["like_count"] == 2
        assert as_alice["is_liked"] is False

    @pytest.mark.asyncio
    async def test_like_unknown_post(self, test_client, bob):
        response = await test_client.post(f"/api/interactions/like/{uuid.uuid4()}", headers=bob["headers"])
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_like_private_post_forbidden(self, test_client, alice, bob, create_post):
        post = await create_post(alice, is_private=True)

        response = await test_client.post(f"/api/interactions/like/{post['id']}", headers=bob["headers"])
        assert response.status_code == 403

        own = await test_client.post(f"/api/interactions/like/{post['id']}", headers=alice["headers"])
        assert own.status_code == 200


class TestComments:

    @pytest.mark.asyncio
    async def test_add_and_list_comments(self, test_client, alice, bob, create_post):
        post = await create_post(alice)
        url = f"/api/interactions/comment/{post['id']}"

        first = await test_client.post(url, headers=bob["headers"], json={"text": "  First!  "})
        assert first.status_code == 201
        body = first.json()
        assert body["message"] == "Comment added successfully"
        assert body["comment"]["text"] == "First!"
        assert body["comment"]["username"] == "bob"
        assert body["comment"]["user_id"] == bob["id"]
        assert body["total_comments"] == 1

        await test_client.post(url, headers=alice["headers"], json={"text": "Thanks"})

        listing = await test_client.get(f"/api/interactions/comments/{post['id']}", headers=bob["headers"])
        comments = listing.json()
        assert comments["total_comments"] == 2
        assert [c["text"] for c in comments["comments"]] == ["First!", "Thanks"]

    @pytest.mark.asyncio
    async def test_blank_comment_rejected(self, test_client, alice, create_post):
        post = await create_post(alice)

        response = await test_client.post(
            f"/api/interactions/comment/{post['id']}",
            headers=alice["headers"],
            json={"text": "   "},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Comment text is required"

    @pytest.mark.asyncio
    async def test_comment_too_long(self, test_client, alice, create_post):
        post = await create_post(alice)

        response = await test_client.post(
            f"/api/interactions/comment/{post['id']}",
            headers=alice["headers"],
            json={"text": "x" * 501},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Comment must be at most 500 characters"

    @pytest.mark.asyncio
    async def test_only_author_deletes_comment(self, test_client, alice, bob, create_post):
        post = await create_post(alice)
        added = await test_client.post(
            f"/api/interactions/comment/{post['id']}",
            headers=bob["headers"],
            json={"text": "mine"},
        )
        comment_id = added.json()["comment"]["id"]
        url = f"/api/interactions/comment/{post['id']}/{comment_id}"

        # The post owner is not the comment's author
        forbidden = await test_client.delete(url, headers=alice["headers"])
        assert forbidden.status_code == 403
        assert forbidden.json()["message"] == "You can only delete your own comments"

        deleted = await test_client.delete(url, headers=bob["headers"])
        assert deleted.status_code == 200
        assert deleted.json() == {"message": "Comment deleted successfully", "total_comments": 0}

        again = await test_client.delete(url, headers=bob["headers"])
        assert again.status_code == 404
        assert again.json()["message"] == "Comment not found"

    @pytest.mark.asyncio
    async def test_comment_on_private_post_forbidden(self, test_client, alice, bob, create_post):
        post = await create_post(alice, is_private=True)

        response = await test_client.post(
            f"/api/interactions/comment/{post['id']}",
            headers=bob["headers"],
            json={"text": "hello"},
        )
        assert response.status_code == 403

        listing = await test_client.get(f"/api/interactions/comments/{post['id']}", headers=bob["headers"])
        assert listing.status_code == 403
