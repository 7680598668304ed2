"""
Snapstream Backend — Profile & Follow Endpoint Tests
======================================================

Test Strategy:
    ✅ /me includes email; public profiles do not
    ✅ Profile update: bio and privacy only, omitted fields unchanged
    ✅ Private account: 403 on the posts listing until followed, profile card
       still visible with can_view = false
    ✅ Follow toggle pair, follow status, self-follow → 400
    ✅ User search: substring, case-insensitive, excludes the caller
    ✅ Profile picture upload and serving
"""

import uuid

import pytest


class TestOwnProfile:

    @pytest.mark.asyncio
    async def test_me(self, test_client, alice):
        response = await test_client.get("/api/profile/me", headers=alice["headers"])

        user = response.json()["user"]
        assert user["id"] == alice["id"]
        assert user["email"] == "alice@snapstream.io"
        assert user["bio"] == ""
        assert user["is_private_account"] is False
        assert (user["follower_count"], user["following_count"], user["post_count"]) == (0, 0, 0)

    @pytest.mark.asyncio
    async def test_update_profile(self, test_client, alice):
        response = await test_client.put(
            "/api/profile/update",
            headers=alice["headers"],
            json={"bio": "  Photographer  "},
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Profile updated successfully"
        assert response.json()["user"]["bio"] == "Photographer"

        response = await test_client.put(
            "/api/profile/update",
            headers=alice["headers"],
            json={"is_private_account": True},
        )
        user = response.json()["user"]
        assert user["is_private_account"] is True
        assert user["bio"] == "Photographer"

    @pytest.mark.asyncio
    async def test_update_rejects_other_fields(self, test_client, alice):
        response = await test_client.put(
            "/api/profile/update",
            headers=alice["headers"],
            json={"username": "mallory"},
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_bio_too_long(self, test_client, alice):
        response = await test_client.put(
            "/api/profile/update",
            headers=alice["headers"],
            json={"bio": "x" * 501},
        )
        assert response.status_code == 400


class TestPublicProfile:

    @pytest.mark.asyncio
    async def test_public_profile_hides_email(self, test_client, alice, bob):
        response = await test_client.get("/api/profile/alice", headers=bob["headers"])

        assert response.status_code == 200
        body = response.json()
        assert "email" not in body["user"]
        assert body["can_view"] is True
        assert body["is_own_profile"] is False

    @pytest.mark.asyncio
    async def test_anonymous_viewer(self, test_client, alice, create_post):
        await create_post(alice)

        response = await test_client.get("/api/profile/alice")

        body = response.json()
        assert body["can_view"] is True
        assert len(body["posts"]) == 1

    @pytest.mark.asyncio
    async def test_unknown_user(self, test_client):
        response = await test_client.get("/api/profile/nobody")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_lookup_ignores_case(self, test_client, alice, bob):
        response = await test_client.get("/api/profile/Alice", headers=bob["headers"])

        assert response.status_code == 200
        assert response.json()["user"]["username"] == "alice"

    @pytest.mark.asyncio
    async def test_private_account_requires_follow(self, test_client, alice, bob, create_post):
        post = await create_post(alice)
        await test_client.put(
            "/api/profile/update",
            headers=alice["headers"],
            json={"is_private_account": True},
        )

        listing = await test_client.get("/api/feed/user/alice", headers=bob["headers"])
        assert listing.status_code == 403
        assert listing.json()["message"] == "This account is private"

        profile = (await test_client.get("/api/profile/alice", headers=bob["headers"])).json()
        assert profile["can_view"] is False
        assert profile["posts"] == []
        assert profile["user"]["post_count"] == 1

        await test_client.post(f"/api/profile/follow/{alice['id']}", headers=bob["headers"])

        listing = await test_client.get("/api/feed/user/alice", headers=bob["headers"])
        assert listing.status_code == 200
        assert [p["id"] for p in listing.json()["posts"]] == [post["id"]]

        own = await test_client.get("/api/feed/user/alice", headers=alice["headers"])
        assert own.status_code == 200


class TestFollow:

    @pytest.mark.asyncio
    async def test_follow_toggle(self, test_client, alice, bob):
        url = f"/api/profile/follow/{bob['id']}"

        followed = await test_client.post(url, headers=alice["headers"])
        assert followed.json() == {"message": "Now following bob", "is_following": True}

        status = await test_client.get(f"/api/profile/follow-status/{bob['id']}", headers=alice["headers"])
        assert status.json() == {"is_following": True}

        bob_profile = (await test_client.get("/api/profile/bob", headers=alice["headers"])).json()
        assert bob_profile["user"]["follower_count"] == 1
        assert bob_profile["user"]["is_following"] is True
        alice_me = (await test_client.get("/api/profile/me", headers=alice["headers"])).json()
        assert alice_me["user"]["following_count"] == 1

        unfollowed = await test_client.post(url, headers=alice["headers"])
        assert unfollowed.json() == {"message": "Unfollowed bob", "is_following": False}

        status = await test_client.get(f"/api/profile/follow-status/{bob['id']}", headers=alice["headers"])
        assert status.json() == {"is_following": False}

    @pytest.mark.asyncio
    async def test_cannot_follow_self(self, test_client, alice):
        response = await test_client.post(f"/api/profile/follow/{alice['id']}", headers=alice["headers"])

        assert response.status_code == 400
        assert response.json()["message"] == "You cannot follow yourself"

    @pytest.mark.asyncio
    async def test_follow_unknown_user(self, test_client, alice):
        response = await test_client.post(f"/api/profile/follow/{uuid.uuid4()}", headers=alice["headers"])
        assert response.status_code == 404


class TestUserSearch:

    @pytest.mark.asyncio
    async def test_search(self, test_client, alice, bob, carol):
        response = await test_client.get("/api/profile/search?q=AR", headers=alice["headers"])

        assert [u["username"] for u in response.json()["users"]] == ["carol"]

    @pytest.mark.asyncio
    async def test_search_excludes_caller(self, test_client, alice):
        response = await test_client.get("/api/profile/search?q=alice", headers=alice["headers"])
        assert response.json()["users"] == []

    @pytest.mark.asyncio
    async def test_short_query_returns_nothing(self, test_client, alice, bob):
        response = await test_client.get("/api/profile/search?q=b", headers=alice["headers"])
        assert response.status_code == 200
        assert response.json()["users"] == []

    @pytest.mark.asyncio
    async def test_wildcards_match_literally(self, test_client, alice, bob):
        response = await test_client.get("/api/profile/search?q=%25%25", headers=alice["headers"])
        assert response.json()["users"] == []


class TestProfilePicture:

    @pytest.mark.asyncio
    async def test_upload_and_serve(self, test_client, alice, png_bytes, jpeg_bytes):
        response = await test_client.post(
            "/api/profile/picture",
            headers=alice["headers"],
            files={"picture": ("me.png", png_bytes, "image/png")},
        )
        assert response.status_code == 200
        assert response.json()["profile_picture_url"] == "/api/profile/alice/picture"

        served = await test_client.get("/api/profile/alice/picture")
        assert served.status_code == 200
        assert served.content == png_bytes

        # Replacing the picture serves the new one
        await test_client.post(
            "/api/profile/picture",
            headers=alice["headers"],
            files={"picture": ("me.jpg", jpeg_bytes, "image/jpeg")},
        )
        served = await test_client.get("/api/profile/alice/picture")
        assert served.content == jpeg_bytes

        me = (await test_client.get("/api/profile/me", headers=alice["headers"])).json()
        assert me["user"]["profile_picture_url"] == "/api/profile/alice/picture"

    @pytest.mark.asyncio
    async def test_no_picture(self, test_client, alice):
        response = await test_client.get("/api/profile/alice/picture")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_non_image_rejected(self, test_client, alice):
        response = await test_client.post(
            "/api/profile/picture",
            headers=alice["headers"],
            files={"picture": ("me.png", b"not an image", "image/png")},
        )
        assert response.status_code == 400
