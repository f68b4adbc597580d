"""Tests for the video catalog and engagement endpoints."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from app.db.models import (
    Comment,
    CommentLike,
    ReactionKind,
    Video,
    VideoReaction,
    WatchHistoryEntry,
    WatchLaterEntry,
)
from app.errors import register_exception_handlers


@pytest.mark.asyncio
async def test_like_dislike_scenario(client, make_user, make_video, auth_headers):
    """Test the like, switch to dislike, then clear sequence."""
    alice = await make_user("alice")
    bob = await make_user("bob")
    video = await make_video(alice, "Demo")

    response = await client.post(f"/api/videos/{video.id}/like", headers=auth_headers(bob))
    assert response.status_code == 200
    assert response.json() == {"likes": 1, "dislikes": 0, "userLiked": True}

    response = await client.post(
        f"/api/videos/{video.id}/dislike", headers=auth_headers(bob)
    )
    assert response.json() == {"likes": 0, "dislikes": 1, "userDisliked": True}

    response = await client.post(
        f"/api/videos/{video.id}/dislike", headers=auth_headers(bob)
    )
    assert response.json() == {"likes": 0, "dislikes": 0, "userDisliked": False}


@pytest.mark.asyncio
async def test_like_requires_auth_and_video(client, make_user, auth_headers):
    """Test that liking needs a token and an existing video."""
    bob = await make_user("bob")

    response = await client.post("/api/videos/missing/like")
    assert response.status_code == 401

    response = await client.post("/api/videos/missing/like", headers=auth_headers(bob))
    assert response.status_code == 404
    assert response.json() == {"detail": "Video not found"}


@pytest.mark.asyncio
async def test_list_videos_endpoint(client, make_user, make_video):
    """Test the paginated listing envelope."""
    alice = await make_user("alice")
    for i in range(3):
        await make_video(alice, f"Video {i}")

    response = await client.get("/api/videos", params={"page": 1, "limit": 2})

    assert response.status_code == 200
    data = response.json()
    assert [v["title"] for v in data["videos"]] == ["Video 2", "Video 1"]
    assert data["pagination"] == {
        "page": 1,
        "limit": 2,
        "total": 3,
        "pages": 2,
        "hasMore": True,
    }
    creator = data["videos"][0]["creator"]
    assert creator["username"] == "alice"
    assert "email" not in creator
    assert "passwordHash" not in creator


@pytest.mark.asyncio
async def test_list_videos_caps_limit(client, make_user, make_video, test_settings):
    """Test that oversized page sizes are capped and bad pages are rejected."""
    alice = await make_user("alice")
    await make_video(alice, "Only")

    response = await client.get("/api/videos", params={"limit": 1000})
    assert response.json()["pagination"]["limit"] == test_settings.page_size_max

    response = await client.get("/api/videos", params={"page": 0})
    assert response.status_code == 400
    assert response.json()["detail"].startswith("Invalid page")


@pytest.mark.asyncio
async def test_search_endpoint(client, make_user, make_video):
    """Test search validation and literal matching over HTTP."""
    alice = await make_user("alice")
    await make_video(alice, "Exactly.*Match")
    await make_video(alice, "Exactly anything Match")

    response = await client.get("/api/videos/search", params={"q": "Exactly.*Match"})
    assert response.status_code == 200
    assert [v["title"] for v in response.json()["videos"]] == ["Exactly.*Match"]

    response = await client.get("/api/videos/search")
    assert response.status_code == 400
    assert response.json() == {"detail": "Search query required"}

    response = await client.get("/api/videos/search", params={"q": "a" * 101})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_get_video_counts_view(client, make_user, make_video):
    """Test that the detail endpoint increments views and shows subscribers."""
    alice = await make_user("alice")
    video = await make_video(alice, "Demo", views=41)

    response = await client.get(f"/api/videos/{video.id}")
    assert response.status_code == 200
    data = response.json()
    assert data["views"] == 42
    assert data["creator"]["subscriberCount"] == 0

    response = await client.get("/api/videos/missing")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_recommended_endpoint(client, make_user, make_video):
    """Test that recommendations exclude the reference video."""
    alice = await make_user("alice")
    reference = await make_video(alice, "Ref")
    other = await make_video(alice, "Other")

    response = await client.get(f"/api/videos/recommended/{reference.id}")

    assert response.status_code == 200
    assert [v["id"] for v in response.json()] == [other.id]

    response = await client.get("/api/videos/recommended/missing")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_create_video(client, make_user, auth_headers):
    """Test registering a video fills defaults and owns it to the caller."""
    alice = await make_user("alice")

    response = await client.post(
        "/api/videos",
        headers=auth_headers(alice),
        json={
            "title": "  First upload  ",
            "videoUrl": "https://cdn.videos.io/first.mp4",
            "duration": 120,
            "category": "Education",
        },
    )

    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "Video uploaded"
    video = data["video"]
    assert video["title"] == "First upload"
    assert video["thumbnailUrl"] == "https://via.placeholder.com/320x180"
    assert video["category"] == "Education"
    assert video["views"] == 0
    assert (video["likes"], video["dislikes"]) == (0, 0)
    assert video["creator"]["id"] == alice.id


@pytest.mark.asyncio
async def test_create_video_validation(client, make_user, auth_headers):
    """Test that invalid fields are rejected with 400."""
    alice = await make_user("alice")

    response = await client.post(
        "/api/videos",
        headers=auth_headers(alice),
        json={"title": "", "videoUrl": "https://cdn.videos.io/x.mp4"},
    )
    assert response.status_code == 400
    assert response.json()["detail"].startswith("Invalid title")

    response = await client.post(
        "/api/videos",
        headers=auth_headers(alice),
        json={
            "title": "Long",
            "videoUrl": "https://cdn.videos.io/x.mp4",
            "description": "d" * 1001,
        },
    )
    assert response.status_code == 400

    response = await client.post(
        "/api/videos", json={"title": "Anon", "videoUrl": "https://cdn.videos.io/x.mp4"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_video_when_uploads_disabled(
    client, make_user, auth_headers, test_settings
):
    """Test that uploads can be switched off by configuration."""
    alice = await make_user("alice")
    test_settings.uploads_enabled = False

    response = await client.post(
        "/api/videos",
        headers=auth_headers(alice),
        json={"title": "Blocked", "videoUrl": "https://cdn.videos.io/x.mp4"},
    )

    assert response.status_code == 403
    assert response.json() == {"detail": "Uploads are disabled"}


@pytest.mark.asyncio
async def test_update_video(client, make_user, make_video, auth_headers):
    """Test that only the creator can edit a video."""
    alice = await make_user("alice")
    bob = await make_user("bob")
    video = await make_video(alice, "Draft")

    response = await client.put(
        f"/api/videos/{video.id}",
        headers=auth_headers(bob),
        json={"title": "Hijacked"},
    )
    assert response.status_code == 403

    response = await client.put(
        f"/api/videos/{video.id}",
        headers=auth_headers(alice),
        json={"title": "Final", "category": "Music"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Video updated"
    assert data["video"]["title"] == "Final"
    assert data["video"]["category"] == "Music"
    assert data["video"]["description"] == ""


@pytest.mark.asyncio
async def test_delete_video_cascades(
    client, test_db, make_user, make_video, auth_headers
):
    """Test that deleting a video removes everything that points at it."""
    alice = await make_user("alice")
    bob = await make_user("bob")
    video = await make_video(alice, "Doomed")
    keep = await make_video(alice, "Keeper")

    async with test_db() as db:
        top = Comment(content="Top", author_id=bob.id, video_id=video.id)
        db.add(top)
        await db.flush()
        reply = Comment(
            content="Reply", author_id=alice.id, video_id=video.id, parent_id=top.id
        )
        db.add(reply)
        await db.flush()
        db.add_all(
            [
                CommentLike(comment_id=top.id, user_id=alice.id),
                CommentLike(comment_id=reply.id, user_id=bob.id),
                VideoReaction(video_id=video.id, user_id=bob.id, kind=ReactionKind.LIKE),
                VideoReaction(video_id=keep.id, user_id=bob.id, kind=ReactionKind.LIKE),
                WatchHistoryEntry(user_id=bob.id, video_id=video.id),
                WatchLaterEntry(user_id=bob.id, video_id=video.id),
            ]
        )
        await db.commit()

    response = await client.delete(f"/api/videos/{video.id}", headers=auth_headers(bob))
    assert response.status_code == 403

    response = await client.delete(
        f"/api/videos/{video.id}", headers=auth_headers(alice)
    )
    assert response.status_code == 200
    assert response.json() == {"message": "Video deleted successfully"}

    async with test_db() as db:
        for model in (Comment, CommentLike, WatchHistoryEntry, WatchLaterEntry):
            count = await db.scalar(select(func.count()).select_from(model))
            assert count == 0, model.__name__
        reactions = (await db.execute(select(VideoReaction.video_id))).scalars().all()
        assert reactions == [keep.id]
        videos = (await db.execute(select(Video.id))).scalars().all()
        assert videos == [keep.id]

    response = await client.delete(
        f"/api/videos/{video.id}", headers=auth_headers(alice)
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_storage_failure_is_generic():
    """Test that storage errors become a 500 with a generic message."""
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/boom")
    async def boom():
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/boom")

    assert response.status_code == 500
    assert response.json() == {"detail": "Operation failed"}


@pytest.mark.asyncio
async def test_huge_page_is_bad_request(client, make_user, make_video):
    """Test that page numbers past the storage range are a 400, not a 500."""
    alice = await make_user("alice")
    await make_video(alice, "Only")

    response = await client.get("/api/videos", params={"page": 10**20})
    assert response.status_code == 400
    assert response.json() == {"detail": "page is out of range"}

    response = await client.get(
        "/api/videos/search", params={"q": "only", "page": 10**20}
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_timestamps_carry_utc_offset(client, make_user, make_video):
    """Test that serialized timestamps are explicit UTC."""
    alice = await make_user("alice")
    video = await make_video(alice, "Demo")

    response = await client.get(f"/api/videos/{video.id}")
    upload_date = response.json()["uploadDate"]

    parsed = datetime.fromisoformat(upload_date.replace("Z", "+00:00"))
    assert parsed.utcoffset() == timedelta(0)
    assert parsed == datetime(2024, 1, 1, 0, 1, tzinfo=timezone.utc)
