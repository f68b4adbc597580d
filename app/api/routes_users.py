"""Channel pages, subscriptions and personal video lists."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import StringConstraints
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.router import require_user
from app.channels.subscriptions import subscriber_count, toggle_subscription
from app.config import Settings, get_settings
from app.db import crud
from app.db.models import User
from app.db.session import get_session
from app.limits import limiter
from app.schemas import CamelModel, MessageOut, VideoOut, video_out

router = APIRouter(prefix="/api/users", tags=["users"])


class ChannelProfile(CamelModel):
    """Public channel profile."""

    id: str
    username: str
    channel_name: str
    channel_description: str
    profile_picture: str
    subscriber_count: int
    created_at: datetime


class ChannelResponse(CamelModel):
    """A channel and its videos."""

    user: ChannelProfile
    videos: list[VideoOut]


class UpdateChannelRequest(CamelModel):
    """Request model for editing a channel; omitted fields are unchanged."""

    channel_name: (
        Annotated[str, StringConstraints(strip_whitespace=True, min_length=5, max_length=50)]
        | None
    ) = None
    channel_description: Annotated[str, StringConstraints(max_length=1000)] | None = None
    profile_picture: Annotated[str, StringConstraints(min_length=1)] | None = None


class UpdateChannelResponse(CamelModel):
    """Response model for a channel edit."""

    message: str
    user: ChannelProfile


class SubscribeResponse(CamelModel):
    """Response model for the subscription toggle."""

    subscribed: bool
    subscriber_count: int


class VideoRefRequest(CamelModel):
    """Request body naming a single video."""

    video_id: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class HistoryItemOut(CamelModel):
    """A watch history entry."""

    video: VideoOut
    watched_at: datetime


class WatchLaterToggleResponse(CamelModel):
    """Response model for the watch later toggle."""

    added: bool


class LibraryResponse(CamelModel):
    """The user's uploads and liked videos."""

    uploads: list[VideoOut]
    liked_videos: list[VideoOut]


async def _channel_profile(db: AsyncSession, user: User) -> ChannelProfile:
    return ChannelProfile(
        id=user.id,
        username=user.username,
        channel_name=user.channel_name,
        channel_description=user.channel_description,
        profile_picture=user.profile_picture,
        subscriber_count=await subscriber_count(db, user.id),
        created_at=user.created_at,
    )


async def _channel_response(db: AsyncSession, user_id: str) -> ChannelResponse:
    user = await crud.get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="Channel not found")
    videos = await crud.list_channel_videos(db, user.id)
    return ChannelResponse(
        user=await _channel_profile(db, user),
        videos=[video_out(view) for view in videos],
    )


# Personal lists for the current user. Declared before /{user_id} so "me"
# is never taken for a user ID.


@router.get("/me/subscriptions", response_model=list[VideoOut])
@limiter.limit("60/minute")
async def subscription_feed(
    request: Request,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """Videos from every channel the current user follows, newest first."""
    views = await crud.list_subscription_feed(db, user.id)
    return [video_out(view) for view in views]


@router.get("/me/history", response_model=list[HistoryItemOut])
@limiter.limit("60/minute")
async def get_history(
    request: Request,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """Watch history, most recently watched first."""
    items = await crud.list_history(db, user.id)
    return [
        HistoryItemOut(video=video_out(item.video), watched_at=item.watched_at)
        for item in items
    ]


@router.post("/me/history", response_model=MessageOut)
@limiter.limit("120/minute")
async def add_history(
    request: Request,
    body: VideoRefRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    """
    Record a watched video.

    Re-watching moves the video to the front; history keeps the newest
    entries up to the configured cap.

    Raises:
        HTTPException: 404 if the video does not exist
    """
    await crud.add_to_history(
        db, user.id, body.video_id, max_entries=settings.history_max_entries
    )
    return MessageOut(message="Added to history")


@router.get("/me/watch-later", response_model=list[VideoOut])
@limiter.limit("60/minute")
async def get_watch_later(
    request: Request,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """Watch later list, most recently added first."""
    views = await crud.list_watch_later(db, user.id)
    return [video_out(view) for view in views]


@router.post("/me/watch-later", response_model=WatchLaterToggleResponse)
@limiter.limit("60/minute")
async def toggle_watch_later(
    request: Request,
    body: VideoRefRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """
    Add a video to watch later, or remove it if it is already there.

    Raises:
        HTTPException: 404 if the video does not exist
    """
    added = await crud.toggle_watch_later(db, user.id, body.video_id)
    return WatchLaterToggleResponse(added=added)


@router.delete("/me/watch-later/{video_id}", response_model=MessageOut)
@limiter.limit("60/minute")
async def remove_watch_later(
    request: Request,
    video_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """
    Remove a video from watch later.

    Raises:
        HTTPException: 404 if the video was not in the list
    """
    if not await crud.remove_from_watch_later(db, user.id, video_id):
        raise HTTPException(status_code=404, detail="Video not in watch later")
    return MessageOut(message="Removed from watch later")


@router.get("/me/library", response_model=LibraryResponse)
@limiter.limit("60/minute")
async def get_library(
    request: Request,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """The current user's uploads and liked videos, newest first."""
    uploads = await crud.list_channel_videos(db, user.id)
    liked = await crud.list_liked_videos(db, user.id)
    return LibraryResponse(
        uploads=[video_out(view) for view in uploads],
        liked_videos=[video_out(view) for view in liked],
    )


# Channels


@router.get("/channels/{user_id}", response_model=ChannelResponse)
@limiter.limit("120/minute")
async def get_channel(
    request: Request,
    user_id: str,
    db: AsyncSession = Depends(get_session),
):
    """A channel profile with its videos, newest first."""
    return await _channel_response(db, user_id)


@router.post("/{user_id}/subscribe", response_model=SubscribeResponse)
@limiter.limit("60/minute")
async def subscribe(
    request: Request,
    user_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """
    Subscribe to a channel, or unsubscribe if already subscribed.

    Raises:
        HTTPException: 400 for self-subscription, 404 if the channel does not exist
    """
    result = await toggle_subscription(db, user.id, user_id)
    return SubscribeResponse(
        subscribed=result.subscribed, subscriber_count=result.subscriber_count
    )


@router.put("/{user_id}/update", response_model=UpdateChannelResponse)
@limiter.limit("30/minute")
async def update_channel(
    request: Request,
    user_id: str,
    body: UpdateChannelRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """
    Edit the current user's channel name, description or picture.

    Raises:
        HTTPException: 403 if editing someone else's channel
    """
    if user.id != user_id:
        raise HTTPException(status_code=403, detail="You can only edit your own channel")

    updated = await crud.update_channel_profile(
        db,
        user,
        channel_name=body.channel_name,
        channel_description=body.channel_description,
        profile_picture=body.profile_picture,
    )
    return UpdateChannelResponse(
        message="Channel updated", user=await _channel_profile(db, updated)
    )


@router.get("/{user_id}", response_model=ChannelResponse)
@limiter.limit("120/minute")
async def get_user(
    request: Request,
    user_id: str,
    db: AsyncSession = Depends(get_session),
):
    """A user's public profile with their videos. Same shape as the channel page."""
    return await _channel_response(db, user_id)
