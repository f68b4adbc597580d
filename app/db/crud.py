"""CRUD utilities for database operations."""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.catalog.queries import VideoView, load_video_views
from app.db.models import (
    Category,
    Comment,
    CommentLike,
    ReactionKind,
    Subscription,
    User,
    Video,
    VideoReaction,
    WatchHistoryEntry,
    WatchLaterEntry,
    utcnow,
)
from app.errors import ForbiddenError, NotFoundError, OperationFailedError

logger = logging.getLogger(__name__)


# Users


async def get_user_by_id(db: AsyncSession, user_id: str) -> User | None:
    """Get a user by their ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Get a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    """Get a user by their username."""
    result = await db.execute(select(User).where(User.username == username.strip()))
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    username: str,
    email: str,
    password_hash: str,
    channel_name: str,
    profile_picture: str,
) -> User:
    """Create a new user. Email is stored lowercased."""
    user = User(
        username=username.strip(),
        email=email.strip().lower(),
        password_hash=password_hash,
        channel_name=channel_name.strip(),
        channel_description="",
        profile_picture=profile_picture,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def update_channel_profile(
    db: AsyncSession,
    user: User,
    channel_name: str | None = None,
    channel_description: str | None = None,
    profile_picture: str | None = None,
) -> User:
    """Update the editable channel fields; None leaves a field unchanged."""
    if channel_name is not None:
        user.channel_name = channel_name.strip()
    if channel_description is not None:
        user.channel_description = channel_description
    if profile_picture is not None:
        user.profile_picture = profile_picture
    await db.commit()
    await db.refresh(user)
    return user


# Videos


async def create_video(
    db: AsyncSession,
    creator_id: str,
    title: str,
    video_url: str,
    thumbnail_url: str,
    description: str = "",
    duration: int = 0,
    category: Category = Category.OTHER,
) -> VideoView:
    """Register a new video owned by ``creator_id``."""
    video = Video(
        creator_id=creator_id,
        title=title.strip(),
        description=description,
        video_url=video_url,
        thumbnail_url=thumbnail_url,
        duration=duration,
        category=category,
    )
    db.add(video)
    await db.commit()

    views = await load_video_views(db, select(Video).where(Video.id == video.id))
    return views[0]


async def get_owned_video(db: AsyncSession, video_id: str, user_id: str) -> Video:
    """Fetch a video and check the user created it.

    Raises:
        NotFoundError: If the video does not exist
        ForbiddenError: If the user is not the creator
    """
    video = await db.get(Video, video_id)
    if video is None:
        raise NotFoundError("Video not found")
    if video.creator_id != user_id:
        raise ForbiddenError("You can only modify your own videos")
    return video


async def update_video(
    db: AsyncSession,
    video: Video,
    title: str | None = None,
    description: str | None = None,
    category: Category | None = None,
) -> VideoView:
    """Edit a video's title, description or category."""
    if title is not None:
        video.title = title.strip()
    if description is not None:
        video.description = description
    if category is not None:
        video.category = category
    await db.commit()

    views = await load_video_views(
        db,
        select(Video)
        .where(Video.id == video.id)
        .execution_options(populate_existing=True),
    )
    return views[0]


async def delete_video(db: AsyncSession, video: Video) -> None:
    """Delete a video together with everything that points at it.

    This removes, in one transaction:
    - Comments on the video (and their replies) and the likes on them
    - Likes/dislikes on the video
    - Watch history and watch later entries for the video
    """
    video_id = video.id
    comment_ids = select(Comment.id).where(Comment.video_id == video_id)

    await db.execute(delete(CommentLike).where(CommentLike.comment_id.in_(comment_ids)))
    await db.execute(
        delete(Comment).where(
            Comment.video_id == video_id, Comment.parent_id.is_not(None)
        )
    )
    await db.execute(delete(Comment).where(Comment.video_id == video_id))
    await db.execute(delete(VideoReaction).where(VideoReaction.video_id == video_id))
    await db.execute(
        delete(WatchHistoryEntry).where(WatchHistoryEntry.video_id == video_id)
    )
    await db.execute(delete(WatchLaterEntry).where(WatchLaterEntry.video_id == video_id))
    await db.execute(delete(Video).where(Video.id == video_id))
    await db.commit()

    logger.info(f"Video deleted: video_id={video_id}, creator_id={video.creator_id}")


async def list_channel_videos(db: AsyncSession, creator_id: str) -> list[VideoView]:
    """List a channel's videos, newest first."""
    return await load_video_views(
        db,
        select(Video)
        .where(Video.creator_id == creator_id)
        .order_by(Video.upload_date.desc(), Video.id),
    )


async def list_liked_videos(db: AsyncSession, user_id: str) -> list[VideoView]:
    """List videos the user has liked, newest upload first."""
    liked = select(VideoReaction.video_id).where(
        VideoReaction.user_id == user_id,
        VideoReaction.kind == ReactionKind.LIKE,
    )
    return await load_video_views(
        db,
        select(Video)
        .where(Video.id.in_(liked))
        .order_by(Video.upload_date.desc(), Video.id),
    )


async def list_subscription_feed(db: AsyncSession, user_id: str) -> list[VideoView]:
    """List videos from every channel the user follows, newest first."""
    channels = select(Subscription.channel_id).where(
        Subscription.subscriber_id == user_id
    )
    return await load_video_views(
        db,
        select(Video)
        .where(Video.creator_id.in_(channels))
        .order_by(Video.upload_date.desc(), Video.id),
    )


# Watch history


@dataclass(frozen=True)
class HistoryItem:
    """A watched video and when it was last watched."""

    video: VideoView
    watched_at: datetime


async def add_to_history(
    db: AsyncSession, user_id: str, video_id: str, max_entries: int = 100
) -> WatchHistoryEntry:
    """Record that the user watched a video.

    Re-watching moves the video to the front instead of adding a duplicate,
    and the history is trimmed to the newest ``max_entries`` entries.

    Args:
        db: Database session
        user_id: The user's ID
        video_id: The watched video
        max_entries: History cap

    Returns:
        The new history entry

    Raises:
        NotFoundError: If the video does not exist
    """
    if await db.get(Video, video_id) is None:
        raise NotFoundError("Video not found")

    await _forget_history_entry(db, user_id, video_id)
    entry = WatchHistoryEntry(user_id=user_id, video_id=video_id, watched_at=utcnow())
    db.add(entry)

    try:
        await db.flush()

        overflow = (
            select(WatchHistoryEntry.id)
            .where(WatchHistoryEntry.user_id == user_id)
            .order_by(WatchHistoryEntry.watched_at.desc(), WatchHistoryEntry.id)
            .offset(max_entries)
        )
        stale = list((await db.execute(overflow)).scalars().all())
        if stale:
            await db.execute(
                delete(WatchHistoryEntry).where(WatchHistoryEntry.id.in_(stale))
            )

        await db.commit()
    except IntegrityError:
        # A concurrent request recorded the same video first
        await db.rollback()
        logger.warning(
            f"Concurrent history write: user_id={user_id}, video_id={video_id}"
        )
        result = await db.execute(
            select(WatchHistoryEntry).where(
                WatchHistoryEntry.user_id == user_id,
                WatchHistoryEntry.video_id == video_id,
            )
        )
        stored = result.scalar_one_or_none()
        if stored is None:
            raise OperationFailedError()
        return stored

    return entry


async def _forget_history_entry(db: AsyncSession, user_id: str, video_id: str) -> None:
    await db.execute(
        delete(WatchHistoryEntry).where(
            WatchHistoryEntry.user_id == user_id,
            WatchHistoryEntry.video_id == video_id,
        )
    )


async def list_history(db: AsyncSession, user_id: str) -> list[HistoryItem]:
    """List the user's watch history, most recently watched first."""
    result = await db.execute(
        select(WatchHistoryEntry.video_id, WatchHistoryEntry.watched_at)
        .where(WatchHistoryEntry.user_id == user_id)
        .order_by(WatchHistoryEntry.watched_at.desc(), WatchHistoryEntry.id)
    )
    rows = result.all()
    views = await _views_in_order(db, [video_id for video_id, _ in rows])
    return [
        HistoryItem(video=views[video_id], watched_at=watched_at)
        for video_id, watched_at in rows
        if video_id in views
    ]


# Watch later


async def toggle_watch_later(db: AsyncSession, user_id: str, video_id: str) -> bool:
    """Add a video to watch later, or remove it if already there.

    Returns:
        True if the video was added, False if it was removed

    Raises:
        NotFoundError: If the video does not exist
    """
    if await db.get(Video, video_id) is None:
        raise NotFoundError("Video not found")

    if await remove_from_watch_later(db, user_id, video_id):
        return False

    db.add(WatchLaterEntry(user_id=user_id, video_id=video_id))
    try:
        await db.commit()
    except IntegrityError:
        # A concurrent request added it first; it is in the list either way
        await db.rollback()
        logger.warning(
            f"Concurrent watch later add: user_id={user_id}, video_id={video_id}"
        )
    return True


async def remove_from_watch_later(db: AsyncSession, user_id: str, video_id: str) -> bool:
    """Remove a video from watch later.

    Returns:
        True if the video was removed, False if it wasn't in the list
    """
    result = await db.execute(
        delete(WatchLaterEntry).where(
            WatchLaterEntry.user_id == user_id,
            WatchLaterEntry.video_id == video_id,
        )
    )
    await db.commit()
    return result.rowcount > 0


async def list_watch_later(db: AsyncSession, user_id: str) -> list[VideoView]:
    """List the user's watch-later videos, most recently added first."""
    result = await db.execute(
        select(WatchLaterEntry.video_id)
        .where(WatchLaterEntry.user_id == user_id)
        .order_by(WatchLaterEntry.added_at.desc(), WatchLaterEntry.id)
    )
    video_ids = list(result.scalars().all())
    views = await _views_in_order(db, video_ids)
    return [views[video_id] for video_id in video_ids if video_id in views]


async def _views_in_order(db: AsyncSession, video_ids: list[str]) -> dict[str, VideoView]:
    if not video_ids:
        return {}
    views = await load_video_views(db, select(Video).where(Video.id.in_(video_ids)))
    return {view.video.id: view for view in views}
