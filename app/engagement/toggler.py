"""Like/dislike toggles for videos and likes for comments.

Every toggle is a flip, not an increment: applying the same action twice
returns the entity to its original state. Video likes and dislikes share a
single row per (video, user), so switching from one to the other is an
update and a user can never sit in both sets.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import Comment, CommentLike, ReactionKind, Video, VideoReaction
from app.errors import NotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReactionResult:
    """Outcome of a video like/dislike toggle."""

    likes: int
    dislikes: int
    active: bool


@dataclass(frozen=True)
class CommentLikeResult:
    """Outcome of a comment like toggle."""

    likes: int
    active: bool


async def video_reaction_counts(
    db: AsyncSession, video_ids: Sequence[str]
) -> dict[str, tuple[int, int]]:
    """Count likes and dislikes for several videos in one query.

    Rows without a user are skipped.

    Returns:
        Mapping of video id to ``(likes, dislikes)``; every requested id is present
    """
    counts = {video_id: (0, 0) for video_id in video_ids}
    if not video_ids:
        return counts

    result = await db.execute(
        select(VideoReaction.video_id, VideoReaction.kind, func.count())
        .where(
            VideoReaction.video_id.in_(video_ids),
            VideoReaction.user_id.is_not(None),
        )
        .group_by(VideoReaction.video_id, VideoReaction.kind)
    )
    for video_id, kind, count in result.all():
        likes, dislikes = counts[video_id]
        if kind == ReactionKind.LIKE:
            counts[video_id] = (count, dislikes)
        else:
            counts[video_id] = (likes, count)
    return counts


async def comment_like_counts(
    db: AsyncSession, comment_ids: Sequence[str]
) -> dict[str, int]:
    """Count likes for several comments in one query, skipping userless rows."""
    counts = {comment_id: 0 for comment_id in comment_ids}
    if not comment_ids:
        return counts

    result = await db.execute(
        select(CommentLike.comment_id, func.count())
        .where(
            CommentLike.comment_id.in_(comment_ids),
            CommentLike.user_id.is_not(None),
        )
        .group_by(CommentLike.comment_id)
    )
    for comment_id, count in result.all():
        counts[comment_id] = count
    return counts


async def _current_reaction(
    db: AsyncSession, video_id: str, user_id: str
) -> VideoReaction | None:
    result = await db.execute(
        select(VideoReaction).where(
            VideoReaction.video_id == video_id,
            VideoReaction.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def toggle_video_reaction(
    db: AsyncSession, video_id: str, user_id: str, kind: ReactionKind
) -> ReactionResult:
    """Flip a user's like or dislike on a video.

    - Same reaction already present: it is removed.
    - Opposite reaction present: it is switched to ``kind``.
    - No reaction: ``kind`` is added.

    Args:
        db: Database session
        video_id: The video being reacted to
        user_id: The acting user's ID
        kind: Which set is being toggled

    Returns:
        Updated like/dislike counts and whether the user is now in the
        ``kind`` set

    Raises:
        NotFoundError: If the video does not exist
    """
    video = await db.get(Video, video_id)
    if video is None:
        raise NotFoundError("Video not found")

    existing = await _current_reaction(db, video_id, user_id)

    if existing is not None and existing.kind == kind:
        await db.execute(delete(VideoReaction).where(VideoReaction.id == existing.id))
        active = False
    elif existing is not None:
        existing.kind = kind
        active = True
    else:
        db.add(VideoReaction(video_id=video_id, user_id=user_id, kind=kind))
        active = True

    try:
        await db.commit()
    except IntegrityError:
        # A concurrent request from the same user inserted first
        await db.rollback()
        logger.warning(
            f"Concurrent {kind.value} on video_id={video_id} by user_id={user_id}"
        )
        current = await _current_reaction(db, video_id, user_id)
        active = current is not None and current.kind == kind

    likes, dislikes = (await video_reaction_counts(db, [video_id]))[video_id]
    return ReactionResult(likes=likes, dislikes=dislikes, active=active)


async def toggle_comment_like(
    db: AsyncSession, comment_id: str, user_id: str
) -> CommentLikeResult:
    """Flip a user's like on a comment.

    Raises:
        NotFoundError: If the comment does not exist
    """
    comment = await db.get(Comment, comment_id)
    if comment is None:
        raise NotFoundError("Comment not found")

    removed = await db.execute(
        delete(CommentLike).where(
            CommentLike.comment_id == comment_id,
            CommentLike.user_id == user_id,
        )
    )
    if removed.rowcount > 0:
        active = False
    else:
        db.add(CommentLike(comment_id=comment_id, user_id=user_id))
        active = True

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning(
            f"Concurrent like on comment_id={comment_id} by user_id={user_id}"
        )
        active = True

    likes = (await comment_like_counts(db, [comment_id]))[comment_id]
    return CommentLikeResult(likes=likes, active=active)
