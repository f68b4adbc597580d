"""Comment threads: top-level comments and a single level of replies."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.db.models import Comment, CommentLike, Video
from app.engagement.toggler import comment_like_counts
from app.errors import (
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    OperationFailedError,
)

logger = logging.getLogger(__name__)

MAX_CONTENT_LENGTH = 1400


@dataclass(frozen=True)
class CommentView:
    """A comment with its author loaded and derived counts attached.

    ``reply_count`` is only computed for top-level listings and is None
    elsewhere.
    """

    comment: Comment
    likes: int
    reply_count: int | None = None


async def reply_counts(db: AsyncSession, comment_ids: Sequence[str]) -> dict[str, int]:
    """Count direct replies for several comments in one query."""
    counts = {comment_id: 0 for comment_id in comment_ids}
    if not comment_ids:
        return counts

    result = await db.execute(
        select(Comment.parent_id, func.count())
        .where(Comment.parent_id.in_(comment_ids))
        .group_by(Comment.parent_id)
    )
    for parent_id, count in result.all():
        counts[parent_id] = count
    return counts


async def _load_comment(db: AsyncSession, comment_id: str) -> Comment | None:
    result = await db.execute(
        select(Comment)
        .options(selectinload(Comment.author))
        .where(Comment.id == comment_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def post_comment(
    db: AsyncSession,
    author_id: str,
    video_id: str | None,
    content: str | None,
    parent_id: str | None = None,
) -> CommentView:
    """Create a top-level comment, or a reply when ``parent_id`` is given.

    Replies may only target top-level comments on the same video, so
    threads never nest deeper than one level.

    Args:
        db: Database session
        author_id: The commenting user's ID
        video_id: The video being commented on
        content: Comment text; surrounding whitespace is stripped
        parent_id: Optional ID of the comment being replied to

    Returns:
        The stored comment with its author loaded

    Raises:
        BadRequestError: Empty or oversized content, missing video id,
            or an invalid parent
        NotFoundError: If the video or the parent comment does not exist
    """
    text = (content or "").strip()
    if not text:
        raise BadRequestError("Comment content is required")
    if len(text) > MAX_CONTENT_LENGTH:
        raise BadRequestError(
            f"Comment content must be at most {MAX_CONTENT_LENGTH} characters"
        )
    if not video_id or not video_id.strip():
        raise BadRequestError("Video ID is required")

    if await db.get(Video, video_id) is None:
        raise NotFoundError("Video not found")

    if parent_id:
        parent = await db.get(Comment, parent_id)
        if parent is None:
            raise NotFoundError("Parent comment not found")
        if parent.video_id != video_id:
            raise BadRequestError("Parent comment belongs to a different video")
        if parent.parent_id is not None:
            raise BadRequestError("Cannot reply to a reply")

    comment = Comment(
        content=text,
        author_id=author_id,
        video_id=video_id,
        parent_id=parent_id or None,
    )
    db.add(comment)
    await db.commit()

    loaded = await _load_comment(db, comment.id)
    if loaded is None:
        raise OperationFailedError()
    return CommentView(comment=loaded, likes=0)


async def list_top_level_comments(db: AsyncSession, video_id: str) -> list[CommentView]:
    """List a video's top-level comments, newest first, with reply counts."""
    result = await db.execute(
        select(Comment)
        .options(selectinload(Comment.author))
        .where(Comment.video_id == video_id, Comment.parent_id.is_(None))
        .order_by(Comment.created_at.desc(), Comment.id.desc())
    )
    comments = list(result.scalars().all())
    ids = [c.id for c in comments]
    likes = await comment_like_counts(db, ids)
    replies = await reply_counts(db, ids)
    return [
        CommentView(comment=c, likes=likes[c.id], reply_count=replies[c.id])
        for c in comments
    ]


async def list_replies(db: AsyncSession, comment_id: str) -> list[CommentView]:
    """List replies to a comment, oldest first.

    An unknown comment simply has no replies.
    """
    result = await db.execute(
        select(Comment)
        .options(selectinload(Comment.author))
        .where(Comment.parent_id == comment_id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
    )
    comments = list(result.scalars().all())
    likes = await comment_like_counts(db, [c.id for c in comments])
    return [CommentView(comment=c, likes=likes[c.id]) for c in comments]


async def delete_comment(db: AsyncSession, comment_id: str, user_id: str) -> int:
    """Delete a comment and, for top-level comments, all of its replies.

    Args:
        db: Database session
        comment_id: The comment to delete
        user_id: The acting user's ID; must be the author

    Returns:
        Number of comments removed (the comment plus its replies)

    Raises:
        NotFoundError: If the comment does not exist
        ForbiddenError: If the user is not the author
    """
    comment = await db.get(Comment, comment_id)
    if comment is None:
        raise NotFoundError("Comment not found")
    if comment.author_id != user_id:
        raise ForbiddenError("You can only delete your own comments")

    doomed = select(Comment.id).where(
        or_(Comment.id == comment_id, Comment.parent_id == comment_id)
    )
    await db.execute(delete(CommentLike).where(CommentLike.comment_id.in_(doomed)))
    replies = await db.execute(delete(Comment).where(Comment.parent_id == comment_id))
    await db.execute(delete(Comment).where(Comment.id == comment_id))
    await db.commit()

    logger.info(
        f"Comment deleted: comment_id={comment_id}, replies={replies.rowcount}, "
        f"user_id={user_id}"
    )
    return replies.rowcount + 1
