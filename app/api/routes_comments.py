"""Comment and reply endpoints."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.router import require_user
from app.comments import threads
from app.db.models import User
from app.db.session import get_session
from app.engagement.toggler import toggle_comment_like
from app.limits import limiter
from app.schemas import CamelModel, CommentOut, MessageOut, comment_out

router = APIRouter(prefix="/api/comments", tags=["comments"])


class PostCommentRequest(CamelModel):
    """Request model for posting a comment or a reply.

    Content and video are validated by the thread manager so that blank
    values get the same 400 as missing ones.
    """

    video_id: str | None = None
    content: str | None = None
    parent_comment_id: str | None = None


class CommentPostedResponse(CamelModel):
    """Response model for a new comment."""

    message: str
    comment: CommentOut


class CommentLikeResponse(CamelModel):
    """Response model for the comment like toggle."""

    likes: int
    user_liked: bool


@router.get("/video/{video_id}", response_model=list[CommentOut])
@limiter.limit("120/minute")
async def list_video_comments(
    request: Request,
    video_id: str,
    db: AsyncSession = Depends(get_session),
):
    """
    Top-level comments on a video, newest first.

    Each comment carries ``replyCount``, computed on every read.
    """
    views = await threads.list_top_level_comments(db, video_id)
    return [comment_out(view) for view in views]


@router.get("/{comment_id}/replies", response_model=list[CommentOut])
@limiter.limit("120/minute")
async def list_comment_replies(
    request: Request,
    comment_id: str,
    db: AsyncSession = Depends(get_session),
):
    """Replies to a comment, oldest first. Unknown comments have no replies."""
    views = await threads.list_replies(db, comment_id)
    return [comment_out(view) for view in views]


@router.post("", response_model=CommentPostedResponse, status_code=201)
@limiter.limit("30/minute")
async def post_comment(
    request: Request,
    body: PostCommentRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """
    Post a comment on a video, or a reply when ``parentCommentId`` is set.

    Replies can only target top-level comments on the same video.

    Raises:
        HTTPException: 400 for blank content or an invalid parent,
            404 if the video or parent does not exist
    """
    view = await threads.post_comment(
        db,
        author_id=user.id,
        video_id=body.video_id,
        content=body.content,
        parent_id=body.parent_comment_id,
    )
    return CommentPostedResponse(message="Comment posted", comment=comment_out(view))


@router.post("/{comment_id}/like", response_model=CommentLikeResponse)
@limiter.limit("60/minute")
async def like_comment(
    request: Request,
    comment_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """Toggle the current user's like on a comment."""
    result = await toggle_comment_like(db, comment_id, user.id)
    return CommentLikeResponse(likes=result.likes, user_liked=result.active)


@router.delete("/{comment_id}", response_model=MessageOut)
@limiter.limit("30/minute")
async def delete_comment(
    request: Request,
    comment_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """
    Delete a comment. Deleting a top-level comment also deletes its replies.

    Raises:
        HTTPException: 404 if the comment does not exist, 403 if not the author
    """
    await threads.delete_comment(db, comment_id, user.id)
    return MessageOut(message="Comment deleted")
