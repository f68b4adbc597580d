"""Response models shared across API routers.

All JSON keys are camelCase. Joined users are always projected through
``UserSummary`` so credentials never leave the service.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.catalog.queries import VideoPage, VideoView
from app.comments.threads import CommentView
from app.db.models import Category, User


class CamelModel(BaseModel):
    """Base model that reads snake_case and writes camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserSummary(CamelModel):
    """Public projection of a user."""

    id: str
    username: str
    channel_name: str
    profile_picture: str
    subscriber_count: int | None = None


class VideoOut(CamelModel):
    """A video as returned by the API."""

    id: str
    title: str
    description: str
    video_url: str
    thumbnail_url: str
    duration: int
    category: Category
    views: int
    likes: int
    dislikes: int
    creator: UserSummary
    upload_date: datetime


class PaginationOut(CamelModel):
    """Pagination envelope for catalog listings."""

    page: int
    limit: int
    total: int
    pages: int
    has_more: bool


class VideoListOut(CamelModel):
    """A page of videos."""

    videos: list[VideoOut]
    pagination: PaginationOut


class CommentOut(CamelModel):
    """A comment as returned by the API.

    ``replyCount`` is only present in top-level listings.
    """

    id: str
    content: str
    video_id: str
    parent_comment_id: str | None
    author: UserSummary
    likes: int
    created_at: datetime
    reply_count: int | None = None


class MessageOut(CamelModel):
    """A bare confirmation message."""

    message: str


def user_summary(user: User, subscriber_count: int | None = None) -> UserSummary:
    """Project a user to its public fields."""
    return UserSummary(
        id=user.id,
        username=user.username,
        channel_name=user.channel_name,
        profile_picture=user.profile_picture,
        subscriber_count=subscriber_count,
    )


def video_out(view: VideoView) -> VideoOut:
    """Build the API representation of a loaded video."""
    video = view.video
    return VideoOut(
        id=video.id,
        title=video.title,
        description=video.description,
        video_url=video.video_url,
        thumbnail_url=video.thumbnail_url,
        duration=video.duration,
        category=video.category,
        views=video.views,
        likes=view.likes,
        dislikes=view.dislikes,
        creator=user_summary(video.creator, view.creator_subscribers),
        upload_date=video.upload_date,
    )


def video_list_out(page: VideoPage) -> VideoListOut:
    """Wrap a catalog page in the pagination envelope."""
    return VideoListOut(
        videos=[video_out(view) for view in page.items],
        pagination=PaginationOut(
            page=page.page,
            limit=page.limit,
            total=page.total,
            pages=page.pages,
            has_more=page.has_more,
        ),
    )


def comment_out(view: CommentView) -> CommentOut:
    """Build the API representation of a loaded comment."""
    comment = view.comment
    return CommentOut(
        id=comment.id,
        content=comment.content,
        video_id=comment.video_id,
        parent_comment_id=comment.parent_id,
        author=user_summary(comment.author),
        likes=view.likes,
        created_at=comment.created_at,
        reply_count=view.reply_count,
    )
