"""Video catalog and engagement endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import Field, StringConstraints
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.router import require_user
from app.catalog import queries
from app.config import Settings, get_settings
from app.db import crud
from app.db.models import Category, ReactionKind, User
from app.db.session import get_session
from app.engagement.toggler import toggle_video_reaction
from app.limits import limiter
from app.schemas import (
    CamelModel,
    MessageOut,
    VideoListOut,
    VideoOut,
    video_list_out,
    video_out,
)

router = APIRouter(prefix="/api/videos", tags=["videos"])

Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]


class CreateVideoRequest(CamelModel):
    """Request model for registering an uploaded video."""

    title: Title
    description: str = ""
    video_url: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
    thumbnail_url: str | None = None
    duration: int = Field(default=0, ge=0)
    category: Category = Category.OTHER


class UpdateVideoRequest(CamelModel):
    """Request model for editing a video; omitted fields are unchanged."""

    title: Title | None = None
    description: str | None = None
    category: Category | None = None


class VideoSavedResponse(CamelModel):
    """Response model for create and update."""

    message: str
    video: VideoOut


class LikeResponse(CamelModel):
    """Response model for the like toggle."""

    likes: int
    dislikes: int
    user_liked: bool


class DislikeResponse(CamelModel):
    """Response model for the dislike toggle."""

    likes: int
    dislikes: int
    user_disliked: bool


def _page_size(limit: int | None, settings: Settings) -> int:
    """Apply the configured default and cap to a requested page size."""
    return min(limit or settings.page_size_default, settings.page_size_max)


def _check_description(description: str | None, settings: Settings) -> None:
    if description is not None and len(description) > settings.video_description_max_length:
        raise HTTPException(
            status_code=400,
            detail=(
                "Description must be at most "
                f"{settings.video_description_max_length} characters"
            ),
        )


@router.get("", response_model=VideoListOut)
@limiter.limit("120/minute")
async def list_videos(
    request: Request,
    page: int = Query(default=1, ge=1, description="1-based page number"),
    limit: int | None = Query(default=None, ge=1, description="Items per page"),
    category: str | None = Query(default=None, description="Filter to one category"),
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    """
    Paginated catalog, newest first.

    Unknown categories are ignored. ``limit`` defaults to the configured page
    size and is capped at the configured maximum.
    """
    result = await queries.list_videos(
        db, page=page, limit=_page_size(limit, settings), category=category
    )
    return video_list_out(result)


@router.get("/search", response_model=VideoListOut)
@limiter.limit("60/minute")
async def search_videos(
    request: Request,
    q: str | None = Query(default=None, description="Search text"),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    """
    Case-insensitive literal substring search over titles and descriptions.

    Results are ordered by views, most viewed first.

    Raises:
        HTTPException: 400 if ``q`` is missing, blank or too long
    """
    result = await queries.search_videos(
        db,
        q,
        page=page,
        limit=_page_size(limit, settings),
        max_length=settings.search_query_max_length,
    )
    return video_list_out(result)


@router.get("/recommended/{video_id}", response_model=list[VideoOut])
@limiter.limit("120/minute")
async def recommended_videos(
    request: Request,
    video_id: str,
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    """Videos sharing the reference video's category or creator."""
    views = await queries.recommended_for(
        db,
        video_id,
        limit=settings.recommended_limit,
        min_related=settings.recommended_min_related,
    )
    return [video_out(view) for view in views]


@router.get("/{video_id}", response_model=VideoOut)
@limiter.limit("240/minute")
async def get_video(
    request: Request,
    video_id: str,
    db: AsyncSession = Depends(get_session),
):
    """
    Video detail. Each call counts one view.

    Raises:
        HTTPException: 404 if the video does not exist
    """
    view = await queries.get_video_and_count_view(db, video_id)
    return video_out(view)


@router.post("", response_model=VideoSavedResponse, status_code=201)
@limiter.limit("20/minute")
async def create_video(
    request: Request,
    body: CreateVideoRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    """
    Register a video owned by the current user.

    The media itself is stored elsewhere; this records its URLs and metadata.

    Raises:
        HTTPException: 403 if uploads are disabled, 400 on invalid fields
    """
    if not settings.uploads_enabled:
        raise HTTPException(status_code=403, detail="Uploads are disabled")
    _check_description(body.description, settings)

    view = await crud.create_video(
        db,
        creator_id=user.id,
        title=body.title,
        description=body.description,
        video_url=body.video_url,
        thumbnail_url=body.thumbnail_url or settings.default_thumbnail_url,
        duration=body.duration,
        category=body.category,
    )
    return VideoSavedResponse(message="Video uploaded", video=video_out(view))


@router.put("/{video_id}", response_model=VideoSavedResponse)
@limiter.limit("30/minute")
async def update_video(
    request: Request,
    video_id: str,
    body: UpdateVideoRequest,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    """
    Edit a video's title, description or category. Creator only.

    Raises:
        HTTPException: 404 if the video does not exist, 403 if not the creator
    """
    _check_description(body.description, settings)
    video = await crud.get_owned_video(db, video_id, user.id)
    view = await crud.update_video(
        db,
        video,
        title=body.title,
        description=body.description,
        category=body.category,
    )
    return VideoSavedResponse(message="Video updated", video=video_out(view))


@router.delete("/{video_id}", response_model=MessageOut)
@limiter.limit("30/minute")
async def delete_video(
    request: Request,
    video_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """
    Delete a video with its comments, reactions and list entries. Creator only.

    Raises:
        HTTPException: 404 if the video does not exist, 403 if not the creator
    """
    video = await crud.get_owned_video(db, video_id, user.id)
    await crud.delete_video(db, video)
    return MessageOut(message="Video deleted successfully")


@router.post("/{video_id}/like", response_model=LikeResponse)
@limiter.limit("60/minute")
async def like_video(
    request: Request,
    video_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """Toggle the current user's like. Liking removes an existing dislike."""
    result = await toggle_video_reaction(db, video_id, user.id, ReactionKind.LIKE)
    return LikeResponse(
        likes=result.likes, dislikes=result.dislikes, user_liked=result.active
    )


@router.post("/{video_id}/dislike", response_model=DislikeResponse)
@limiter.limit("60/minute")
async def dislike_video(
    request: Request,
    video_id: str,
    user: User = Depends(require_user),
    db: AsyncSession = Depends(get_session),
):
    """Toggle the current user's dislike. Disliking removes an existing like."""
    result = await toggle_video_reaction(db, video_id, user.id, ReactionKind.DISLIKE)
    return DislikeResponse(
        likes=result.likes, dislikes=result.dislikes, user_disliked=result.active
    )
