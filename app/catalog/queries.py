"""Catalog listings: paginated browse, literal search and recommendations."""

import math
from dataclasses import dataclass

from sqlalchemy import Select, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.db.models import Category, Subscription, Video
from app.engagement.toggler import video_reaction_counts
from app.errors import BadRequestError, NotFoundError

DEFAULT_PAGE_SIZE = 20
SEARCH_QUERY_MAX_LENGTH = 100

# OFFSET and LIMIT are signed 64-bit integers in the store
MAX_ROW_INDEX = 2**63 - 1


@dataclass(frozen=True)
class VideoView:
    """A video with its creator loaded and reaction counts attached.

    ``creator_subscribers`` is only filled in for single-video detail.
    """

    video: Video
    likes: int
    dislikes: int
    creator_subscribers: int | None = None


@dataclass(frozen=True)
class VideoPage:
    """One page of a catalog listing."""

    items: list[VideoView]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_more(self) -> bool:
        return self.page * self.limit < self.total


async def load_video_views(db: AsyncSession, stmt: Select) -> list[VideoView]:
    """Run a ``select(Video)`` statement and attach creators and reaction counts."""
    result = await db.execute(stmt.options(selectinload(Video.creator)))
    videos = list(result.scalars().all())
    counts = await video_reaction_counts(db, [v.id for v in videos])
    return [
        VideoView(video=v, likes=counts[v.id][0], dislikes=counts[v.id][1])
        for v in videos
    ]


def _check_page(page: int, limit: int) -> None:
    if page < 1:
        raise BadRequestError("page must be at least 1")
    if limit < 1:
        raise BadRequestError("limit must be at least 1")
    if limit > MAX_ROW_INDEX or (page - 1) * limit > MAX_ROW_INDEX:
        raise BadRequestError("page is out of range")


async def _paginate(
    db: AsyncSession, stmt: Select, page: int, limit: int
) -> VideoPage:
    total = await db.scalar(select(func.count()).select_from(stmt.subquery()))
    items = await load_video_views(db, stmt.offset((page - 1) * limit).limit(limit))
    return VideoPage(items=items, page=page, limit=limit, total=total or 0)


async def list_videos(
    db: AsyncSession,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    category: str | None = None,
) -> VideoPage:
    """List videos newest first, optionally restricted to one category.

    An unrecognised category is ignored rather than rejected.

    Args:
        db: Database session
        page: 1-based page number
        limit: Items per page
        category: Optional category name

    Returns:
        The requested page plus totals for the whole listing
    """
    _check_page(page, limit)

    stmt = select(Video)
    parsed = Category.parse(category)
    if parsed is not None:
        stmt = stmt.where(Video.category == parsed)
    stmt = stmt.order_by(Video.upload_date.desc(), Video.id)

    return await _paginate(db, stmt, page, limit)


async def search_videos(
    db: AsyncSession,
    q: str | None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    max_length: int = SEARCH_QUERY_MAX_LENGTH,
) -> VideoPage:
    """Case-insensitive substring search over title and description.

    Both sides are Unicode case-folded, so "été" finds "ÉTÉ". The query is
    matched literally: LIKE wildcards and the escape character are escaped,
    so ``.*``, ``%`` or ``_`` only ever match themselves.
    Results are ordered by view count, most viewed first.

    Raises:
        BadRequestError: If the query is empty or longer than ``max_length``
    """
    term = (q or "").strip()
    if not term:
        raise BadRequestError("Search query required")
    if len(term) > max_length:
        raise BadRequestError(f"Search query must be at most {max_length} characters")
    _check_page(page, limit)

    stmt = (
        select(Video)
        .where(Video.search_text.contains(term.casefold(), autoescape=True))
        .order_by(Video.views.desc(), Video.upload_date.desc(), Video.id)
    )
    return await _paginate(db, stmt, page, limit)


async def recommended_for(
    db: AsyncSession,
    video_id: str,
    limit: int = 10,
    min_related: int = 5,
) -> list[VideoView]:
    """Videos related to ``video_id`` by category or creator.

    When fewer than ``min_related`` related videos exist, the list is padded
    with the most viewed videos not already chosen, up to ``limit``.

    Raises:
        NotFoundError: If the reference video does not exist
    """
    reference = await db.get(Video, video_id)
    if reference is None:
        raise NotFoundError("Video not found")

    related = await load_video_views(
        db,
        select(Video)
        .where(
            Video.id != reference.id,
            or_(
                Video.category == reference.category,
                Video.creator_id == reference.creator_id,
            ),
        )
        .order_by(Video.views.desc(), Video.id)
        .limit(limit),
    )

    if len(related) >= min_related:
        return related

    chosen = [reference.id, *(view.video.id for view in related)]
    popular = await load_video_views(
        db,
        select(Video)
        .where(Video.id.not_in(chosen))
        .order_by(Video.views.desc(), Video.id)
        .limit(limit - len(related)),
    )
    return related + popular


async def get_video_and_count_view(db: AsyncSession, video_id: str) -> VideoView:
    """Increment a video's view counter by one and return it.

    Raises:
        NotFoundError: If the video does not exist
    """
    result = await db.execute(
        update(Video)
        .where(Video.id == video_id)
        .values(views=Video.views + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFoundError("Video not found")
    await db.commit()

    views = await load_video_views(
        db,
        select(Video)
        .where(Video.id == video_id)
        .execution_options(populate_existing=True),
    )
    if not views:
        raise NotFoundError("Video not found")
    view = views[0]

    subscribers = await db.scalar(
        select(func.count())
        .select_from(Subscription)
        .where(Subscription.channel_id == view.video.creator_id)
    )
    return VideoView(
        video=view.video,
        likes=view.likes,
        dislikes=view.dislikes,
        creator_subscribers=subscribers or 0,
    )

