"""Catalog listing, search and recommendation queries."""

from app.catalog.queries import (
    VideoPage,
    VideoView,
    get_video_and_count_view,
    list_videos,
    recommended_for,
    search_videos,
)

__all__ = [
    "VideoPage",
    "VideoView",
    "get_video_and_count_view",
    "list_videos",
    "recommended_for",
    "search_videos",
]
