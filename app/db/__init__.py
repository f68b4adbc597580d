"""Database module for the video sharing API."""

from app.db.models import (
    Base,
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
)
from app.db.session import get_engine, get_session, get_sessionmaker

__all__ = [
    "Base",
    "Category",
    "Comment",
    "CommentLike",
    "ReactionKind",
    "Subscription",
    "User",
    "Video",
    "VideoReaction",
    "WatchHistoryEntry",
    "WatchLaterEntry",
    "get_session",
    "get_engine",
    "get_sessionmaker",
]
