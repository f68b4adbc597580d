"""SQLAlchemy models for the video sharing API."""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def uid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Current UTC time, set client-side so it is readable right after flush."""
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timestamp stored in UTC and always read back timezone-aware.

    SQLite keeps no offset, so naive values coming out of the store are
    tagged as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


def search_text(title: str | None, description: str | None) -> str:
    """Case-folded title and description, the haystack for catalog search."""
    return f"{title or ''}\n{description or ''}".casefold()


class Category(str, enum.Enum):
    """Video categories."""

    MUSIC = "Music"
    GAMING = "Gaming"
    EDUCATION = "Education"
    ENTERTAINMENT = "Entertainment"
    SPORT = "Sport"
    COMEDY = "Comedy"
    NEWS = "News"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: str | None) -> "Category | None":
        """Return the matching category, or None for unknown values."""
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class ReactionKind(str, enum.Enum):
    """Kinds of reaction a user can leave on a video."""

    LIKE = "like"
    DISLIKE = "dislike"


class User(Base):
    """A registered user and their channel profile."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=uid)
    username: Mapped[str] = mapped_column(String(30), unique=True, index=True)
    email: Mapped[str] = mapped_column(String, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String)
    channel_name: Mapped[str] = mapped_column(String(50))
    channel_description: Mapped[str] = mapped_column(Text, default="")
    profile_picture: Mapped[str] = mapped_column(String)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    videos: Mapped[list["Video"]] = relationship(back_populates="creator")


class Video(Base):
    """Uploaded video metadata."""

    __tablename__ = "videos"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=uid)
    title: Mapped[str] = mapped_column(String(100))
    description: Mapped[str] = mapped_column(Text, default="")
    video_url: Mapped[str] = mapped_column(String)
    thumbnail_url: Mapped[str] = mapped_column(String)
    duration: Mapped[int] = mapped_column(Integer, default=0)
    category: Mapped[Category] = mapped_column(
        Enum(Category, values_callable=lambda e: [c.value for c in e]),
        default=Category.OTHER,
        index=True,
    )
    views: Mapped[int] = mapped_column(Integer, default=0)
    creator_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    upload_date: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, index=True)
    # Maintained from title and description on every insert and update
    search_text: Mapped[str] = mapped_column(Text, default="")

    creator: Mapped["User"] = relationship(back_populates="videos")


@event.listens_for(Video, "before_insert")
@event.listens_for(Video, "before_update")
def _refresh_search_text(mapper, connection, target: Video) -> None:
    target.search_text = search_text(target.title, target.description)


class VideoReaction(Base):
    """A user's like or dislike on a video.

    One row per (video, user) so a user can never both like and dislike the
    same video. ``user_id`` is nullable: rows whose user is gone are kept
    but ignored by membership tests and counts.
    """

    __tablename__ = "video_reactions"
    __table_args__ = (
        UniqueConstraint("video_id", "user_id", name="uq_video_reaction_user"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=uid)
    video_id: Mapped[str] = mapped_column(
        ForeignKey("videos.id", ondelete="CASCADE"), index=True
    )
    user_id: Mapped[str | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    kind: Mapped[ReactionKind] = mapped_column(
        Enum(ReactionKind, values_callable=lambda e: [k.value for k in e])
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)


class Comment(Base):
    """A comment on a video; ``parent_id`` set means it is a reply."""

    __tablename__ = "comments"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=uid)
    content: Mapped[str] = mapped_column(String(1400))
    author_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    video_id: Mapped[str] = mapped_column(
        ForeignKey("videos.id", ondelete="CASCADE"), index=True
    )
    parent_id: Mapped[str | None] = mapped_column(
        ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    author: Mapped["User"] = relationship()


class CommentLike(Base):
    """A user's like on a comment."""

    __tablename__ = "comment_likes"
    __table_args__ = (
        UniqueConstraint("comment_id", "user_id", name="uq_comment_like_user"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=uid)
    comment_id: Mapped[str] = mapped_column(
        ForeignKey("comments.id", ondelete="CASCADE"), index=True
    )
    user_id: Mapped[str | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)


class Subscription(Base):
    """Follow edge between a subscriber and a channel.

    A single row backs both the channel's subscriber list and the
    subscriber's subscribed-channel list.
    """

    __tablename__ = "subscriptions"
    __table_args__ = (
        UniqueConstraint("subscriber_id", "channel_id", name="uq_subscription_pair"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=uid)
    subscriber_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    channel_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)


class WatchHistoryEntry(Base):
    """A video in a user's watch history, at most one row per video."""

    __tablename__ = "watch_history"
    __table_args__ = (
        UniqueConstraint("user_id", "video_id", name="uq_watch_history_video"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=uid)
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    video_id: Mapped[str] = mapped_column(
        ForeignKey("videos.id", ondelete="CASCADE"), index=True
    )
    watched_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    video: Mapped["Video"] = relationship()


class WatchLaterEntry(Base):
    """A video saved to a user's watch-later list."""

    __tablename__ = "watch_later"
    __table_args__ = (
        UniqueConstraint("user_id", "video_id", name="uq_watch_later_video"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=uid)
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    video_id: Mapped[str] = mapped_column(
        ForeignKey("videos.id", ondelete="CASCADE"), index=True
    )
    added_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
