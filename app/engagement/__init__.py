"""Engagement toggles (likes and dislikes)."""

from app.engagement.toggler import (
    CommentLikeResult,
    ReactionResult,
    comment_like_counts,
    toggle_comment_like,
    toggle_video_reaction,
    video_reaction_counts,
)

__all__ = [
    "CommentLikeResult",
    "ReactionResult",
    "comment_like_counts",
    "toggle_comment_like",
    "toggle_video_reaction",
    "video_reaction_counts",
]
