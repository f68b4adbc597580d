"""Comment threading."""

from app.comments.threads import (
    CommentView,
    delete_comment,
    list_replies,
    list_top_level_comments,
    post_comment,
)

__all__ = [
    "CommentView",
    "delete_comment",
    "list_replies",
    "list_top_level_comments",
    "post_comment",
]
