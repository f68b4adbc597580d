"""Channel subscriptions."""

from app.channels.subscriptions import (
    SubscriptionResult,
    list_subscribed_channel_ids,
    list_subscriber_ids,
    subscriber_count,
    toggle_subscription,
)

__all__ = [
    "SubscriptionResult",
    "list_subscribed_channel_ids",
    "list_subscriber_ids",
    "subscriber_count",
    "toggle_subscription",
]
