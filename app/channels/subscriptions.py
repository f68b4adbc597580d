"""Subscription graph between users and the channels they follow."""

import logging
from dataclasses import dataclass

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import Subscription, User
from app.errors import BadRequestError, NotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubscriptionResult:
    """Outcome of a subscribe/unsubscribe toggle."""

    subscribed: bool
    subscriber_count: int


async def subscriber_count(db: AsyncSession, channel_id: str) -> int:
    """Number of users subscribed to a channel."""
    count = await db.scalar(
        select(func.count())
        .select_from(Subscription)
        .where(Subscription.channel_id == channel_id)
    )
    return count or 0


async def list_subscriber_ids(db: AsyncSession, channel_id: str) -> list[str]:
    """IDs of the users who follow ``channel_id``, oldest follower first."""
    result = await db.execute(
        select(Subscription.subscriber_id)
        .where(Subscription.channel_id == channel_id)
        .order_by(Subscription.created_at)
    )
    return list(result.scalars().all())


async def list_subscribed_channel_ids(db: AsyncSession, user_id: str) -> list[str]:
    """IDs of the channels ``user_id`` follows, oldest subscription first."""
    result = await db.execute(
        select(Subscription.channel_id)
        .where(Subscription.subscriber_id == user_id)
        .order_by(Subscription.created_at)
    )
    return list(result.scalars().all())


async def toggle_subscription(
    db: AsyncSession, subscriber_id: str, channel_id: str
) -> SubscriptionResult:
    """Subscribe to a channel, or unsubscribe if already subscribed.

    Both directions of the relationship live in one row, so the
    subscriber's channel list and the channel's subscriber list can never
    disagree.

    Args:
        db: Database session
        subscriber_id: The acting user's ID
        channel_id: The user whose channel is being (un)followed

    Returns:
        Whether the caller is now subscribed and the channel's new
        subscriber count

    Raises:
        BadRequestError: If a user tries to subscribe to themselves
        NotFoundError: If the channel does not exist
    """
    if subscriber_id == channel_id:
        raise BadRequestError("Cannot subscribe to yourself")

    if await db.get(User, channel_id) is None:
        raise NotFoundError("Channel not found")

    removed = await db.execute(
        delete(Subscription).where(
            Subscription.subscriber_id == subscriber_id,
            Subscription.channel_id == channel_id,
        )
    )
    if removed.rowcount > 0:
        subscribed = False
    else:
        db.add(Subscription(subscriber_id=subscriber_id, channel_id=channel_id))
        subscribed = True

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning(
            f"Concurrent subscribe: subscriber_id={subscriber_id}, channel_id={channel_id}"
        )
        subscribed = True

    return SubscriptionResult(
        subscribed=subscribed,
        subscriber_count=await subscriber_count(db, channel_id),
    )
