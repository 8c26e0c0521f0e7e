"""
Subscription Service.

Subscribe/unsubscribe toggles between users and channels, and the two
membership lists (a channel's subscribers, a user's subscribed channels).
Channels are addressed by username.
"""

from typing import Any, Dict, Optional

from core import query_builder
from core.exceptions import ConflictError, ValidationError
from core.logging_config import get_logger, log_function_call
from core.models import Subscription, User
from core.pagination import labels_for, paginate
from core.store import EntityStore
from services.user_service import UserService

logger = get_logger(__name__)


class SubscriptionService:
    def __init__(self, store: EntityStore, users: UserService):
        self.store = store
        self.users = users

    @log_function_call(logger)
    async def toggle_subscription(self, caller: User, channel_username: str) -> Dict[str, bool]:
        channel = await self.users.require_user(channel_username)
        if channel.id == caller.id:
            raise ValidationError("You cannot subscribe to your own channel.", field="username")

        # Both users are expired once a failed insert rolls back
        subscriber_name, channel_name = caller.username, channel.username
        criteria = {"subscriber_id": caller.id, "channel_id": channel.id}
        if await self.store.delete_where(Subscription, **criteria):
            logger.info(f"{subscriber_name} unsubscribed from {channel_name}")
            return {"subscribed": False}

        try:
            await self.store.add(Subscription(**criteria))
        except ConflictError:
            logger.info(f"Concurrent subscription of {subscriber_name} to {channel_name}")
        logger.info(f"{subscriber_name} subscribed to {channel_name}")
        return {"subscribed": True}

    async def channel_subscribers(
        self,
        channel_username: str,
        page: Any = None,
        page_size: Any = None,
        sort_by: Optional[str] = None,
        sort_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        channel = await self.users.require_user(channel_username)
        options = query_builder.ListOptions.parse("subscribers", page, page_size, sort_by, sort_type)
        return await paginate(
            self.store,
            query_builder.channel_subscribers(channel.id, options),
            options.page,
            options.page_size,
            labels_for("subscribers"),
        )

    async def subscribed_channels(
        self,
        subscriber_username: str,
        page: Any = None,
        page_size: Any = None,
        sort_by: Optional[str] = None,
        sort_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        subscriber = await self.users.require_user(subscriber_username)
        options = query_builder.ListOptions.parse("channels", page, page_size, sort_by, sort_type)
        return await paginate(
            self.store,
            query_builder.subscribed_channels(subscriber.id, options),
            options.page,
            options.page_size,
            labels_for("channels"),
        )
