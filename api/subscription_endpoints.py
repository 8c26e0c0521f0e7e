"""
Subscription Endpoints.

- `POST /subscriptions/c/{username}`: Toggle the caller's subscription to a
  channel.
- `GET /subscriptions/c/{username}`: Subscribers of a channel.
- `GET /subscriptions/u/{username}`: Channels a user is subscribed to.
"""

from fastapi import APIRouter, Depends

from api.dependencies import ListQuery, get_current_user, get_subscription_service
from core.logging_config import get_logger
from core.models import User
from core.response import ok
from services.subscription_service import SubscriptionService

logger = get_logger(__name__)
router = APIRouter(
    prefix="/subscriptions",
    tags=["Subscriptions"],
    dependencies=[Depends(get_current_user)],
)


@router.post("/c/{username}")
async def toggle_subscription(
    username: str,
    current_user: User = Depends(get_current_user),
    subscriptions: SubscriptionService = Depends(get_subscription_service),
):
    state = await subscriptions.toggle_subscription(current_user, username)
    message = "Subscribed successfully." if state["subscribed"] else "Unsubscribed successfully."
    return ok(state, message)


@router.get("/c/{username}")
async def get_channel_subscribers(
    username: str,
    options: ListQuery = Depends(),
    subscriptions: SubscriptionService = Depends(get_subscription_service),
):
    result = await subscriptions.channel_subscribers(
        username, options.page, options.page_size, options.sort_by, options.sort_type
    )
    return ok(result, "Subscribers fetched successfully.")


@router.get("/u/{username}")
async def get_subscribed_channels(
    username: str,
    options: ListQuery = Depends(),
    subscriptions: SubscriptionService = Depends(get_subscription_service),
):
    result = await subscriptions.subscribed_channels(
        username, options.page, options.page_size, options.sort_by, options.sort_type
    )
    return ok(result, "Subscribed channels fetched successfully.")
