"""
Tweet Endpoints.

- `GET /tweets/c/{username}`: A user's tweets, newest first by default
  (`sortType=asc` for oldest first).
- `GET /tweets/{tweet_id}`: Single tweet with its like count.
- `POST /tweets/create`, `PATCH|DELETE /tweets/{tweet_id}`: Authenticated,
  owner-only for changes.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from api.dependencies import get_current_user, get_tweet_service
from core.logging_config import get_logger
from core.models import User
from core.response import created, ok
from services.tweet_service import TweetService

logger = get_logger(__name__)
router = APIRouter(prefix="/tweets", tags=["Tweets"])


class TweetRequest(BaseModel):
    content: str


@router.get("/c/{username}")
async def get_user_tweets(
    username: str,
    page: Optional[str] = None,
    page_size: Optional[str] = Query(None, alias="pageSize"),
    limit: Optional[str] = None,
    sort_type: Optional[str] = Query(None, alias="sortType"),
    tweets: TweetService = Depends(get_tweet_service),
):
    result = await tweets.user_tweets(
        username, page, page_size if page_size is not None else limit, sort_type
    )
    return ok(result, "Tweets fetched successfully.")


@router.post("/create")
async def create_tweet(
    request: TweetRequest,
    current_user: User = Depends(get_current_user),
    tweets: TweetService = Depends(get_tweet_service),
):
    tweet = await tweets.create(current_user, request.content)
    return created(tweet, "Tweet created successfully.")


@router.get("/{tweet_id}")
async def get_tweet(tweet_id: str, tweets: TweetService = Depends(get_tweet_service)):
    tweet = await tweets.get_tweet(tweet_id)
    return ok(tweet, "Tweet fetched successfully.")


@router.patch("/{tweet_id}")
async def update_tweet(
    tweet_id: str,
    request: TweetRequest,
    current_user: User = Depends(get_current_user),
    tweets: TweetService = Depends(get_tweet_service),
):
    tweet = await tweets.update(current_user, tweet_id, request.content)
    return ok(tweet, "Tweet updated successfully.")


@router.delete("/{tweet_id}")
async def delete_tweet(
    tweet_id: str,
    current_user: User = Depends(get_current_user),
    tweets: TweetService = Depends(get_tweet_service),
):
    await tweets.delete(current_user, tweet_id)
    return ok({}, "Tweet deleted successfully.")
