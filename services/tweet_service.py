"""
Tweet Service.

Short text posts on a user's channel. Tweets are listed newest first (or
oldest first); no other sort field is offered.
"""

from typing import Any, Dict, Optional

from core import query_builder
from core.exceptions import NotFoundError
from core.guards import ensure_owner
from core.logging_config import get_logger
from core.models import Tweet, User
from core.pagination import labels_for, normalize_page_options, paginate
from core.pipeline import execute
from core.store import Document, EntityStore, document_of
from core.validation import InputValidator
from services.user_service import UserService

logger = get_logger(__name__)

MAX_TWEET_LENGTH = 280


class TweetService:
    def __init__(self, store: EntityStore, users: UserService):
        self.store = store
        self.users = users

    async def create(self, caller: User, content: str) -> Document:
        content = InputValidator.require_text(content, "content", max_length=MAX_TWEET_LENGTH)
        tweet = await self.store.add(Tweet(content=content, owner_id=caller.id))
        logger.info(f"Tweet {tweet.id} created by {caller.username}")
        return document_of(tweet)

    async def user_tweets(
        self,
        username: str,
        page: Any = None,
        page_size: Any = None,
        sort_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        owner = await self.users.require_user(username)
        paging = normalize_page_options(page, page_size)
        return await paginate(
            self.store,
            query_builder.user_tweets(owner.id, sort_type),
            paging["page"],
            paging["page_size"],
            labels_for("tweets"),
        )

    async def get_tweet(self, tweet_id: str) -> Document:
        tweet_id = InputValidator.validate_object_id(tweet_id, "tweet ID")
        documents = await execute(self.store, query_builder.tweet_detail(tweet_id))
        if not documents:
            raise NotFoundError("Tweet", tweet_id)
        return documents[0]

    async def update(self, caller: User, tweet_id: str, content: str) -> Document:
        content = InputValidator.require_text(content, "content", max_length=MAX_TWEET_LENGTH)
        tweet = await ensure_owner(self.store, Tweet, tweet_id, caller.id, "update")
        tweet = await self.store.update(tweet, content=content)
        return document_of(tweet)

    async def delete(self, caller: User, tweet_id: str) -> None:
        tweet = await ensure_owner(self.store, Tweet, tweet_id, caller.id, "delete")
        await self.store.delete(tweet)
        logger.info(f"Tweet {tweet_id} deleted")
