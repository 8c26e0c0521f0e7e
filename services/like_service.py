"""
Like Service.

Like toggles for videos, comments and tweets, and the caller's liked-videos
list.

A toggle first deletes the caller's like on the target. If nothing was
deleted it inserts one; the `(likedBy, target)` unique constraint rejects a
second insert from a concurrent toggle, which is then reported as "liked".
"""

from typing import Any, Dict, Optional, Type

from sqlmodel import SQLModel

from core import query_builder
from core.exceptions import ConflictError, NotFoundError
from core.logging_config import get_logger, log_function_call
from core.models import Comment, Like, Tweet, User, Video
from core.pagination import labels_for, paginate
from core.store import EntityStore
from core.validation import InputValidator

logger = get_logger(__name__)

LIKE_TARGETS: Dict[str, Type[SQLModel]] = {
    "video_id": Video,
    "comment_id": Comment,
    "tweet_id": Tweet,
}


class LikeService:
    def __init__(self, store: EntityStore):
        self.store = store

    async def toggle_video_like(self, caller: User, video_id: str) -> Dict[str, bool]:
        return await self._toggle(caller, "video_id", video_id)

    async def toggle_comment_like(self, caller: User, comment_id: str) -> Dict[str, bool]:
        return await self._toggle(caller, "comment_id", comment_id)

    async def toggle_tweet_like(self, caller: User, tweet_id: str) -> Dict[str, bool]:
        return await self._toggle(caller, "tweet_id", tweet_id)

    @log_function_call(logger)
    async def _toggle(self, caller: User, target_field: str, target_id: str) -> Dict[str, bool]:
        model = LIKE_TARGETS[target_field]
        target_id = InputValidator.validate_object_id(target_id, f"{model.__name__.lower()} ID")
        if await self.store.get(model, target_id) is None:
            raise NotFoundError(model.__name__, target_id)

        # caller is expired once a failed insert rolls back
        caller_id = caller.id
        criteria = {"liked_by_id": caller_id, target_field: target_id}
        if await self.store.delete_where(Like, **criteria):
            logger.debug(f"Removed like on {model.__name__} {target_id}")
            return {"isLiked": False}

        try:
            await self.store.add(Like(**criteria))
        except ConflictError:
            logger.info(
                f"Concurrent like on {model.__name__} {target_id} already recorded",
                extra={"caller_id": caller_id},
            )
        return {"isLiked": True}

    async def liked_videos(
        self,
        caller: User,
        page: Any = None,
        page_size: Any = None,
        sort_by: Optional[str] = None,
        sort_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        options = query_builder.ListOptions.parse("likedVideos", page, page_size, sort_by, sort_type)
        return await paginate(
            self.store,
            query_builder.liked_videos(caller.id, options),
            options.page,
            options.page_size,
            labels_for("likedVideos"),
        )
