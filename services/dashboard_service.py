"""
Dashboard Service.

Channel statistics and the channel's own video list. The owner sees every
video and may filter by publish state; anyone else sees published public
videos only.
"""

from typing import Any, Dict, Optional

from core import query_builder
from core.exceptions import AuthorizationError, NotFoundError
from core.logging_config import get_logger, log_function_call
from core.models import User
from core.pagination import labels_for, paginate
from core.pipeline import execute
from core.store import EntityStore
from core.validation import InputValidator

logger = get_logger(__name__)

EMPTY_STATS = {"totalSubscribers": 0, "totalVideos": 0, "totalViews": 0, "totalLikes": 0}


class DashboardService:
    def __init__(self, store: EntityStore):
        self.store = store

    async def _require_channel(self, channel_id: str) -> str:
        channel_id = InputValidator.validate_object_id(channel_id, "channel ID")
        if await self.store.get(User, channel_id) is None:
            raise NotFoundError("Channel", channel_id)
        return channel_id

    @log_function_call(logger)
    async def channel_stats(self, channel_id: str) -> Dict[str, int]:
        channel_id = await self._require_channel(channel_id)
        documents = await execute(self.store, query_builder.channel_stats(channel_id))
        stats = {**EMPTY_STATS, **(documents[0] if documents else {})}
        return {key: stats[key] or 0 for key in EMPTY_STATS}

    async def channel_videos(
        self,
        caller: User,
        channel_id: str,
        is_published: Any = None,
        page: Any = None,
        page_size: Any = None,
        sort_by: Optional[str] = None,
        sort_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        channel_id = await self._require_channel(channel_id)
        published = InputValidator.parse_bool(is_published, "isPublished")
        options = query_builder.ListOptions.parse("videos", page, page_size, sort_by, sort_type)

        if caller.id == channel_id:
            pipeline = query_builder.videos(
                options, owner_id=channel_id, is_published=published, is_public=None
            )
        else:
            if published is False:
                raise AuthorizationError("Only the channel owner can list unpublished videos.")
            pipeline = query_builder.videos(options, owner_id=channel_id)

        return await paginate(self.store, pipeline, options.page, options.page_size, labels_for("videos"))
