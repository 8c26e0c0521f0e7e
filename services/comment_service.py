"""
Comment Service.

Comments on videos: the paginated per-video list plus owner-only edits.
"""

from typing import Any, Dict, Optional

from core import query_builder
from core.exceptions import NotFoundError
from core.guards import ensure_owner
from core.logging_config import get_logger
from core.models import Comment, User, Video
from core.pagination import labels_for, paginate
from core.store import Document, EntityStore, document_of
from core.validation import InputValidator

logger = get_logger(__name__)

MAX_COMMENT_LENGTH = 2000


class CommentService:
    def __init__(self, store: EntityStore):
        self.store = store

    async def _require_video(self, video_id: str) -> str:
        video_id = InputValidator.validate_object_id(video_id, "video ID")
        if await self.store.get(Video, video_id) is None:
            raise NotFoundError("Video", video_id)
        return video_id

    async def list_comments(
        self,
        video_id: str,
        page: Any = None,
        page_size: Any = None,
        sort_by: Optional[str] = None,
        sort_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        video_id = await self._require_video(video_id)
        options = query_builder.ListOptions.parse("comments", page, page_size, sort_by, sort_type)
        return await paginate(
            self.store,
            query_builder.video_comments(video_id, options),
            options.page,
            options.page_size,
            labels_for("comments"),
        )

    async def add_comment(self, caller: User, video_id: str, content: str) -> Document:
        content = InputValidator.require_text(content, "content", max_length=MAX_COMMENT_LENGTH)
        video_id = await self._require_video(video_id)

        comment = await self.store.add(Comment(content=content, video_id=video_id, owner_id=caller.id))
        logger.info(f"Comment {comment.id} added to video {video_id}")
        return document_of(comment)

    async def update_comment(self, caller: User, comment_id: str, content: str) -> Document:
        content = InputValidator.require_text(content, "content", max_length=MAX_COMMENT_LENGTH)
        comment = await ensure_owner(self.store, Comment, comment_id, caller.id, "update")
        comment = await self.store.update(comment, content=content)
        return document_of(comment)

    async def delete_comment(self, caller: User, comment_id: str) -> None:
        comment = await ensure_owner(self.store, Comment, comment_id, caller.id, "delete")
        await self.store.delete(comment)
        logger.info(f"Comment {comment_id} deleted")
