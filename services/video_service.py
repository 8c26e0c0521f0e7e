"""
Video Service.

Publishing, reading, updating and deleting videos, and the filtered video
list.

Key Components:
- `VideoService.list_videos`: Paginated search over title and description,
  optionally limited to one channel. Lists show published public videos
  unless the caller lists their own channel.
- `VideoService.get_video`: Single-video read. Counts a view, records it in
  the viewer's watch history and adds like/comment counts.
- `VideoService.publish` / `update` / `delete` / `toggle_publish`: Owner-only
  mutations with media-store compensation.
"""

from typing import Any, Dict, Optional

from core import query_builder
from core.exceptions import AuthorizationError, NotFoundError, ValidationError
from core.guards import ensure_owner
from core.logging_config import get_logger, log_function_call
from core.models import User, Video
from core.pagination import labels_for, paginate
from core.pipeline import execute
from core.store import Document, EntityStore, document_of
from core.validation import InputValidator
from providers.media_provider import MediaStore, MediaUpload, StoredMedia
from services.user_service import UserService

logger = get_logger(__name__)


class VideoService:
    def __init__(self, store: EntityStore, media: MediaStore):
        self.store = store
        self.media = media

    @log_function_call(logger)
    async def list_videos(
        self,
        caller: Optional[User] = None,
        query: Optional[str] = None,
        user_id: Optional[str] = None,
        is_published: Any = None,
        is_public: Any = None,
        page: Any = None,
        page_size: Any = None,
        sort_by: Optional[str] = None,
        sort_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        published = InputValidator.parse_bool(is_published, "isPublished")
        public = InputValidator.parse_bool(is_public, "isPublic")
        if user_id is not None:
            user_id = InputValidator.validate_object_id(user_id, "user ID")

        own_channel = caller is not None and user_id == caller.id
        if (published is False or public is False) and not own_channel:
            raise AuthorizationError("Only the channel owner can list unpublished or private videos.")

        options = query_builder.ListOptions.parse("videos", page, page_size, sort_by, sort_type)
        pipeline = query_builder.videos(
            options,
            query=query,
            owner_id=user_id,
            is_published=True if published is None else published,
            is_public=True if public is None else public,
        )
        return await paginate(self.store, pipeline, options.page, options.page_size, labels_for("videos"))

    async def get_video(self, video_id: str, viewer: Optional[User] = None) -> Document:
        video_id = InputValidator.validate_object_id(video_id, "video ID")
        documents = await execute(self.store, query_builder.video_detail(video_id))
        if not documents:
            raise NotFoundError("Video", video_id)
        video = documents[0]

        is_owner = viewer is not None and viewer.id == video["ownerId"]
        if not (video["isPublished"] and video["isPublic"]) and not is_owner:
            raise NotFoundError("Video", video_id)

        await self.store.increment(Video, video_id, "views")
        video["views"] += 1
        if viewer is not None:
            await UserService(self.store, self.media).record_view(viewer, video_id)

        video["likesCount"] = await self.store.count("likes", videoId=video_id)
        video["commentsCount"] = await self.store.count("comments", videoId=video_id)
        video["isLiked"] = viewer is not None and await self.store.exists(
            "likes", videoId=video_id, likedById=viewer.id
        )
        return video

    @log_function_call(logger)
    async def publish(
        self,
        owner: User,
        title: str,
        description: str,
        video_file: Optional[MediaUpload],
        thumbnail: Optional[MediaUpload],
        is_public: Any = None,
    ) -> Document:
        title = InputValidator.require_text(title, "title", max_length=200)
        description = InputValidator.require_text(description, "description", max_length=5000)
        public = InputValidator.parse_bool(is_public, "isPublic")
        if video_file is None:
            raise ValidationError("Video file is required.", field="videoFile")
        if thumbnail is None:
            raise ValidationError("Thumbnail is required.", field="thumbnail")
        InputValidator.validate_upload(video_file.content_type, "video", "videoFile")
        InputValidator.validate_upload(thumbnail.content_type, "image", "thumbnail")

        owner_id, owner_name = owner.id, owner.username
        stored_video = await self.media.store_upload(video_file, "video", "videoFile")
        stored_thumbnail: Optional[StoredMedia] = None
        try:
            stored_thumbnail = await self.media.store_upload(thumbnail, "image", "thumbnail")
            video = await self.store.add(
                Video(
                    title=title,
                    description=description,
                    video_file=stored_video.reference(),
                    thumbnail=stored_thumbnail.reference(),
                    duration=stored_video.duration,
                    is_public=True if public is None else public,
                    owner_id=owner_id,
                )
            )
        except Exception:
            logger.warning(f"Publishing failed for {owner_name}, removing stored media")
            await self.media.remove_quietly(stored_video.reference(), "video")
            if stored_thumbnail is not None:
                await self.media.remove_quietly(stored_thumbnail.reference(), "image")
            raise

        logger.info(f"Published video {video.id}", extra={"video_id": video.id, "owner_id": owner_id})
        return document_of(video)

    async def update(
        self,
        caller: User,
        video_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        thumbnail: Optional[MediaUpload] = None,
    ) -> Document:
        video = await ensure_owner(self.store, Video, video_id, caller.id, "update")

        changes: Dict[str, Any] = {}
        title = InputValidator.optional_text(title, "title", max_length=200)
        description = InputValidator.optional_text(description, "description", max_length=5000)
        if title is not None:
            changes["title"] = title
        if description is not None:
            changes["description"] = description
        if not changes and thumbnail is None:
            raise ValidationError("Provide a title, description or thumbnail to update.")

        previous_thumbnail = video.thumbnail
        stored: Optional[StoredMedia] = None
        if thumbnail is not None:
            stored = await self.media.store_upload(thumbnail, "image", "thumbnail")
            changes["thumbnail"] = stored.reference()

        try:
            video = await self.store.update(video, **changes)
        except Exception:
            if stored is not None:
                await self.media.remove_quietly(stored.reference(), "image")
            raise

        if stored is not None:
            await self.media.remove_quietly(previous_thumbnail, "image")
        return document_of(video)

    @log_function_call(logger)
    async def delete(self, caller: User, video_id: str) -> None:
        video = await ensure_owner(self.store, Video, video_id, caller.id, "delete")
        video_file, thumbnail = video.video_file, video.thumbnail

        await self.store.delete(video)
        await self.media.remove_quietly(video_file, "video")
        await self.media.remove_quietly(thumbnail, "image")
        logger.info(f"Deleted video {video_id}", extra={"video_id": video_id})

    async def toggle_publish(self, caller: User, video_id: str) -> Document:
        video = await ensure_owner(self.store, Video, video_id, caller.id, "update")
        video = await self.store.update(video, is_published=not video.is_published)
        return document_of(video)
