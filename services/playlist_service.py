"""
Playlist Service.

Playlists are named, ordered sets of video ids owned by one user. Adding a
video that is already present, or removing one that is absent, leaves the
playlist unchanged.
"""

from typing import Any, Dict, Optional

from core import query_builder
from core.exceptions import NotFoundError, ValidationError
from core.guards import ensure_owner
from core.logging_config import get_logger
from core.models import Playlist, User, Video
from core.pagination import labels_for, paginate
from core.pipeline import execute
from core.store import Document, EntityStore, document_of
from core.validation import InputValidator

logger = get_logger(__name__)


class PlaylistService:
    def __init__(self, store: EntityStore):
        self.store = store

    async def create(self, caller: User, name: str, description: str) -> Document:
        name = InputValidator.require_text(name, "name", max_length=100)
        description = InputValidator.require_text(description, "description", max_length=1000)
        playlist = await self.store.add(Playlist(name=name, description=description, owner_id=caller.id))
        logger.info(f"Playlist {playlist.id} created by {caller.username}")
        return document_of(playlist)

    async def user_playlists(
        self,
        user_id: str,
        page: Any = None,
        page_size: Any = None,
        sort_by: Optional[str] = None,
        sort_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        user_id = InputValidator.validate_object_id(user_id, "user ID")
        if await self.store.get(User, user_id) is None:
            raise NotFoundError("User", user_id)

        options = query_builder.ListOptions.parse("playlists", page, page_size, sort_by, sort_type)
        return await paginate(
            self.store,
            query_builder.user_playlists(user_id, options),
            options.page,
            options.page_size,
            labels_for("playlists"),
        )

    async def get_playlist(self, playlist_id: str) -> Document:
        documents = await execute(self.store, query_builder.playlist_detail(playlist_id))
        if not documents:
            raise NotFoundError("Playlist", playlist_id)
        return documents[0]

    async def update(
        self,
        caller: User,
        playlist_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Document:
        changes: Dict[str, Any] = {}
        name = InputValidator.optional_text(name, "name", max_length=100)
        description = InputValidator.optional_text(description, "description", max_length=1000)
        if name is not None:
            changes["name"] = name
        if description is not None:
            changes["description"] = description
        if not changes:
            raise ValidationError("Please provide a name or description to update.")

        playlist = await ensure_owner(self.store, Playlist, playlist_id, caller.id, "update")
        playlist = await self.store.update(playlist, **changes)
        return document_of(playlist)

    async def delete(self, caller: User, playlist_id: str) -> None:
        playlist = await ensure_owner(self.store, Playlist, playlist_id, caller.id, "delete")
        await self.store.delete(playlist)
        logger.info(f"Playlist {playlist_id} deleted")

    async def add_video(self, caller: User, playlist_id: str, video_id: str) -> Document:
        video_id = InputValidator.validate_object_id(video_id, "video ID")
        playlist = await ensure_owner(self.store, Playlist, playlist_id, caller.id, "update")
        if await self.store.get(Video, video_id) is None:
            raise NotFoundError("Video", video_id)

        videos = list(playlist.videos or [])
        if video_id not in videos:
            playlist = await self.store.update(playlist, videos=videos + [video_id])
        return document_of(playlist)

    async def remove_video(self, caller: User, playlist_id: str, video_id: str) -> Document:
        video_id = InputValidator.validate_object_id(video_id, "video ID")
        playlist = await ensure_owner(self.store, Playlist, playlist_id, caller.id, "update")

        videos = list(playlist.videos or [])
        if video_id in videos:
            playlist = await self.store.update(
                playlist, videos=[entry for entry in videos if entry != video_id]
            )
        return document_of(playlist)
