"""
Playlist Endpoints.

Reads are public; creating and changing playlists requires authentication and
only the owner may change or delete one.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.dependencies import ListQuery, get_current_user, get_playlist_service
from core.logging_config import get_logger
from core.models import User
from core.response import created, ok
from services.playlist_service import PlaylistService

logger = get_logger(__name__)
router = APIRouter(prefix="/playlist", tags=["Playlists"])


class CreatePlaylistRequest(BaseModel):
    name: str
    description: str


class UpdatePlaylistRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


@router.post("")
async def create_playlist(
    request: CreatePlaylistRequest,
    current_user: User = Depends(get_current_user),
    playlists: PlaylistService = Depends(get_playlist_service),
):
    playlist = await playlists.create(current_user, request.name, request.description)
    return created(playlist, "Playlist created successfully.")


@router.get("/user/{user_id}")
async def get_user_playlists(
    user_id: str,
    options: ListQuery = Depends(),
    playlists: PlaylistService = Depends(get_playlist_service),
):
    result = await playlists.user_playlists(
        user_id, options.page, options.page_size, options.sort_by, options.sort_type
    )
    return ok(result, "Playlists fetched successfully.")


@router.patch("/add/{video_id}/{playlist_id}")
async def add_video_to_playlist(
    video_id: str,
    playlist_id: str,
    current_user: User = Depends(get_current_user),
    playlists: PlaylistService = Depends(get_playlist_service),
):
    playlist = await playlists.add_video(current_user, playlist_id, video_id)
    return ok(playlist, "Video added to playlist.")


@router.patch("/remove/{video_id}/{playlist_id}")
async def remove_video_from_playlist(
    video_id: str,
    playlist_id: str,
    current_user: User = Depends(get_current_user),
    playlists: PlaylistService = Depends(get_playlist_service),
):
    playlist = await playlists.remove_video(current_user, playlist_id, video_id)
    return ok(playlist, "Video removed from playlist.")


@router.get("/{playlist_id}")
async def get_playlist_by_id(
    playlist_id: str, playlists: PlaylistService = Depends(get_playlist_service)
):
    playlist = await playlists.get_playlist(playlist_id)
    return ok(playlist, "Playlist fetched successfully.")


@router.patch("/{playlist_id}")
async def update_playlist(
    playlist_id: str,
    request: UpdatePlaylistRequest,
    current_user: User = Depends(get_current_user),
    playlists: PlaylistService = Depends(get_playlist_service),
):
    playlist = await playlists.update(current_user, playlist_id, request.name, request.description)
    return ok(playlist, "Playlist updated successfully.")


@router.delete("/{playlist_id}")
async def delete_playlist(
    playlist_id: str,
    current_user: User = Depends(get_current_user),
    playlists: PlaylistService = Depends(get_playlist_service),
):
    await playlists.delete(current_user, playlist_id)
    return ok({}, "Playlist deleted successfully.")
