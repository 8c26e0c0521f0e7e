"""
Video Endpoints.

Endpoints Provided:
- `GET /videos`: Paginated search (`query`, `userId`, `isPublished`,
  `isPublic` plus the common list options).
- `GET /videos/{video_id}`: Single video. Authenticated viewers get the view
  recorded in their watch history.
- `POST /videos/create`: Multipart publish with `videoFile` and `thumbnail`.
- `PATCH /videos/{video_id}`, `DELETE /videos/{video_id}`,
  `PATCH /videos/toggle-publish/{video_id}`: Owner-only mutations.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from api.dependencies import (
    ListQuery,
    get_current_user,
    get_optional_user,
    get_video_service,
    read_upload,
)
from core.logging_config import get_logger, log_function_call
from core.models import User
from core.response import created, ok
from services.video_service import VideoService

logger = get_logger(__name__)
router = APIRouter(prefix="/videos", tags=["Videos"])


@router.get("")
async def get_all_videos(
    query: Optional[str] = None,
    user_id: Optional[str] = Query(None, alias="userId"),
    is_published: Optional[str] = Query(None, alias="isPublished"),
    is_public: Optional[str] = Query(None, alias="isPublic"),
    options: ListQuery = Depends(),
    caller: Optional[User] = Depends(get_optional_user),
    videos: VideoService = Depends(get_video_service),
):
    result = await videos.list_videos(
        caller=caller,
        query=query,
        user_id=user_id,
        is_published=is_published,
        is_public=is_public,
        page=options.page,
        page_size=options.page_size,
        sort_by=options.sort_by,
        sort_type=options.sort_type,
    )
    return ok(result, "Videos fetched successfully.")


@router.post("/create")
@log_function_call(logger)
async def publish_video(
    title: str = Form(...),
    description: str = Form(...),
    is_public: Optional[str] = Form(None, alias="isPublic"),
    video_file: Optional[UploadFile] = File(None, alias="videoFile"),
    thumbnail: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    videos: VideoService = Depends(get_video_service),
):
    video = await videos.publish(
        current_user,
        title,
        description,
        await read_upload(video_file),
        await read_upload(thumbnail),
        is_public=is_public,
    )
    return created(video, "Video uploaded successfully.")


@router.patch("/toggle-publish/{video_id}")
async def toggle_publish_status(
    video_id: str,
    current_user: User = Depends(get_current_user),
    videos: VideoService = Depends(get_video_service),
):
    video = await videos.toggle_publish(current_user, video_id)
    state = "published" if video["isPublished"] else "unpublished"
    return ok(video, f"Video is now {state}.")


@router.get("/{video_id}")
async def get_video_by_id(
    video_id: str,
    viewer: Optional[User] = Depends(get_optional_user),
    videos: VideoService = Depends(get_video_service),
):
    video = await videos.get_video(video_id, viewer)
    return ok(video, "Video fetched successfully.")


@router.patch("/{video_id}")
async def update_video(
    video_id: str,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    thumbnail: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    videos: VideoService = Depends(get_video_service),
):
    video = await videos.update(
        current_user, video_id, title, description, await read_upload(thumbnail)
    )
    return ok(video, "Video updated successfully.")


@router.delete("/{video_id}")
async def delete_video(
    video_id: str,
    current_user: User = Depends(get_current_user),
    videos: VideoService = Depends(get_video_service),
):
    await videos.delete(current_user, video_id)
    return ok({}, "Video deleted successfully.")
