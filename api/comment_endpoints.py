"""
Comment Endpoints.

- `GET /comments/{video_id}`: Paginated comments of a video (public).
- `POST /comments/{video_id}`: Add a comment.
- `PATCH|DELETE /comments/c/{comment_id}`: Owner-only edit and delete.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.dependencies import ListQuery, get_comment_service, get_current_user
from core.logging_config import get_logger
from core.models import User
from core.response import created, ok
from services.comment_service import CommentService

logger = get_logger(__name__)
router = APIRouter(prefix="/comments", tags=["Comments"])


class CommentRequest(BaseModel):
    content: str


@router.get("/{video_id}")
async def get_video_comments(
    video_id: str,
    options: ListQuery = Depends(),
    comments: CommentService = Depends(get_comment_service),
):
    result = await comments.list_comments(
        video_id, options.page, options.page_size, options.sort_by, options.sort_type
    )
    return ok(result, "Comments fetched successfully.")


@router.post("/{video_id}")
async def add_comment(
    video_id: str,
    request: CommentRequest,
    current_user: User = Depends(get_current_user),
    comments: CommentService = Depends(get_comment_service),
):
    comment = await comments.add_comment(current_user, video_id, request.content)
    return created(comment, "Comment added successfully.")


@router.patch("/c/{comment_id}")
async def update_comment(
    comment_id: str,
    request: CommentRequest,
    current_user: User = Depends(get_current_user),
    comments: CommentService = Depends(get_comment_service),
):
    comment = await comments.update_comment(current_user, comment_id, request.content)
    return ok(comment, "Comment updated successfully.")


@router.delete("/c/{comment_id}")
async def delete_comment(
    comment_id: str,
    current_user: User = Depends(get_current_user),
    comments: CommentService = Depends(get_comment_service),
):
    await comments.delete_comment(current_user, comment_id)
    return ok({}, "Comment deleted successfully.")
