"""
Like Endpoints.

Toggles return the state after the call: `{"isLiked": true}` when the caller
now likes the target, `false` when the like was removed.
"""

from fastapi import APIRouter, Depends

from api.dependencies import ListQuery, get_current_user, get_like_service
from core.logging_config import get_logger
from core.models import User
from core.response import ok
from services.like_service import LikeService

logger = get_logger(__name__)
router = APIRouter(prefix="/likes", tags=["Likes"])


def _toggle_message(state: dict, target: str) -> str:
    return f"{target} liked." if state["isLiked"] else f"{target} unliked."


@router.post("/toggle/v/{video_id}")
async def toggle_video_like(
    video_id: str,
    current_user: User = Depends(get_current_user),
    likes: LikeService = Depends(get_like_service),
):
    state = await likes.toggle_video_like(current_user, video_id)
    return ok(state, _toggle_message(state, "Video"))


@router.post("/toggle/c/{comment_id}")
async def toggle_comment_like(
    comment_id: str,
    current_user: User = Depends(get_current_user),
    likes: LikeService = Depends(get_like_service),
):
    state = await likes.toggle_comment_like(current_user, comment_id)
    return ok(state, _toggle_message(state, "Comment"))


@router.post("/toggle/t/{tweet_id}")
async def toggle_tweet_like(
    tweet_id: str,
    current_user: User = Depends(get_current_user),
    likes: LikeService = Depends(get_like_service),
):
    state = await likes.toggle_tweet_like(current_user, tweet_id)
    return ok(state, _toggle_message(state, "Tweet"))


@router.get("/videos")
async def get_liked_videos(
    options: ListQuery = Depends(),
    current_user: User = Depends(get_current_user),
    likes: LikeService = Depends(get_like_service),
):
    result = await likes.liked_videos(
        current_user, options.page, options.page_size, options.sort_by, options.sort_type
    )
    return ok(result, "Liked videos fetched successfully.")
