"""
Request-scoped dependencies: the entity store, media store, services and the
authenticated caller.
"""

from typing import Optional

from fastapi import Depends, Query, Request, UploadFile
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import AuthenticationService
from core.database import get_session
from core.exceptions import AuthenticationError
from core.models import User
from core.store import EntityStore
from providers.media_provider import MediaStore, MediaUpload, get_media_store
from services.comment_service import CommentService
from services.dashboard_service import DashboardService
from services.like_service import LikeService
from services.playlist_service import PlaylistService
from services.subscription_service import SubscriptionService
from services.tweet_service import TweetService
from services.user_service import UserService
from services.video_service import VideoService

bearer_scheme = HTTPBearer(auto_error=False)


def get_store(session: AsyncSession = Depends(get_session)) -> EntityStore:
    return EntityStore(session)


def get_media() -> MediaStore:
    return get_media_store()


def get_user_service(
    store: EntityStore = Depends(get_store), media: MediaStore = Depends(get_media)
) -> UserService:
    return UserService(store, media)


def get_video_service(
    store: EntityStore = Depends(get_store), media: MediaStore = Depends(get_media)
) -> VideoService:
    return VideoService(store, media)


def get_comment_service(store: EntityStore = Depends(get_store)) -> CommentService:
    return CommentService(store)


def get_like_service(store: EntityStore = Depends(get_store)) -> LikeService:
    return LikeService(store)


def get_subscription_service(
    store: EntityStore = Depends(get_store), users: UserService = Depends(get_user_service)
) -> SubscriptionService:
    return SubscriptionService(store, users)


def get_playlist_service(store: EntityStore = Depends(get_store)) -> PlaylistService:
    return PlaylistService(store)


def get_tweet_service(
    store: EntityStore = Depends(get_store), users: UserService = Depends(get_user_service)
) -> TweetService:
    return TweetService(store, users)


def get_dashboard_service(store: EntityStore = Depends(get_store)) -> DashboardService:
    return DashboardService(store)


def _presented_token(
    request: Request, credentials: Optional[HTTPAuthorizationCredentials]
) -> Optional[str]:
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get("accessToken")


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    store: EntityStore = Depends(get_store),
) -> User:
    """The authenticated caller, from a Bearer header or the accessToken cookie"""
    token = _presented_token(request, credentials)
    if not token:
        raise AuthenticationError("Unauthorized request")
    user = await AuthenticationService(store).verify_access_token(token)
    request.state.user_id = user.id
    return user


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    store: EntityStore = Depends(get_store),
) -> Optional[User]:
    """Like get_current_user, but anonymous callers get None instead of a 401"""
    if not _presented_token(request, credentials):
        return None
    return await get_current_user(request, credentials, store)


async def read_upload(upload: Optional[UploadFile]) -> Optional[MediaUpload]:
    if upload is None:
        return None
    data = await upload.read()
    return MediaUpload(data=data, content_type=upload.content_type, filename=upload.filename)


class ListQuery:
    """Common list options: page, pageSize (or limit), sortBy, sortType"""

    def __init__(
        self,
        page: Optional[str] = None,
        page_size: Optional[str] = Query(None, alias="pageSize"),
        limit: Optional[str] = None,
        sort_by: Optional[str] = Query(None, alias="sortBy"),
        sort_type: Optional[str] = Query(None, alias="sortType"),
    ):
        self.page = page
        self.page_size = page_size if page_size is not None else limit
        self.sort_by = sort_by
        self.sort_type = sort_type
