"""
User, Authentication and Channel Endpoints.

Endpoints Provided:
- `/users/register`: Multipart registration with a required avatar image and
  an optional cover image.
- `/users/login`, `/users/refresh-token`, `/users/logout`: Token lifecycle.
  Tokens are returned in the body and also set as http-only cookies.
- `/users/current-user`, `/users/update-account`, `/users/change-password`,
  `/users/avatar`, `/users/cover-image`: The caller's own account.
- `/users/c/{username}`: Public channel profile with subscriber counts.
- `/users/history`: Watch history read, single-entry removal and clear.
"""

import os
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, EmailStr
from pydantic.alias_generators import to_camel

from api.dependencies import get_current_user, get_optional_user, get_user_service, read_upload
from core.exceptions import ValidationError
from core.logging_config import get_logger, log_function_call
from core.models import User
from core.response import created, ok
from core.store import document_of
from services.user_service import UserService

logger = get_logger(__name__)
router = APIRouter(prefix="/users", tags=["Users"])


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoginRequest(CamelModel):
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    password: str


class RefreshTokenRequest(CamelModel):
    refresh_token: Optional[str] = None


class ChangePasswordRequest(CamelModel):
    old_password: str
    new_password: str


class UpdateAccountRequest(CamelModel):
    full_name: Optional[str] = None
    email: Optional[EmailStr] = None


def _cookie_options() -> Dict[str, Any]:
    return {
        "httponly": True,
        "secure": os.getenv("ENVIRONMENT", "development") == "production",
        "samesite": "lax",
    }


def _with_token_cookies(response: JSONResponse, tokens: Dict[str, Any]) -> JSONResponse:
    options = _cookie_options()
    response.set_cookie("accessToken", tokens["accessToken"], **options)
    response.set_cookie("refreshToken", tokens["refreshToken"], **options)
    return response


@router.post("/register")
@log_function_call(logger)
async def register_user(
    username: str = Form(...),
    email: str = Form(...),
    full_name: str = Form(..., alias="fullName"),
    password: str = Form(...),
    avatar: Optional[UploadFile] = File(None),
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    users: UserService = Depends(get_user_service),
):
    """Register a new user"""
    user = await users.register(
        username,
        email,
        full_name,
        password,
        await read_upload(avatar),
        await read_upload(cover_image),
    )
    logger.info(f"User registered successfully: {user['username']}")
    return created(user, "User registered successfully.")


@router.post("/login")
@log_function_call(logger)
async def login_user(request: LoginRequest, users: UserService = Depends(get_user_service)):
    """Authenticate user and return tokens"""
    identifier = request.username or request.email
    if not identifier:
        raise ValidationError("Username or email is required.", field="username")

    result = await users.login(identifier, request.password)
    return _with_token_cookies(ok(result, "User logged in successfully."), result)


@router.post("/refresh-token")
@log_function_call(logger)
async def refresh_access_token(
    http_request: Request,
    request: Optional[RefreshTokenRequest] = None,
    users: UserService = Depends(get_user_service),
):
    """Exchange a refresh token (body or cookie) for a new token pair"""
    presented = (request.refresh_token if request else None) or http_request.cookies.get("refreshToken")
    tokens = await users.auth.refresh_tokens(presented)
    return _with_token_cookies(ok(tokens, "Access token refreshed."), tokens)


@router.post("/logout")
async def logout_user(
    current_user: User = Depends(get_current_user), users: UserService = Depends(get_user_service)
):
    await users.auth.logout(current_user)
    response = ok({}, "User logged out.")
    response.delete_cookie("accessToken")
    response.delete_cookie("refreshToken")
    return response


@router.get("/current-user")
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    return ok(document_of(current_user), "Current user fetched successfully.")


@router.patch("/update-account")
async def update_account(
    request: UpdateAccountRequest,
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    user = await users.update_account(current_user, request.full_name, request.email)
    return ok(user, "Account details updated successfully.")


@router.post("/change-password")
async def change_password(
    request: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    await users.change_password(current_user, request.old_password, request.new_password)
    return ok({}, "Password changed successfully.")


@router.patch("/avatar")
async def update_avatar(
    avatar: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    user = await users.update_avatar(current_user, await read_upload(avatar))
    return ok(user, "Avatar updated successfully.")


@router.patch("/cover-image")
async def update_cover_image(
    cover_image: UploadFile = File(..., alias="coverImage"),
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    user = await users.update_cover_image(current_user, await read_upload(cover_image))
    return ok(user, "Cover image updated successfully.")


@router.get("/c/{username}")
async def get_channel_profile(
    username: str,
    viewer: Optional[User] = Depends(get_optional_user),
    users: UserService = Depends(get_user_service),
):
    channel = await users.channel_profile(username, viewer)
    return ok(channel, "Channel fetched successfully.")


@router.get("/history")
async def get_watch_history(
    current_user: User = Depends(get_current_user), users: UserService = Depends(get_user_service)
):
    history = await users.watch_history(current_user)
    return ok(history, "Watch history fetched successfully.")


@router.delete("/history/{video_id}")
async def remove_from_watch_history(
    video_id: str,
    current_user: User = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    history = await users.remove_from_history(current_user, video_id)
    return ok(history, "Video removed from watch history.")


@router.delete("/history")
async def clear_watch_history(
    current_user: User = Depends(get_current_user), users: UserService = Depends(get_user_service)
):
    await users.clear_history(current_user)
    return ok([], "Watch history cleared.")
