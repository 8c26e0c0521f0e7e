"""
User and Channel Service.

Account management on top of `AuthenticationService`, channel profiles and
watch history.

Key Components:
- `UserService.register`: Stores the avatar (and optional cover image) first,
  then creates the account; the stored media is removed again if the account
  write fails.
- Profile updates: account details, avatar and cover image. Replaced media is
  removed only after the new reference has been written.
- Watch history: a most-recent-first list of video ids, at most
  `WATCH_HISTORY_LIMIT` long, without duplicates.
"""

from typing import Any, Dict, List, Optional

from core import query_builder
from core.auth import AuthenticationService, PasswordManager
from core.exceptions import AuthenticationError, NotFoundError, ValidationError
from core.logging_config import get_logger, log_function_call
from core.models import User
from core.pipeline import execute
from core.store import Document, EntityStore, document_of
from core.validation import InputValidator
from providers.media_provider import MediaStore, MediaUpload, StoredMedia

logger = get_logger(__name__)

WATCH_HISTORY_LIMIT = 100


def pushed_history(history: List[str], video_id: str, limit: int = WATCH_HISTORY_LIMIT) -> List[str]:
    """Move (or insert) video_id to the front and trim to the limit"""
    return ([video_id] + [entry for entry in history if entry != video_id])[:limit]


class UserService:
    def __init__(self, store: EntityStore, media: MediaStore):
        self.store = store
        self.media = media
        self.auth = AuthenticationService(store)

    @log_function_call(logger)
    async def register(
        self,
        username: str,
        email: str,
        full_name: str,
        password: str,
        avatar: Optional[MediaUpload],
        cover_image: Optional[MediaUpload] = None,
    ) -> Document:
        username = InputValidator.validate_username(username)
        email = InputValidator.validate_email(email)
        PasswordManager.validate_password_strength(password)
        if avatar is None:
            raise ValidationError("Avatar image is required.", field="avatar")

        await self.auth.ensure_available(username, email)

        stored_avatar = await self.media.store_upload(avatar, "image", "avatar")
        stored_cover: Optional[StoredMedia] = None
        try:
            if cover_image is not None:
                stored_cover = await self.media.store_upload(cover_image, "image", "coverImage")
            user = await self.auth.register_user(
                username,
                email,
                full_name,
                password,
                avatar=stored_avatar.reference(),
                cover_image=stored_cover.reference() if stored_cover else None,
            )
        except Exception:
            await self.media.remove_quietly(stored_avatar.reference(), "image")
            if stored_cover is not None:
                await self.media.remove_quietly(stored_cover.reference(), "image")
            raise

        return document_of(user)

    async def login(self, identifier: str, password: str) -> Dict[str, Any]:
        user = await self.auth.authenticate_user(identifier, password)
        tokens = await self.auth.create_tokens(user)
        return {"user": document_of(user), **tokens}

    async def change_password(self, user: User, old_password: str, new_password: str) -> None:
        if not PasswordManager.verify_password(old_password or "", user.password_hash):
            raise AuthenticationError("Invalid old password")
        await self.store.update(user, password_hash=PasswordManager.hash_password(new_password))
        logger.info(f"Password changed for user {user.username}")

    async def update_account(
        self, user: User, full_name: Optional[str] = None, email: Optional[str] = None
    ) -> Document:
        changes: Dict[str, Any] = {}
        full_name = InputValidator.optional_text(full_name, "fullName", max_length=100)
        if full_name is not None:
            changes["full_name"] = full_name
        if email is not None and str(email).strip():
            changes["email"] = InputValidator.validate_email(email)
        if not changes:
            raise ValidationError("Provide fullName or email to update.")

        # ConflictError from the unique email constraint propagates as 409
        user = await self.store.update(user, **changes)
        return document_of(user)

    async def update_avatar(self, user: User, upload: MediaUpload) -> Document:
        return await self._replace_image(user, "avatar", upload, "avatar")

    async def update_cover_image(self, user: User, upload: MediaUpload) -> Document:
        return await self._replace_image(user, "cover_image", upload, "coverImage")

    async def _replace_image(self, user: User, attribute: str, upload: MediaUpload, field: str) -> Document:
        previous = getattr(user, attribute)
        stored = await self.media.store_upload(upload, "image", field)
        try:
            user = await self.store.update(user, **{attribute: stored.reference()})
        except Exception:
            await self.media.remove_quietly(stored.reference(), "image")
            raise
        await self.media.remove_quietly(previous, "image")
        return document_of(user)

    async def channel_profile(self, username: str, viewer: Optional[User] = None) -> Document:
        documents = await execute(
            self.store, query_builder.channel_profile(username, viewer.id if viewer else None)
        )
        if not documents:
            raise NotFoundError("Channel", username)
        return documents[0]

    async def require_user(self, username: str) -> User:
        """Resolve a channel username to its user row"""
        username = InputValidator.validate_username(username)
        user = await self.store.get_by(User, username=username)
        if user is None:
            raise NotFoundError("Channel", username)
        return user

    # Watch history

    async def watch_history(self, user: User) -> List[Document]:
        documents = await execute(self.store, query_builder.watch_history(user.id))
        return documents[0]["history"] if documents else []

    async def record_view(self, user: User, video_id: str) -> None:
        history = pushed_history(list(user.watch_history or []), video_id)
        await self.store.update(user, watch_history=history)

    async def remove_from_history(self, user: User, video_id: str) -> List[Document]:
        video_id = InputValidator.validate_object_id(video_id, "video ID")
        history = [entry for entry in user.watch_history or [] if entry != video_id]
        await self.store.update(user, watch_history=history)
        return await self.watch_history(user)

    async def clear_history(self, user: User) -> None:
        await self.store.update(user, watch_history=[])
        logger.info(f"Cleared watch history for user {user.username}")
