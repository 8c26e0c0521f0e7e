"""
Core Authentication System.

Issues and verifies the credentials callers present to the VideoHub API and
manages the account lifecycle that depends on them.

Key Components:
- JWTManager: Creates and verifies HS256 JSON Web Tokens. Access tokens are
  short lived; refresh tokens are long lived and single use. Both carry the
  user id in `sub`.
- PasswordManager: bcrypt hashing and verification plus the password policy.
- AuthenticationService: Registration, login, refresh-token rotation, logout
  and access-token resolution, backed by the entity store.

Architectural Design:
- A user holds at most one refresh token. Rotation swaps it with a
  compare-and-set update, so when two refresh requests race with the same
  token only one of them receives new credentials.
- Token lifetimes and the signing key come from the environment
  (`JWT_SECRET_KEY`, `ACCESS_TOKEN_EXPIRE_MINUTES`, `REFRESH_TOKEN_EXPIRE_DAYS`).
"""

import os
import jwt
import secrets
from datetime import timedelta
from typing import Any, Dict, Optional
from enum import Enum
import bcrypt

from core.logging_config import get_logger
from core.exceptions import AuthenticationError, ConflictError, ValidationError
from core.models import User, utcnow
from core.store import EntityStore
from core.validation import InputValidator

logger = get_logger(__name__)


class TokenType(Enum):
    """Token types"""

    ACCESS = "access"
    REFRESH = "refresh"


class JWTManager:
    """JWT token management"""

    def __init__(self, secret_key: str = None, algorithm: str = "HS256"):
        self.secret_key = secret_key or os.getenv("JWT_SECRET_KEY") or self._generate_secret_key()
        self.algorithm = algorithm
        self.access_token_expire = timedelta(
            minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
        )
        self.refresh_token_expire = timedelta(
            days=int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))
        )

    def _generate_secret_key(self) -> str:
        """Generate a secure secret key"""
        key = secrets.token_urlsafe(32)
        logger.warning(
            "Generated new JWT secret key. This should be set via JWT_SECRET_KEY environment variable."
        )
        return key

    def _encode(self, claims: Dict[str, Any], token_type: TokenType, expires_delta: timedelta) -> str:
        now = utcnow()
        payload = {
            **claims,
            "type": token_type.value,
            "exp": now + expires_delta,
            "iat": now,
            "jti": secrets.token_urlsafe(16),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def create_access_token(self, user: User, expires_delta: timedelta = None) -> str:
        """Create JWT access token"""
        token = self._encode(
            {"sub": user.id, "username": user.username, "email": user.email},
            TokenType.ACCESS,
            expires_delta or self.access_token_expire,
        )
        logger.debug(f"Created access token for user {user.username}")
        return token

    def create_refresh_token(self, user: User, expires_delta: timedelta = None) -> str:
        """Create JWT refresh token"""
        token = self._encode(
            {"sub": user.id},
            TokenType.REFRESH,
            expires_delta or self.refresh_token_expire,
        )
        logger.debug(f"Created refresh token for user {user.username}")
        return token

    def verify_token(
        self, token: str, token_type: TokenType = TokenType.ACCESS
    ) -> Dict[str, Any]:
        """Verify and decode JWT token"""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise AuthenticationError(f"Invalid token: {str(e)}")

        if payload.get("type") != token_type.value:
            raise AuthenticationError(f"Invalid token type. Expected {token_type.value}")

        if not payload.get("sub"):
            raise AuthenticationError("Invalid token: missing subject")

        return payload


class PasswordManager:
    """Password hashing and verification"""

    SPECIAL_CHARACTERS = "!@#$%^&*()_+-=[]{}|;:,.<>?"

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash password using bcrypt"""
        PasswordManager.validate_password_strength(password)

        salt = bcrypt.gensalt()
        hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
        return hashed.decode("utf-8")

    @staticmethod
    def verify_password(password: str, hashed: str) -> bool:
        """Verify password against hash"""
        try:
            return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError as e:
            logger.error(f"Password verification error: {e}")
            return False

    @staticmethod
    def validate_password_strength(password: str) -> bool:
        """Validate password meets security requirements"""
        if not isinstance(password, str) or len(password) < 8:
            raise ValidationError(
                "Password must be at least 8 characters long", field="password", value="***"
            )

        # bcrypt only looks at the first 72 bytes
        if len(password.encode("utf-8")) > 72:
            raise ValidationError(
                "Password must be no more than 72 bytes long", field="password", value="***"
            )

        has_upper = any(c.isupper() for c in password)
        has_lower = any(c.islower() for c in password)
        has_digit = any(c.isdigit() for c in password)
        has_special = any(c in PasswordManager.SPECIAL_CHARACTERS for c in password)

        if not (has_upper and has_lower and has_digit and has_special):
            raise ValidationError(
                "Password must contain at least one uppercase letter, lowercase letter, digit, and special character",
                field="password",
                value="***",
            )

        return True


class AuthenticationService:
    """Account registration, login and token lifecycle"""

    def __init__(self, store: EntityStore, jwt_manager: Optional[JWTManager] = None):
        self.store = store
        self.jwt_manager = jwt_manager or get_jwt_manager()

    async def register_user(
        self,
        username: str,
        email: str,
        full_name: str,
        password: str,
        avatar: Optional[Dict[str, Any]] = None,
        cover_image: Optional[Dict[str, Any]] = None,
    ) -> User:
        """Register new user"""
        username = InputValidator.validate_username(username)
        email = InputValidator.validate_email(email)
        full_name = InputValidator.require_text(full_name, "fullName", max_length=100)

        await self.ensure_available(username, email)

        user = User(
            username=username,
            email=email,
            full_name=full_name,
            password_hash=PasswordManager.hash_password(password),
            avatar=avatar,
            cover_image=cover_image,
        )
        user = await self.store.add(user)
        logger.info(f"Registered new user: {username}", extra={"user_id": user.id})
        return user

    async def ensure_available(self, username: str, email: str) -> None:
        """Raise ConflictError if the username or email is taken"""
        taken = await self.store.get_by(User, username=username) or await self.store.get_by(
            User, email=email
        )
        if taken is not None:
            raise ConflictError("User with this email or username already exists.")

    async def authenticate_user(self, identifier: str, password: str) -> User:
        """Authenticate user with username or email plus password"""
        identifier = InputValidator.require_text(identifier, "username", max_length=254).lower()

        user = await self.store.get_by(User, username=identifier)
        if user is None:
            user = await self.store.get_by(User, email=identifier)

        if user is None or not PasswordManager.verify_password(password or "", user.password_hash):
            logger.warning(f"Authentication failed for {identifier}")
            raise AuthenticationError("Invalid user credentials")

        logger.info(f"User {user.username} authenticated successfully")
        return user

    async def create_tokens(self, user: User) -> Dict[str, Any]:
        """Create access and refresh tokens and store the refresh token on the user"""
        access_token = self.jwt_manager.create_access_token(user)
        refresh_token = self.jwt_manager.create_refresh_token(user)
        await self.store.update(user, refresh_token=refresh_token)
        return self._token_bundle(access_token, refresh_token)

    async def refresh_tokens(self, presented: Optional[str]) -> Dict[str, Any]:
        """Exchange a refresh token for a new access/refresh pair"""
        if not presented:
            raise AuthenticationError("Unauthorized request")

        payload = self.jwt_manager.verify_token(presented, TokenType.REFRESH)
        user = await self.store.get(User, payload["sub"])
        if user is None:
            raise AuthenticationError("Invalid refresh token")
        if user.refresh_token != presented:
            raise AuthenticationError("Refresh token is expired or used")

        access_token = self.jwt_manager.create_access_token(user)
        refresh_token = self.jwt_manager.create_refresh_token(user)
        swapped = await self.store.compare_and_set(
            User, user.id, "refresh_token", presented, refresh_token
        )
        if not swapped:
            logger.warning(f"Refresh token race lost for user {user.username}")
            raise AuthenticationError("Refresh token is expired or used")

        logger.info(f"Rotated refresh token for user {user.username}")
        return self._token_bundle(access_token, refresh_token)

    async def logout(self, user: User) -> None:
        await self.store.update(user, refresh_token=None)
        logger.info(f"User {user.username} logged out")

    async def verify_access_token(self, token: str) -> User:
        """Verify access token and return user"""
        payload = self.jwt_manager.verify_token(token, TokenType.ACCESS)
        user = await self.store.get(User, payload["sub"])
        if user is None:
            raise AuthenticationError("Invalid access token")
        return user

    def _token_bundle(self, access_token: str, refresh_token: str) -> Dict[str, Any]:
        return {
            "accessToken": access_token,
            "refreshToken": refresh_token,
            "tokenType": "bearer",
            "expiresIn": int(self.jwt_manager.access_token_expire.total_seconds()),
        }


# Global token manager
_jwt_manager: Optional[JWTManager] = None


def get_jwt_manager() -> JWTManager:
    """Get global JWT manager"""
    global _jwt_manager
    if _jwt_manager is None:
        _jwt_manager = JWTManager()
    return _jwt_manager
