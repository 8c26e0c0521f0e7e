"""
Input Validation and Coercion Utilities.

Request payloads are first shaped by pydantic models at the API edge; this
module holds the checks that run inside the core before any query or write:
identifier format, non-empty text, account fields, list options and uploads.

Key Components:
- `InputValidator`: Static validators that either return a normalized value or
  raise `ValidationError`.
- `coerce_positive_int`: Lenient integer coercion used by pagination, which
  falls back to a default instead of failing.
"""

import re
from typing import Any, Iterable, Optional

from core.logging_config import get_logger
from core.exceptions import ValidationError

logger = get_logger(__name__)


class InputValidator:
    """Input validation and normalization"""

    OBJECT_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")
    EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
    USERNAME_PATTERN = re.compile(r"^[a-z0-9_.-]{3,30}$")

    @staticmethod
    def validate_object_id(value: Any, label: str = "ID") -> str:
        """Validate an entity identifier"""
        if value is None or not isinstance(value, str) or not value.strip():
            raise ValidationError(f"{label} is missing.", field=label, value=value)

        value = value.strip().lower()
        if not InputValidator.OBJECT_ID_PATTERN.match(value):
            raise ValidationError(f"Invalid {label}.", field=label, value=value)

        return value

    @staticmethod
    def require_text(value: Any, field: str, max_length: int = 1000) -> str:
        """Trim a string and reject it if empty or too long"""
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"{field} cannot be empty.", field=field, value=value)

        value = value.strip()
        if len(value) > max_length:
            raise ValidationError(
                f"{field} must be no more than {max_length} characters.",
                field=field,
                value=value[:50],
            )

        return value

    @staticmethod
    def optional_text(value: Any, field: str, max_length: int = 1000) -> Optional[str]:
        """Like require_text, but None and blank strings mean 'not supplied'"""
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return InputValidator.require_text(value, field, max_length)

    @staticmethod
    def validate_email(email: Any) -> str:
        """Validate email address"""
        email = InputValidator.require_text(email, "email", max_length=254)

        if not InputValidator.EMAIL_PATTERN.match(email):
            raise ValidationError("Invalid email format.", field="email", value=email)

        return email.lower()

    @staticmethod
    def validate_username(username: Any) -> str:
        """Validate and lower-case a username"""
        username = InputValidator.require_text(username, "username", max_length=30).lower()

        if not InputValidator.USERNAME_PATTERN.match(username):
            raise ValidationError(
                "Username must be 3-30 characters and contain only letters, numbers, dots, hyphens, and underscores.",
                field="username",
                value=username,
            )

        return username

    @staticmethod
    def validate_sort_direction(value: Optional[str]) -> str:
        """Normalize a sort direction to 'asc' or 'desc' (default)"""
        if value is None or value == "":
            return "desc"

        direction = str(value).strip().lower()
        if direction not in ("asc", "desc"):
            raise ValidationError(
                "Sort type must be 'asc' or 'desc'.", field="sortType", value=value
            )

        return direction

    @staticmethod
    def validate_choice(value: str, allowed: Iterable[str], field: str) -> str:
        allowed = tuple(allowed)
        if value not in allowed:
            raise ValidationError(
                f"{field} must be one of: {', '.join(allowed)}.", field=field, value=value
            )
        return value

    @staticmethod
    def parse_bool(value: Any, field: str) -> Optional[bool]:
        """Parse 'true'/'false' style flags; None stays None"""
        if value is None or isinstance(value, bool):
            return value

        text = str(value).strip().lower()
        if text in ("true", "1", "yes"):
            return True
        if text in ("false", "0", "no"):
            return False

        raise ValidationError(f"{field} must be true or false.", field=field, value=value)

    @staticmethod
    def validate_upload(content_type: Optional[str], expected: str, field: str) -> None:
        """Check an uploaded file's content type against 'video' or 'image'"""
        if not content_type or not content_type.startswith(f"{expected}/"):
            logger.debug(
                f"Rejected upload for {field}",
                extra={"field": field, "content_type": content_type},
            )
            raise ValidationError(
                f"Invalid file type for {field}. Expected {expected}.",
                field=field,
                value=content_type,
            )


def coerce_positive_int(value: Any, default: int) -> int:
    """Coerce caller input to a positive int, falling back to default"""
    if isinstance(value, bool):
        return default
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default
