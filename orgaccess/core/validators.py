"""Input validation helpers for account and invitation data."""
from __future__ import annotations
import re

from .errors import ValidationError

PASSWORD_MIN_LENGTH = 8
EMAIL_MAX_LENGTH = 254
NAME_MAX_LENGTH = 128
SLUG_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,62}[a-z0-9])?$")


def validate_email(email) -> str:
    """Validate email address.

    Args:
        email: Email address to validate

    Returns:
        Normalized (stripped, lower-cased) email address

    Raises:
        ValidationError: If email is missing or invalid
    """
    if not isinstance(email, str) or not email.strip():
        raise ValidationError("email is required", "INVALID_EMAIL")

    email = email.strip().lower()
    if "@" not in email:
        raise ValidationError("Invalid email format", "INVALID_EMAIL")

    local, domain = email.rsplit("@", 1)
    if not local or not domain or "." not in domain or any(c.isspace() for c in email):
        raise ValidationError("Invalid email format", "INVALID_EMAIL")
    if len(email) > EMAIL_MAX_LENGTH:
        raise ValidationError("Email exceeds maximum length", "INVALID_EMAIL")

    return email


def validate_password(password) -> str:
    """Check presence and minimum length. Hashing belongs to the identity provider."""
    if not isinstance(password, str) or not password:
        raise ValidationError("password is required", "INVALID_PASSWORD")
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValidationError(
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters long.",
            "INVALID_PASSWORD",
        )
    return password


def validate_name(name, field: str = "fullName") -> str:
    """Validate a display name.

    Args:
        name: Name to validate
        field: Field name for error messages

    Returns:
        Trimmed name

    Raises:
        ValidationError: If name is missing or invalid
    """
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(f"{field} is required", "INVALID_NAME")

    name = name.strip()
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError(f"{field} exceeds maximum length", "INVALID_NAME")
    if any(char in name for char in "<>\"`;|$"):
        raise ValidationError(f"{field} contains invalid characters", "INVALID_NAME")

    return name


def validate_slug(slug) -> str:
    """Organization slugs: lower-case alphanumerics and inner hyphens, 1-64 chars."""
    if not isinstance(slug, str) or not slug.strip():
        raise ValidationError("slug is required", "INVALID_SLUG")
    slug = slug.strip().lower()
    if not SLUG_PATTERN.match(slug):
        raise ValidationError(
            "slug must be 1-64 characters of a-z, 0-9 and inner hyphens",
            "INVALID_SLUG",
        )
    return slug
