"""
Input validation utilities.

This module provides validation functions for user inputs to ensure
data quality before anything reaches the database.
"""

import re

from mediashelf.core.constants import (
    ALL_MEDIA_TYPES,
    INVITE_CODE_ALPHABET,
    LIBRARY_DOMAINS,
    LIBRARY_STATUSES,
    MAX_LIST_TITLE_LENGTH,
    MAX_NOTES_LENGTH,
    MAX_RATING,
    MAX_REVIEW_LENGTH,
    MAX_SEARCH_QUERY_LENGTH,
    MIN_PASSWORD_LENGTH,
    MIN_RATING,
)
from mediashelf.core.exceptions import ValidationError

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_review_text(text: str | None) -> str | None:
    """
    Validate review text length.

    Args:
        text: Review text to validate

    Returns:
        Validated review text or None if input is None or blank

    Raises:
        ValidationError: If review is too long
    """
    if text is None:
        return None

    text = text.strip()
    if not text:
        return None

    if len(text) > MAX_REVIEW_LENGTH:
        raise ValidationError(
            f"Review is too long ({len(text)} chars)",
            user_message=f"Review is too long (maximum {MAX_REVIEW_LENGTH} characters)",
        )

    return text


def validate_rating(rating: int | None) -> int | None:
    """
    Validate a 1..5 star rating.

    Raises:
        ValidationError: If rating is out of range
    """
    if rating is None:
        return None

    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(
            f"Rating {rating} is out of range",
            user_message=f"Rating must be between {MIN_RATING} and {MAX_RATING}",
        )

    return rating


def validate_media_type(media_type: str, allowed: tuple[str, ...] = ALL_MEDIA_TYPES) -> str:
    if media_type not in allowed:
        raise ValidationError(
            f"Unsupported media type {media_type!r}",
            user_message=f"Media type must be one of: {', '.join(allowed)}",
        )
    return media_type


def validate_domain(domain: str) -> str:
    if domain not in LIBRARY_DOMAINS:
        raise ValidationError(
            f"Unsupported library domain {domain!r}",
            user_message=f"Library must be one of: {', '.join(LIBRARY_DOMAINS)}",
        )
    return domain


def validate_library_status(domain: str, status: str) -> str:
    allowed = LIBRARY_STATUSES[validate_domain(domain)]
    if status not in allowed:
        raise ValidationError(
            f"Status {status!r} is not valid for {domain}",
            user_message=f"Status must be one of: {', '.join(allowed)}",
        )
    return status


def validate_search_query(query: str) -> str:
    """
    Validate a media search query.

    Raises:
        ValidationError: If query is empty or too long
    """
    query = query.strip()

    if not query:
        raise ValidationError("Empty search query", user_message="Search query cannot be empty")

    if len(query) > MAX_SEARCH_QUERY_LENGTH:
        raise ValidationError(
            f"Search query too long ({len(query)} chars)",
            user_message=f"Search query is too long (maximum {MAX_SEARCH_QUERY_LENGTH} characters)",
        )

    return query


def validate_notes(notes: str | None) -> str | None:
    if notes is None:
        return None
    notes = notes.strip()
    if len(notes) > MAX_NOTES_LENGTH:
        raise ValidationError(
            f"Notes too long ({len(notes)} chars)",
            user_message=f"Notes are too long (maximum {MAX_NOTES_LENGTH} characters)",
        )
    return notes or None


def validate_list_title(title: str) -> str:
    title = title.strip()
    if not title:
        raise ValidationError("Empty list title", user_message="List title cannot be empty")
    if len(title) > MAX_LIST_TITLE_LENGTH:
        raise ValidationError(
            f"List title too long ({len(title)} chars)",
            user_message=f"List title is too long (maximum {MAX_LIST_TITLE_LENGTH} characters)",
        )
    return title


def normalize_email(email: str) -> str:
    """Lower-case and trim an email address, rejecting obviously malformed input."""
    email = email.strip().lower()
    if not _EMAIL_RE.match(email):
        raise ValidationError(f"Invalid email {email!r}", user_message="Please enter a valid email address")
    return email


def validate_password(password: str) -> str:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            "Password too short",
            user_message=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
        )
    return password


def normalize_invite_code(code: str) -> str:
    """
    Normalize an invite code the way users type it.

    Codes are case-insensitive and surrounding whitespace is ignored.
    """
    code = code.upper().strip()
    if not code or any(ch not in INVITE_CODE_ALPHABET + "-" for ch in code):
        raise ValidationError(f"Malformed invite code {code!r}", user_message="Invalid or expired invite code")
    return code


def validate_count(count: int, min_val: int = 1, max_val: int = 100) -> int:
    """
    Validate count / page size parameter.

    Raises:
        ValidationError: If count is out of range
    """
    if not min_val <= count <= max_val:
        raise ValidationError(
            f"Count {count} is out of range [{min_val}, {max_val}]",
            user_message=f"Count must be between {min_val} and {max_val}",
        )

    return count
