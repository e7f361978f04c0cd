"""
Custom exception hierarchy for the MediaShelf application.

This module defines all custom exceptions to provide better error handling
and more informative error messages throughout the application.
"""


class MediaShelfError(Exception):
    """Base exception for all MediaShelf errors."""

    def __init__(self, message: str, user_message: str | None = None):
        """
        Initialize exception.

        Args:
            message: Internal error message for logging
            user_message: User-friendly message for display (optional)
        """
        super().__init__(message)
        self.user_message = user_message or message


class ConfigurationError(MediaShelfError):
    """Raised when application configuration is invalid."""

    pass


class ValidationError(MediaShelfError):
    """Raised when user input validation fails."""

    pass


class ExternalAPIError(MediaShelfError):
    """Raised when a third-party metadata API fails."""

    pass


class TMDBError(ExternalAPIError):
    """Raised when TMDB API operations fail."""

    pass


class OMDBError(ExternalAPIError):
    """Raised when OMDB API operations fail."""

    pass


class ITunesError(ExternalAPIError):
    """Raised when iTunes Search API operations fail."""

    pass


class GoogleBooksError(ExternalAPIError):
    """Raised when Google Books API operations fail."""

    pass


class RAWGError(ExternalAPIError):
    """Raised when RAWG API operations fail."""

    pass


class DatabaseError(MediaShelfError):
    """Raised when database operations fail."""

    pass


class NotFoundError(MediaShelfError):
    """Raised when a requested record does not exist (or is not visible)."""

    pass


class PermissionDeniedError(MediaShelfError):
    """Raised when the current user may not perform an operation."""

    pass


class AuthenticationError(MediaShelfError):
    """Raised when credentials or tokens are invalid."""

    pass


class InviteCodeError(MediaShelfError):
    """Raised when an invite code is invalid, expired or used up."""

    def __init__(self, message: str = "Invalid or expired invite code"):
        super().__init__(message, user_message="Invalid or expired invite code")


class RateLimitError(MediaShelfError):
    """Raised when rate limit is exceeded."""

    def __init__(self, retry_after: int):
        super().__init__(
            f"Rate limit exceeded, retry after {retry_after} seconds",
            user_message=f"Too many attempts. Please wait {retry_after} seconds before trying again",
        )
        self.retry_after = retry_after


class QueueClearedError(MediaShelfError):
    """Raised for requests still waiting in a rate limiter queue when it is cleared."""

    def __init__(self):
        super().__init__("Queue cleared")


class MutationError(MediaShelfError):
    """Raised when an optimistic mutation fails and the cache was rolled back."""

    pass
