"""
Custom exceptions for the matching service
"""
from typing import Optional


class MatcherError(Exception):
    """Base error; status_code is the HTTP status it maps to"""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class MatchValidationError(MatcherError):
    """Raised when a matcher request is malformed or uses an unknown mode"""

    status_code = 400


class AuthenticationError(MatcherError):
    """Raised when caller credentials are missing or invalid"""

    status_code = 401


class NotFoundError(MatcherError):
    """Raised when a listing or wishlist item is missing or not eligible"""

    status_code = 404


class InvalidStatusTransitionError(MatcherError):
    """Raised when a match is moved to a status its current state does not allow"""

    status_code = 409


class MatcherInvocationError(Exception):
    """Raised by the matcher client when the remote call fails"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        """Network failures and server errors may succeed on a later attempt"""
        return self.status_code is None or self.status_code >= 500
