"""
Forum error taxonomy.

Every service-level failure is a ForumError carrying the message shown to
the caller and the HTTP status the API layer responds with.
"""


class ForumError(Exception):
    """Base class for errors reported back to the caller."""

    status_code: int = 500

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(message)
        self.message = message


class InvalidInputError(ForumError):
    """Missing or malformed input."""

    status_code = 400


class AuthenticationError(ForumError):
    """Bad credentials or missing authorization."""

    status_code = 401


class PermissionDeniedError(ForumError):
    """Actor is not allowed to perform the action."""

    status_code = 403


class NotFoundError(ForumError):
    """Referenced user, category, post or reply does not exist."""

    status_code = 404


class StoreError(ForumError):
    """Reading or writing a document failed."""

    status_code = 500
