"""
Custom Exception Classes

Services raise these; the handlers in app.main turn each one into a
JSON body of the form {"message": ...} with the matching status code.
"""


class CollabHubError(Exception):
    """Base exception for all application errors."""
    status_code = 500

    def __init__(self, message: str = "Server error"):
        super().__init__(message)
        self.message = message


class BadRequestError(CollabHubError):
    """Request is well-formed but not allowed (self-follow, not following, ...)."""
    status_code = 400


class NotAuthenticatedError(CollabHubError):
    """Missing, malformed or expired credentials."""
    status_code = 401


class ForbiddenError(CollabHubError):
    """Caller is not the author of the resource."""
    status_code = 403


class NotFoundError(CollabHubError):
    """Referenced user/post/comment does not exist."""
    status_code = 404


class ConflictError(CollabHubError):
    """Duplicate username or email."""
    status_code = 409


class PayloadTooLargeError(CollabHubError):
    status_code = 413


class UploadError(CollabHubError):
    """The hosted image service rejected or failed an upload."""
    status_code = 502
