"""Custom exception classes for the access-control core.

Each error kind carries the HTTP status and the stable machine-readable code
the API layer reports for it.
"""


class RBACError(Exception):
    """Base exception for the access-control core."""

    status_code = 500
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class ResourceNotFoundError(RBACError):
    """Raised when a referenced id does not exist."""
    status_code = 404
    error_code = "NOT_FOUND"


class ResourceConflictError(RBACError):
    """Raised when an operation would violate a uniqueness or already-held invariant."""
    status_code = 409
    error_code = "CONFLICT"


class ValidationError(RBACError):
    """Raised when an argument is invalid (bad name, past expiration, ...)."""
    status_code = 400
    error_code = "INVALID_ARGUMENT"


class AuthorizationError(RBACError):
    """Raised when the caller cannot be identified."""
    status_code = 401
    error_code = "UNAUTHORIZED"


class PermissionDeniedError(RBACError):
    """Raised by callers of the resolver when a permission is missing."""
    status_code = 403
    error_code = "FORBIDDEN"


class StorageError(RBACError):
    """Raised when the persistence layer is unavailable."""
    status_code = 503
    error_code = "STORAGE_UNAVAILABLE"
