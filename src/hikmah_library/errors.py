"""
Error taxonomy for the library server.

Each error carries the HTTP-equivalent status that callers (the MCP tools,
or any HTTP adapter placed in front of the services) report to clients:

- ValidationError      400  malformed input
- AuthenticationError  401  unknown credentials
- AuthorizationError   403  role or ownership mismatch
- NotFoundError        404  missing entity
- ConflictError        409  invariant violation (book unavailable, double return)
- AdapterError         502  external AI failure; never leaves the assistant adapter
- RepositoryError      500  storage failure
"""


class LibraryError(Exception):
    """Base class for all library errors."""

    status_code = 500
    error_type = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LibraryError):
    """Raised when input fails validation."""

    status_code = 400
    error_type = "validation_error"


class AuthenticationError(LibraryError):
    """Raised when credentials do not match a user."""

    status_code = 401
    error_type = "authentication_error"


class AuthorizationError(LibraryError):
    """Raised when the acting user lacks the role or ownership required."""

    status_code = 403
    error_type = "authorization_error"


class NotFoundError(LibraryError):
    """Raised when an entity is not found."""

    status_code = 404
    error_type = "not_found"


class ConflictError(LibraryError):
    """Raised when an operation would violate a library invariant."""

    status_code = 409
    error_type = "conflict"


class DuplicateError(ConflictError):
    """Raised when attempting to create a duplicate entity."""

    error_type = "duplicate"


class AdapterError(LibraryError):
    """Raised by completion clients when the AI provider fails."""

    status_code = 502
    error_type = "adapter_error"


class RepositoryError(LibraryError):
    """Raised when the storage layer fails."""

    error_type = "repository_error"
