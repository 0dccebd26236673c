"""Error taxonomy for authentication and user management.

AuthError subclasses are client-facing: each carries the HTTP status the API
layer renders. StoreError and HashingError are internal; services log them and
translate them into a client-safe AuthError before they reach a response.
"""


class AuthError(Exception):
    """Base class for errors that map directly to an HTTP response."""

    status_code: int = 400
    default_message: str = "Request failed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidCredentials(AuthError):
    """Unknown email or wrong password; the two cases are deliberately identical."""

    status_code = 401
    default_message = "Invalid email or password."


class DuplicateEmail(AuthError):
    status_code = 409
    default_message = "A user with this email already exists."


class Unauthenticated(AuthError):
    status_code = 401
    default_message = "Not authenticated"


class Forbidden(AuthError):
    status_code = 403
    default_message = "Insufficient role for this resource"


class ServiceUnavailable(AuthError):
    status_code = 503
    default_message = "Service temporarily unavailable."


class InvalidInput(AuthError):
    status_code = 422
    default_message = "Invalid input."


class UserNotFound(AuthError):
    status_code = 404
    default_message = "User not found."


class StoreError(Exception):
    """Session store unreachable, timed out, or returned an unusable value."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class HashingError(Exception):
    """Password hashing failed internally, or a stored hash is malformed."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)
