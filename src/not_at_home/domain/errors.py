"""Error taxonomy shared by the session and ledger services."""


class NotAtHomeError(Exception):
    """Base exception for all service errors."""

    code = "error"
    user_message = "Something went wrong. Please try again."

    def __init__(self, message: str, user_message: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if user_message is not None:
            self.user_message = user_message


class ValidationError(NotAtHomeError):
    """Raised when required fields are missing or malformed."""

    code = "validation_error"

    def __init__(self, message: str) -> None:
        super().__init__(message, user_message=message)


class AuthenticationError(NotAtHomeError):
    """Raised when a request carries no valid access token."""

    code = "unauthorized"
    user_message = "Sign in to continue."


class AuthorizationError(NotAtHomeError):
    """Raised when the acting identity lacks a role binding."""

    code = "forbidden"
    user_message = "You don't have permission to do that for this congregation."


class NotFoundError(NotAtHomeError):
    """Raised when a session is unknown, expired or inactive."""

    code = "not_found"
    user_message = "That session could not be found."


class InvalidSessionCodeError(NotFoundError):
    """Raised when a join code does not match an active session."""

    code = "invalid_code"
    user_message = "That session code is invalid or has expired."


class PersistenceError(NotAtHomeError):
    """Raised when the backing store fails."""

    code = "persistence_error"


class DuplicateSessionCodeError(PersistenceError):
    """Raised by repositories when an insert hits the unique code index."""

    code = "duplicate_code"


class TeardownError(PersistenceError):
    """Raised when session data was shared but the session was not deleted."""

    code = "teardown_failed"
    user_message = (
        "The session data was shared, but the session could not be deleted. "
        "Please try ending it again."
    )


class ShareError(NotAtHomeError):
    """Raised when the export could not be shared."""

    code = "share_failed"
    user_message = "The session data could not be shared. Nothing was deleted."
