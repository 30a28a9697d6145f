"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  2xxx: Library
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        self.headers = headers
        super().__init__(message)


# --- 1xxx: Auth/User ---

class AuthenticationRequiredError(AppError):
    """Missing, invalid or expired session on an API route.

    ``clear_cookie`` is set when the session pointed at a user that no longer
    exists; the exception handler then expires the client's cookie.
    """

    def __init__(self, clear_cookie: bool = False) -> None:
        super().__init__(1001, "Unauthorized", 401)
        self.clear_cookie = clear_cookie


class UserNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(1002, f"User not found: {user_id}", 404)


class InvalidProviderError(AppError):
    def __init__(self, provider: str) -> None:
        super().__init__(1003, f"Invalid provider: {provider}", 422)


class SessionNotFoundError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Session not found or expired", 401)


# --- 2xxx: Library ---

class LibraryItemNotFoundError(AppError):
    def __init__(self, label: str, item_id: str) -> None:
        super().__init__(2001, f"{label} not found: {item_id}", 404)


class LibraryItemExistsError(AppError):
    def __init__(self, label: str) -> None:
        super().__init__(2002, f"{label} already in your library", 409)


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self, retry_after: int | None = None) -> None:
        headers = {"Retry-After": str(retry_after)} if retry_after else None
        super().__init__(
            9001, "Too many requests. Please try again later.", 429, headers
        )


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class BackendUnavailableError(AppError):
    """A backing store (PostgreSQL/Redis) could not serve the request.

    ``operation`` is kept for logs only; the client sees a generic message.
    """

    def __init__(self, operation: str) -> None:
        super().__init__(9003, "Service temporarily unavailable", 503)
        self.operation = operation


# --- Browser flow ---

class LoginRedirect(Exception):
    """Raised by the browser auth policy; rendered as a 303 to the login page."""

    def __init__(self, clear_cookie: bool = False) -> None:
        self.clear_cookie = clear_cookie
        super().__init__("login required")
