"""Service-level errors, rendered by a single handler in api.main."""


class AppError(Exception):
    """Base class for terminal, user-visible failures."""

    status_code: int = 400
    code: str = "error"
    detail: str = "Request failed"
    headers: dict[str, str] | None = None

    def __init__(self, detail: str | None = None) -> None:
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class InvalidCredentialsError(AppError):
    """Unknown email, no password set, or wrong password. Deliberately indistinguishable."""

    status_code = 401
    code = "invalid_credentials"
    detail = "Invalid email or password"


class EmailInUseError(AppError):
    """Registration with an email that already has an account."""

    status_code = 409
    code = "email_in_use"
    detail = "Email already in use"


class UnauthenticatedError(AppError):
    """No valid session attached to the request."""

    status_code = 401
    code = "unauthenticated"
    detail = "Not authenticated"
    headers = {"WWW-Authenticate": "Bearer"}


class ForbiddenError(AppError):
    """Authenticated, but the session role does not allow the procedure."""

    status_code = 403
    code = "forbidden"
    detail = "Publisher role required"


class NotFoundOrForbiddenError(AppError):
    """Post missing or owned by someone else; the two cases are not distinguished."""

    status_code = 404
    code = "not_found_or_forbidden"
    detail = "Not found or forbidden"


class PostNotFoundError(AppError):
    """Referenced post does not exist."""

    status_code = 404
    code = "post_not_found"
    detail = "Post not found"


class CurrentPasswordRequiredError(AppError):
    """Changing an existing password without supplying the current one."""

    status_code = 400
    code = "current_password_required"
    detail = "Current password is required"


class CurrentPasswordIncorrectError(AppError):
    """Supplied current password does not match."""

    status_code = 400
    code = "current_password_incorrect"
    detail = "Current password is incorrect"


class UserNotFoundError(AppError):
    """Session references a user that no longer exists."""

    status_code = 401
    code = "user_not_found"
    detail = "Session is no longer valid"
