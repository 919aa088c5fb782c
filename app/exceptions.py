import enum
from http import HTTPStatus
from typing import Any


class ErrorType(enum.Enum):
    ACCESS_FORBIDDEN = "ACCESS_FORBIDDEN"
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    AUTHENTICATION_REQUIRED = "AUTHENTICATION_REQUIRED"
    EMAIL_NOT_VERIFIED = "EMAIL_NOT_VERIFIED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_USER = "INVALID_USER"
    MISSING_CONFIGURATION = "MISSING_CONFIGURATION"
    NOT_FOUND = "NOT_FOUND"
    NOT_SUPPORTED = "NOT_SUPPORTED"
    PARTIAL_SYNC_FAILURE = "PARTIAL_SYNC_FAILURE"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    REMOTE_FETCH_FAILED = "REMOTE_FETCH_FAILED"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    TOKEN_REFRESH_FAILED = "TOKEN_REFRESH_FAILED"
    UNHANDLED_EXCEPTION = "UNHANDLED_EXCEPTION"
    VALIDATION_ERROR = "VALIDATION_ERROR"


class BaseError(Exception):
    """Root of the application error taxonomy.

    ``error_type`` is the stable machine-readable code surfaced to API callers, ``message`` the short
    human summary. ``requires_auth`` is only true for errors that mean "send the user back through login".
    """

    requires_auth: bool = False
    extra: dict[str, Any]

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.INTERNAL_ERROR,
        status_code: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.status_code = status_code
        self.extra = {}

        for key in ("action", "user_id", "remote_status", "remote_error"):
            value = kwargs.get(key)
            if value is not None:
                self.extra[key] = value

    def __str__(self) -> str:
        return f"error: {self.error_type.value}; description: {self.message}"


class AuthError(BaseError):
    """Session-level authentication failures (bad, expired or orphaned session tokens)."""

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.INVALID_TOKEN,
        status_code: HTTPStatus = HTTPStatus.UNAUTHORIZED,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_type, status_code, **kwargs)


class MissingConfigurationError(BaseError):
    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.MISSING_CONFIGURATION,
        status_code: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_type, status_code, **kwargs)


class ExchangeFailedError(BaseError):
    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.AUTHENTICATION_FAILED,
        status_code: HTTPStatus = HTTPStatus.UNAUTHORIZED,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_type, status_code, **kwargs)


class IdentityFetchFailedError(BaseError):
    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.AUTHENTICATION_FAILED,
        status_code: HTTPStatus = HTTPStatus.UNAUTHORIZED,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_type, status_code, **kwargs)


class EmailNotVerifiedError(BaseError):
    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.EMAIL_NOT_VERIFIED,
        status_code: HTTPStatus = HTTPStatus.FORBIDDEN,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_type, status_code, **kwargs)


class ReauthRequiredError(BaseError):
    requires_auth = True

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.AUTHENTICATION_REQUIRED,
        status_code: HTTPStatus = HTTPStatus.UNAUTHORIZED,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_type, status_code, **kwargs)


class RefreshTransientFailureError(BaseError):
    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.TOKEN_REFRESH_FAILED,
        status_code: HTTPStatus = HTTPStatus.SERVICE_UNAVAILABLE,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_type, status_code, **kwargs)


class RemoteAccessForbiddenError(BaseError):
    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.ACCESS_FORBIDDEN,
        status_code: HTTPStatus = HTTPStatus.FORBIDDEN,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_type, status_code, **kwargs)


class RateLimitExceededError(BaseError):
    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.RATE_LIMIT_EXCEEDED,
        status_code: HTTPStatus = HTTPStatus.TOO_MANY_REQUESTS,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_type, status_code, **kwargs)


class RemoteRateLimitedError(BaseError):
    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.RATE_LIMIT_EXCEEDED,
        status_code: HTTPStatus = HTTPStatus.TOO_MANY_REQUESTS,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_type, status_code, **kwargs)


class RemoteFetchFailedError(BaseError):
    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.REMOTE_FETCH_FAILED,
        status_code: HTTPStatus = HTTPStatus.BAD_GATEWAY,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_type, status_code, **kwargs)


class PartialSyncError(BaseError):
    """A single message could not be fetched or normalized; logged by the sync engine, never surfaced."""

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.PARTIAL_SYNC_FAILURE,
        status_code: HTTPStatus = HTTPStatus.OK,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_type, status_code, **kwargs)


class EntityNotFoundError(BaseError):
    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.NOT_FOUND,
        status_code: HTTPStatus = HTTPStatus.NOT_FOUND,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_type, status_code, **kwargs)


class InvalidDataError(BaseError):
    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.VALIDATION_ERROR,
        status_code: HTTPStatus = HTTPStatus.BAD_REQUEST,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_type, status_code, **kwargs)


class NotSupportedError(BaseError):
    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.NOT_SUPPORTED,
        status_code: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_type, status_code, **kwargs)
