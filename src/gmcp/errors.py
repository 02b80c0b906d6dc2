"""Custom exceptions for gmcp-server.

Every error carries a stable ``code`` so the tool layer can report failures
without inspecting exception types.
"""

from typing import Literal

ErrorCode = Literal[
    "CONFIG_MISSING_ENV",
    "CONFIG_INVALID",
    "AUTH_TOKEN_MISSING",
    "AUTH_TOKEN_INVALID",
    "AUTH_CREDENTIAL_LOAD_FAILED",
    "AUTH_TOKEN_SAVE_FAILED",
    "GMAIL_API_ERROR",
    "CALENDAR_API_ERROR",
]

GoogleApiService = Literal["gmail", "calendar"]


class GmcpError(Exception):
    """Base exception for all gmcp-server errors.

    Attributes:
        code: Machine-readable error code.
        cause: Underlying exception, if any.
    """

    code: ErrorCode

    def __init__(self, message: str, code: ErrorCode, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.cause = cause


class ConfigurationError(GmcpError):
    """Missing or invalid environment configuration."""

    def __init__(
        self,
        message: str,
        code: Literal["CONFIG_MISSING_ENV", "CONFIG_INVALID"] = "CONFIG_INVALID",
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, code, cause)


class AuthError(GmcpError):
    """Authentication failures: credentials, token loading and persistence."""


class CredentialLoadError(AuthError):
    """The OAuth client credential file is missing, malformed or incomplete."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message, "AUTH_CREDENTIAL_LOAD_FAILED", cause)


class TokenMissingError(AuthError):
    """No stored token exists; the interactive authorization flow must run first."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message, "AUTH_TOKEN_MISSING", cause)


class TokenInvalidError(AuthError):
    """A token response or stored token lacks required fields."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message, "AUTH_TOKEN_INVALID", cause)


class TokenSaveError(AuthError):
    """Persisting a token to durable storage failed."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message, "AUTH_TOKEN_SAVE_FAILED", cause)


class ProviderApiError(GmcpError):
    """A Gmail or Calendar API call failed.

    Attributes:
        service: Which Google API was called.
        operation: Client operation that failed (e.g. ``search_emails``).
        status_code: HTTP status of the failed response, when there was one.
    """

    def __init__(
        self,
        service: GoogleApiService,
        operation: str,
        message: str,
        cause: BaseException | None = None,
        status_code: int | None = None,
    ) -> None:
        code: ErrorCode = "GMAIL_API_ERROR" if service == "gmail" else "CALENDAR_API_ERROR"
        super().__init__(message, code, cause)
        self.service = service
        self.operation = operation
        self.status_code = status_code
