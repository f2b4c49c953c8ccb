"""
Error taxonomy for grant reconciliation.

Every error carries a stable `code`, the CLI `exit_code` and a `context` dict
(client id, selector fields, attempted action) filled in as the error bubbles up
through the engine, so the final message is actionable without reading logs.
"""

from typing import Iterable, Optional

# Permissions the calling identity needs; shown with every auth failure.
REQUIRED_PERMISSIONS = (
    "DelegatedPermissionGrant.ReadWrite.All",
    "Application.Read.All",
    "User.ReadBasic.All (display names only)",
)


class GrantError(Exception):
    """Base class for all failures surfaced by the engine."""

    code = "grant_error"
    exit_code = 1
    retryable = False

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = {k: v for k, v in context.items() if v is not None}

    def with_context(self, **context) -> "GrantError":
        """Add context keys that are not already set and return self for re-raising."""
        for key, value in context.items():
            if value is not None:
                self.context.setdefault(key, value)
        return self

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({details})"


class InvalidArgumentError(GrantError):
    """Caller input is unusable; raised before any network call."""

    code = "invalid_argument"
    exit_code = 2


class AmbiguousGrantError(GrantError):
    """More than one grant matched a selector; the directory is inconsistent."""

    code = "ambiguous_state"
    exit_code = 3

    def __init__(self, message: str, grant_ids: Iterable[str], **context):
        self.grant_ids = list(grant_ids)
        super().__init__(message, grant_ids=", ".join(self.grant_ids), **context)


class TransientError(GrantError):
    """Network failure, timeout, throttling, 5xx or malformed response. Safe to retry."""

    code = "transient"
    exit_code = 4
    retryable = True


class AuthenticationError(GrantError):
    """Could not establish a signed-in session."""

    code = "unauthenticated"
    exit_code = 5


class AuthorizationError(GrantError):
    """Graph rejected the call with 401/403."""

    code = "forbidden"
    exit_code = 5

    def __init__(self, message: str, status_code: int, **context):
        super().__init__(message, **context)
        self.status_code = status_code
        self.hint = "The calling identity needs: " + ", ".join(REQUIRED_PERMISSIONS)


class DirectoryApiError(GrantError):
    """Unexpected 4xx from Graph."""

    code = "directory_error"

    def __init__(self, message: str, status_code: Optional[int] = None, **context):
        super().__init__(message, **context)
        self.status_code = status_code


class NotFoundError(DirectoryApiError):
    """Graph answered 404. Used internally; a missing grant is never an error."""

    code = "not_found"
