"""Exception hierarchy for daemon client errors.

All client errors are ``CLIError`` subclasses, so they render through the
same error path as validation failures and carry next/hint lines.
"""

from typing import Any, Iterable, Optional

from agentlab.cli.errors import CLIError


class CLIClientError(CLIError):
    """Base exception for daemon client errors.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status code if applicable, None otherwise.
        details: Additional error context as a dictionary.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
        next: Optional[str] = None,
        hints: Optional[Iterable[str]] = None,
    ) -> None:
        super().__init__(message, next=next, hints=hints)
        self.status_code = status_code
        self.details = details or {}


class ConnectionError(CLIClientError):
    """Could not reach the daemon (socket missing, connection refused, DNS)."""

    pass


class TimeoutError(CLIClientError):
    """Request exceeded the configured timeout."""

    pass


class APIError(CLIClientError):
    """The daemon answered with an error status.

    ``code`` holds the machine-readable error code when the daemon sends a
    ``{"code": ..., "message": ...}`` envelope; classification falls back to
    the message wording otherwise.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
        code: str = "",
        next: Optional[str] = None,
        hints: Optional[Iterable[str]] = None,
    ) -> None:
        super().__init__(
            message, status_code=status_code, details=details, next=next, hints=hints
        )
        self.code = (code or "").strip().lower()

    def is_not_found(self, resource: str = "") -> bool:
        """Whether this is a not-found error, optionally for ``resource``."""
        lower = self.message.lower()
        if self.code:
            matched = self.code in ("not_found", "notfound", "not-found")
        else:
            matched = "not found" in lower
        if not matched:
            return False
        return not resource or resource.lower() in lower

    def is_unknown_profile(self) -> bool:
        if self.code in ("unknown_profile", "profile_not_found"):
            return True
        return "unknown profile" in self.message.lower()
