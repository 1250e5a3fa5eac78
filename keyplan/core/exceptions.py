"""
Keyplan Core - Unified error hierarchy.

Errors fall in three tiers:
- fatal: the plan cannot be trusted and the run stops,
- recoverable: a single action failed and the operator decides,
- directory: diagnostic detail reported by the remote service.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from keyplan.action.base import Action


class KeyplanError(Exception):
    """Base exception for all Keyplan errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | {self.details}"
        return self.message


# =============================================================================
# Directory Service Errors
# =============================================================================

class DirectoryError(KeyplanError):
    """Talking to the directory service failed."""

    def __str__(self) -> str:
        return self.message


class DirectoryConnectionError(DirectoryError):
    """Transport-level failure without an error report from the backend."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Request to {url} failed: {reason}", {"url": url, "reason": reason})
        self.url = url
        self.reason = reason


class DirectoryServiceError(DirectoryError):
    """
    Error report returned by the directory service.

    Carries the numeric code, the optional application error key with its
    parameters, and the optional server side stacktrace, verbatim.
    """

    def __init__(
        self,
        code: int,
        message: str | None = None,
        application_error: str | None = None,
        application_error_parameters: dict[str, Any] | None = None,
        stacktrace: list[str] | None = None,
    ):
        self.code = code
        self.backend_message = message or ""
        self.application_error = application_error
        self.application_error_parameters = application_error_parameters
        self.stacktrace = stacktrace or []
        super().__init__(
            self._format(),
            {
                "code": code,
                "application_error": application_error,
                "application_error_parameters": application_error_parameters,
            },
        )

    @classmethod
    def from_report(cls, report: dict[str, Any], status_code: int) -> DirectoryServiceError:
        """Build from a KeyHub ``ErrorReport`` JSON body."""
        return cls(
            code=report.get("code", status_code),
            message=report.get("message"),
            application_error=report.get("applicationError"),
            application_error_parameters=report.get("applicationErrorParameters"),
            stacktrace=report.get("stacktrace"),
        )

    @property
    def string_parameters(self) -> dict[str, str]:
        """Application error parameters with a string value."""
        params = self.application_error_parameters or {}
        return {k: v for k, v in params.items() if isinstance(v, str)}

    def _format(self) -> str:
        if self.application_error is None:
            msg = f"Error {self.code} from backend: {self.backend_message}"
        elif self.application_error_parameters is None:
            msg = f"Error {self.code} ({self.application_error}) from backend: {self.backend_message}"
        else:
            msg = (
                f"Error {self.code} ({self.application_error}:{self.string_parameters}) "
                f"from backend: {self.backend_message}"
            )
        if self.stacktrace:
            msg = msg + "\n" + "\n".join(self.stacktrace)
        return msg


class RecordNotFoundError(DirectoryError):
    """A lookup returned no records."""

    def __init__(self, kind: str, query: dict[str, Any]):
        super().__init__(f"No {kind} found for {query}", {"kind": kind, "query": query})
        self.kind = kind
        self.query = query


class MissingLinkError(DirectoryError):
    """An entity lacks the link relation needed to address it."""

    def __init__(self, rel: str):
        super().__init__(f"Item does not have a {rel} link", {"rel": rel})
        self.rel = rel


# =============================================================================
# Authentication Errors
# =============================================================================

class AuthenticationError(KeyplanError):
    """Establishing an authenticated session failed."""
    pass


class DuplicateIdentityError(AuthenticationError):
    """Two sessions resolved to the same account."""

    def __init__(self, username: str):
        super().__init__(
            f"Authenticated as the same user twice: {username}",
            {"username": username},
        )
        self.username = username


# =============================================================================
# Action Errors
# =============================================================================

class ActionError(KeyplanError):
    """An action could not be planned or executed."""

    def __init__(self, action: Action | str, message: str, cause: Exception | None = None):
        super().__init__(f"Error in {action}: {message}")
        self.action = action
        self.cause = cause

    def __str__(self) -> str:
        return self.message


class ActionNotInitializedError(ActionError):
    """The resolved snapshot was read before ``init`` populated it."""

    def __init__(self, action: Action | str):
        super().__init__(action, "state was read before the action was initialized")


class ActionAlreadyInitializedError(ActionError):
    """The resolved snapshot is write-once."""

    def __init__(self, action: Action | str):
        super().__init__(action, "action was already initialized")


class ActionInitializationError(ActionError):
    """Reading current state failed. The plan cannot be trusted."""
    pass


class ActionExecutionError(ActionError):
    """Executing a single action failed. Recoverable by the operator."""
    pass


# =============================================================================
# Planning Errors
# =============================================================================

class PlanError(KeyplanError):
    """Planning or plan execution failed."""
    pass


class MaxDepthExceededError(PlanError):
    """Prerequisite expansion went deeper than allowed, most likely a cycle."""

    def __init__(self, max_depth: int, action: Action | str):
        self.max_depth = max_depth
        self.trace: list[str] = [str(action)]
        super().__init__(self._format())

    def add_frame(self, action: Action | str) -> None:
        """Record an enclosing action while the error propagates up."""
        self.trace.append(str(action))
        self.message = self._format()
        self.args = (self.message,)

    @property
    def offending_action(self) -> str:
        """The deepest action, where the limit was hit."""
        return self.trace[0]

    def _format(self) -> str:
        frames = "".join(f"\n  at {frame}" for frame in self.trace)
        return f"Maximum depth of {self.max_depth} exceeded:{frames}"


class PlanAbortedError(PlanError):
    """The operator aborted the run."""
    pass


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(KeyplanError):
    """Configuration error."""
    pass


class MissingSettingError(ConfigurationError):
    """Required setting not configured."""

    def __init__(self, key_name: str):
        super().__init__(
            f"Missing required setting: {key_name}",
            {"key_name": key_name},
        )
        self.key_name = key_name
