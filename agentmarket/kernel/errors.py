"""
Error taxonomy for the access and onboarding core.

Being signed out is a tier (Tier.UNAUTHENTICATED), and an authenticated user
hitting an admin area gets the access-denied view from the route guard.
Neither is an exception. Everything below is.
"""

from typing import Dict, Iterable, List, Optional


class AccessControlError(Exception):
    """Base class for all errors raised by the core."""


class SubmissionError(AccessControlError):
    """A backend call failed in a way the caller may act on."""


class ValidationRejected(SubmissionError):
    """
    User-correctable input problem.

    Raised both by local gates (a draft field is blank) and by the backend
    (4xx with field errors). ``field_errors`` maps field name to message; it
    may be empty when the backend only returned a general message.
    """

    def __init__(self, field_errors: Optional[Dict[str, str]] = None, message: Optional[str] = None):
        self.field_errors: Dict[str, str] = dict(field_errors or {})
        self.message = message or "Validation failed"
        detail = ", ".join(sorted(self.field_errors)) if self.field_errors else self.message
        super().__init__(f"{self.message}: {detail}" if self.field_errors else detail)

    @classmethod
    def missing(cls, fields: Iterable[str]) -> "ValidationRejected":
        """Build an error reporting each of ``fields`` as required."""
        return cls({field: "required" for field in fields}, message="Required fields missing")

    @property
    def fields(self) -> List[str]:
        return sorted(self.field_errors)


class TransientFailure(SubmissionError):
    """Network error, 5xx or rate limit. Safe to retry; the core never retries on its own."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class AuthenticationRequired(AccessControlError):
    """The backend no longer accepts the session (401)."""


class AlreadyInFlight(AccessControlError):
    """A submission for this draft is already awaiting the backend."""


class SessionLost(AccessControlError):
    """The identity changed or signed out while a mutation was in flight."""


class NotificationNotFound(AccessControlError, KeyError):
    """No notification with the given id in the store."""


class RedirectLoop(AccessControlError):
    """Following route guard redirects did not settle on a renderable path."""
