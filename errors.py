"""
Domain exceptions raised by the matching, company and team modules.

``main.py`` turns every ``MatchboardError`` into a JSON response carrying
the error's status code.
"""
from typing import Any, Dict, Optional


class MatchboardError(Exception):
    """Base exception for Matchboard"""

    status_code = 500

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class UnauthenticatedError(MatchboardError):
    status_code = 401

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class ForbiddenError(MatchboardError):
    status_code = 403

    def __init__(self, message: str = "Insufficient permissions", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)


class InvalidRoleError(ForbiddenError):
    """The caller's account type does not match the action."""

    def __init__(self, expected: str, actual: str):
        super().__init__(
            f"Only {expected} accounts can perform this action",
            details={"expectedRole": expected, "actualRole": actual},
        )


class NotFoundError(MatchboardError):
    status_code = 404

    def __init__(self, resource: str, identifier: Optional[Any] = None):
        message = f"{resource} not found"
        if identifier is not None:
            message += f": {identifier}"
        super().__init__(message)


class ValidationError(MatchboardError):
    status_code = 422

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)


class ConflictError(MatchboardError):
    status_code = 409

    def __init__(self, message: str = "Already exists", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)


class DraftApplyError(MatchboardError):
    """Applying a company draft failed and was rolled back; the draft is intact."""

    status_code = 500

    def __init__(self, message: str = "Failed to apply company profile draft"):
        super().__init__(message)
