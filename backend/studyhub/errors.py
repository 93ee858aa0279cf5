"""Domain error taxonomy.

Services raise these exceptions; `main` renders them as
`{"success": false, "error": {"message", "code", "details"?}}` with the
class' HTTP status. `kind` is the stable machine-readable category and
`code` the more specific reason (e.g. `GROUP_FULL`).
"""

from typing import Dict, List, Optional


class StudyHubError(Exception):
    """Base class for every expected, locally-detected failure."""
    kind = "Error"
    status_code = 400
    default_code = "ERROR"

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or []

    def to_dict(self) -> dict:
        body = {"message": self.message, "code": self.code, "kind": self.kind}
        if self.details:
            body["details"] = list(self.details)
        return body


class NotFound(StudyHubError):
    kind = "NotFound"
    status_code = 404
    default_code = "NOT_FOUND"


class Conflict(StudyHubError):
    kind = "Conflict"
    status_code = 409
    default_code = "CONFLICT"


class CapacityExceeded(StudyHubError):
    kind = "CapacityExceeded"
    status_code = 400
    default_code = "CAPACITY_EXCEEDED"


class Forbidden(StudyHubError):
    kind = "Forbidden"
    status_code = 403
    default_code = "FORBIDDEN"


class InvalidState(StudyHubError):
    kind = "InvalidState"
    status_code = 400
    default_code = "INVALID_STATE"


class ValidationFailed(StudyHubError):
    """Field-level validation failure; `details` lists `{field, message}`."""
    kind = "ValidationFailed"
    status_code = 400
    default_code = "VALIDATION_ERROR"

    def __init__(self, details: List[Dict[str, str]], message: str = "Validation failed"):
        super().__init__(message, details=details)


class Unauthenticated(StudyHubError):
    kind = "Unauthenticated"
    status_code = 401
    default_code = "INVALID_TOKEN"


class RateLimited(StudyHubError):
    """Raised by the request layer's throttle, not by the core."""
    kind = "RateLimited"
    status_code = 429
    default_code = "RATE_LIMIT_EXCEEDED"

    def __init__(self, retry_after: int):
        super().__init__("Too many requests, please try again later")
        self.retry_after = retry_after
