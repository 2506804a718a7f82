"""Exception types raised by the service layer.

Every error carries a human-readable message that is returned to the
caller unchanged. The FastAPI app maps each type to an HTTP status.
"""

from typing import Dict


class SurveyStudioError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 400
    kind = "bad_request"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AnswerValidationError(SurveyStudioError):
    """Raised when submitted answers fail their question rules.

    Attributes:
        fields: Mapping of question id -> error message for every failing field
    """

    status_code = 422
    kind = "validation_error"

    def __init__(self, fields: Dict[str, str], message: str = "Some answers are invalid"):
        super().__init__(message)
        self.fields = dict(fields)


class AuthenticationError(SurveyStudioError):
    """Raised when the caller's identity token is missing or invalid."""

    status_code = 401
    kind = "unauthenticated"


class AuthorizationError(SurveyStudioError):
    """Raised when the actor lacks the role or ownership for an action."""

    status_code = 403
    kind = "forbidden"


class NotFoundError(SurveyStudioError):
    """Raised when a survey, version, invite or question does not exist."""

    status_code = 404
    kind = "not_found"


class ConflictError(SurveyStudioError):
    """Raised when an action conflicts with existing data."""

    status_code = 409
    kind = "conflict"


class TerminalStateError(SurveyStudioError):
    """Raised when the target is expired, already completed, or has no draft."""

    status_code = 409
    kind = "invalid_state"


class RateLimitError(SurveyStudioError):
    """Raised when a rate-limit bucket is exhausted."""

    status_code = 429
    kind = "rate_limited"
