"""Error taxonomy shared by the services and the REST layer.

Every error carries the HTTP status it maps to and a stable machine code.
Store errors are rendered to clients without internal detail.
"""
# app/core/errors.py
from datetime import datetime
from typing import Any, List, Optional


class SurveyHubError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"
    public_message = "Internal server error"
    expose_detail = True

    def __init__(self, message: str | None = None, details: Optional[List[dict]] = None):
        self.message = message or self.public_message
        self.details = details
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        if not self.expose_detail:
            return {"success": False, "error": self.public_message, "code": self.code}
        payload: dict[str, Any] = {"success": False, "error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(SurveyHubError):
    """Malformed or incomplete input. The client must fix and resend."""
    status_code = 400
    code = "VALIDATION_ERROR"
    public_message = "Validation failed"


class AuthenticationError(SurveyHubError):
    status_code = 401
    code = "UNAUTHENTICATED"
    public_message = "Authentication required"


class ForbiddenError(SurveyHubError):
    status_code = 403
    code = "FORBIDDEN"
    public_message = "Access denied"


class NotFoundError(SurveyHubError):
    status_code = 404
    code = "NOT_FOUND"
    public_message = "Not found"


class ConflictError(SurveyHubError):
    """Duplicate submission for a (survey, respondent) pair. Not retryable."""
    status_code = 409
    code = "ALREADY_PARTICIPATED"
    public_message = "A response for this survey was already submitted"

    def __init__(self, message: str | None = None, submitted_at: datetime | None = None):
        super().__init__(message)
        self.submitted_at = submitted_at

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["submittedAt"] = self.submitted_at.isoformat() if self.submitted_at else None
        return payload


class StoreBusyError(SurveyHubError):
    """Transient contention on the store. Safe to retry with backoff."""
    status_code = 503
    code = "STORE_BUSY"
    public_message = "The service is busy, please retry"
    expose_detail = False


class StoreIntegrityError(SurveyHubError):
    """Constraint violation during a multi-step write. Always rolled back."""
    status_code = 500
    code = "STORE_INTEGRITY"
    public_message = "The request could not be completed"
    expose_detail = False

    def __init__(self, message: str | None = None, question_index: int | None = None):
        super().__init__(message)
        self.question_index = question_index
