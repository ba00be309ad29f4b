"""Domain Errors - Centralized Exception Hierarchy"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base domain error - all errors extend this"""

    error_code: str = "DOMAIN_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to API response dict"""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details
            }
        }


# Authorization Errors
class AuthorizationError(DomainError):
    """Actor lacks permission for action"""
    error_code = "AUTHORIZATION_ERROR"
    http_status = 403


class PermissionDeniedError(AuthorizationError):
    """Status transition not allowed for the actor's role"""
    error_code = "PERMISSION_DENIED"


# Validation Errors
class ValidationError(DomainError):
    """Input validation failed"""
    error_code = "VALIDATION_ERROR"
    http_status = 400


class PermissionTableError(ValidationError):
    """Transition permission table is incomplete or inconsistent"""
    error_code = "PERMISSION_TABLE_ERROR"
    http_status = 500


class MalformedMessageError(ValidationError):
    """Live channel payload does not match the change envelope"""
    error_code = "MALFORMED_MESSAGE"


# Not Found Errors
class NotFoundError(DomainError):
    """Resource not found"""
    error_code = "NOT_FOUND"
    http_status = 404


class ComplaintNotFoundError(NotFoundError):
    """Complaint not found"""
    error_code = "COMPLAINT_NOT_FOUND"


# Conflict Errors
class ConflictError(DomainError):
    """Resource conflict"""
    error_code = "CONFLICT"
    http_status = 409


class InvalidStateError(ConflictError):
    """Action not valid for current state"""
    error_code = "INVALID_STATE"


class NoOpTransitionError(ConflictError):
    """Proposed status equals the current status"""
    error_code = "NO_OP_TRANSITION"


# External Service Errors
class ExternalServiceError(DomainError):
    """External service failure"""
    error_code = "EXTERNAL_SERVICE_ERROR"
    http_status = 502


class ComplaintFetchError(ExternalServiceError):
    """Listing complaints from the REST API failed"""
    error_code = "COMPLAINT_FETCH_ERROR"


class ComplaintWriteError(ExternalServiceError):
    """Status update request to the REST API failed"""
    error_code = "COMPLAINT_WRITE_ERROR"
