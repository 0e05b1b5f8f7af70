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


# Authentication & Authorization Errors
class AuthenticationError(DomainError):
    """Token missing, invalid, expired, or user inactive"""
    error_code = "AUTHENTICATION_ERROR"
    http_status = 401


class AuthorizationError(DomainError):
    """User lacks permission for action"""
    error_code = "AUTHORIZATION_ERROR"
    http_status = 403


class AuthorizationDeniedError(AuthorizationError):
    """Permission guard denied the action"""
    error_code = "AUTHORIZATION_DENIED"


# Validation Errors
class ValidationError(DomainError):
    """Input validation failed"""
    error_code = "VALIDATION_ERROR"
    http_status = 400


class InvalidTransitionError(ValidationError):
    """Requested status is not reachable for this role"""
    error_code = "INVALID_TRANSITION"


class InvalidAssigneeError(ValidationError):
    """Assignee missing or not an agent-class user"""
    error_code = "INVALID_ASSIGNEE"


# Not Found Errors
class NotFoundError(DomainError):
    """Resource not found"""
    error_code = "NOT_FOUND"
    http_status = 404


class TicketNotFoundError(NotFoundError):
    """Ticket not found"""
    error_code = "TICKET_NOT_FOUND"


class CommentNotFoundError(NotFoundError):
    """Comment not found"""
    error_code = "COMMENT_NOT_FOUND"


class AttachmentNotFoundError(NotFoundError):
    """Attachment not found"""
    error_code = "ATTACHMENT_NOT_FOUND"


class UserNotFoundError(NotFoundError):
    """User not found"""
    error_code = "USER_NOT_FOUND"


# Store Errors
class StoreConflictError(DomainError):
    """Conditional write lost a race; the caller re-fetches before trying again"""
    error_code = "STORE_CONFLICT"
    http_status = 409


class StoreUnavailableError(DomainError):
    """Storage timed out or is unreachable"""
    error_code = "STORE_UNAVAILABLE"
    http_status = 503


# Audit Errors
class AuditWriteFailedError(DomainError):
    """Audit entry could not be persisted. Never surfaced to callers."""
    error_code = "AUDIT_WRITE_FAILED"
    http_status = 500


# Attachment Errors
class AttachmentError(DomainError):
    """Attachment related error"""
    error_code = "ATTACHMENT_ERROR"


class AttachmentTooLargeError(AttachmentError):
    """Attachment exceeds max size"""
    error_code = "ATTACHMENT_TOO_LARGE"
    http_status = 413


class InvalidMimeTypeError(AttachmentError):
    """File type not allowed"""
    error_code = "INVALID_MIME_TYPE"
    http_status = 400


class TooManyFilesError(AttachmentError):
    """More files than allowed in one upload"""
    error_code = "TOO_MANY_FILES"
    http_status = 400


class AttachmentPersistError(AttachmentError):
    """Metadata insert failed after bytes were stored; bytes were removed"""
    error_code = "ATTACHMENT_PERSIST_FAILED"
    http_status = 500


class AttachmentIntegrityError(AttachmentError):
    """Stored bytes could not be removed after a failed metadata insert"""
    error_code = "ATTACHMENT_INTEGRITY_ERROR"
    http_status = 500
