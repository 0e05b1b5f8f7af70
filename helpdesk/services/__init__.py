"""Service modules - Business logic layer"""
from .ticket_service import TicketService
from .comment_service import CommentService
from .attachment_service import AttachmentService, FileUpload
from .audit_service import AuditService

__all__ = [
    "TicketService",
    "CommentService",
    "AttachmentService",
    "FileUpload",
    "AuditService",
]
