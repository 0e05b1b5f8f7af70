"""Repository modules - Data access layer"""
from .mongo_client import get_database, create_indexes
from .ticket_repo import TicketRepository
from .comment_repo import CommentRepository
from .attachment_repo import AttachmentRepository
from .audit_repo import AuditRepository
from .user_repo import UserRepository
from .file_store import LocalFileStore

__all__ = [
    "get_database",
    "create_indexes",
    "TicketRepository",
    "CommentRepository",
    "AttachmentRepository",
    "AuditRepository",
    "UserRepository",
    "LocalFileStore",
]
