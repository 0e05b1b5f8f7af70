"""Domain Enumerations - All status and type definitions"""
from enum import Enum


class Role(str, Enum):
    """User roles, least to most privileged"""
    EMPLOYEE = "employee"
    AGENT = "agent"
    SUPERVISOR = "supervisor"
    ADMIN = "admin"


# Roles that work tickets (as opposed to filing them)
AGENT_CLASS_ROLES = frozenset({Role.AGENT, Role.SUPERVISOR, Role.ADMIN})


class TicketStatus(str, Enum):
    """Ticket lifecycle status"""
    OPEN = "open"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    PENDING_USER = "pending_user"  # Kicked back to the requester
    RESOLVED = "resolved"
    CLOSED = "closed"  # Terminal


class TicketPriority(str, Enum):
    """Ticket priority"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TicketCategory(str, Enum):
    """Ticket category"""
    HARDWARE = "hardware"
    SOFTWARE = "software"
    NETWORK = "network"
    ACCESS = "access"
    OTHER = "other"


class CommentType(str, Enum):
    """Who a comment speaks for"""
    USER = "user"
    AGENT = "agent"
    SYSTEM = "system"


class TicketAction(str, Enum):
    """Actions the permission guard decides on"""
    VIEW = "view"
    MODIFY = "modify"
    ASSIGN = "assign"
    COMMENT = "comment"
    ATTACH = "attach"
    EDIT_COMMENT = "edit_comment"
    DELETE_COMMENT = "delete_comment"
    DELETE_ATTACHMENT = "delete_attachment"


# Actions decided by authorship of a comment/attachment rather than the ticket
OWNERSHIP_ACTIONS = frozenset({
    TicketAction.EDIT_COMMENT,
    TicketAction.DELETE_COMMENT,
    TicketAction.DELETE_ATTACHMENT,
})


class ResourceType(str, Enum):
    """Audited resource kinds"""
    USER = "user"
    TICKET = "ticket"
    COMMENT = "comment"
    ATTACHMENT = "attachment"
    SYSTEM = "system"


class AuditAction(str, Enum):
    """Types of audit log entries"""
    TICKET_CREATED = "TICKET_CREATED"
    TICKET_UPDATED = "TICKET_UPDATED"
    TICKET_STATUS_CHANGED = "TICKET_STATUS_CHANGED"
    TICKET_ASSIGNED = "TICKET_ASSIGNED"
    TICKET_UNASSIGNED = "TICKET_UNASSIGNED"
    COMMENT_CREATED = "COMMENT_CREATED"
    COMMENT_UPDATED = "COMMENT_UPDATED"
    COMMENT_DELETED = "COMMENT_DELETED"
    ATTACHMENT_UPLOADED = "ATTACHMENT_UPLOADED"
    ATTACHMENT_DOWNLOADED = "ATTACHMENT_DOWNLOADED"
    ATTACHMENT_DELETED = "ATTACHMENT_DELETED"
    ATTACHMENT_UPLOAD_FAILED = "ATTACHMENT_UPLOAD_FAILED"
    ATTACHMENT_DELETE_FAILED = "ATTACHMENT_DELETE_FAILED"
    ACCESS_DENIED = "ACCESS_DENIED"
    AUDIT_LOGS_VIEWED = "AUDIT_LOGS_VIEWED"
