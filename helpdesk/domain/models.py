"""Domain Models - Pydantic schemas for all entities"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, EmailStr, ConfigDict

from .enums import (
    Role, TicketStatus, TicketPriority, TicketCategory, CommentType,
    ResourceType, AuditAction, AGENT_CLASS_ROLES
)


# ============================================================================
# Identity
# ============================================================================

class ActorContext(BaseModel):
    """Authenticated actor, as handed over by the identity provider"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    user_id: str = Field(..., description="User ID")
    email: EmailStr = Field(..., description="User email")
    display_name: str = Field(..., description="User display name")
    role: Role = Field(..., description="Role at request time")
    is_active: bool = Field(default=True, description="Inactive users never reach the engine")

    @property
    def is_agent_class(self) -> bool:
        """Agent, supervisor or admin"""
        return self.role in AGENT_CLASS_ROLES


class User(BaseModel):
    """Stored user record"""
    model_config = ConfigDict(extra="ignore")

    user_id: str = Field(..., description="Unique user ID")
    email: EmailStr
    display_name: str
    role: Role = Role.EMPLOYEE
    is_active: bool = True
    department: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_actor(self) -> ActorContext:
        """Build the actor context used by the engine"""
        return ActorContext(
            user_id=self.user_id,
            email=self.email,
            display_name=self.display_name,
            role=self.role,
            is_active=self.is_active
        )


class RequestContext(BaseModel):
    """Request metadata captured for audit entries"""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    correlation_id: Optional[str] = None


# ============================================================================
# Ticket
# ============================================================================

class Ticket(BaseModel):
    """Helpdesk ticket"""
    model_config = ConfigDict(extra="ignore")

    ticket_id: str = Field(..., description="Unique ticket ID")
    title: str = Field(..., max_length=100)
    description: str = Field(..., max_length=1000)
    created_by: str = Field(..., description="Creator user ID")
    assigned_to: Optional[str] = Field(None, description="Assignee user ID")
    status: TicketStatus = TicketStatus.OPEN
    priority: TicketPriority = TicketPriority.MEDIUM
    category: TicketCategory
    tags: List[str] = Field(default_factory=list)
    resolved_at: Optional[datetime] = Field(None, description="Set once, first time resolved")
    closed_at: Optional[datetime] = Field(None, description="Set once, first time closed")
    created_at: datetime
    updated_at: datetime
    version: int = Field(default=1, description="Optimistic concurrency version")

    @property
    def is_unassigned(self) -> bool:
        return self.assigned_to is None


# ============================================================================
# Comment
# ============================================================================

class Comment(BaseModel):
    """Comment on a ticket"""
    model_config = ConfigDict(extra="ignore")

    comment_id: str
    ticket_id: str
    author_id: str
    author_role: Role
    content: str = Field(..., min_length=1, max_length=2000)
    comment_type: CommentType = CommentType.USER
    is_internal: bool = Field(default=False, description="Fixed at creation")
    created_at: datetime
    edited_at: Optional[datetime] = None


# ============================================================================
# Attachment
# ============================================================================

class Attachment(BaseModel):
    """Attachment metadata; the bytes live in the file store"""
    model_config = ConfigDict(extra="ignore")

    attachment_id: str
    ticket_id: str
    uploaded_by: str
    original_name: str
    stored_name: str
    storage_path: str = Field(..., description="Path relative to the attachments base path")
    size: int = Field(..., ge=0)
    mime_type: str
    uploaded_at: datetime


# ============================================================================
# Audit
# ============================================================================

class AuditLogEntry(BaseModel):
    """Append-only audit log entry"""
    model_config = ConfigDict(extra="ignore")

    audit_id: str
    actor_id: str
    action: AuditAction
    resource_type: ResourceType
    resource_id: str
    details: Dict[str, Any] = Field(default_factory=dict)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    correlation_id: Optional[str] = None
    timestamp: datetime
