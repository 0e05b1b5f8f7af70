"""
Ticket Schemas

Request and response models for ticket API endpoints.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from ....domain.enums import TicketStatus, TicketPriority, TicketCategory


# =============================================================================
# Ticket CRUD Schemas
# =============================================================================

class CreateTicketRequest(BaseModel):
    """Request to create a new ticket"""
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    category: TicketCategory
    priority: TicketPriority = TicketPriority.MEDIUM
    tags: List[str] = Field(default_factory=list, max_length=20)


class UpdateTicketRequest(BaseModel):
    """Fields to change; anything left out stays as it is"""
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=1000)
    priority: Optional[TicketPriority] = None
    category: Optional[TicketCategory] = None
    tags: Optional[List[str]] = Field(None, max_length=20)
    status: Optional[TicketStatus] = None


class TicketListResponse(BaseModel):
    """Response for ticket list"""
    items: List[Dict[str, Any]]
    page: int
    page_size: int
    total: int


class TicketDetailResponse(BaseModel):
    """Ticket with what the caller may do next"""
    ticket: Dict[str, Any]
    available_actions: List[str]
    allowed_statuses: List[str]
    can_create_internal_comment: bool


# =============================================================================
# Assignment Schemas
# =============================================================================

class AssignRequest(BaseModel):
    """Assign to a staff member, or unassign with null"""
    assigned_to: Optional[str] = Field(None, description="User ID of the assignee; null to unassign")
