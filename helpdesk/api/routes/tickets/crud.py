"""
Ticket CRUD Routes

Create, read, list and update ticket endpoints.
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...deps import get_current_user_dep, get_request_context, get_ticket_service
from ....domain.models import ActorContext, RequestContext
from ....domain.enums import TicketStatus, TicketPriority, TicketCategory
from ....domain.errors import DomainError
from ....services.ticket_service import TicketService
from ....utils.logger import get_logger
from .schemas import (
    CreateTicketRequest, UpdateTicketRequest, TicketListResponse, TicketDetailResponse
)

logger = get_logger(__name__)
router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_ticket(
    request: CreateTicketRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    context: RequestContext = Depends(get_request_context),
    service: TicketService = Depends(get_ticket_service)
):
    """
    Create a new ticket

    Any active user can open a ticket; it starts open and unassigned.
    """
    try:
        ticket = service.create_ticket(
            title=request.title,
            description=request.description,
            category=request.category,
            priority=request.priority,
            tags=request.tags,
            actor=actor,
            context=context
        )
        return ticket.model_dump(mode="json")

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("", response_model=TicketListResponse)
async def list_tickets(
    status: Optional[TicketStatus] = Query(None, description="Filter by status"),
    priority: Optional[TicketPriority] = Query(None, description="Filter by priority"),
    category: Optional[TicketCategory] = Query(None, description="Filter by category"),
    assigned_to: Optional[str] = Query(None, description="'me', 'none' or a user ID"),
    sort_by: str = Query("created_at", description="Sort field: created_at, updated_at, priority, status, title"),
    sort_order: str = Query("desc", description="Sort order: asc or desc"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    actor: ActorContext = Depends(get_current_user_dep),
    service: TicketService = Depends(get_ticket_service)
):
    """
    List tickets visible to the caller

    Employees see their own tickets, agents those assigned to them or
    unassigned, supervisors and admins everything. Filters only narrow
    that set.
    """
    try:
        tickets, total = service.list_tickets(
            actor=actor,
            status=status,
            priority=priority,
            category=category,
            assigned_to=assigned_to,
            sort_by=sort_by,
            sort_order=sort_order,
            skip=(page - 1) * page_size,
            limit=page_size
        )
        return TicketListResponse(
            items=[t.model_dump(mode="json") for t in tickets],
            page=page,
            page_size=page_size,
            total=total
        )

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/{ticket_id}", response_model=TicketDetailResponse)
async def get_ticket(
    ticket_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: TicketService = Depends(get_ticket_service)
):
    """Get ticket with the actions and next statuses available to the caller"""
    try:
        return service.get_ticket_detail(ticket_id, actor)

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.put("/{ticket_id}")
async def update_ticket(
    ticket_id: str,
    request: UpdateTicketRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    context: RequestContext = Depends(get_request_context),
    service: TicketService = Depends(get_ticket_service)
):
    """
    Update ticket fields and/or status

    Leave status out unless it should change.
    """
    try:
        ticket = service.update_ticket(
            ticket_id=ticket_id,
            actor=actor,
            changes=request.model_dump(exclude_none=True),
            context=context
        )
        return ticket.model_dump(mode="json")

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())
