"""
Assignment Routes

Assign, reassign and unassign tickets.
"""

from fastapi import APIRouter, Depends, HTTPException

from ...deps import get_current_user_dep, get_request_context, get_ticket_service
from ....domain.models import ActorContext, RequestContext
from ....domain.errors import DomainError
from ....services.ticket_service import TicketService
from ....utils.logger import get_logger
from .schemas import AssignRequest

logger = get_logger(__name__)
router = APIRouter()


@router.put("/{ticket_id}/assign")
async def assign_ticket(
    ticket_id: str,
    request: AssignRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    context: RequestContext = Depends(get_request_context),
    service: TicketService = Depends(get_ticket_service)
):
    """
    Assign ticket to a staff member, or unassign it with null.

    If someone else changed the ticket first the response is 409 and the
    caller should reload before trying again.
    """
    try:
        ticket = service.assign_ticket(
            ticket_id=ticket_id,
            assignee_id=request.assigned_to,
            actor=actor,
            context=context
        )
        return ticket.model_dump(mode="json")

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())
