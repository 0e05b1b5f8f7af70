"""
Ticket Routes Module

- crud.py: Create, list, get and update tickets
- assignment.py: Assign, reassign and unassign

All routes are combined into a single router mounted under /tickets.
"""

from fastapi import APIRouter

from .schemas import (
    CreateTicketRequest, UpdateTicketRequest, TicketListResponse,
    TicketDetailResponse, AssignRequest
)
from .crud import router as crud_router
from .assignment import router as assignment_router

router = APIRouter()
router.include_router(crud_router, prefix="/tickets")
router.include_router(assignment_router, prefix="/tickets")

__all__ = [
    "router",
    # Schemas
    "CreateTicketRequest", "UpdateTicketRequest", "TicketListResponse",
    "TicketDetailResponse", "AssignRequest",
]
