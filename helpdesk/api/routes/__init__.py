"""API Routes module"""
from fastapi import APIRouter

from .tickets import router as tickets_router
from .comments import router as comments_router
from .attachments import router as attachments_router
from .audit import router as audit_router

# Main API router
api_router = APIRouter()

# Include all route modules
api_router.include_router(tickets_router, tags=["Tickets"])
api_router.include_router(comments_router, tags=["Comments"])
api_router.include_router(attachments_router, tags=["Attachments"])
api_router.include_router(audit_router, prefix="/audit", tags=["Audit"])

__all__ = ["api_router"]
