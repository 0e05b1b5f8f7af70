"""Audit API Routes - Admin-only audit trail access"""
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from ..deps import get_current_user_dep, get_request_context, get_audit_service
from ...domain.models import ActorContext, RequestContext
from ...domain.enums import AuditAction, ResourceType
from ...domain.errors import DomainError, ValidationError
from ...services.audit_service import AuditService
from ...config.settings import settings
from ...utils.time import parse_iso
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


def _parse_date(field: str, value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return parse_iso(value)
    except ValueError:
        raise ValidationError(
            f"{field} is not a valid ISO 8601 date",
            details={"field": field, "value": value}
        )


@router.get("/logs")
async def get_audit_logs(
    actor_id: Optional[str] = Query(None, description="Filter by acting user"),
    action: Optional[AuditAction] = Query(None, description="Filter by action"),
    resource_type: Optional[ResourceType] = Query(None, description="Filter by resource type"),
    resource_id: Optional[str] = Query(None, description="Filter by resource"),
    date_from: Optional[str] = Query(None, description="ISO 8601 lower bound, inclusive"),
    date_to: Optional[str] = Query(None, description="ISO 8601 upper bound, inclusive"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=settings.audit_query_max_limit),
    actor: ActorContext = Depends(get_current_user_dep),
    context: RequestContext = Depends(get_request_context),
    service: AuditService = Depends(get_audit_service)
):
    """Audit entries, newest first (admin only)"""
    try:
        entries, total = service.query_logs(
            actor=actor,
            actor_id=actor_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            date_from=_parse_date("date_from", date_from),
            date_to=_parse_date("date_to", date_to),
            page=page,
            limit=limit,
            context=context
        )
        return {
            "items": [e.model_dump(mode="json") for e in entries],
            "page": page,
            "limit": limit,
            "total": total
        }

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/stats")
async def get_security_stats(
    actor: ActorContext = Depends(get_current_user_dep),
    context: RequestContext = Depends(get_request_context),
    service: AuditService = Depends(get_audit_service)
):
    """Security statistics over the audit trail (admin only)"""
    try:
        return service.security_stats(actor, context)

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())
