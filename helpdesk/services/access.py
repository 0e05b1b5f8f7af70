"""Access helpers shared by services"""
from typing import Optional

from ..domain.models import ActorContext, Ticket, RequestContext
from ..domain.enums import TicketAction, ResourceType
from ..domain.errors import AuthorizationDeniedError
from ..engine.permission_guard import PermissionGuard
from ..engine.audit_writer import AuditWriter


def require_and_audit(
    guard: PermissionGuard,
    audit: AuditWriter,
    actor: ActorContext,
    action: TicketAction,
    resource_type: ResourceType,
    resource_id: str,
    ticket: Optional[Ticket] = None,
    owner_id: Optional[str] = None,
    context: Optional[RequestContext] = None
) -> None:
    """
    Enforce a mutation permission, leaving an ACCESS_DENIED entry on refusal

    Raises:
        AuthorizationDeniedError: If the guard denies the action
    """
    try:
        guard.require(actor, action, ticket=ticket, owner_id=owner_id)
    except AuthorizationDeniedError as e:
        audit.record_access_denied(
            actor,
            attempted=action.value,
            resource_type=resource_type,
            resource_id=resource_id,
            reason=e.message,
            context=context
        )
        raise
