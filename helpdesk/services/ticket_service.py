"""Ticket Service - Ticket management business logic"""
from typing import Any, Dict, List, Optional, Tuple

from ..domain.models import Ticket, ActorContext, RequestContext
from ..domain.enums import (
    TicketStatus, TicketPriority, TicketCategory, TicketAction,
    ResourceType, AuditAction, AGENT_CLASS_ROLES
)
from ..domain.errors import (
    AuthorizationDeniedError, InvalidAssigneeError, InvalidTransitionError, ValidationError
)
from ..repositories.ticket_repo import TicketRepository, UNASSIGNED
from ..repositories.user_repo import UserRepository
from ..engine.permission_guard import PermissionGuard
from ..engine.lifecycle import TicketLifecycle, TERMINAL_STATUSES
from ..engine.audit_writer import AuditWriter
from .access import require_and_audit
from ..utils.idgen import generate_ticket_id
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 1000

EDITABLE_FIELDS = ("title", "description", "priority", "category", "tags")


def _clean_text(value: str, field: str, max_length: int) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{field} is required", details={"field": field})
    if len(cleaned) > max_length:
        raise ValidationError(
            f"{field} must be at most {max_length} characters",
            details={"field": field, "max_length": max_length}
        )
    return cleaned


def _clean_tags(tags: Optional[List[str]]) -> List[str]:
    seen: List[str] = []
    for tag in tags or []:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


def _plain(value: Any) -> Any:
    return getattr(value, "value", value)


def _assignment_conflict(ticket: Ticket, requested: TicketStatus) -> Optional[str]:
    """open means unassigned and assigned means someone holds it; both only move via assign_ticket"""
    if requested == TicketStatus.ASSIGNED and ticket.assigned_to is None:
        return "Ticket has no assignee; assign it to move it to assigned"
    if requested == TicketStatus.OPEN and ticket.assigned_to is not None:
        return "Ticket is assigned; unassign it to move it back to open"
    return None


class TicketService:
    """Service for ticket operations"""

    def __init__(
        self,
        ticket_repo: Optional[TicketRepository] = None,
        user_repo: Optional[UserRepository] = None,
        audit: Optional[AuditWriter] = None,
        guard: Optional[PermissionGuard] = None,
        lifecycle: Optional[TicketLifecycle] = None
    ):
        self.ticket_repo = ticket_repo or TicketRepository()
        self.user_repo = user_repo or UserRepository()
        self.audit = audit or AuditWriter()
        self.guard = guard or PermissionGuard()
        self.lifecycle = lifecycle or TicketLifecycle()

    # =========================================================================
    # Create / Read
    # =========================================================================

    def create_ticket(
        self,
        title: str,
        description: str,
        category: TicketCategory,
        actor: ActorContext,
        priority: TicketPriority = TicketPriority.MEDIUM,
        tags: Optional[List[str]] = None,
        context: Optional[RequestContext] = None
    ) -> Ticket:
        """Create a new open ticket owned by actor"""
        if not actor.is_active:
            raise AuthorizationDeniedError(
                "Inactive users cannot create tickets",
                details={"action": "create", "role": actor.role.value}
            )

        now = utc_now()
        ticket = Ticket(
            ticket_id=generate_ticket_id(),
            title=_clean_text(title, "title", TITLE_MAX_LENGTH),
            description=_clean_text(description, "description", DESCRIPTION_MAX_LENGTH),
            created_by=actor.user_id,
            status=TicketStatus.OPEN,
            priority=priority,
            category=category,
            tags=_clean_tags(tags),
            created_at=now,
            updated_at=now
        )
        self.ticket_repo.create_ticket(ticket)

        self.audit.record(
            actor_id=actor.user_id,
            action=AuditAction.TICKET_CREATED,
            resource_type=ResourceType.TICKET,
            resource_id=ticket.ticket_id,
            details={
                "title": ticket.title,
                "category": ticket.category.value,
                "priority": ticket.priority.value
            },
            context=context
        )
        return ticket

    def list_tickets(
        self,
        actor: ActorContext,
        status: Optional[TicketStatus] = None,
        priority: Optional[TicketPriority] = None,
        category: Optional[TicketCategory] = None,
        assigned_to: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[Ticket], int]:
        """
        List tickets the actor may view

        assigned_to accepts "me", "none" or a user ID and only narrows the
        actor's own visibility scope.
        """
        if assigned_to == "me":
            assigned_to = actor.user_id
        elif assigned_to == "none":
            assigned_to = UNASSIGNED

        return self.ticket_repo.list_tickets(
            scope=self.guard.ticket_scope(actor),
            status=status,
            priority=priority,
            category=category,
            assigned_to=assigned_to,
            sort_by=sort_by,
            sort_order=sort_order,
            skip=skip,
            limit=limit
        )

    def get_ticket(self, ticket_id: str, actor: ActorContext) -> Ticket:
        """Get a ticket the actor may view"""
        ticket = self.ticket_repo.get_ticket_or_raise(ticket_id)
        self.guard.require(actor, TicketAction.VIEW, ticket)
        return ticket

    def get_ticket_detail(self, ticket_id: str, actor: ActorContext) -> Dict[str, Any]:
        """Get ticket with the actions and statuses available to actor"""
        ticket = self.get_ticket(ticket_id, actor)
        can_modify = self.guard.can_modify(actor, ticket)

        return {
            "ticket": ticket.model_dump(mode="json"),
            "available_actions": self.guard.get_available_actions(actor, ticket),
            "allowed_statuses": [
                status.value for status in self.lifecycle.allowed_targets(ticket.status, actor.role)
                if _assignment_conflict(ticket, status) is None
            ] if can_modify else [],
            "can_create_internal_comment": self.guard.can_create_internal_comment(actor)
        }

    # =========================================================================
    # Update
    # =========================================================================

    def update_ticket(
        self,
        ticket_id: str,
        actor: ActorContext,
        changes: Dict[str, Any],
        context: Optional[RequestContext] = None
    ) -> Ticket:
        """
        Update ticket fields and/or status

        changes may hold title, description, priority, category, tags and
        status; keys set to None are ignored. A status change goes through
        the lifecycle, field edits only need modify permission.

        Raises:
            AuthorizationDeniedError: If actor may not modify the ticket
            InvalidTransitionError: If the status change is not allowed
            StoreConflictError: If the ticket changed since it was read
        """
        ticket = self.ticket_repo.get_ticket_or_raise(ticket_id)
        require_and_audit(
            self.guard, self.audit, actor, TicketAction.MODIFY,
            ResourceType.TICKET, ticket_id, ticket=ticket, context=context
        )

        changes = {key: value for key, value in changes.items() if value is not None}
        requested_status = changes.pop("status", None)

        updates: Dict[str, Any] = {}
        if "title" in changes:
            updates["title"] = _clean_text(changes["title"], "title", TITLE_MAX_LENGTH)
        if "description" in changes:
            updates["description"] = _clean_text(changes["description"], "description", DESCRIPTION_MAX_LENGTH)
        if "priority" in changes:
            updates["priority"] = TicketPriority(changes["priority"])
        if "category" in changes:
            updates["category"] = TicketCategory(changes["category"])
        if "tags" in changes:
            updates["tags"] = _clean_tags(changes["tags"])

        # Only keep fields that actually change
        field_changes = {
            field: {"from": _plain(getattr(ticket, field)), "to": _plain(value)}
            for field, value in updates.items()
            if getattr(ticket, field) != value
        }
        updates = {field: updates[field] for field in field_changes}

        if field_changes and ticket.status in TERMINAL_STATUSES:
            raise InvalidTransitionError(
                f"Ticket is {ticket.status.value}; it can no longer be edited",
                details={"ticket_id": ticket_id, "current_status": ticket.status.value}
            )

        if requested_status is not None:
            target = TicketStatus(requested_status)
            updates.update(self.lifecycle.build_updates(ticket, target, actor))
            conflict = _assignment_conflict(ticket, target)
            if conflict:
                raise InvalidTransitionError(
                    conflict,
                    details={
                        "ticket_id": ticket_id,
                        "current_status": ticket.status.value,
                        "requested_status": target.value,
                        "assigned_to": ticket.assigned_to
                    }
                )

        if not updates:
            return ticket

        updated = self.ticket_repo.update_ticket(ticket_id, updates, expected_version=ticket.version)

        if field_changes:
            self.audit.record(
                actor_id=actor.user_id,
                action=AuditAction.TICKET_UPDATED,
                resource_type=ResourceType.TICKET,
                resource_id=ticket_id,
                details={"changes": field_changes},
                context=context
            )
        if requested_status is not None:
            self.audit.record(
                actor_id=actor.user_id,
                action=AuditAction.TICKET_STATUS_CHANGED,
                resource_type=ResourceType.TICKET,
                resource_id=ticket_id,
                details={"from": ticket.status.value, "to": updated.status.value},
                context=context
            )

        logger.info(
            f"Ticket updated: {ticket_id}",
            extra={"ticket_id": ticket_id, "actor_id": actor.user_id, "status": updated.status.value}
        )
        return updated

    # =========================================================================
    # Assignment
    # =========================================================================

    def assign_ticket(
        self,
        ticket_id: str,
        assignee_id: Optional[str],
        actor: ActorContext,
        context: Optional[RequestContext] = None
    ) -> Ticket:
        """
        Assign, reassign or unassign a ticket

        Assigning moves the ticket to assigned, unassigning sends it back to
        open. The write only lands if assignee, status and version are still
        what was checked, so of two agents claiming the same ticket exactly
        one wins.

        Raises:
            AuthorizationDeniedError: If actor may not assign
            InvalidAssigneeError: If the assignee is unknown, inactive or not staff
            InvalidTransitionError: If the ticket is closed
            StoreConflictError: If another write got there first
        """
        ticket = self.ticket_repo.get_ticket_or_raise(ticket_id)
        require_and_audit(
            self.guard, self.audit, actor, TicketAction.ASSIGN,
            ResourceType.TICKET, ticket_id, ticket=ticket, context=context
        )

        if assignee_id:
            assignee = self.user_repo.get_user(assignee_id)
            if assignee is None or not assignee.is_active or assignee.role not in AGENT_CLASS_ROLES:
                raise InvalidAssigneeError(
                    "Tickets can only be assigned to active agents, supervisors or admins",
                    details={"assignee_id": assignee_id}
                )
            requested_status = TicketStatus.ASSIGNED
        else:
            assignee_id = None
            requested_status = TicketStatus.OPEN

        updates = self.lifecycle.build_updates(ticket, requested_status, actor)
        updates["assigned_to"] = assignee_id

        updated = self.ticket_repo.update_ticket(
            ticket_id,
            updates,
            expected_version=ticket.version,
            expected={"assigned_to": ticket.assigned_to, "status": ticket.status}
        )

        self.audit.record(
            actor_id=actor.user_id,
            action=AuditAction.TICKET_ASSIGNED if assignee_id else AuditAction.TICKET_UNASSIGNED,
            resource_type=ResourceType.TICKET,
            resource_id=ticket_id,
            details={
                "from": ticket.assigned_to,
                "to": assignee_id,
                "status": {"from": ticket.status.value, "to": updated.status.value}
            },
            context=context
        )

        logger.info(
            f"Ticket {'assigned' if assignee_id else 'unassigned'}: {ticket_id}",
            extra={"ticket_id": ticket_id, "actor_id": actor.user_id, "user_id": assignee_id}
        )
        return updated
