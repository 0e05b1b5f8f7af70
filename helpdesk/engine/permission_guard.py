"""Permission Guard - Authorization enforcement for all ticket actions"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ..domain.models import Ticket, Comment, Attachment, ActorContext
from ..domain.enums import Role, TicketAction, TicketStatus, OWNERSHIP_ACTIONS, AGENT_CLASS_ROLES
from ..domain.errors import AuthorizationDeniedError
from .lifecycle import CREATOR_EDITABLE_STATUSES
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Relationship:
    """How an actor relates to the ticket (or comment/attachment) at hand"""
    is_creator: bool = False
    is_assignee: bool = False
    is_unassigned: bool = False
    is_owner: bool = False
    status: Optional[TicketStatus] = None


Rule = Callable[[Relationship], bool]


def always(rel: Relationship) -> bool:
    return True


def assignee_or_unassigned(rel: Relationship) -> bool:
    return rel.is_assignee or rel.is_unassigned


def creator(rel: Relationship) -> bool:
    return rel.is_creator


def creator_while_editable(rel: Relationship) -> bool:
    return rel.is_creator and rel.status in CREATOR_EDITABLE_STATUSES


def owner(rel: Relationship) -> bool:
    return rel.is_owner


# (role, action) -> rule. A missing entry is a deny.
POLICY: Mapping[Tuple[Role, TicketAction], Rule] = {
    (Role.ADMIN, TicketAction.VIEW): always,
    (Role.ADMIN, TicketAction.MODIFY): always,
    (Role.ADMIN, TicketAction.ASSIGN): always,
    (Role.ADMIN, TicketAction.COMMENT): always,
    (Role.ADMIN, TicketAction.ATTACH): always,
    (Role.ADMIN, TicketAction.EDIT_COMMENT): always,
    (Role.ADMIN, TicketAction.DELETE_COMMENT): always,
    (Role.ADMIN, TicketAction.DELETE_ATTACHMENT): always,

    (Role.SUPERVISOR, TicketAction.VIEW): always,
    (Role.SUPERVISOR, TicketAction.MODIFY): always,
    (Role.SUPERVISOR, TicketAction.ASSIGN): always,
    (Role.SUPERVISOR, TicketAction.COMMENT): always,
    (Role.SUPERVISOR, TicketAction.ATTACH): always,
    (Role.SUPERVISOR, TicketAction.EDIT_COMMENT): owner,
    (Role.SUPERVISOR, TicketAction.DELETE_COMMENT): owner,
    (Role.SUPERVISOR, TicketAction.DELETE_ATTACHMENT): owner,

    # Any agent may triage an unclaimed ticket
    (Role.AGENT, TicketAction.VIEW): assignee_or_unassigned,
    (Role.AGENT, TicketAction.MODIFY): assignee_or_unassigned,
    (Role.AGENT, TicketAction.COMMENT): assignee_or_unassigned,
    (Role.AGENT, TicketAction.ATTACH): assignee_or_unassigned,
    (Role.AGENT, TicketAction.ASSIGN): always,
    (Role.AGENT, TicketAction.EDIT_COMMENT): owner,
    (Role.AGENT, TicketAction.DELETE_COMMENT): owner,
    (Role.AGENT, TicketAction.DELETE_ATTACHMENT): owner,

    (Role.EMPLOYEE, TicketAction.VIEW): creator,
    (Role.EMPLOYEE, TicketAction.MODIFY): creator_while_editable,
    (Role.EMPLOYEE, TicketAction.COMMENT): creator,
    (Role.EMPLOYEE, TicketAction.ATTACH): creator,
    (Role.EMPLOYEE, TicketAction.EDIT_COMMENT): owner,
    (Role.EMPLOYEE, TicketAction.DELETE_COMMENT): owner,
    (Role.EMPLOYEE, TicketAction.DELETE_ATTACHMENT): owner,
}

TICKET_ACTIONS: List[TicketAction] = [
    action for action in TicketAction if action not in OWNERSHIP_ACTIONS
]


class PermissionGuard:
    """
    Permission enforcement for ticket operations

    Rules:
    - Admin and supervisor can view, modify, assign, comment and attach on any ticket
    - Agent can view, modify, comment and attach on tickets assigned to them
      or still unassigned, and can assign any ticket
    - Employee can view, comment and attach on their own tickets, and modify
      them only while open or pending_user; never assign
    - Editing/deleting a comment or deleting an attachment is for its author
      or an admin
    - Only agent-class roles write internal comments

    Decisions depend only on the arguments, so one guard instance is shared
    by every entry point.
    """

    def __init__(self, policy: Optional[Mapping[Tuple[Role, TicketAction], Rule]] = None):
        self._policy = policy or POLICY

    def relationship(
        self,
        actor: ActorContext,
        ticket: Optional[Ticket] = None,
        owner_id: Optional[str] = None
    ) -> Relationship:
        """Compute relationship predicates for actor"""
        if ticket is None:
            return Relationship(is_owner=owner_id is not None and owner_id == actor.user_id)
        return Relationship(
            is_creator=ticket.created_by == actor.user_id,
            is_assignee=ticket.assigned_to is not None and ticket.assigned_to == actor.user_id,
            is_unassigned=ticket.assigned_to is None,
            is_owner=owner_id is not None and owner_id == actor.user_id,
            status=ticket.status
        )

    def is_permitted(
        self,
        actor: ActorContext,
        action: TicketAction,
        ticket: Optional[Ticket] = None,
        owner_id: Optional[str] = None
    ) -> bool:
        """
        Decide one action

        Ticket actions need the ticket; ownership actions need the owner id
        (comment author or attachment uploader).
        """
        if not actor.is_active:
            return False
        if action in OWNERSHIP_ACTIONS:
            if owner_id is None:
                return False
        elif ticket is None:
            return False

        rule = self._policy.get((actor.role, action))
        if rule is None:
            return False
        return rule(self.relationship(actor, ticket, owner_id))

    def require(
        self,
        actor: ActorContext,
        action: TicketAction,
        ticket: Optional[Ticket] = None,
        owner_id: Optional[str] = None
    ) -> None:
        """
        Raise unless the action is permitted

        Raises:
            AuthorizationDeniedError: If the guard denies the action
        """
        if self.is_permitted(actor, action, ticket, owner_id):
            return

        details: Dict[str, Any] = {"action": action.value, "role": actor.role.value}
        if ticket is not None:
            details["ticket_id"] = ticket.ticket_id
        logger.info(
            f"Permission denied: {action.value}",
            extra={
                "actor_id": actor.user_id,
                "role": actor.role.value,
                "ticket_id": ticket.ticket_id if ticket else None
            }
        )
        raise AuthorizationDeniedError(
            f"You do not have permission to {action.value.replace('_', ' ')}",
            details=details
        )

    def can_view(self, actor: ActorContext, ticket: Ticket) -> bool:
        """Check if actor can view ticket"""
        return self.is_permitted(actor, TicketAction.VIEW, ticket)

    def can_modify(self, actor: ActorContext, ticket: Ticket) -> bool:
        """Check if actor can modify ticket fields or status"""
        return self.is_permitted(actor, TicketAction.MODIFY, ticket)

    def can_assign(self, actor: ActorContext, ticket: Ticket) -> bool:
        """Check if actor can assign, reassign or unassign ticket"""
        return self.is_permitted(actor, TicketAction.ASSIGN, ticket)

    def can_comment(self, actor: ActorContext, ticket: Ticket) -> bool:
        """Check if actor can comment on ticket"""
        return self.is_permitted(actor, TicketAction.COMMENT, ticket)

    def can_attach(self, actor: ActorContext, ticket: Ticket) -> bool:
        """Check if actor can upload files to ticket"""
        return self.is_permitted(actor, TicketAction.ATTACH, ticket)

    def can_edit_comment(self, actor: ActorContext, comment: Comment) -> bool:
        """Check if actor can edit comment"""
        return self.is_permitted(actor, TicketAction.EDIT_COMMENT, owner_id=comment.author_id)

    def can_delete_comment(self, actor: ActorContext, comment: Comment) -> bool:
        """Check if actor can delete comment"""
        return self.is_permitted(actor, TicketAction.DELETE_COMMENT, owner_id=comment.author_id)

    def can_delete_attachment(self, actor: ActorContext, attachment: Attachment) -> bool:
        """Check if actor can delete attachment"""
        return self.is_permitted(actor, TicketAction.DELETE_ATTACHMENT, owner_id=attachment.uploaded_by)

    def can_create_internal_comment(self, actor: ActorContext) -> bool:
        """Internal comments are hidden from employees, so only staff write them"""
        return actor.is_active and actor.role in AGENT_CLASS_ROLES

    def get_available_actions(self, actor: ActorContext, ticket: Ticket) -> List[str]:
        """Get list of ticket actions actor can perform"""
        return [
            action.value for action in TICKET_ACTIONS
            if self.is_permitted(actor, action, ticket)
        ]

    def ticket_scope(self, actor: ActorContext) -> Dict[str, Any]:
        """
        Query filter for the tickets actor may list

        Mirrors the VIEW rules above so listing and fetching agree.
        """
        if actor.role in (Role.ADMIN, Role.SUPERVISOR):
            return {}
        if actor.role == Role.AGENT:
            return {"$or": [{"assigned_to": actor.user_id}, {"assigned_to": None}]}
        return {"created_by": actor.user_id}
