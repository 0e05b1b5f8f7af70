"""Ticket Lifecycle - Status state machine"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from ..domain.models import Ticket, ActorContext
from ..domain.enums import Role, TicketStatus
from ..domain.errors import InvalidTransitionError
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


TERMINAL_STATUSES: FrozenSet[TicketStatus] = frozenset({TicketStatus.CLOSED})

LIVE_STATUSES: FrozenSet[TicketStatus] = frozenset(
    status for status in TicketStatus if status not in TERMINAL_STATUSES
)

# Statuses in which the creator may still edit their own ticket
CREATOR_EDITABLE_STATUSES: FrozenSet[TicketStatus] = frozenset({
    TicketStatus.OPEN,
    TicketStatus.PENDING_USER,
})

_STAFF_TRANSITIONS: Mapping[TicketStatus, FrozenSet[TicketStatus]] = {
    requested: LIVE_STATUSES for requested in TicketStatus
}

# role -> requested status -> statuses it may be requested from
TRANSITION_TABLE: Mapping[Role, Mapping[TicketStatus, FrozenSet[TicketStatus]]] = {
    Role.EMPLOYEE: {
        TicketStatus.PENDING_USER: CREATOR_EDITABLE_STATUSES,
    },
    Role.AGENT: _STAFF_TRANSITIONS,
    Role.SUPERVISOR: _STAFF_TRANSITIONS,
    Role.ADMIN: _STAFF_TRANSITIONS,
}


@dataclass(frozen=True)
class TransitionDecision:
    """Outcome of checking one requested status change"""
    allowed: bool
    current: TicketStatus
    requested: TicketStatus
    reason: Optional[str] = None
    enters_resolved: bool = False
    enters_closed: bool = False


class TicketLifecycle:
    """
    Ticket status state machine

    open -> assigned -> in_progress -> pending_user -> resolved -> closed

    - closed is terminal: nothing leaves it, for any role
    - employees may only ask for pending_user, and only while the ticket is
      still editable by them (open, pending_user)
    - agent, supervisor and admin may move a live ticket to any status
    - entering resolved/closed stamps resolved_at/closed_at once; re-entering
      a status never overwrites an existing stamp

    Whether the actor may touch this particular ticket at all is decided by
    PermissionGuard, not here.
    """

    def __init__(self, table: Optional[Mapping[Role, Mapping[TicketStatus, FrozenSet[TicketStatus]]]] = None):
        self._table = table or TRANSITION_TABLE

    def evaluate(
        self,
        current: TicketStatus,
        requested: TicketStatus,
        role: Role
    ) -> TransitionDecision:
        """Decide whether role may move a ticket from current to requested"""
        if current in TERMINAL_STATUSES:
            return TransitionDecision(
                allowed=False,
                current=current,
                requested=requested,
                reason=f"Ticket is {current.value}; no further transitions are allowed"
            )

        sources = self._table.get(role, {}).get(requested)
        if sources is None:
            return TransitionDecision(
                allowed=False,
                current=current,
                requested=requested,
                reason=f"Role {role.value} cannot move a ticket to {requested.value}"
            )

        if current not in sources:
            return TransitionDecision(
                allowed=False,
                current=current,
                requested=requested,
                reason=f"Role {role.value} cannot move a ticket from {current.value} to {requested.value}"
            )

        return TransitionDecision(
            allowed=True,
            current=current,
            requested=requested,
            enters_resolved=requested == TicketStatus.RESOLVED,
            enters_closed=requested == TicketStatus.CLOSED
        )

    def can_transition(self, current: TicketStatus, requested: TicketStatus, role: Role) -> bool:
        """Check a transition without raising"""
        return self.evaluate(current, requested, role).allowed

    def allowed_targets(self, current: TicketStatus, role: Role) -> List[TicketStatus]:
        """Statuses role may request from current, in lifecycle order"""
        return [
            status for status in TicketStatus
            if self.evaluate(current, status, role).allowed
        ]

    def build_updates(
        self,
        ticket: Ticket,
        requested: TicketStatus,
        actor: ActorContext,
        now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Field updates for moving ticket to requested

        Raises:
            InvalidTransitionError: If the move is not allowed for the actor's role
        """
        decision = self.evaluate(ticket.status, requested, actor.role)
        if not decision.allowed:
            logger.info(
                f"Transition denied: {ticket.status.value} -> {requested.value}",
                extra={"ticket_id": ticket.ticket_id, "actor_id": actor.user_id, "role": actor.role.value}
            )
            raise InvalidTransitionError(
                decision.reason,
                details={
                    "ticket_id": ticket.ticket_id,
                    "current_status": ticket.status.value,
                    "requested_status": requested.value,
                    "role": actor.role.value
                }
            )

        now = now or utc_now()
        updates: Dict[str, Any] = {"status": requested}
        if decision.enters_resolved and ticket.resolved_at is None:
            updates["resolved_at"] = now
        if decision.enters_closed and ticket.closed_at is None:
            updates["closed_at"] = now
        return updates

    def transition(
        self,
        ticket: Ticket,
        requested: TicketStatus,
        actor: ActorContext,
        now: Optional[datetime] = None
    ) -> Ticket:
        """
        Apply a status change to an in-memory ticket

        Returns:
            Updated copy of the ticket; the input is left untouched

        Raises:
            InvalidTransitionError: If the move is not allowed for the actor's role
        """
        updates = self.build_updates(ticket, requested, actor, now)
        return ticket.model_copy(update=updates)
