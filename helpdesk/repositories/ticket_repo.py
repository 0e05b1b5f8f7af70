"""Ticket Repository - Data access for tickets"""
from typing import Any, Dict, List, Optional, Tuple
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo import DESCENDING, ASCENDING

from .mongo_client import get_database, to_storage
from ..domain.models import Ticket
from ..domain.enums import TicketStatus, TicketPriority, TicketCategory
from ..domain.errors import TicketNotFoundError, StoreConflictError
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Sentinel so that "filter on unassigned" differs from "no assignee filter"
UNASSIGNED = ""


class TicketRepository:
    """Repository for ticket operations"""

    def __init__(self, db: Optional[Database] = None):
        db = db if db is not None else get_database()
        self._tickets: Collection = db["tickets"]

    # =========================================================================
    # Ticket CRUD
    # =========================================================================

    def create_ticket(self, ticket: Ticket) -> Ticket:
        """Create a new ticket"""
        # Don't use mode="json" - it converts datetime to strings, breaking MongoDB sorting
        doc = to_storage(ticket.model_dump())
        doc["_id"] = ticket.ticket_id

        self._tickets.insert_one(doc)
        logger.info(f"Created ticket: {ticket.ticket_id}", extra={"ticket_id": ticket.ticket_id})
        return ticket

    def get_ticket(self, ticket_id: str) -> Optional[Ticket]:
        """Get ticket by ID"""
        doc = self._tickets.find_one({"ticket_id": ticket_id})
        if doc:
            doc.pop("_id", None)
            return Ticket.model_validate(doc)
        return None

    def get_ticket_or_raise(self, ticket_id: str) -> Ticket:
        """Get ticket by ID or raise error"""
        ticket = self.get_ticket(ticket_id)
        if not ticket:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found", details={"ticket_id": ticket_id})
        return ticket

    def update_ticket(
        self,
        ticket_id: str,
        updates: Dict[str, Any],
        expected_version: Optional[int] = None,
        expected: Optional[Dict[str, Any]] = None
    ) -> Ticket:
        """
        Conditionally update a ticket

        The write only lands if the stored version (and every field in
        expected) still matches what the caller read. Each successful write
        bumps the version by one.

        Raises:
            StoreConflictError: If the ticket exists but changed underneath
            TicketNotFoundError: If the ticket does not exist
        """
        updates = dict(updates)
        updates.pop("version", None)
        updates["updated_at"] = utc_now()

        filter_query: Dict[str, Any] = {"ticket_id": ticket_id}
        if expected_version is not None:
            filter_query["version"] = expected_version
        if expected:
            filter_query.update(to_storage(expected))

        result = self._tickets.find_one_and_update(
            filter_query,
            {"$set": to_storage(updates), "$inc": {"version": 1}},
            return_document=True
        )

        if result is None:
            exists = self._tickets.find_one({"ticket_id": ticket_id}, {"_id": 1})
            if exists:
                logger.warning(
                    f"Conditional update lost: {ticket_id}",
                    extra={"ticket_id": ticket_id}
                )
                raise StoreConflictError(
                    f"Ticket {ticket_id} was modified. Please refresh and try again.",
                    details={"ticket_id": ticket_id, "expected_version": expected_version}
                )
            raise TicketNotFoundError(f"Ticket {ticket_id} not found", details={"ticket_id": ticket_id})

        result.pop("_id", None)
        logger.info(f"Updated ticket: {ticket_id}", extra={"ticket_id": ticket_id})
        return Ticket.model_validate(result)

    # =========================================================================
    # Listing
    # =========================================================================

    def _build_query(
        self,
        scope: Optional[Dict[str, Any]] = None,
        status: Optional[TicketStatus] = None,
        priority: Optional[TicketPriority] = None,
        category: Optional[TicketCategory] = None,
        assigned_to: Optional[str] = None,
        created_by: Optional[str] = None
    ) -> Dict[str, Any]:
        and_conditions: List[Dict[str, Any]] = []

        # Visibility scope always applies; explicit filters only narrow it
        if scope:
            and_conditions.append(scope)
        if status:
            and_conditions.append({"status": status.value})
        if priority:
            and_conditions.append({"priority": priority.value})
        if category:
            and_conditions.append({"category": category.value})
        if assigned_to is not None:
            and_conditions.append({"assigned_to": assigned_to or None})
        if created_by:
            and_conditions.append({"created_by": created_by})

        if not and_conditions:
            return {}
        if len(and_conditions) == 1:
            return and_conditions[0]
        return {"$and": and_conditions}

    def list_tickets(
        self,
        scope: Optional[Dict[str, Any]] = None,
        status: Optional[TicketStatus] = None,
        priority: Optional[TicketPriority] = None,
        category: Optional[TicketCategory] = None,
        assigned_to: Optional[str] = None,
        created_by: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[Ticket], int]:
        """
        List tickets inside a visibility scope

        assigned_to=UNASSIGNED matches tickets nobody has claimed.

        Returns:
            (page of tickets, total matching)
        """
        query = self._build_query(scope, status, priority, category, assigned_to, created_by)

        sort_direction = DESCENDING if sort_order == "desc" else ASCENDING
        valid_sort_fields = ["created_at", "updated_at", "priority", "status", "title"]
        if sort_by not in valid_sort_fields:
            sort_by = "created_at"

        total = self._tickets.count_documents(query)
        cursor = (
            self._tickets.find(query)
            .sort([(sort_by, sort_direction), ("ticket_id", sort_direction)])
            .skip(skip)
            .limit(limit)
        )

        tickets = []
        for doc in cursor:
            doc.pop("_id", None)
            tickets.append(Ticket.model_validate(doc))

        return tickets, total

    def count_tickets(self, scope: Optional[Dict[str, Any]] = None, **filters: Any) -> int:
        """Count tickets inside a visibility scope"""
        return self._tickets.count_documents(self._build_query(scope, **filters))
