"""Audit Repository - Data access for audit log entries"""
from typing import Any, Dict, List, Optional, Tuple
from datetime import datetime
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError
from pymongo import DESCENDING, ASCENDING

from .mongo_client import get_database, next_sequence, to_storage
from ..domain.models import AuditLogEntry
from ..domain.enums import AuditAction, ResourceType
from ..domain.errors import AuditWriteFailedError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AuditRepository:
    """Repository for audit log operations (append-only)"""

    def __init__(self, db: Optional[Database] = None):
        db = db if db is not None else get_database()
        self._audit_logs: Collection = db["audit_logs"]
        self._counters: Collection = db["counters"]

    def create_entry(self, entry: AuditLogEntry) -> AuditLogEntry:
        """
        Append an audit entry

        Raises:
            AuditWriteFailedError: If the store rejects the write
        """
        doc = to_storage(entry.model_dump())
        doc["_id"] = entry.audit_id

        try:
            doc["seq"] = next_sequence(self._counters, "audit_logs")
            self._audit_logs.insert_one(doc)
        except PyMongoError as e:
            raise AuditWriteFailedError(
                f"Failed to persist audit entry {entry.audit_id}",
                details={"audit_id": entry.audit_id, "action": entry.action.value}
            ) from e

        logger.debug(
            f"Created audit entry: {entry.action.value}",
            extra={
                "audit_id": entry.audit_id,
                "actor_id": entry.actor_id,
                "correlation_id": entry.correlation_id
            }
        )
        return entry

    def _build_query(
        self,
        actor_id: Optional[str] = None,
        action: Optional[AuditAction] = None,
        resource_type: Optional[ResourceType] = None,
        resource_id: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None
    ) -> Dict[str, Any]:
        query: Dict[str, Any] = {}
        if actor_id:
            query["actor_id"] = actor_id
        if action:
            query["action"] = action.value
        if resource_type:
            query["resource_type"] = resource_type.value
        if resource_id:
            query["resource_id"] = resource_id
        if date_from or date_to:
            date_query: Dict[str, Any] = {}
            if date_from:
                date_query["$gte"] = date_from
            if date_to:
                date_query["$lte"] = date_to
            query["timestamp"] = date_query
        return query

    def query_entries(
        self,
        actor_id: Optional[str] = None,
        action: Optional[AuditAction] = None,
        resource_type: Optional[ResourceType] = None,
        resource_id: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 50
    ) -> Tuple[List[AuditLogEntry], int]:
        """
        Query audit entries, newest first

        Returns:
            (page of entries, total matching)
        """
        query = self._build_query(actor_id, action, resource_type, resource_id, date_from, date_to)
        total = self._audit_logs.count_documents(query)
        cursor = (
            self._audit_logs.find(query)
            .sort([("timestamp", DESCENDING), ("seq", DESCENDING)])
            .skip(skip)
            .limit(limit)
        )

        entries = []
        for doc in cursor:
            doc.pop("_id", None)
            entries.append(AuditLogEntry.model_validate(doc))

        return entries, total

    def get_entries_for_resource(
        self,
        resource_type: ResourceType,
        resource_id: str
    ) -> List[AuditLogEntry]:
        """History of one resource, oldest first"""
        cursor = self._audit_logs.find(
            {"resource_type": resource_type.value, "resource_id": resource_id}
        ).sort([("timestamp", ASCENDING), ("seq", ASCENDING)])

        entries = []
        for doc in cursor:
            doc.pop("_id", None)
            entries.append(AuditLogEntry.model_validate(doc))

        return entries

    def count_entries(self, since: Optional[datetime] = None) -> int:
        """Count entries, optionally only those at or after since"""
        query: Dict[str, Any] = {}
        if since is not None:
            query["timestamp"] = {"$gte": since}
        return self._audit_logs.count_documents(query)

    def count_actions_matching(self, pattern: str) -> int:
        """Count entries whose action name matches a regex"""
        return self._audit_logs.count_documents({"action": {"$regex": pattern}})

    def count_by_action(self, action: AuditAction) -> int:
        """Count entries for one action"""
        return self._audit_logs.count_documents({"action": action.value})

    def top_actions(self, since: Optional[datetime] = None, limit: int = 10) -> List[Dict[str, Any]]:
        """Most frequent actions as [{"action": ..., "count": ...}]"""
        pipeline: List[Dict[str, Any]] = []
        if since is not None:
            pipeline.append({"$match": {"timestamp": {"$gte": since}}})
        pipeline.extend([
            {"$group": {"_id": "$action", "count": {"$sum": 1}}},
            {"$sort": {"count": DESCENDING, "_id": ASCENDING}},
            {"$limit": limit}
        ])

        return [
            {"action": row["_id"], "count": row["count"]}
            for row in self._audit_logs.aggregate(pipeline)
        ]
