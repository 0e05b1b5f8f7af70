"""Audit Service - Admin access to the audit trail"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ..domain.models import AuditLogEntry, ActorContext, RequestContext
from ..domain.enums import Role, AuditAction, ResourceType
from ..domain.errors import AuthorizationDeniedError
from ..repositories.audit_repo import AuditRepository
from ..engine.audit_writer import AuditWriter
from ..config.settings import settings
from ..utils.time import days_ago
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Action names counted as failures in the security stats
FAILURE_PATTERN = "FAILED|DENIED"


class AuditService:
    """Service for audit log queries (admin only)"""

    def __init__(
        self,
        audit_repo: Optional[AuditRepository] = None,
        audit: Optional[AuditWriter] = None
    ):
        self.audit_repo = audit_repo or AuditRepository()
        self.audit = audit or AuditWriter(repo=self.audit_repo)

    def _require_admin(self, actor: ActorContext, attempted: str, context: Optional[RequestContext]) -> None:
        if actor.is_active and actor.role == Role.ADMIN:
            return
        self.audit.record_access_denied(
            actor,
            attempted=attempted,
            resource_type=ResourceType.SYSTEM,
            resource_id="audit_logs",
            reason="admin role required",
            context=context
        )
        raise AuthorizationDeniedError(
            "Only admins can access audit logs",
            details={"action": attempted, "role": actor.role.value}
        )

    def query_logs(
        self,
        actor: ActorContext,
        actor_id: Optional[str] = None,
        action: Optional[AuditAction] = None,
        resource_type: Optional[ResourceType] = None,
        resource_id: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        page: int = 1,
        limit: int = 50,
        context: Optional[RequestContext] = None
    ) -> Tuple[List[AuditLogEntry], int]:
        """
        Page through audit entries, newest first

        limit is capped at audit_query_max_limit.
        """
        self._require_admin(actor, "view_audit_logs", context)

        page = max(page, 1)
        limit = max(1, min(limit, settings.audit_query_max_limit))

        entries, total = self.audit_repo.query_entries(
            actor_id=actor_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            date_from=date_from,
            date_to=date_to,
            skip=(page - 1) * limit,
            limit=limit
        )

        self.audit.record(
            actor_id=actor.user_id,
            action=AuditAction.AUDIT_LOGS_VIEWED,
            resource_type=ResourceType.SYSTEM,
            resource_id="audit_logs",
            details={
                "filters": {
                    "actor_id": actor_id,
                    "action": action.value if action else None,
                    "resource_type": resource_type.value if resource_type else None,
                    "resource_id": resource_id
                },
                "page": page,
                "limit": limit
            },
            context=context
        )
        return entries, total

    def get_resource_history(
        self,
        actor: ActorContext,
        resource_type: ResourceType,
        resource_id: str,
        context: Optional[RequestContext] = None
    ) -> List[AuditLogEntry]:
        """Full history of one resource, oldest first"""
        self._require_admin(actor, "view_audit_logs", context)
        return self.audit_repo.get_entries_for_resource(resource_type, resource_id)

    def security_stats(
        self,
        actor: ActorContext,
        context: Optional[RequestContext] = None
    ) -> Dict[str, Any]:
        """Totals, recent activity, denied and failed counts, top recent actions"""
        self._require_admin(actor, "view_security_stats", context)

        window_days = settings.audit_stats_window_days
        since = days_ago(window_days)

        return {
            "total_entries": self.audit_repo.count_entries(),
            "recent_entries": self.audit_repo.count_entries(since=since),
            "window_days": window_days,
            "access_denied": self.audit_repo.count_by_action(AuditAction.ACCESS_DENIED),
            "failed_actions": self.audit_repo.count_actions_matching(FAILURE_PATTERN),
            "top_actions": self.audit_repo.top_actions(since=since, limit=10)
        }
