"""Audit log access: admin only, bounded pages, security stats"""
import pytest

from helpdesk.domain.enums import AuditAction, ResourceType
from helpdesk.domain.errors import AuthorizationDeniedError
from helpdesk.repositories.audit_repo import AuditRepository


@pytest.mark.parametrize("role", ["employee", "agent", "supervisor"])
def test_non_admins_are_refused_and_recorded(db, audit_service, actors, role):
    with pytest.raises(AuthorizationDeniedError):
        audit_service.query_logs(actors[role])
    with pytest.raises(AuthorizationDeniedError):
        audit_service.security_stats(actors[role])

    denials, total = AuditRepository(db).query_entries(action=AuditAction.ACCESS_DENIED)
    assert total == 2
    assert {e.details["attempted"] for e in denials} == {"view_audit_logs", "view_security_stats"}
    assert all(e.actor_id == actors[role].user_id for e in denials)
    assert all(e.resource_type == ResourceType.SYSTEM for e in denials)


def test_admin_queries_are_filtered_paged_and_recorded(audit_service, actors, open_ticket, ticket_service):
    ticket_service.update_ticket(open_ticket.ticket_id, actors["employee"], {"title": "Laptop still dead"})

    entries, total = audit_service.query_logs(actors["admin"], resource_id=open_ticket.ticket_id)
    assert total == 2
    assert {e.action for e in entries} == {AuditAction.TICKET_UPDATED, AuditAction.TICKET_CREATED}

    entries, total = audit_service.query_logs(actors["admin"], limit=10_000)
    assert len(entries) == total

    viewed, _ = audit_service.query_logs(actors["admin"], action=AuditAction.AUDIT_LOGS_VIEWED)
    assert sorted(v.details["limit"] for v in viewed) == [50, 100]


def test_resource_history_oldest_first(audit_service, actors, assigned_ticket):
    history = audit_service.get_resource_history(actors["admin"], ResourceType.TICKET, assigned_ticket.ticket_id)

    assert [e.action for e in history] == [AuditAction.TICKET_CREATED, AuditAction.TICKET_ASSIGNED]
    assert history[1].details["status"] == {"from": "open", "to": "assigned"}


def test_security_stats(audit_service, comment_service, actors, assigned_ticket):
    with pytest.raises(AuthorizationDeniedError):
        comment_service.create_comment(assigned_ticket.ticket_id, "Let me in", actors["employee2"])

    stats = audit_service.security_stats(actors["admin"])

    assert stats["total_entries"] == 3
    assert stats["recent_entries"] == 3
    assert stats["window_days"] == 7
    assert stats["access_denied"] == 1
    assert stats["failed_actions"] == 1
    assert {"action": "ACCESS_DENIED", "count": 1} in stats["top_actions"]
