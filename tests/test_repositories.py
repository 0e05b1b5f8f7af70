"""Repository behaviour against an in-memory MongoDB"""
import pytest

from helpdesk.domain.enums import AuditAction, ResourceType, Role, TicketStatus, TicketPriority
from helpdesk.domain.errors import StoreConflictError, TicketNotFoundError, UserNotFoundError
from helpdesk.domain.models import AuditLogEntry, Comment, User
from helpdesk.repositories.audit_repo import AuditRepository
from helpdesk.repositories.comment_repo import CommentRepository
from helpdesk.repositories.mongo_client import next_sequence
from helpdesk.repositories.ticket_repo import TicketRepository, UNASSIGNED
from helpdesk.repositories.user_repo import UserRepository
from helpdesk.engine.permission_guard import PermissionGuard
from helpdesk.utils.time import utc_now, days_ago
from tests.conftest import make_ticket, make_actor


def _seed(repo, **overrides):
    ticket = make_ticket(**overrides)
    return repo.create_ticket(ticket)


def test_conditional_update_bumps_version(db):
    repo = TicketRepository(db)
    _seed(repo)

    updated = repo.update_ticket("TKT-test", {"priority": TicketPriority.HIGH}, expected_version=1)

    assert updated.version == 2
    assert updated.priority == TicketPriority.HIGH
    assert repo.get_ticket("TKT-test").priority == TicketPriority.HIGH


def test_stale_version_conflicts(db):
    repo = TicketRepository(db)
    _seed(repo)
    repo.update_ticket("TKT-test", {"title": "First writer"}, expected_version=1)

    with pytest.raises(StoreConflictError) as exc_info:
        repo.update_ticket("TKT-test", {"title": "Second writer"}, expected_version=1)

    assert exc_info.value.http_status == 409
    assert repo.get_ticket("TKT-test").title == "First writer"


def test_expected_fields_guard_the_write(db):
    repo = TicketRepository(db)
    _seed(repo)

    with pytest.raises(StoreConflictError):
        repo.update_ticket(
            "TKT-test", {"assigned_to": "USR-agent"},
            expected={"assigned_to": "USR-agent2", "status": TicketStatus.OPEN}
        )

    updated = repo.update_ticket(
        "TKT-test", {"assigned_to": "USR-agent", "status": TicketStatus.ASSIGNED},
        expected_version=1,
        expected={"assigned_to": None, "status": TicketStatus.OPEN}
    )
    assert updated.status == TicketStatus.ASSIGNED


def test_update_of_missing_ticket_is_not_found(db):
    with pytest.raises(TicketNotFoundError):
        TicketRepository(db).update_ticket("TKT-missing", {"title": "x"}, expected_version=1)


def test_listing_scope_and_filters(db):
    repo = TicketRepository(db)
    _seed(repo, ticket_id="TKT-1", created_by="USR-employee")
    _seed(repo, ticket_id="TKT-2", created_by="USR-employee", assigned_to="USR-agent", status=TicketStatus.ASSIGNED)
    _seed(repo, ticket_id="TKT-3", created_by="USR-employee2", assigned_to="USR-agent2", status=TicketStatus.ASSIGNED)
    guard = PermissionGuard()

    def ids(tickets):
        return sorted(t.ticket_id for t in tickets[0])

    agent_scope = guard.ticket_scope(make_actor(Role.AGENT, "USR-agent"))
    employee_scope = guard.ticket_scope(make_actor(Role.EMPLOYEE, "USR-employee"))

    assert ids(repo.list_tickets(scope=agent_scope)) == ["TKT-1", "TKT-2"]
    assert ids(repo.list_tickets(scope=employee_scope)) == ["TKT-1", "TKT-2"]
    assert ids(repo.list_tickets(scope={})) == ["TKT-1", "TKT-2", "TKT-3"]

    # Filters narrow the scope, never widen it
    assert ids(repo.list_tickets(scope=agent_scope, assigned_to="USR-agent2")) == []
    assert ids(repo.list_tickets(scope=agent_scope, assigned_to=UNASSIGNED)) == ["TKT-1"]
    assert ids(repo.list_tickets(scope={}, status=TicketStatus.ASSIGNED)) == ["TKT-2", "TKT-3"]
    assert repo.count_tickets(employee_scope, status=TicketStatus.OPEN) == 1


def test_listing_pages_are_stable(db):
    repo = TicketRepository(db)
    for i in range(5):
        _seed(repo, ticket_id=f"TKT-{i}")

    first, total = repo.list_tickets(limit=2, sort_by="not_a_field")
    second, _ = repo.list_tickets(skip=2, limit=2)

    assert total == 5
    assert [t.ticket_id for t in first] == ["TKT-4", "TKT-3"]
    assert [t.ticket_id for t in second] == ["TKT-2", "TKT-1"]


def test_user_lookup_by_email_ignores_case(db):
    repo = UserRepository(db)
    repo.create_user(User(
        user_id="USR-1", email="Jane.Doe@example.com", display_name="Jane",
        role=Role.AGENT, created_at=utc_now()
    ))

    assert repo.get_user_by_email("jane.doe@EXAMPLE.com").user_id == "USR-1"
    assert repo.get_user_by_email("jane.doe+x@example.com") is None
    with pytest.raises(UserNotFoundError):
        repo.get_user_or_raise("USR-2")


def test_audit_counts_and_top_actions(db):
    repo = AuditRepository(db)
    now = utc_now()

    def entry(i, action, timestamp):
        return AuditLogEntry(
            audit_id=f"AUD-{i}", actor_id="USR-admin", action=action,
            resource_type=ResourceType.TICKET, resource_id="TKT-1", timestamp=timestamp
        )

    repo.create_entry(entry(1, AuditAction.TICKET_CREATED, days_ago(30)))
    repo.create_entry(entry(2, AuditAction.ACCESS_DENIED, now))
    repo.create_entry(entry(3, AuditAction.ACCESS_DENIED, now))
    repo.create_entry(entry(4, AuditAction.ATTACHMENT_UPLOAD_FAILED, now))

    assert repo.count_entries() == 4
    assert repo.count_entries(since=days_ago(7)) == 3
    assert repo.count_by_action(AuditAction.ACCESS_DENIED) == 2
    assert repo.count_actions_matching("FAILED|DENIED") == 3
    assert repo.top_actions(since=days_ago(7)) == [
        {"action": "ACCESS_DENIED", "count": 2},
        {"action": "ATTACHMENT_UPLOAD_FAILED", "count": 1},
    ]

    entries, total = repo.query_entries(action=AuditAction.ACCESS_DENIED, limit=1)
    assert total == 2
    assert len(entries) == 1


def test_same_instant_audit_entries_keep_write_order(db):
    repo = AuditRepository(db)
    instant = utc_now()
    for audit_id, action in [
        ("AUD-zzzz", AuditAction.TICKET_UPDATED),
        ("AUD-mmmm", AuditAction.TICKET_STATUS_CHANGED),
        ("AUD-aaaa", AuditAction.TICKET_ASSIGNED),
    ]:
        repo.create_entry(AuditLogEntry(
            audit_id=audit_id, actor_id="USR-agent", action=action,
            resource_type=ResourceType.TICKET, resource_id="TKT-1", timestamp=instant
        ))

    history = repo.get_entries_for_resource(ResourceType.TICKET, "TKT-1")
    assert [e.audit_id for e in history] == ["AUD-zzzz", "AUD-mmmm", "AUD-aaaa"]

    newest_first, _ = repo.query_entries(resource_id="TKT-1")
    assert [e.audit_id for e in newest_first] == ["AUD-aaaa", "AUD-mmmm", "AUD-zzzz"]


def test_same_instant_comments_keep_write_order(db):
    repo = CommentRepository(db)
    instant = utc_now()
    for comment_id in ["CMT-zzzz", "CMT-aaaa", "CMT-mmmm"]:
        repo.create_comment(Comment(
            comment_id=comment_id, ticket_id="TKT-1", author_id="USR-agent",
            author_role=Role.AGENT, content=f"note {comment_id}", created_at=instant
        ))

    comments = repo.get_comments_for_ticket("TKT-1")
    assert [c.comment_id for c in comments] == ["CMT-zzzz", "CMT-aaaa", "CMT-mmmm"]


def test_sequence_counter_is_per_name(db):
    assert [next_sequence(db["counters"], "comments") for _ in range(3)] == [1, 2, 3]
    assert next_sequence(db["counters"], "audit_logs") == 1
