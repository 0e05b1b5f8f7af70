"""Authorization policy: exhaustive truth table against an independent oracle"""
import itertools

import pytest

from helpdesk.domain.enums import Role, TicketAction, TicketStatus, OWNERSHIP_ACTIONS
from helpdesk.domain.errors import AuthorizationDeniedError
from helpdesk.domain.models import Comment, Attachment
from helpdesk.engine.permission_guard import PermissionGuard
from helpdesk.utils.time import utc_now
from tests.conftest import make_ticket, make_actor

ACTOR_ID = "USR-actor"
OTHER_ID = "USR-other"

guard = PermissionGuard()


def oracle(role, action, is_creator, is_assignee, is_unassigned, is_owner, status):
    """Plain restatement of the access rules"""
    if action in (TicketAction.DELETE_COMMENT, TicketAction.DELETE_ATTACHMENT, TicketAction.EDIT_COMMENT):
        return is_owner or role == Role.ADMIN
    if role in (Role.ADMIN, Role.SUPERVISOR):
        return True
    if role == Role.AGENT:
        if action == TicketAction.ASSIGN:
            return True
        return is_assignee or is_unassigned
    # employee
    if action == TicketAction.ASSIGN:
        return False
    if action == TicketAction.MODIFY:
        return is_creator and status in (TicketStatus.OPEN, TicketStatus.PENDING_USER)
    return is_creator


def _ticket_cases():
    # (is_creator, assignee) where assignee is None, the actor, or someone else
    for role, action, is_creator, assignee, status in itertools.product(
        list(Role),
        [a for a in TicketAction if a not in OWNERSHIP_ACTIONS],
        [True, False],
        [None, ACTOR_ID, OTHER_ID],
        list(TicketStatus),
    ):
        yield role, action, is_creator, assignee, status


@pytest.mark.parametrize("role,action,is_creator,assignee,status", list(_ticket_cases()))
def test_ticket_actions_match_oracle(role, action, is_creator, assignee, status):
    actor = make_actor(role, ACTOR_ID)
    ticket = make_ticket(
        created_by=ACTOR_ID if is_creator else OTHER_ID,
        assigned_to=assignee,
        status=status
    )

    expected = oracle(
        role, action,
        is_creator=is_creator,
        is_assignee=assignee == ACTOR_ID,
        is_unassigned=assignee is None,
        is_owner=False,
        status=status
    )
    assert guard.is_permitted(actor, action, ticket) is expected


@pytest.mark.parametrize("role,action,is_owner", list(itertools.product(
    list(Role), sorted(OWNERSHIP_ACTIONS, key=lambda a: a.value), [True, False]
)))
def test_ownership_actions_match_oracle(role, action, is_owner):
    actor = make_actor(role, ACTOR_ID)
    owner_id = ACTOR_ID if is_owner else OTHER_ID

    expected = oracle(role, action, False, False, False, is_owner, None)
    assert guard.is_permitted(actor, action, owner_id=owner_id) is expected


@pytest.mark.parametrize("action", list(TicketAction))
@pytest.mark.parametrize("role", list(Role))
def test_inactive_actor_is_always_denied(role, action):
    actor = make_actor(role, ACTOR_ID, is_active=False)
    ticket = make_ticket(created_by=ACTOR_ID, assigned_to=ACTOR_ID)
    assert not guard.is_permitted(actor, action, ticket, owner_id=ACTOR_ID)


def test_missing_inputs_deny():
    admin = make_actor(Role.ADMIN, ACTOR_ID)
    assert not guard.is_permitted(admin, TicketAction.VIEW)
    assert not guard.is_permitted(admin, TicketAction.DELETE_COMMENT)


def test_same_inputs_same_answer():
    actor = make_actor(Role.AGENT, ACTOR_ID)
    ticket = make_ticket(assigned_to=OTHER_ID)
    answers = {guard.can_modify(actor, ticket) for _ in range(5)}
    assert answers == {False}


def test_require_raises_with_details():
    actor = make_actor(Role.EMPLOYEE, ACTOR_ID)
    ticket = make_ticket(created_by=OTHER_ID)

    with pytest.raises(AuthorizationDeniedError) as exc_info:
        guard.require(actor, TicketAction.VIEW, ticket)

    error = exc_info.value
    assert error.http_status == 403
    assert error.details == {"action": "view", "role": "employee", "ticket_id": "TKT-test"}


def test_comment_and_attachment_helpers():
    now = utc_now()
    comment = Comment(
        comment_id="CMT-1", ticket_id="TKT-test", author_id=ACTOR_ID,
        author_role=Role.AGENT, content="On it", created_at=now
    )
    attachment = Attachment(
        attachment_id="ATT-1", ticket_id="TKT-test", uploaded_by=OTHER_ID,
        original_name="log.txt", stored_name="ATT-1_log.txt", storage_path="TKT-test/ATT-1_log.txt",
        size=3, mime_type="text/plain", uploaded_at=now
    )
    agent = make_actor(Role.AGENT, ACTOR_ID)
    supervisor = make_actor(Role.SUPERVISOR, "USR-sup")
    admin = make_actor(Role.ADMIN, "USR-adm")

    assert guard.can_edit_comment(agent, comment)
    assert guard.can_delete_comment(agent, comment)
    assert not guard.can_delete_attachment(agent, attachment)
    assert not guard.can_delete_comment(supervisor, comment)
    assert guard.can_delete_comment(admin, comment)
    assert guard.can_delete_attachment(admin, attachment)


@pytest.mark.parametrize("role,expected", [
    (Role.EMPLOYEE, False),
    (Role.AGENT, True),
    (Role.SUPERVISOR, True),
    (Role.ADMIN, True),
])
def test_internal_comments_are_staff_only(role, expected):
    assert guard.can_create_internal_comment(make_actor(role)) is expected


def test_available_actions_for_agent_on_unclaimed_ticket():
    agent = make_actor(Role.AGENT, ACTOR_ID)
    ticket = make_ticket(assigned_to=None)
    assert guard.get_available_actions(agent, ticket) == ["view", "modify", "assign", "comment", "attach"]


def test_available_actions_for_employee_on_assigned_ticket():
    employee = make_actor(Role.EMPLOYEE, ACTOR_ID)
    ticket = make_ticket(created_by=ACTOR_ID, assigned_to=OTHER_ID, status=TicketStatus.ASSIGNED)
    assert guard.get_available_actions(employee, ticket) == ["view", "comment", "attach"]


def test_ticket_scope_follows_view_rules():
    assert guard.ticket_scope(make_actor(Role.ADMIN)) == {}
    assert guard.ticket_scope(make_actor(Role.SUPERVISOR)) == {}
    assert guard.ticket_scope(make_actor(Role.AGENT, ACTOR_ID)) == {
        "$or": [{"assigned_to": ACTOR_ID}, {"assigned_to": None}]
    }
    assert guard.ticket_scope(make_actor(Role.EMPLOYEE, ACTOR_ID)) == {"created_by": ACTOR_ID}
