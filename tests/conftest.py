"""
Pytest Configuration and Fixtures

Shared fixtures: an in-memory MongoDB (mongomock), one user per role,
services wired to it, and an API client with dependencies overridden.
"""

import os
import tempfile

# Settings are read once at import time, so point them at scratch space first
_TMP_ROOT = tempfile.mkdtemp(prefix="helpdesk-tests-")
os.environ.setdefault("LOGS_PATH", os.path.join(_TMP_ROOT, "logs"))
os.environ.setdefault("ATTACHMENTS_BASE_PATH", os.path.join(_TMP_ROOT, "attachments"))
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("AUDIT_ASYNC", "false")

from datetime import timedelta
from typing import Dict

import jwt
import mongomock
import pytest

from helpdesk.domain.models import ActorContext, User, Ticket
from helpdesk.domain.enums import Role, TicketCategory, TicketStatus
from helpdesk.domain.errors import AuditWriteFailedError
from helpdesk.repositories.mongo_client import create_indexes
from helpdesk.repositories.ticket_repo import TicketRepository
from helpdesk.repositories.comment_repo import CommentRepository
from helpdesk.repositories.attachment_repo import AttachmentRepository
from helpdesk.repositories.audit_repo import AuditRepository
from helpdesk.repositories.user_repo import UserRepository
from helpdesk.repositories.file_store import LocalFileStore
from helpdesk.engine.audit_writer import AuditWriter
from helpdesk.engine.permission_guard import PermissionGuard
from helpdesk.services.ticket_service import TicketService
from helpdesk.services.comment_service import CommentService
from helpdesk.services.attachment_service import AttachmentService
from helpdesk.services.audit_service import AuditService
from helpdesk.utils.time import utc_now

JWT_SECRET = "test-secret"

USERS = {
    "employee": ("USR-employee", "employee@example.com", "Erin Employee", Role.EMPLOYEE, True),
    "employee2": ("USR-employee2", "other@example.com", "Omar Other", Role.EMPLOYEE, True),
    "agent": ("USR-agent", "agent@example.com", "Alex Agent", Role.AGENT, True),
    "agent2": ("USR-agent2", "agent2@example.com", "Bea Agent", Role.AGENT, True),
    "supervisor": ("USR-supervisor", "supervisor@example.com", "Sam Supervisor", Role.SUPERVISOR, True),
    "admin": ("USR-admin", "admin@example.com", "Ada Admin", Role.ADMIN, True),
    "inactive_agent": ("USR-inactive", "gone@example.com", "Gil Gone", Role.AGENT, False),
}


# =============================================================================
# Storage
# =============================================================================

@pytest.fixture
def db():
    """Fresh in-memory database per test"""
    database = mongomock.MongoClient()["helpdesk_test"]
    create_indexes(database)
    return database


@pytest.fixture
def users(db) -> Dict[str, User]:
    repo = UserRepository(db)
    created = {}
    for key, (user_id, email, name, role, active) in USERS.items():
        created[key] = repo.create_user(User(
            user_id=user_id,
            email=email,
            display_name=name,
            role=role,
            is_active=active,
            created_at=utc_now()
        ))
    return created


@pytest.fixture
def actors(users) -> Dict[str, ActorContext]:
    return {key: user.to_actor() for key, user in users.items()}


@pytest.fixture
def file_store(tmp_path) -> LocalFileStore:
    return LocalFileStore(str(tmp_path / "attachments"))


# =============================================================================
# Engine and services
# =============================================================================

@pytest.fixture
def guard() -> PermissionGuard:
    return PermissionGuard()


@pytest.fixture
def audit_writer(db) -> AuditWriter:
    return AuditWriter(AuditRepository(db), async_dispatch=False)


@pytest.fixture
def ticket_service(db, users, audit_writer, guard) -> TicketService:
    return TicketService(
        ticket_repo=TicketRepository(db),
        user_repo=UserRepository(db),
        audit=audit_writer,
        guard=guard
    )


@pytest.fixture
def comment_service(db, audit_writer, guard) -> CommentService:
    return CommentService(
        comment_repo=CommentRepository(db),
        ticket_repo=TicketRepository(db),
        audit=audit_writer,
        guard=guard
    )


@pytest.fixture
def attachment_service(db, file_store, audit_writer, guard) -> AttachmentService:
    return AttachmentService(
        attachment_repo=AttachmentRepository(db),
        ticket_repo=TicketRepository(db),
        file_store=file_store,
        audit=audit_writer,
        guard=guard
    )


@pytest.fixture
def audit_service(db, audit_writer) -> AuditService:
    return AuditService(audit_repo=AuditRepository(db), audit=audit_writer)


@pytest.fixture
def open_ticket(ticket_service, actors) -> Ticket:
    """Ticket opened by the employee, unassigned"""
    return ticket_service.create_ticket(
        title="Laptop will not boot",
        description="Black screen after the update",
        category=TicketCategory.HARDWARE,
        actor=actors["employee"]
    )


@pytest.fixture
def assigned_ticket(ticket_service, actors, open_ticket) -> Ticket:
    """The employee's ticket, claimed by the agent"""
    return ticket_service.assign_ticket(open_ticket.ticket_id, "USR-agent", actors["admin"])


def make_ticket(**overrides) -> Ticket:
    """In-memory ticket for pure engine tests"""
    now = utc_now()
    fields = dict(
        ticket_id="TKT-test",
        title="Printer jam",
        description="Tray 2 jams on every job",
        created_by="USR-employee",
        assigned_to=None,
        status=TicketStatus.OPEN,
        category=TicketCategory.HARDWARE,
        created_at=now,
        updated_at=now
    )
    fields.update(overrides)
    return Ticket(**fields)


def make_actor(role: Role, user_id: str = "USR-x", is_active: bool = True) -> ActorContext:
    return ActorContext(
        user_id=user_id,
        email=f"{user_id.lower()}@example.com",
        display_name=user_id,
        role=role,
        is_active=is_active
    )


# =============================================================================
# API
# =============================================================================

def make_token(user_id: str, hours: int = 1, secret: str = JWT_SECRET) -> str:
    now = utc_now()
    return jwt.encode(
        {"sub": user_id, "iat": now, "exp": now + timedelta(hours=hours)},
        secret,
        algorithm="HS256"
    )


def auth(user_id: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture
def client(db, users, audit_writer, file_store):
    from fastapi.testclient import TestClient
    from helpdesk.main import app
    from helpdesk.api import deps

    app.dependency_overrides[deps.get_db] = lambda: db
    app.dependency_overrides[deps.get_audit_writer] = lambda: audit_writer
    app.dependency_overrides[deps.get_file_store] = lambda: file_store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


class FailingAuditRepository:
    """Audit store that rejects every write"""

    def __init__(self):
        self.attempts = 0

    def create_entry(self, entry):
        self.attempts += 1
        raise AuditWriteFailedError("store down", details={"audit_id": entry.audit_id})
