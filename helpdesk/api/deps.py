"""API Dependencies - Common dependencies for routes"""
from typing import Optional
from fastapi import Depends, Header, HTTPException, Request, status
from pymongo.database import Database

from ..domain.models import ActorContext, RequestContext
from ..domain.errors import AuthenticationError
from ..repositories.mongo_client import get_database
from ..repositories.ticket_repo import TicketRepository
from ..repositories.comment_repo import CommentRepository
from ..repositories.attachment_repo import AttachmentRepository
from ..repositories.audit_repo import AuditRepository
from ..repositories.user_repo import UserRepository
from ..repositories.file_store import LocalFileStore
from ..engine.permission_guard import PermissionGuard
from ..engine.audit_writer import AuditWriter
from ..services.ticket_service import TicketService
from ..services.comment_service import CommentService
from ..services.attachment_service import AttachmentService
from ..services.audit_service import AuditService
from ..utils.jwt import JWTValidator
from ..utils.logger import set_correlation_id, get_correlation_id
from ..utils.idgen import generate_correlation_id

# One policy evaluator and one audit writer per process
_guard = PermissionGuard()
_audit_writer: Optional[AuditWriter] = None
_file_store: Optional[LocalFileStore] = None


def get_db() -> Database:
    """Application database"""
    return get_database()


def get_guard() -> PermissionGuard:
    return _guard


def get_audit_writer() -> AuditWriter:
    """Process-wide audit writer; started and stopped by the app lifespan"""
    global _audit_writer
    if _audit_writer is None:
        _audit_writer = AuditWriter(AuditRepository(get_database()))
    return _audit_writer


def get_file_store() -> LocalFileStore:
    global _file_store
    if _file_store is None:
        _file_store = LocalFileStore()
    return _file_store


async def get_correlation_id_dep(
    x_correlation_id: Optional[str] = Header(None, alias="X-Correlation-Id")
) -> str:
    """
    Get or generate correlation ID for request tracing

    The middleware normally sets it already; otherwise use the client's
    header or generate a new one.
    """
    correlation_id = get_correlation_id() or x_correlation_id or generate_correlation_id()
    set_correlation_id(correlation_id)
    return correlation_id


async def get_request_context(
    request: Request,
    correlation_id: str = Depends(get_correlation_id_dep)
) -> RequestContext:
    """Client metadata recorded with audit entries"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    ip_address = forwarded_for.split(",")[0].strip() if forwarded_for else None
    if not ip_address and request.client:
        ip_address = request.client.host
    return RequestContext(
        ip_address=ip_address,
        user_agent=request.headers.get("User-Agent"),
        correlation_id=correlation_id
    )


async def get_current_user_dep(
    authorization: Optional[str] = Header(None),
    db: Database = Depends(get_db)
) -> ActorContext:
    """
    Dependency to get current user from Authorization header

    Validates the JWT and loads the active user it names.

    Raises:
        HTTPException: 401 if token is invalid or missing, or the user is inactive
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": {"code": "AUTHENTICATION_ERROR", "message": "Authorization header is missing"}},
            headers={"WWW-Authenticate": "Bearer"}
        )

    try:
        return JWTValidator(UserRepository(db)).get_actor_context(authorization)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.to_dict(),
            headers={"WWW-Authenticate": "Bearer"}
        )


# =============================================================================
# Service providers
# =============================================================================

def get_ticket_service(
    db: Database = Depends(get_db),
    audit: AuditWriter = Depends(get_audit_writer),
    guard: PermissionGuard = Depends(get_guard)
) -> TicketService:
    return TicketService(
        ticket_repo=TicketRepository(db),
        user_repo=UserRepository(db),
        audit=audit,
        guard=guard
    )


def get_comment_service(
    db: Database = Depends(get_db),
    audit: AuditWriter = Depends(get_audit_writer),
    guard: PermissionGuard = Depends(get_guard)
) -> CommentService:
    return CommentService(
        comment_repo=CommentRepository(db),
        ticket_repo=TicketRepository(db),
        audit=audit,
        guard=guard
    )


def get_attachment_service(
    db: Database = Depends(get_db),
    audit: AuditWriter = Depends(get_audit_writer),
    guard: PermissionGuard = Depends(get_guard),
    file_store: LocalFileStore = Depends(get_file_store)
) -> AttachmentService:
    return AttachmentService(
        attachment_repo=AttachmentRepository(db),
        ticket_repo=TicketRepository(db),
        file_store=file_store,
        audit=audit,
        guard=guard
    )


def get_audit_service(
    db: Database = Depends(get_db),
    audit: AuditWriter = Depends(get_audit_writer)
) -> AuditService:
    return AuditService(audit_repo=AuditRepository(db), audit=audit)
