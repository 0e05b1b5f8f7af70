"""Comment Service - Ticket conversation"""
from typing import List, Optional

from ..domain.models import Comment, ActorContext, RequestContext
from ..domain.enums import CommentType, TicketAction, ResourceType, AuditAction
from ..domain.errors import ValidationError
from ..repositories.comment_repo import CommentRepository
from ..repositories.ticket_repo import TicketRepository
from ..engine.permission_guard import PermissionGuard
from ..engine.comment_filter import filter_comments
from ..engine.audit_writer import AuditWriter
from .access import require_and_audit
from ..utils.idgen import generate_comment_id
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)

CONTENT_MAX_LENGTH = 2000


def _clean_content(content: str) -> str:
    cleaned = (content or "").strip()
    if not cleaned:
        raise ValidationError("Comment content is required", details={"field": "content"})
    if len(cleaned) > CONTENT_MAX_LENGTH:
        raise ValidationError(
            f"Comment must be at most {CONTENT_MAX_LENGTH} characters",
            details={"field": "content", "max_length": CONTENT_MAX_LENGTH}
        )
    return cleaned


class CommentService:
    """Service for comment operations"""

    def __init__(
        self,
        comment_repo: Optional[CommentRepository] = None,
        ticket_repo: Optional[TicketRepository] = None,
        audit: Optional[AuditWriter] = None,
        guard: Optional[PermissionGuard] = None
    ):
        self.comment_repo = comment_repo or CommentRepository()
        self.ticket_repo = ticket_repo or TicketRepository()
        self.audit = audit or AuditWriter()
        self.guard = guard or PermissionGuard()

    def list_comments(self, ticket_id: str, actor: ActorContext) -> List[Comment]:
        """Comments on a ticket as the actor is allowed to see them, oldest first"""
        ticket = self.ticket_repo.get_ticket_or_raise(ticket_id)
        self.guard.require(actor, TicketAction.VIEW, ticket)
        return filter_comments(self.comment_repo.get_comments_for_ticket(ticket_id), actor.role)

    def create_comment(
        self,
        ticket_id: str,
        content: str,
        actor: ActorContext,
        is_internal: bool = False,
        context: Optional[RequestContext] = None
    ) -> Comment:
        """
        Add a comment to a ticket

        An internal flag from someone who may not write internal comments
        is dropped and the comment is stored as public.
        """
        ticket = self.ticket_repo.get_ticket_or_raise(ticket_id)
        require_and_audit(
            self.guard, self.audit, actor, TicketAction.COMMENT,
            ResourceType.TICKET, ticket_id, ticket=ticket, context=context
        )

        internal = bool(is_internal) and self.guard.can_create_internal_comment(actor)
        if is_internal and not internal:
            logger.info(
                "Internal flag dropped for non-staff author",
                extra={"ticket_id": ticket_id, "actor_id": actor.user_id}
            )

        comment = Comment(
            comment_id=generate_comment_id(),
            ticket_id=ticket_id,
            author_id=actor.user_id,
            author_role=actor.role,
            content=_clean_content(content),
            comment_type=CommentType.AGENT if actor.is_agent_class else CommentType.USER,
            is_internal=internal,
            created_at=utc_now()
        )
        self.comment_repo.create_comment(comment)

        self.audit.record(
            actor_id=actor.user_id,
            action=AuditAction.COMMENT_CREATED,
            resource_type=ResourceType.COMMENT,
            resource_id=comment.comment_id,
            details={"ticket_id": ticket_id, "is_internal": internal},
            context=context
        )
        return comment

    def update_comment(
        self,
        comment_id: str,
        content: str,
        actor: ActorContext,
        context: Optional[RequestContext] = None
    ) -> Comment:
        """Edit comment text; visibility stays as it was created"""
        comment = self.comment_repo.get_comment_or_raise(comment_id)
        self.ticket_repo.get_ticket_or_raise(comment.ticket_id)
        require_and_audit(
            self.guard, self.audit, actor, TicketAction.EDIT_COMMENT,
            ResourceType.COMMENT, comment_id, owner_id=comment.author_id, context=context
        )

        updated = self.comment_repo.update_comment(
            comment_id,
            {"content": _clean_content(content), "edited_at": utc_now()}
        )

        self.audit.record(
            actor_id=actor.user_id,
            action=AuditAction.COMMENT_UPDATED,
            resource_type=ResourceType.COMMENT,
            resource_id=comment_id,
            details={"ticket_id": comment.ticket_id},
            context=context
        )
        return updated

    def delete_comment(
        self,
        comment_id: str,
        actor: ActorContext,
        context: Optional[RequestContext] = None
    ) -> None:
        """Delete a comment (author or admin)"""
        comment = self.comment_repo.get_comment_or_raise(comment_id)
        require_and_audit(
            self.guard, self.audit, actor, TicketAction.DELETE_COMMENT,
            ResourceType.COMMENT, comment_id, owner_id=comment.author_id, context=context
        )

        self.comment_repo.delete_comment(comment_id)

        self.audit.record(
            actor_id=actor.user_id,
            action=AuditAction.COMMENT_DELETED,
            resource_type=ResourceType.COMMENT,
            resource_id=comment_id,
            details={"ticket_id": comment.ticket_id, "author_id": comment.author_id},
            context=context
        )
