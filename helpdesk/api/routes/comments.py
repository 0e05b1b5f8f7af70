"""Comment API Routes - Ticket conversation"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from ..deps import get_current_user_dep, get_request_context, get_comment_service
from ...domain.models import ActorContext, RequestContext
from ...domain.errors import DomainError
from ...services.comment_service import CommentService
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Request Models
# ============================================================================

class CreateCommentRequest(BaseModel):
    """New comment"""
    content: str = Field(..., min_length=1, max_length=2000)
    is_internal: bool = False


class UpdateCommentRequest(BaseModel):
    """Edited comment text"""
    content: str = Field(..., min_length=1, max_length=2000)


# ============================================================================
# Routes
# ============================================================================

@router.get("/tickets/{ticket_id}/comments")
async def list_comments(
    ticket_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: CommentService = Depends(get_comment_service)
) -> List[dict]:
    """Comments on a ticket, oldest first; internal ones are hidden from employees"""
    try:
        comments = service.list_comments(ticket_id, actor)
        return [c.model_dump(mode="json") for c in comments]

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.post("/tickets/{ticket_id}/comments", status_code=status.HTTP_201_CREATED)
async def create_comment(
    ticket_id: str,
    request: CreateCommentRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    context: RequestContext = Depends(get_request_context),
    service: CommentService = Depends(get_comment_service)
):
    """
    Add a comment

    is_internal is only honoured for agents, supervisors and admins.
    """
    try:
        comment = service.create_comment(
            ticket_id=ticket_id,
            content=request.content,
            actor=actor,
            is_internal=request.is_internal,
            context=context
        )
        return comment.model_dump(mode="json")

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.put("/comments/{comment_id}")
async def update_comment(
    comment_id: str,
    request: UpdateCommentRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    context: RequestContext = Depends(get_request_context),
    service: CommentService = Depends(get_comment_service)
):
    """Edit a comment (author or admin)"""
    try:
        comment = service.update_comment(comment_id, request.content, actor, context)
        return comment.model_dump(mode="json")

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    context: RequestContext = Depends(get_request_context),
    service: CommentService = Depends(get_comment_service)
):
    """Delete a comment (author or admin)"""
    try:
        service.delete_comment(comment_id, actor, context)

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())
