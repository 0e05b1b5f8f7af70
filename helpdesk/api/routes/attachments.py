"""Attachment API Routes - File upload and download"""
from typing import List
from urllib.parse import quote
from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File
from fastapi.responses import StreamingResponse

from ..deps import get_current_user_dep, get_request_context, get_attachment_service
from ...domain.models import ActorContext, RequestContext
from ...domain.errors import DomainError
from ...services.attachment_service import AttachmentService, FileUpload
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


@router.post("/tickets/{ticket_id}/attachments", status_code=status.HTTP_201_CREATED)
async def upload_attachments(
    ticket_id: str,
    files: List[UploadFile] = File(...),
    actor: ActorContext = Depends(get_current_user_dep),
    context: RequestContext = Depends(get_request_context),
    service: AttachmentService = Depends(get_attachment_service)
):
    """
    Upload one or more files to a ticket

    Size, type and file count are checked for the whole batch before
    anything is stored.
    """
    try:
        uploads = [
            FileUpload(
                filename=file.filename or "unnamed",
                content_type=file.content_type or "application/octet-stream",
                content=await file.read()
            )
            for file in files
        ]
        attachments = service.upload_attachments(ticket_id, uploads, actor, context)
        return {
            "ticket_id": ticket_id,
            "attachments": [a.model_dump(mode="json") for a in attachments]
        }

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/tickets/{ticket_id}/attachments")
async def list_attachments(
    ticket_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: AttachmentService = Depends(get_attachment_service)
):
    """Attachments of a ticket in upload order"""
    try:
        attachments = service.list_attachments(ticket_id, actor)
        return {
            "ticket_id": ticket_id,
            "total_count": len(attachments),
            "attachments": [a.model_dump(mode="json") for a in attachments]
        }

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.get("/attachments/{attachment_id}/download")
async def download_attachment(
    attachment_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    context: RequestContext = Depends(get_request_context),
    service: AttachmentService = Depends(get_attachment_service)
):
    """
    Download attachment

    Streams the file in chunks.
    """
    try:
        attachment, file_iterator = service.download_attachment(attachment_id, actor, context)
        return StreamingResponse(
            file_iterator,
            media_type=attachment.mime_type,
            headers={
                "Content-Disposition": f"attachment; filename*=UTF-8''{quote(attachment.original_name)}",
                "Content-Length": str(attachment.size)
            }
        )

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())


@router.delete("/attachments/{attachment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_attachment(
    attachment_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    context: RequestContext = Depends(get_request_context),
    service: AttachmentService = Depends(get_attachment_service)
):
    """Delete attachment (uploader or admin)"""
    try:
        service.delete_attachment(attachment_id, actor, context)

    except DomainError as e:
        raise HTTPException(status_code=e.http_status, detail=e.to_dict())
