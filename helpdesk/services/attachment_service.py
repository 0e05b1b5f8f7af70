"""Attachment Service - File upload and download"""
import os
from typing import Iterator, List, NamedTuple, Optional, Tuple

from ..domain.models import Attachment, ActorContext, RequestContext
from ..domain.enums import TicketAction, ResourceType, AuditAction
from ..domain.errors import (
    AttachmentTooLargeError, InvalidMimeTypeError, AttachmentNotFoundError,
    TooManyFilesError, AttachmentPersistError, AttachmentIntegrityError, ValidationError
)
from ..repositories.attachment_repo import AttachmentRepository
from ..repositories.ticket_repo import TicketRepository
from ..repositories.file_store import LocalFileStore
from ..engine.permission_guard import PermissionGuard
from ..engine.audit_writer import AuditWriter
from .access import require_and_audit
from ..config.settings import settings
from ..utils.idgen import generate_attachment_id
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class FileUpload(NamedTuple):
    """One file as received from the client"""
    filename: str
    content_type: str
    content: bytes


class AttachmentService:
    """Service for attachment operations"""

    def __init__(
        self,
        attachment_repo: Optional[AttachmentRepository] = None,
        ticket_repo: Optional[TicketRepository] = None,
        file_store: Optional[LocalFileStore] = None,
        audit: Optional[AuditWriter] = None,
        guard: Optional[PermissionGuard] = None
    ):
        self.attachment_repo = attachment_repo or AttachmentRepository()
        self.ticket_repo = ticket_repo or TicketRepository()
        self.file_store = file_store or LocalFileStore()
        self.audit = audit or AuditWriter()
        self.guard = guard or PermissionGuard()

    # =========================================================================
    # Upload
    # =========================================================================

    def _validate(self, files: List[FileUpload]) -> None:
        if not files:
            raise ValidationError("No files provided", details={"field": "files"})

        if len(files) > settings.attachments_max_files:
            raise TooManyFilesError(
                f"At most {settings.attachments_max_files} files can be uploaded at once",
                details={"count": len(files), "max_files": settings.attachments_max_files}
            )

        for upload in files:
            content_type = upload.content_type or "application/octet-stream"
            if content_type not in settings.allowed_mime_types_list:
                raise InvalidMimeTypeError(
                    f"File type {content_type} is not allowed",
                    details={
                        "filename": upload.filename,
                        "mime_type": content_type,
                        "allowed": settings.allowed_mime_types_list
                    }
                )
            if len(upload.content) > settings.attachments_max_bytes:
                raise AttachmentTooLargeError(
                    f"File exceeds maximum size of {settings.attachments_max_mb}MB",
                    details={
                        "filename": upload.filename,
                        "size": len(upload.content),
                        "max_bytes": settings.attachments_max_bytes
                    }
                )

    def _sanitize_filename(self, filename: str) -> str:
        """Sanitize filename for storage"""
        # Remove directory separators and dangerous characters
        safe = filename.replace("/", "_").replace("\\", "_").replace("..", "_")
        if len(safe) > 100:
            name, ext = os.path.splitext(safe)
            safe = name[:96] + ext
        return safe or "unnamed"

    def upload_attachments(
        self,
        ticket_id: str,
        files: List[FileUpload],
        actor: ActorContext,
        context: Optional[RequestContext] = None
    ) -> List[Attachment]:
        """
        Upload files to a ticket

        The whole batch is validated before anything is written. Each file
        is stored, then its metadata recorded; if recording fails the bytes
        are removed again so no file exists without a record.

        Raises:
            AttachmentPersistError: Metadata insert failed; bytes were removed
            AttachmentIntegrityError: Metadata insert failed and the bytes
                could not be removed either
        """
        ticket = self.ticket_repo.get_ticket_or_raise(ticket_id)
        require_and_audit(
            self.guard, self.audit, actor, TicketAction.ATTACH,
            ResourceType.TICKET, ticket_id, ticket=ticket, context=context
        )
        self._validate(files)

        attachments = []
        for upload in files:
            attachments.append(self._store_one(ticket_id, upload, actor, context))
        return attachments

    def _store_one(
        self,
        ticket_id: str,
        upload: FileUpload,
        actor: ActorContext,
        context: Optional[RequestContext]
    ) -> Attachment:
        attachment_id = generate_attachment_id()
        original_name = upload.filename or "unnamed"
        stored_name = f"{attachment_id}_{self._sanitize_filename(original_name)}"

        storage_path = self.file_store.save(ticket_id, stored_name, upload.content)
        attachment = Attachment(
            attachment_id=attachment_id,
            ticket_id=ticket_id,
            uploaded_by=actor.user_id,
            original_name=original_name,
            stored_name=stored_name,
            storage_path=storage_path,
            size=len(upload.content),
            mime_type=upload.content_type or "application/octet-stream",
            uploaded_at=utc_now()
        )

        try:
            self.attachment_repo.create_attachment(attachment)
        except Exception as e:
            self._discard_orphan(attachment, actor, context, e)

        self.audit.record(
            actor_id=actor.user_id,
            action=AuditAction.ATTACHMENT_UPLOADED,
            resource_type=ResourceType.ATTACHMENT,
            resource_id=attachment_id,
            details={
                "ticket_id": ticket_id,
                "original_name": original_name,
                "size": attachment.size,
                "mime_type": attachment.mime_type
            },
            context=context
        )
        logger.info(
            f"Uploaded attachment: {attachment_id}",
            extra={"attachment_id": attachment_id, "ticket_id": ticket_id, "actor_id": actor.user_id}
        )
        return attachment

    def _discard_orphan(
        self,
        attachment: Attachment,
        actor: ActorContext,
        context: Optional[RequestContext],
        cause: Exception
    ) -> None:
        """Remove bytes whose metadata never made it, then raise"""
        self.audit.record(
            actor_id=actor.user_id,
            action=AuditAction.ATTACHMENT_UPLOAD_FAILED,
            resource_type=ResourceType.ATTACHMENT,
            resource_id=attachment.attachment_id,
            details={"ticket_id": attachment.ticket_id, "error": str(cause)},
            context=context
        )

        try:
            self.file_store.delete(attachment.storage_path)
        except Exception as cleanup_error:
            logger.critical(
                f"Orphaned attachment file left behind: {attachment.storage_path}",
                extra={"attachment_id": attachment.attachment_id, "ticket_id": attachment.ticket_id},
                exc_info=True
            )
            raise AttachmentIntegrityError(
                "Attachment metadata could not be saved and the stored file could not be removed",
                details={
                    "attachment_id": attachment.attachment_id,
                    "storage_path": attachment.storage_path,
                    "original_error": str(cause)
                }
            ) from cleanup_error

        logger.error(
            f"Failed to record attachment, stored file removed: {cause}",
            extra={"attachment_id": attachment.attachment_id, "ticket_id": attachment.ticket_id}
        )
        raise AttachmentPersistError(
            "Attachment could not be saved",
            details={"attachment_id": attachment.attachment_id}
        ) from cause

    # =========================================================================
    # Read
    # =========================================================================

    def list_attachments(self, ticket_id: str, actor: ActorContext) -> List[Attachment]:
        """Attachments of a ticket the actor may view"""
        ticket = self.ticket_repo.get_ticket_or_raise(ticket_id)
        self.guard.require(actor, TicketAction.VIEW, ticket)
        return self.attachment_repo.get_attachments_for_ticket(ticket_id)

    def download_attachment(
        self,
        attachment_id: str,
        actor: ActorContext,
        context: Optional[RequestContext] = None
    ) -> Tuple[Attachment, Iterator[bytes]]:
        """
        Get attachment for download

        Returns attachment metadata and a chunk iterator for streaming.
        Anyone who can view the ticket can download its attachments.
        """
        attachment = self.attachment_repo.get_attachment_or_raise(attachment_id)
        ticket = self.ticket_repo.get_ticket_or_raise(attachment.ticket_id)
        self.guard.require(actor, TicketAction.VIEW, ticket)

        try:
            file_iterator = self.file_store.open_iterator(attachment.storage_path)
        except FileNotFoundError:
            logger.error(
                f"Attachment file missing: {attachment.storage_path}",
                extra={"attachment_id": attachment_id, "ticket_id": attachment.ticket_id}
            )
            raise AttachmentNotFoundError(
                "Attachment file not found",
                details={"attachment_id": attachment_id}
            )

        self.audit.record(
            actor_id=actor.user_id,
            action=AuditAction.ATTACHMENT_DOWNLOADED,
            resource_type=ResourceType.ATTACHMENT,
            resource_id=attachment_id,
            details={"ticket_id": attachment.ticket_id},
            context=context
        )
        return attachment, file_iterator

    # =========================================================================
    # Delete
    # =========================================================================

    def delete_attachment(
        self,
        attachment_id: str,
        actor: ActorContext,
        context: Optional[RequestContext] = None
    ) -> None:
        """
        Delete attachment

        Only uploader or admin can delete. The record goes first; a file that
        cannot be removed afterwards does not fail the delete, it is logged at
        ERROR and audited as ATTACHMENT_DELETE_FAILED with its storage path.
        """
        attachment = self.attachment_repo.get_attachment_or_raise(attachment_id)
        require_and_audit(
            self.guard, self.audit, actor, TicketAction.DELETE_ATTACHMENT,
            ResourceType.ATTACHMENT, attachment_id, owner_id=attachment.uploaded_by, context=context
        )

        self.attachment_repo.delete_attachment(attachment_id)

        cleanup_error: Optional[OSError] = None
        try:
            self.file_store.delete(attachment.storage_path)
        except OSError as e:
            cleanup_error = e
            logger.error(
                f"Orphaned attachment file left behind: {attachment.storage_path}: {e}",
                extra={
                    "attachment_id": attachment_id,
                    "ticket_id": attachment.ticket_id,
                    "storage_path": attachment.storage_path
                }
            )

        self.audit.record(
            actor_id=actor.user_id,
            action=AuditAction.ATTACHMENT_DELETED,
            resource_type=ResourceType.ATTACHMENT,
            resource_id=attachment_id,
            details={"ticket_id": attachment.ticket_id, "original_name": attachment.original_name},
            context=context
        )
        if cleanup_error is not None:
            self.audit.record(
                actor_id=actor.user_id,
                action=AuditAction.ATTACHMENT_DELETE_FAILED,
                resource_type=ResourceType.ATTACHMENT,
                resource_id=attachment_id,
                details={
                    "ticket_id": attachment.ticket_id,
                    "storage_path": attachment.storage_path,
                    "error": str(cleanup_error)
                },
                context=context
            )
        logger.info(
            f"Deleted attachment: {attachment_id}",
            extra={"attachment_id": attachment_id, "actor_id": actor.user_id}
        )
