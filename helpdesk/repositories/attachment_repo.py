"""Attachment Repository - Data access for attachment metadata"""
from typing import List, Optional
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo import ASCENDING

from .mongo_client import get_database, to_storage
from ..domain.models import Attachment
from ..domain.errors import AttachmentNotFoundError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class AttachmentRepository:
    """Repository for attachment metadata operations"""

    def __init__(self, db: Optional[Database] = None):
        db = db if db is not None else get_database()
        self._attachments: Collection = db["attachments"]

    def create_attachment(self, attachment: Attachment) -> Attachment:
        """Create attachment record"""
        doc = to_storage(attachment.model_dump())
        doc["_id"] = attachment.attachment_id

        self._attachments.insert_one(doc)
        logger.info(
            f"Created attachment: {attachment.attachment_id}",
            extra={
                "attachment_id": attachment.attachment_id,
                "ticket_id": attachment.ticket_id
            }
        )
        return attachment

    def get_attachment(self, attachment_id: str) -> Optional[Attachment]:
        """Get attachment by ID"""
        doc = self._attachments.find_one({"attachment_id": attachment_id})
        if doc:
            doc.pop("_id", None)
            return Attachment.model_validate(doc)
        return None

    def get_attachment_or_raise(self, attachment_id: str) -> Attachment:
        """Get attachment by ID or raise error"""
        attachment = self.get_attachment(attachment_id)
        if not attachment:
            raise AttachmentNotFoundError(
                f"Attachment {attachment_id} not found",
                details={"attachment_id": attachment_id}
            )
        return attachment

    def get_attachments_for_ticket(self, ticket_id: str) -> List[Attachment]:
        """Get all attachments for a ticket in upload order"""
        cursor = self._attachments.find({"ticket_id": ticket_id}).sort(
            [("uploaded_at", ASCENDING), ("attachment_id", ASCENDING)]
        )

        attachments = []
        for doc in cursor:
            doc.pop("_id", None)
            attachments.append(Attachment.model_validate(doc))

        return attachments

    def delete_attachment(self, attachment_id: str) -> bool:
        """Delete attachment record"""
        result = self._attachments.delete_one({"attachment_id": attachment_id})
        if result.deleted_count > 0:
            logger.info(f"Deleted attachment: {attachment_id}", extra={"attachment_id": attachment_id})
            return True
        return False
