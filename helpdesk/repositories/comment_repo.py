"""Comment Repository - Data access for ticket comments"""
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo import ASCENDING

from .mongo_client import get_database, next_sequence, to_storage
from ..domain.models import Comment
from ..domain.errors import CommentNotFoundError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class CommentRepository:
    """Repository for comments"""

    def __init__(self, db: Optional[Database] = None):
        db = db if db is not None else get_database()
        self._comments: Collection = db["comments"]
        self._counters: Collection = db["counters"]

    def create_comment(self, comment: Comment) -> Comment:
        """Create a new comment"""
        doc = to_storage(comment.model_dump())
        doc["_id"] = comment.comment_id
        doc["seq"] = next_sequence(self._counters, "comments")

        self._comments.insert_one(doc)
        logger.info(
            f"Created comment: {comment.comment_id}",
            extra={"ticket_id": comment.ticket_id, "actor_id": comment.author_id}
        )
        return comment

    def get_comment(self, comment_id: str) -> Optional[Comment]:
        """Get comment by ID"""
        doc = self._comments.find_one({"comment_id": comment_id})
        if doc:
            doc.pop("_id", None)
            return Comment.model_validate(doc)
        return None

    def get_comment_or_raise(self, comment_id: str) -> Comment:
        """Get comment by ID or raise error"""
        comment = self.get_comment(comment_id)
        if not comment:
            raise CommentNotFoundError(f"Comment {comment_id} not found", details={"comment_id": comment_id})
        return comment

    def get_comments_for_ticket(self, ticket_id: str) -> List[Comment]:
        """Get all comments for a ticket, oldest first"""
        cursor = self._comments.find({"ticket_id": ticket_id}).sort(
            [("created_at", ASCENDING), ("seq", ASCENDING)]
        )
        comments = []
        for doc in cursor:
            doc.pop("_id", None)
            comments.append(Comment.model_validate(doc))
        return comments

    def update_comment(self, comment_id: str, updates: Dict[str, Any]) -> Comment:
        """Update comment fields"""
        result = self._comments.find_one_and_update(
            {"comment_id": comment_id},
            {"$set": to_storage(updates)},
            return_document=True
        )
        if result is None:
            raise CommentNotFoundError(f"Comment {comment_id} not found", details={"comment_id": comment_id})

        result.pop("_id", None)
        return Comment.model_validate(result)

    def delete_comment(self, comment_id: str) -> bool:
        """Delete a comment"""
        result = self._comments.delete_one({"comment_id": comment_id})
        if result.deleted_count:
            logger.info(f"Deleted comment: {comment_id}")
        return result.deleted_count > 0
