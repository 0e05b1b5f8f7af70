"""MongoDB Client - Connection and Collection Management"""
from enum import Enum
from typing import Any, Dict, Optional
from pymongo import MongoClient as PyMongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure

from ..config.settings import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Global client instance
_client: Optional[PyMongoClient] = None
_database: Optional[Database] = None


def get_client() -> PyMongoClient:
    """Get or create MongoDB client"""
    global _client
    if _client is None:
        logger.info(f"Connecting to MongoDB: {settings.mongo_uri}")
        _client = PyMongoClient(
            settings.mongo_uri,
            serverSelectionTimeoutMS=settings.mongo_timeout_ms,
            connectTimeoutMS=settings.mongo_timeout_ms,
            socketTimeoutMS=settings.mongo_socket_timeout_ms,
        )
        # Test connection
        try:
            _client.admin.command("ping")
            logger.info("MongoDB connection successful")
        except ConnectionFailure as e:
            logger.error(f"MongoDB connection failed: {e}")
            raise
    return _client


def get_database() -> Database:
    """Get the application database"""
    global _database
    if _database is None:
        client = get_client()
        _database = client[settings.mongo_db]
        logger.info(f"Using database: {settings.mongo_db}")
    return _database


def close_connection() -> None:
    """Close MongoDB connection"""
    global _client, _database
    if _client is not None:
        _client.close()
        _client = None
        _database = None
        logger.info("MongoDB connection closed")


def create_indexes(db: Optional[Database] = None) -> None:
    """Create all required indexes"""
    db = db if db is not None else get_database()
    logger.info("Creating MongoDB indexes...")

    users = db["users"]
    users.create_index("user_id", unique=True)
    users.create_index("email", unique=True)

    tickets = db["tickets"]
    tickets.create_index("ticket_id", unique=True)
    tickets.create_index("created_by")
    tickets.create_index("assigned_to")
    tickets.create_index("status")
    tickets.create_index([("category", ASCENDING), ("priority", ASCENDING)])
    tickets.create_index("created_at", background=True)

    comments = db["comments"]
    comments.create_index("comment_id", unique=True)
    comments.create_index([("ticket_id", ASCENDING), ("created_at", ASCENDING), ("seq", ASCENDING)])
    comments.create_index("author_id")

    attachments = db["attachments"]
    attachments.create_index("attachment_id", unique=True)
    attachments.create_index("ticket_id")
    attachments.create_index("uploaded_by")
    attachments.create_index("stored_name", unique=True)

    # Per-resource (timestamp, seq) order is how a ticket's history is rebuilt
    audit_logs = db["audit_logs"]
    audit_logs.create_index("audit_id", unique=True)
    audit_logs.create_index([("actor_id", ASCENDING), ("timestamp", DESCENDING)])
    audit_logs.create_index([("resource_type", ASCENDING), ("resource_id", ASCENDING), ("timestamp", ASCENDING), ("seq", ASCENDING)])
    audit_logs.create_index("action")
    audit_logs.create_index("timestamp", background=True)

    logger.info("MongoDB indexes created successfully")


def health_check() -> Dict[str, Any]:
    """Check MongoDB health"""
    try:
        client = get_client()
        client.admin.command("ping")
        return {
            "status": "healthy",
            "database": settings.mongo_db,
            "connection": "ok"
        }
    except Exception as e:
        logger.error(f"MongoDB health check failed: {e}")
        return {
            "status": "unhealthy",
            "database": settings.mongo_db,
            "error": str(e)
        }


def next_sequence(counters: Collection, name: str) -> int:
    """
    Next value of a named counter, starting at 1

    Breaks ties between records written in the same millisecond so they
    read back in insertion order.
    """
    doc = counters.find_one_and_update(
        {"_id": name},
        {"$inc": {"value": 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER
    )
    return doc["value"]


def to_storage(values: Dict[str, Any]) -> Dict[str, Any]:
    """Top-level enum members stored by value"""
    return {
        key: value.value if isinstance(value, Enum) else value
        for key, value in values.items()
    }
