"""MongoDB Client - Connection and Collection Management"""
from typing import Optional
from pymongo import MongoClient as PyMongoClient
from pymongo.database import Database
from pymongo.collection import Collection
from pymongo import ASCENDING
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
            socketTimeoutMS=30000,
        )
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


def get_collection(name: str) -> Collection:
    """Get a collection from the database"""
    db = get_database()
    return db[name]


def ping() -> bool:
    """Check the database answers"""
    try:
        get_client().admin.command("ping")
        return True
    except ConnectionFailure:
        return False


def close_connection() -> None:
    """Close MongoDB connection"""
    global _client, _database
    if _client is not None:
        _client.close()
        _client = None
        _database = None
        logger.info("MongoDB connection closed")


def create_indexes() -> None:
    """Create all required indexes"""
    db = get_database()
    logger.info("Creating MongoDB indexes...")

    # Workflow configuration
    db["flows"].create_index("id", unique=True)
    db["flows"].create_index([("subcategory_id", ASCENDING), ("active", ASCENDING)])
    db["steps"].create_index("id", unique=True)
    db["steps"].create_index([("flow_id", ASCENDING), ("order", ASCENDING)])
    db["transitions"].create_index("id", unique=True)
    db["transitions"].create_index("origin_step_id")
    db["routes"].create_index("id", unique=True)
    db["routes"].create_index("flow_id")

    # Tickets
    db["tickets"].create_index("id", unique=True)
    db["tickets"].create_index("current_step_id")
    db["tickets"].create_index("assignee_ids")
    db["ticket_field_values"].create_index(
        [("ticket_id", ASCENDING), ("field_id", ASCENDING)], unique=True
    )

    # Parallel steps
    db["parallel_instances"].create_index(
        [("ticket_id", ASCENDING), ("step_id", ASCENDING), ("user_id", ASCENDING)],
        unique=True
    )
    db["parallel_counters"].create_index(
        [("ticket_id", ASCENDING), ("step_id", ASCENDING)], unique=True
    )

    # Permissions
    db["permissions"].create_index("id", unique=True)
    db["role_permissions"].create_index(
        [("role_id", ASCENDING), ("permission_id", ASCENDING)], unique=True
    )

    # Directory
    db["users"].create_index("id", unique=True)
    db["users"].create_index([("role_id", ASCENDING), ("active", ASCENDING)])
    db["users"].create_index("position_id")
    db["positions"].create_index("id", unique=True)

    # History and outbox
    db["assignment_history"].create_index([("ticket_id", ASCENDING), ("created_at", ASCENDING)])
    db["notification_outbox"].create_index([("status", ASCENDING), ("created_at", ASCENDING)])

    logger.info("MongoDB indexes created successfully")
