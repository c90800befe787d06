"""
MongoDB Connection Utility

MongoDB stores:
- users: profiles and follower/following id sets
- posts: notes and job listings, with like and comment id lists
- comments: top-level comments and one level of replies

Documents reference each other by ObjectId, nothing is embedded.
"""
from typing import Optional
from pymongo import MongoClient, ASCENDING, DESCENDING
from pymongo.database import Database
from pymongo.collection import Collection

from app.core.config import get_settings
from app.core.logging import get_logger

logger = get_logger(__name__)

# Global client (connection pooling handled internally by pymongo)
_client: Optional[MongoClient] = None
_db: Optional[Database] = None


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        _client = MongoClient(get_settings().mongodb_uri)
    return _client


def get_mongo_db() -> Database:
    """Get the application database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[get_settings().mongodb_db]
    return _db


def set_mongo_db(db: Optional[Database]) -> None:
    """
    Swap the database used by every service.
    Tests pass a mongomock database here; None resets to the real one.
    """
    global _db
    _db = db


def get_collection(name: str) -> Collection:
    """
    Get a specific collection.
    Collections we'll use:
    - users
    - posts
    - comments
    """
    db = get_mongo_db()
    return db[name]


def test_mongo_connection() -> bool:
    """
    Test if MongoDB is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        client = get_mongo_db().client
        # ping command checks connection
        client.admin.command('ping')
        return True
    except Exception as e:
        logger.warning(f"MongoDB connection failed: {e}")
        return False


# Collection name constants (avoid typos)
COLLECTIONS = {
    "users": "users",
    "posts": "posts",
    "comments": "comments"
}


def init_mongo_indexes():
    """
    Create indexes for better query performance.
    Call this once during app startup.
    """
    db = get_mongo_db()

    # Unique identity fields
    db[COLLECTIONS["users"]].create_index("username", unique=True)
    db[COLLECTIONS["users"]].create_index("email", unique=True)

    # Post listings: by author newest first, by type/category, by tag
    db[COLLECTIONS["posts"]].create_index([
        ("author", ASCENDING),
        ("created_at", DESCENDING)
    ])
    db[COLLECTIONS["posts"]].create_index([
        ("type", ASCENDING),
        ("category", ASCENDING)
    ])
    db[COLLECTIONS["posts"]].create_index("tags")

    # Top-level comments per post, and reply lookups
    db[COLLECTIONS["comments"]].create_index([
        ("post", ASCENDING),
        ("parent_comment", ASCENDING),
        ("created_at", DESCENDING)
    ])
    db[COLLECTIONS["comments"]].create_index("parent_comment")

    logger.info("MongoDB indexes created successfully")
