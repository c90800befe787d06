"""
MongoDB Service helpers shared by the user, post and comment services.

- ObjectId parsing and JSON serialization
- Pagination metadata
- Reference "population" (replace ids with small user summaries)
"""

import math
from datetime import datetime
from typing import Optional, List, Dict, Any, Iterable
from bson import ObjectId
from bson.errors import InvalidId

from app.core.exceptions import NotFoundError


# ============================================================
# HELPER: Convert ObjectId to string for JSON serialization
# ============================================================

def serialize_value(value: Any) -> Any:
    """Recursively convert ObjectIds to strings."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [serialize_value(v) for v in value]
    return value


def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    """Convert MongoDB document to JSON-serializable dict."""
    if doc is None:
        return None
    return serialize_value(doc)


def serialize_docs(docs: Iterable[dict]) -> list:
    """Convert list of MongoDB documents to JSON-serializable list."""
    return [serialize_doc(doc) for doc in docs]


def to_object_id(value: Any, entity: str = "Resource") -> ObjectId:
    """
    Parse a path/body id. A malformed id can never match a document,
    so it is reported the same way as a missing one.
    """
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise NotFoundError(f"{entity} not found")


def is_object_id(value: Any) -> bool:
    return isinstance(value, ObjectId) or ObjectId.is_valid(str(value))


def utcnow() -> datetime:
    return datetime.utcnow()


# ============================================================
# PAGINATION
# ============================================================

def build_pagination(page: int, limit: int, total: int) -> Dict[str, int]:
    """{page, limit, total, pages} with pages = ceil(total / limit)."""
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0
    }


# Larger pages would push skip past what BSON can encode
MAX_PAGE = 1_000_000


def skip_for(page: int, limit: int) -> int:
    return (page - 1) * limit


# Newest first, _id breaks ties so pages never overlap
NEWEST_FIRST = [("created_at", -1), ("_id", -1)]
OLDEST_FIRST = [("created_at", 1), ("_id", 1)]


# ============================================================
# POPULATION
# ============================================================

# Field sets returned when a user id is replaced by a summary
AUTHOR_FIELDS = ("username", "full_name", "avatar", "university", "major")
COMMENT_AUTHOR_FIELDS = ("username", "full_name", "avatar")
FOLLOW_SUMMARY_FIELDS = ("username", "full_name", "avatar")
FOLLOW_LIST_FIELDS = ("username", "full_name", "avatar", "bio", "university", "major")


def populate_ids(collection, ids: List[ObjectId], fields: Iterable[str]) -> List[dict]:
    """
    Replace a list of ids by the referenced documents (projected to `fields`),
    keeping the original order and dropping ids that no longer exist.
    """
    if not ids:
        return []
    projection = {field: 1 for field in fields}
    found = {doc["_id"]: doc for doc in collection.find({"_id": {"$in": list(ids)}}, projection)}
    return [found[i] for i in ids if i in found]
