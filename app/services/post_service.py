"""
Post Service - notes and job listings.

Collection: posts

    {
        "_id": ObjectId,
        "author": ObjectId,                 # users._id
        "type": "note" | "job",
        "title": str, "content": str, "category": str,
        "tags": [str, ...],
        "attachments": [{"filename", "url", "type"}, ...],
        "likes": [ObjectId, ...],           # users who liked, no duplicates
        "comments": [ObjectId, ...],        # every comment and reply on the post
        "views": int,
        "is_public": bool,
        "job_details": {...} | None,        # set when type == "job"
        "note_details": {...} | None,       # set when type == "note"
        "created_at": datetime, "updated_at": datetime
    }

Reading a single post is not read-only: every fetch increments views.
"""

import re
from typing import Optional, List, Dict, Any, Tuple
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.collection import Collection

from app.db.mongodb import get_collection, COLLECTIONS
from app.core.exceptions import ForbiddenError, NotFoundError
from app.core.logging import get_logger
from app.schemas.schemas import PostCreate, PostUpdate, PostType, JobDetails, NoteDetails
from app.services.mongo_service import (
    serialize_doc, to_object_id, is_object_id, utcnow, skip_for, populate_ids,
    NEWEST_FIRST, AUTHOR_FIELDS, COMMENT_AUTHOR_FIELDS
)
from app.services.mutations import MutationPlan

logger = get_logger(__name__)

EXPLORE_MAX_LIMIT = 50


def _contains(text: str) -> dict:
    return {"$regex": re.escape(text), "$options": "i"}


def restore_docs(collection: Collection, docs: List[dict]) -> None:
    """Put snapshotted documents back (idempotent: upsert by _id)."""
    for doc in docs:
        collection.replace_one({"_id": doc["_id"]}, doc, upsert=True)


class PostService:
    """
    Handles post documents, likes and views.
    """

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["posts"])
        self.users: Collection = get_collection(COLLECTIONS["users"])
        self.comments: Collection = get_collection(COLLECTIONS["comments"])

    # ------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------

    def _present(self, posts: List[dict], viewer_id: Optional[ObjectId] = None) -> List[dict]:
        """
        Populate authors (one query for the whole page), add derived
        like_count / comment_count / is_liked, then serialize.
        """
        author_ids = list({post["author"] for post in posts})
        authors = {a["_id"]: a for a in populate_ids(self.users, author_ids, AUTHOR_FIELDS)}

        presented = []
        for post in posts:
            likes = post.get("likes", [])
            post["author"] = authors.get(post["author"], {"_id": post["author"]})
            post["like_count"] = len(likes)
            post["comment_count"] = len(post.get("comments", []))
            post["is_liked"] = viewer_id is not None and viewer_id in likes
            presented.append(serialize_doc(post))
        return presented

    def _page(self, query: dict, page: int, limit: int, viewer_id: Optional[ObjectId]) -> Tuple[List[dict], int]:
        cursor = (
            self.collection.find(query)
            .sort(NEWEST_FIRST)
            .skip(skip_for(page, limit))
            .limit(limit)
        )
        posts = self._present(list(cursor), viewer_id)
        total = self.collection.count_documents(query)
        return posts, total

    # ------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------

    def require(self, post_id: Any) -> dict:
        """Raw post document or NotFoundError."""
        post = self.collection.find_one({"_id": to_object_id(post_id, "Post")})
        if not post:
            raise NotFoundError("Post not found")
        return post

    def list_posts(
        self,
        viewer_id: Optional[ObjectId] = None,
        page: int = 1,
        limit: int = 10,
        post_type: str = "",
        category: str = "",
        author: str = "",
        search: str = ""
    ) -> Tuple[List[dict], int]:
        """
        Paginated feed, newest first. Public posts only, except that a
        viewer filtering on their own id also sees their private posts.
        """
        query: Dict[str, Any] = {}
        if post_type:
            query["type"] = post_type
        if category:
            query["category"] = category
        if author:
            if not is_object_id(author):
                return [], 0
            query["author"] = ObjectId(author)
        if not (author and viewer_id is not None and query["author"] == viewer_id):
            query["is_public"] = True
        if search:
            query["$or"] = [
                {"title": _contains(search)},
                {"content": _contains(search)},
                {"tags": _contains(search)}
            ]
        return self._page(query, page, limit, viewer_id)

    def explore(
        self,
        viewer_id: Optional[ObjectId] = None,
        search: str = "",
        post_type: str = "",
        limit: int = 20
    ) -> List[dict]:
        """Newest public posts, capped at EXPLORE_MAX_LIMIT, no pagination."""
        query: Dict[str, Any] = {"is_public": True}
        if post_type:
            query["type"] = post_type
        if search:
            query["$or"] = [
                {"title": _contains(search)},
                {"content": _contains(search)},
                {"tags": _contains(search)}
            ]
        limit = min(limit, EXPLORE_MAX_LIMIT)
        cursor = self.collection.find(query).sort(NEWEST_FIRST).limit(limit)
        return self._present(list(cursor), viewer_id)

    def liked_by(self, viewer_id: ObjectId, page: int = 1, limit: int = 10) -> Tuple[List[dict], int]:
        """Public posts the viewer has liked."""
        return self._page({"likes": viewer_id, "is_public": True}, page, limit, viewer_id)

    def user_posts(
        self,
        user_id: Any,
        viewer_id: Optional[ObjectId] = None,
        page: int = 1,
        limit: int = 10,
        post_type: str = ""
    ) -> Tuple[List[dict], int]:
        """A user's posts; private ones only when the viewer is that user."""
        author_oid = to_object_id(user_id, "User")
        query: Dict[str, Any] = {"author": author_oid}
        if post_type:
            query["type"] = post_type
        if viewer_id != author_oid:
            query["is_public"] = True
        return self._page(query, page, limit, viewer_id)

    def view(self, post_id: Any, viewer_id: Optional[ObjectId] = None) -> dict:
        """
        Fetch one post and count the view (+1 per call, any caller).
        Comments are populated with their authors.
        """
        post = self.collection.find_one_and_update(
            {"_id": to_object_id(post_id, "Post")},
            {"$inc": {"views": 1}},
            return_document=ReturnDocument.AFTER
        )
        if not post:
            raise NotFoundError("Post not found")

        comments = populate_ids(self.comments, post.get("comments", []), [
            "author", "post", "parent_comment", "content", "replies", "likes",
            "is_edited", "created_at", "updated_at"
        ])
        comment_authors = {
            a["_id"]: a for a in populate_ids(
                self.users, list({c["author"] for c in comments}), COMMENT_AUTHOR_FIELDS
            )
        }
        for comment in comments:
            comment["author"] = comment_authors.get(comment["author"], {"_id": comment["author"]})
            comment["like_count"] = len(comment.get("likes", []))

        presented = self._present([post], viewer_id)[0]
        presented["comments"] = [serialize_doc(c) for c in comments]
        return presented

    # ------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------

    def create(self, author_id: ObjectId, data: PostCreate, attachments: Optional[List[dict]] = None) -> dict:
        """Insert a post. Only the details object matching the type is stored."""
        is_job = data.type == PostType.job
        job_details = (data.job_details or JobDetails()) if is_job else None
        note_details = (data.note_details or NoteDetails()) if not is_job else None

        now = utcnow()
        doc = {
            "author": author_id,
            "type": data.type.value,
            "title": data.title,
            "content": data.content,
            "category": data.category.value,
            "tags": data.tags,
            "attachments": attachments or [],
            "likes": [],
            "comments": [],
            "views": 0,
            "is_public": data.is_public,
            "job_details": job_details.model_dump() if job_details else None,
            "note_details": note_details.model_dump() if note_details else None,
            "created_at": now,
            "updated_at": now
        }
        result = self.collection.insert_one(doc)
        logger.info(f"Post {result.inserted_id} created by {author_id}")

        doc["_id"] = result.inserted_id
        return self._present([doc], author_id)[0]

    def update(self, post_id: Any, caller_id: ObjectId, data: PostUpdate) -> dict:
        """
        Raises:
            NotFoundError: unknown post
            ForbiddenError: caller is not the author
        """
        post = self.require(post_id)
        if post["author"] != caller_id:
            raise ForbiddenError("Not authorized to update this post")

        changes: Dict[str, Any] = {}
        for field in ("title", "content", "is_public"):
            value = getattr(data, field)
            if value is not None:
                changes[field] = value
        if data.category is not None:
            changes["category"] = data.category.value
        if data.tags is not None:
            changes["tags"] = data.tags
        if data.job_details is not None:
            changes["job_details"] = data.job_details.model_dump()
        if data.note_details is not None:
            changes["note_details"] = data.note_details.model_dump()
        changes["updated_at"] = utcnow()

        updated = self.collection.find_one_and_update(
            {"_id": post["_id"]},
            {"$set": changes},
            return_document=ReturnDocument.AFTER
        )
        if updated is None:
            raise NotFoundError("Post not found")
        return self._present([updated], caller_id)[0]

    def delete(self, post_id: Any, caller_id: ObjectId) -> None:
        """
        Delete the post and every comment on it. Both deletions run as one
        plan; if the post delete fails the comments are restored.
        """
        post = self.require(post_id)
        if post["author"] != caller_id:
            raise ForbiddenError("Not authorized to delete this post")

        comments = list(self.comments.find({"post": post["_id"]}))

        (
            MutationPlan("delete post")
            .add(
                "delete comments",
                lambda: self.comments.delete_many({"post": post["_id"]}),
                undo=lambda: restore_docs(self.comments, comments)
            )
            .add(
                "delete post",
                lambda: self.collection.delete_one({"_id": post["_id"]}),
                undo=lambda: restore_docs(self.collection, [post])
            )
            .execute()
        )
        logger.info(f"Post {post['_id']} deleted with {len(comments)} comment(s)")

    def toggle_like(self, post_id: Any, caller_id: ObjectId) -> Tuple[bool, int]:
        """
        Like, or unlike if already liked. Returns (liked, like_count).
        $addToSet keeps the set free of duplicates under concurrent likes.
        """
        post = self.require(post_id)
        liked = caller_id in post.get("likes", [])
        operation = {"$pull": {"likes": caller_id}} if liked else {"$addToSet": {"likes": caller_id}}

        updated = self.collection.find_one_and_update(
            {"_id": post["_id"]},
            operation,
            projection={"likes": 1},
            return_document=ReturnDocument.AFTER
        )
        if updated is None:
            raise NotFoundError("Post not found")
        return not liked, len(updated.get("likes", []))


def get_post_service() -> PostService:
    return PostService()
