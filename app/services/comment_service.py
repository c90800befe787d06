"""
Comment Service - comments, one level of replies, likes.

Collection: comments

    {
        "_id": ObjectId,
        "author": ObjectId,
        "post": ObjectId,
        "parent_comment": ObjectId | None,  # None for top-level comments
        "content": str,
        "replies": [ObjectId, ...],         # only on top-level comments
        "likes": [ObjectId, ...],
        "is_edited": bool,
        "created_at": datetime, "updated_at": datetime
    }

Back-references kept in sync:
- every comment id is in its post's "comments" list
- every reply id is in its parent's "replies" list
"""

from typing import Optional, List, Any, Tuple
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.collection import Collection

from app.db.mongodb import get_collection, COLLECTIONS
from app.core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from app.core.logging import get_logger
from app.services.mongo_service import (
    serialize_doc, to_object_id, is_object_id, utcnow, skip_for, populate_ids,
    NEWEST_FIRST, OLDEST_FIRST, COMMENT_AUTHOR_FIELDS
)
from app.services.mutations import MutationPlan
from app.services.post_service import restore_docs

logger = get_logger(__name__)


class CommentService:
    """
    Handles comment documents and their links to posts and parent comments.
    """

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["comments"])
        self.posts: Collection = get_collection(COLLECTIONS["posts"])
        self.users: Collection = get_collection(COLLECTIONS["users"])

    # ------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------

    def _decorate(self, comments: List[dict], viewer_id: Optional[ObjectId]) -> List[dict]:
        """Populate authors and add like_count / is_liked (not serialized)."""
        author_ids = list({c["author"] for c in comments})
        authors = {a["_id"]: a for a in populate_ids(self.users, author_ids, COMMENT_AUTHOR_FIELDS)}

        for comment in comments:
            likes = comment.get("likes", [])
            comment["author"] = authors.get(comment["author"], {"_id": comment["author"]})
            comment["like_count"] = len(likes)
            comment["is_liked"] = viewer_id is not None and viewer_id in likes
        return comments

    def _present(self, comments: List[dict], viewer_id: Optional[ObjectId] = None) -> List[dict]:
        return [serialize_doc(c) for c in self._decorate(comments, viewer_id)]

    # ------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------

    def require(self, comment_id: Any) -> dict:
        comment = self.collection.find_one({"_id": to_object_id(comment_id, "Comment")})
        if not comment:
            raise NotFoundError("Comment not found")
        return comment

    def list_for_post(
        self,
        post_id: Any,
        viewer_id: Optional[ObjectId] = None,
        page: int = 1,
        limit: int = 10
    ) -> Tuple[List[dict], int]:
        """
        Top-level comments, newest first, each with its replies
        (oldest first) populated one level deep.
        """
        if not is_object_id(post_id):
            return [], 0
        query = {"post": ObjectId(str(post_id)), "parent_comment": None}

        cursor = (
            self.collection.find(query)
            .sort(NEWEST_FIRST)
            .skip(skip_for(page, limit))
            .limit(limit)
        )
        comments = self._decorate(list(cursor), viewer_id)

        reply_ids = [rid for c in comments for rid in c.get("replies", [])]
        replies = {r["_id"]: r for r in self._decorate(
            list(self.collection.find({"_id": {"$in": reply_ids}})), viewer_id
        )}
        for comment in comments:
            comment["replies"] = [replies[rid] for rid in comment.get("replies", []) if rid in replies]

        total = self.collection.count_documents(query)
        return [serialize_doc(c) for c in comments], total

    def list_replies(
        self,
        comment_id: Any,
        viewer_id: Optional[ObjectId] = None,
        page: int = 1,
        limit: int = 10
    ) -> Tuple[List[dict], int]:
        """Replies to one comment, oldest first."""
        if not is_object_id(comment_id):
            return [], 0
        query = {"parent_comment": ObjectId(str(comment_id))}

        cursor = (
            self.collection.find(query)
            .sort(OLDEST_FIRST)
            .skip(skip_for(page, limit))
            .limit(limit)
        )
        replies = self._present(list(cursor), viewer_id)
        total = self.collection.count_documents(query)
        return replies, total

    # ------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------

    def create(
        self,
        author_id: ObjectId,
        post_id: Any,
        content: str,
        parent_comment_id: Optional[str] = None
    ) -> dict:
        """
        Insert a comment (or a reply when parent_comment_id is given) and
        link it into the post and parent lists.

        Raises:
            NotFoundError: unknown post, or parent missing / on another post
            BadRequestError: parent is itself a reply
        """
        post_oid = to_object_id(post_id, "Post")
        if not self.posts.count_documents({"_id": post_oid}, limit=1):
            raise NotFoundError("Post not found")

        parent_oid = None
        if parent_comment_id:
            parent_oid = to_object_id(parent_comment_id, "Parent comment")
            parent = self.collection.find_one({"_id": parent_oid, "post": post_oid})
            if not parent:
                raise NotFoundError("Parent comment not found")
            if parent.get("parent_comment") is not None:
                raise BadRequestError("Replies can only be added to top-level comments")

        now = utcnow()
        doc = {
            "_id": ObjectId(),
            "author": author_id,
            "post": post_oid,
            "parent_comment": parent_oid,
            "content": content,
            "replies": [],
            "likes": [],
            "is_edited": False,
            "created_at": now,
            "updated_at": now
        }

        plan = MutationPlan("create comment")
        plan.add(
            "insert comment",
            lambda: self.collection.insert_one(doc),
            undo=lambda: self.collection.delete_one({"_id": doc["_id"]})
        )
        if parent_oid is not None:
            plan.add(
                "link to parent",
                lambda: self.collection.update_one({"_id": parent_oid}, {"$addToSet": {"replies": doc["_id"]}}),
                undo=lambda: self.collection.update_one({"_id": parent_oid}, {"$pull": {"replies": doc["_id"]}})
            )
        plan.add(
            "link to post",
            lambda: self.posts.update_one({"_id": post_oid}, {"$addToSet": {"comments": doc["_id"]}}),
            undo=lambda: self.posts.update_one({"_id": post_oid}, {"$pull": {"comments": doc["_id"]}})
        )
        plan.execute()

        return self._present([dict(doc)], author_id)[0]

    def update(self, comment_id: Any, caller_id: ObjectId, content: str) -> dict:
        comment = self.require(comment_id)
        if comment["author"] != caller_id:
            raise ForbiddenError("Not authorized to update this comment")

        updated = self.collection.find_one_and_update(
            {"_id": comment["_id"]},
            {"$set": {"content": content, "is_edited": True, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER
        )
        if updated is None:
            raise NotFoundError("Comment not found")
        return self._present([updated], caller_id)[0]

    def delete(self, comment_id: Any, caller_id: ObjectId, post_id: Optional[Any] = None) -> int:
        """
        Delete a comment and all of its replies, detaching every deleted id
        from the post's comment list and the parent's reply list.
        When post_id is given the comment must belong to that post.
        Returns the number of comments removed.
        """
        comment = self.require(comment_id)
        if post_id is not None and comment["post"] != to_object_id(post_id, "Comment"):
            raise NotFoundError("Comment not found")
        if comment["author"] != caller_id:
            raise ForbiddenError("Not authorized to delete this comment")

        replies = list(self.collection.find({"parent_comment": comment["_id"]}))
        removed_ids = [comment["_id"]] + [r["_id"] for r in replies]
        post_oid = comment["post"]
        parent_oid = comment.get("parent_comment")

        post_before = self.posts.find_one({"_id": post_oid}, {"comments": 1})
        parent_before = self.collection.find_one({"_id": parent_oid}, {"replies": 1}) if parent_oid else None

        plan = MutationPlan("delete comment")
        plan.add(
            "detach from post",
            lambda: self.posts.update_one({"_id": post_oid}, {"$pullAll": {"comments": removed_ids}}),
            undo=lambda: self._restore_list(self.posts, post_before, "comments")
        )
        if parent_oid is not None:
            plan.add(
                "detach from parent",
                lambda: self.collection.update_one({"_id": parent_oid}, {"$pull": {"replies": comment["_id"]}}),
                undo=lambda: self._restore_list(self.collection, parent_before, "replies")
            )
        plan.add(
            "delete replies",
            lambda: self.collection.delete_many({"parent_comment": comment["_id"]}),
            undo=lambda: restore_docs(self.collection, replies)
        )
        plan.add(
            "delete comment",
            lambda: self.collection.delete_one({"_id": comment["_id"]}),
            undo=lambda: restore_docs(self.collection, [comment])
        )
        plan.execute()

        logger.info(f"Comment {comment['_id']} deleted with {len(replies)} reply(ies)")
        return len(removed_ids)

    @staticmethod
    def _restore_list(collection: Collection, snapshot: Optional[dict], field: str) -> None:
        """Put an id list back exactly as it was (order included)."""
        if snapshot is not None:
            collection.update_one({"_id": snapshot["_id"]}, {"$set": {field: snapshot.get(field, [])}})

    def toggle_like(self, comment_id: Any, caller_id: ObjectId) -> Tuple[bool, int]:
        """Like, or unlike if already liked. Returns (liked, like_count)."""
        comment = self.require(comment_id)
        liked = caller_id in comment.get("likes", [])
        operation = {"$pull": {"likes": caller_id}} if liked else {"$addToSet": {"likes": caller_id}}

        updated = self.collection.find_one_and_update(
            {"_id": comment["_id"]},
            operation,
            projection={"likes": 1},
            return_document=ReturnDocument.AFTER
        )
        if updated is None:
            raise NotFoundError("Comment not found")
        return not liked, len(updated.get("likes", []))


def get_comment_service() -> CommentService:
    return CommentService()
