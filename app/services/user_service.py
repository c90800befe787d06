"""
User Service - profiles and the follower/following relationship.

Collection: users

    {
        "_id": ObjectId,
        "username": "alice",            # unique
        "email": "alice@uni.edu",       # unique
        "password_hash": "...",         # bcrypt, never returned
        "full_name": "Alice Smith",
        "bio": "", "avatar": "",
        "university": "", "major": "", "year": None,
        "followers": [ObjectId, ...],   # users following this user
        "following": [ObjectId, ...],   # users this user follows
        "is_verified": False,
        "created_at": datetime, "updated_at": datetime
    }

followers/following are mirror sets: A in B.followers <=> B in A.following.
Both sides are written by one MutationPlan so a failure on the second write
undoes the first.
"""

import re
from typing import Optional, List, Dict, Any, Tuple
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from app.db.mongodb import get_collection, COLLECTIONS
from app.core.exceptions import BadRequestError, ConflictError, NotFoundError
from app.core.logging import get_logger
from app.services.mongo_service import (
    to_object_id, utcnow, skip_for, populate_ids, NEWEST_FIRST,
    FOLLOW_SUMMARY_FIELDS, FOLLOW_LIST_FIELDS
)
from app.services.mutations import MutationPlan

logger = get_logger(__name__)

# Never send the hash to a client
PUBLIC_PROJECTION = {"password_hash": 0}

PROFILE_FIELDS = ("full_name", "username", "email", "university", "major", "bio", "year", "avatar")


def _contains(text: str) -> dict:
    """Case-insensitive literal substring match."""
    return {"$regex": re.escape(text), "$options": "i"}


class UserService:
    """
    Handles user documents and follow relationships.
    """

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["users"])

    # ------------------------------------------------------------
    # Create / lookup
    # ------------------------------------------------------------

    def create(
        self,
        username: str,
        email: str,
        password_hash: str,
        full_name: str,
        bio: str = "",
        university: str = "",
        major: str = "",
        year: Optional[int] = None
    ) -> dict:
        """
        Insert a new user.

        Raises:
            ConflictError: username or email already registered
        """
        self._ensure_unique(username=username, email=email)

        now = utcnow()
        doc = {
            "username": username,
            "email": email.lower(),
            "password_hash": password_hash,
            "full_name": full_name,
            "bio": bio or "",
            "avatar": "",
            "university": university or "",
            "major": major or "",
            "year": year,
            "followers": [],
            "following": [],
            "is_verified": False,
            "created_at": now,
            "updated_at": now
        }
        try:
            result = self.collection.insert_one(doc)
        except DuplicateKeyError:
            # Lost a race with a concurrent registration
            raise ConflictError("User already exists")

        logger.info(f"Registered user {username}")
        return self.get_public(result.inserted_id)

    def get_by_email(self, email: str) -> Optional[dict]:
        return self.collection.find_one({"email": email.lower()})

    def get_public(self, user_id: Any) -> Optional[dict]:
        return self.collection.find_one({"_id": to_object_id(user_id, "User")}, PUBLIC_PROJECTION)

    def require_public(self, user_id: Any) -> dict:
        user = self.get_public(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    # ------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------

    def list_users(
        self,
        page: int = 1,
        limit: int = 10,
        search: str = "",
        university: str = "",
        major: str = ""
    ) -> Tuple[List[dict], int]:
        """Paginated users, newest first. Returns (users, total)."""
        query: Dict[str, Any] = {}
        if search:
            query["$or"] = [
                {"username": _contains(search)},
                {"full_name": _contains(search)}
            ]
        if university:
            query["university"] = _contains(university)
        if major:
            query["major"] = _contains(major)

        cursor = (
            self.collection.find(query, PUBLIC_PROJECTION)
            .sort(NEWEST_FIRST)
            .skip(skip_for(page, limit))
            .limit(limit)
        )
        users = list(cursor)
        total = self.collection.count_documents(query)
        return users, total

    def explore(self, viewer_id: ObjectId, search: str = "", limit: int = 20) -> List[dict]:
        """Users other than the viewer, each annotated with is_following."""
        query: Dict[str, Any] = {"_id": {"$ne": viewer_id}}
        if search:
            query["$or"] = [
                {"username": _contains(search)},
                {"full_name": _contains(search)},
                {"university": _contains(search)},
                {"major": _contains(search)}
            ]

        users = list(self.collection.find(query, PUBLIC_PROJECTION).sort(NEWEST_FIRST).limit(limit))
        for user in users:
            user["is_following"] = viewer_id in user.get("followers", [])
        return users

    # ------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------

    def profile_changes(self, user: dict, updates: Dict[str, Any]) -> Dict[str, Any]:
        """
        The profile fields `updates` would actually change.
        Empty strings / None keep the current value.

        Raises:
            ConflictError: new username/email belongs to another user
        """
        changes = {
            field: value for field, value in updates.items()
            if field in PROFILE_FIELDS and value not in (None, "")
        }
        if "email" in changes:
            changes["email"] = changes["email"].lower()

        new_username = changes.get("username")
        new_email = changes.get("email")
        self._ensure_unique(
            username=new_username if new_username != user.get("username") else None,
            email=new_email if new_email != user.get("email") else None,
            exclude_id=user["_id"]
        )
        return changes

    def update_profile(self, user: dict, updates: Dict[str, Any]) -> dict:
        """
        Apply non-empty profile fields to `user`.

        Raises:
            ConflictError: new username/email belongs to another user
        """
        changes = self.profile_changes(user, updates)
        changes["updated_at"] = utcnow()
        try:
            updated = self.collection.find_one_and_update(
                {"_id": user["_id"]},
                {"$set": changes},
                projection=PUBLIC_PROJECTION,
                return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError:
            raise ConflictError("Username or email already taken")

        if updated is None:
            raise NotFoundError("User not found")
        return updated

    def get_profile(self, user_id: Any, viewer_id: Optional[ObjectId] = None) -> Tuple[dict, bool]:
        """
        User with followers/following replaced by short summaries.
        Returns (user, is_following) where is_following is from the viewer's side.
        """
        user = self.require_public(user_id)
        is_following = viewer_id is not None and viewer_id in user.get("followers", [])

        user["followers"] = populate_ids(self.collection, user.get("followers", []), FOLLOW_SUMMARY_FIELDS)
        user["following"] = populate_ids(self.collection, user.get("following", []), FOLLOW_SUMMARY_FIELDS)
        return user, is_following

    def get_followers(self, user_id: Any) -> List[dict]:
        user = self.require_public(user_id)
        return populate_ids(self.collection, user.get("followers", []), FOLLOW_LIST_FIELDS)

    def get_following(self, user_id: Any) -> List[dict]:
        user = self.require_public(user_id)
        return populate_ids(self.collection, user.get("following", []), FOLLOW_LIST_FIELDS)

    # ------------------------------------------------------------
    # Follow relationship
    # ------------------------------------------------------------

    def toggle_follow(self, follower_id: ObjectId, target_id: Any) -> bool:
        """
        Follow the target, or unfollow if already following.
        Returns True if the caller now follows the target.
        """
        target_oid = self._check_follow_target(follower_id, target_id, "follow")

        follower = self.collection.find_one({"_id": follower_id}, {"following": 1})
        if follower and target_oid in follower.get("following", []):
            self._unlink(follower_id, target_oid)
            return False

        self._link(follower_id, target_oid)
        return True

    def unfollow(self, follower_id: ObjectId, target_id: Any) -> None:
        """
        Raises:
            BadRequestError: self-unfollow, or not following the target
        """
        target_oid = self._check_follow_target(follower_id, target_id, "unfollow")

        follower = self.collection.find_one({"_id": follower_id}, {"following": 1})
        if not follower or target_oid not in follower.get("following", []):
            raise BadRequestError("Not following this user")

        self._unlink(follower_id, target_oid)

    def _check_follow_target(self, follower_id: ObjectId, target_id: Any, verb: str) -> ObjectId:
        target_oid = to_object_id(target_id, "User")
        if target_oid == follower_id:
            raise BadRequestError(f"You cannot {verb} yourself")
        if not self.collection.count_documents({"_id": target_oid}, limit=1):
            raise NotFoundError("User not found")
        return target_oid

    def _link(self, follower_id: ObjectId, target_id: ObjectId) -> None:
        add_following, del_following, add_follower, del_follower = self._relation_ops(follower_id, target_id)
        (
            MutationPlan("follow")
            .add("add to following", add_following, undo=del_following)
            .add("add to followers", add_follower, undo=del_follower)
            .execute()
        )

    def _unlink(self, follower_id: ObjectId, target_id: ObjectId) -> None:
        add_following, del_following, add_follower, del_follower = self._relation_ops(follower_id, target_id)
        (
            MutationPlan("unfollow")
            .add("remove from following", del_following, undo=add_following)
            .add("remove from followers", del_follower, undo=add_follower)
            .execute()
        )

    def _relation_ops(self, follower_id: ObjectId, target_id: ObjectId):
        """Idempotent add/remove writes for both sides of one relationship."""
        def add_following():
            return self.collection.update_one({"_id": follower_id}, {"$addToSet": {"following": target_id}})

        def del_following():
            return self.collection.update_one({"_id": follower_id}, {"$pull": {"following": target_id}})

        def add_follower():
            return self.collection.update_one({"_id": target_id}, {"$addToSet": {"followers": follower_id}})

        def del_follower():
            return self.collection.update_one({"_id": target_id}, {"$pull": {"followers": follower_id}})

        return add_following, del_following, add_follower, del_follower

    # ------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------

    def _ensure_unique(
        self,
        username: Optional[str] = None,
        email: Optional[str] = None,
        exclude_id: Optional[ObjectId] = None
    ) -> None:
        not_self = {"_id": {"$ne": exclude_id}} if exclude_id is not None else {}

        if username and self.collection.count_documents({"username": username, **not_self}, limit=1):
            raise ConflictError("Username already taken")
        if email and self.collection.count_documents({"email": email.lower(), **not_self}, limit=1):
            raise ConflictError("Email already taken")


def get_user_service() -> UserService:
    """FastAPI dependency / convenience constructor."""
    return UserService()
