"""
User Routes

GET /users - List users (search, university, major filters)
GET /users/explore - Discover users, with follow status
PUT /users/profile - Update own profile (multipart, optional avatar)
GET /users/{user_id} - Profile with follower/following summaries
POST /users/{user_id}/follow - Follow / unfollow toggle
DELETE /users/{user_id}/follow - Unfollow
GET /users/{user_id}/followers - Followers list
GET /users/{user_id}/following - Following list
"""

from fastapi import APIRouter, Depends, Query, Form, File, UploadFile
from fastapi.concurrency import run_in_threadpool
from typing import Optional

from app.api.forms import validate_form
from app.core.auth import get_current_user, get_optional_user, user_id_of
from app.services.mongo_service import serialize_doc, serialize_docs, build_pagination, MAX_PAGE
from app.services.user_service import UserService, get_user_service
from app.services.storage_service import get_storage_service
from app.utils.file_upload import read_image_file
from app.schemas.schemas import ProfileUpdate

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("")
def list_users(
    page: int = Query(1, ge=1, le=MAX_PAGE),
    limit: int = Query(10, ge=1, le=100),
    search: str = Query("", description="Username or full name"),
    university: str = Query(""),
    major: str = Query(""),
    users: UserService = Depends(get_user_service)
):
    """List users, newest first, with case-insensitive substring filters."""
    results, total = users.list_users(page=page, limit=limit, search=search, university=university, major=major)
    return {"users": serialize_docs(results), "pagination": build_pagination(page, limit, total)}


@router.get("/explore")
def explore_users(
    search: str = Query(""),
    limit: int = Query(20, ge=1, le=100),
    user: dict = Depends(get_current_user),
    users: UserService = Depends(get_user_service)
):
    """Users other than the caller, each with is_following."""
    results = users.explore(user["_id"], search=search, limit=limit)
    return {"users": serialize_docs(results)}


@router.put("/profile")
async def update_profile(
    full_name: Optional[str] = Form(None),
    username: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    university: Optional[str] = Form(None),
    major: Optional[str] = Form(None),
    bio: Optional[str] = Form(None),
    year: Optional[str] = Form(None),
    avatar: Optional[UploadFile] = File(None),
    user: dict = Depends(get_current_user),
    users: UserService = Depends(get_user_service)
):
    """
    Update own profile. Blank fields keep their current value.
    An avatar image, when sent, is uploaded and its URL stored.

    Storage and database calls block, so they run in the threadpool.
    """
    data = validate_form(ProfileUpdate, {
        "full_name": full_name, "username": username, "email": email,
        "university": university, "major": major, "bio": bio, "year": year
    })
    updates = data.model_dump()

    if avatar is not None and avatar.filename:
        image = await read_image_file(avatar)
        # Conflicts are rejected before anything reaches the image host
        await run_in_threadpool(users.profile_changes, user, updates)
        updates["avatar"] = await run_in_threadpool(get_storage_service().upload_avatar, image)

    updated = await run_in_threadpool(users.update_profile, user, updates)
    return {"message": "Profile updated successfully", "user": serialize_doc(updated)}


@router.get("/{user_id}")
def get_user(
    user_id: str,
    viewer: Optional[dict] = Depends(get_optional_user),
    users: UserService = Depends(get_user_service)
):
    """Get a user's profile and whether the caller follows them."""
    profile, is_following = users.get_profile(user_id, viewer_id=user_id_of(viewer))
    return {"user": serialize_doc(profile), "is_following": is_following}


@router.post("/{user_id}/follow")
def follow_user(
    user_id: str,
    user: dict = Depends(get_current_user),
    users: UserService = Depends(get_user_service)
):
    """Follow a user, or unfollow if already following."""
    following = users.toggle_follow(user["_id"], user_id)
    message = "User followed successfully" if following else "User unfollowed successfully"
    return {"message": message, "following": following}


@router.delete("/{user_id}/follow")
def unfollow_user(
    user_id: str,
    user: dict = Depends(get_current_user),
    users: UserService = Depends(get_user_service)
):
    """Unfollow a user. Fails if not following."""
    users.unfollow(user["_id"], user_id)
    return {"message": "User unfollowed successfully", "following": False}


@router.get("/{user_id}/followers")
def get_followers(user_id: str, users: UserService = Depends(get_user_service)):
    return {"followers": serialize_docs(users.get_followers(user_id))}


@router.get("/{user_id}/following")
def get_following(user_id: str, users: UserService = Depends(get_user_service)):
    return {"following": serialize_docs(users.get_following(user_id))}
