"""
Comment Routes

GET /comments/post/{post_id} - Top-level comments with replies
POST /comments - Create comment or reply
PUT /comments/{comment_id} - Edit comment (author only)
DELETE /comments/{comment_id} - Delete comment and its replies (author only)
POST /comments/{comment_id}/like - Like / unlike toggle
GET /comments/{comment_id}/replies - Replies, oldest first
"""

from fastapi import APIRouter, Depends, Query
from typing import Optional

from app.core.auth import get_current_user, get_optional_user, user_id_of
from app.services.mongo_service import build_pagination, MAX_PAGE
from app.services.comment_service import CommentService, get_comment_service
from app.schemas.schemas import CommentCreate, CommentUpdate, MessageResponse, ToggleResponse

router = APIRouter(prefix="/comments", tags=["Comments"])


@router.get("/post/{post_id}")
def list_comments(
    post_id: str,
    page: int = Query(1, ge=1, le=MAX_PAGE),
    limit: int = Query(10, ge=1, le=100),
    viewer: Optional[dict] = Depends(get_optional_user),
    comments: CommentService = Depends(get_comment_service)
):
    """Top-level comments for a post, newest first."""
    results, total = comments.list_for_post(post_id, viewer_id=user_id_of(viewer), page=page, limit=limit)
    return {"comments": results, "pagination": build_pagination(page, limit, total)}


@router.post("", status_code=201)
def create_comment(
    data: CommentCreate,
    user: dict = Depends(get_current_user),
    comments: CommentService = Depends(get_comment_service)
):
    """Comment on a post. Set parent_comment_id to reply to a top-level comment."""
    comment = comments.create(user["_id"], data.post_id, data.content, parent_comment_id=data.parent_comment_id)
    return {"message": "Comment created successfully", "comment": comment}


@router.put("/{comment_id}")
def update_comment(
    comment_id: str,
    data: CommentUpdate,
    user: dict = Depends(get_current_user),
    comments: CommentService = Depends(get_comment_service)
):
    """Edit a comment. Marks it as edited."""
    comment = comments.update(comment_id, user["_id"], data.content)
    return {"message": "Comment updated successfully", "comment": comment}


@router.delete("/{comment_id}", response_model=MessageResponse)
def delete_comment(
    comment_id: str,
    user: dict = Depends(get_current_user),
    comments: CommentService = Depends(get_comment_service)
):
    """Delete a comment together with its replies."""
    comments.delete(comment_id, user["_id"])
    return MessageResponse(message="Comment deleted successfully")


@router.post("/{comment_id}/like", response_model=ToggleResponse)
def like_comment(
    comment_id: str,
    user: dict = Depends(get_current_user),
    comments: CommentService = Depends(get_comment_service)
):
    liked, like_count = comments.toggle_like(comment_id, user["_id"])
    message = "Comment liked successfully" if liked else "Comment unliked successfully"
    return ToggleResponse(message=message, liked=liked, like_count=like_count)


@router.get("/{comment_id}/replies")
def list_replies(
    comment_id: str,
    page: int = Query(1, ge=1, le=MAX_PAGE),
    limit: int = Query(10, ge=1, le=100),
    viewer: Optional[dict] = Depends(get_optional_user),
    comments: CommentService = Depends(get_comment_service)
):
    """Replies to a comment, oldest first."""
    results, total = comments.list_replies(comment_id, viewer_id=user_id_of(viewer), page=page, limit=limit)
    return {"replies": results, "pagination": build_pagination(page, limit, total)}
