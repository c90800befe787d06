"""
Post Routes

GET /posts - Public feed with type/category/author/search filters
GET /posts/explore - Newest public posts, no pagination
GET /posts/liked - Posts the caller liked
GET /posts/user/{user_id} - A user's posts
GET /posts/{post_id} - Single post (counts a view)
POST /posts - Create post (multipart, up to 5 image attachments)
PUT /posts/{post_id} - Update post (author only)
DELETE /posts/{post_id} - Delete post and its comments (author only)
POST /posts/{post_id}/like - Like / unlike toggle
GET /posts/{post_id}/comments - Top-level comments with replies
POST /posts/{post_id}/comments - Comment on the post
DELETE /posts/{post_id}/comments/{comment_id} - Delete a comment on the post
"""

from fastapi import APIRouter, Depends, Query, Form, File, UploadFile
from fastapi.concurrency import run_in_threadpool
from typing import List, Optional

from app.api.forms import validate_form
from app.core.auth import get_current_user, get_optional_user, user_id_of
from app.services.mongo_service import build_pagination, MAX_PAGE
from app.services.post_service import PostService, get_post_service
from app.services.comment_service import CommentService, get_comment_service
from app.services.storage_service import get_storage_service
from app.utils.file_upload import read_attachments
from app.schemas.schemas import (
    PostCreate, PostUpdate, PostType, PostCategory, PostCommentCreate,
    MessageResponse, ToggleResponse
)

router = APIRouter(prefix="/posts", tags=["Posts"])


@router.get("")
def list_posts(
    page: int = Query(1, ge=1, le=MAX_PAGE),
    limit: int = Query(10, ge=1, le=100),
    type: Optional[PostType] = Query(None),
    category: Optional[PostCategory] = Query(None),
    author: str = Query("", description="Author user id"),
    search: str = Query("", description="Search in title, content and tags"),
    viewer: Optional[dict] = Depends(get_optional_user),
    posts: PostService = Depends(get_post_service)
):
    """List posts, newest first. Your own private posts show when author is you."""
    results, total = posts.list_posts(
        viewer_id=user_id_of(viewer),
        page=page,
        limit=limit,
        post_type=type.value if type else "",
        category=category.value if category else "",
        author=author,
        search=search
    )
    return {"posts": results, "pagination": build_pagination(page, limit, total)}


@router.get("/explore")
def explore_posts(
    search: str = Query(""),
    type: Optional[PostType] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    viewer: Optional[dict] = Depends(get_optional_user),
    posts: PostService = Depends(get_post_service)
):
    """Newest public posts for discovery."""
    results = posts.explore(
        viewer_id=user_id_of(viewer),
        search=search,
        post_type=type.value if type else "",
        limit=limit
    )
    return {"posts": results}


@router.get("/liked")
def liked_posts(
    page: int = Query(1, ge=1, le=MAX_PAGE),
    limit: int = Query(10, ge=1, le=100),
    user: dict = Depends(get_current_user),
    posts: PostService = Depends(get_post_service)
):
    """Public posts liked by the caller."""
    results, total = posts.liked_by(user["_id"], page=page, limit=limit)
    return {"posts": results, "pagination": build_pagination(page, limit, total)}


@router.get("/user/{user_id}")
def user_posts(
    user_id: str,
    page: int = Query(1, ge=1, le=MAX_PAGE),
    limit: int = Query(10, ge=1, le=100),
    type: Optional[PostType] = Query(None),
    viewer: Optional[dict] = Depends(get_optional_user),
    posts: PostService = Depends(get_post_service)
):
    """A user's posts; private ones are included only for that user."""
    results, total = posts.user_posts(
        user_id,
        viewer_id=user_id_of(viewer),
        page=page,
        limit=limit,
        post_type=type.value if type else ""
    )
    return {"posts": results, "pagination": build_pagination(page, limit, total)}


@router.get("/{post_id}")
def get_post(
    post_id: str,
    viewer: Optional[dict] = Depends(get_optional_user),
    posts: PostService = Depends(get_post_service)
):
    """Get one post with comments. Every call adds one view."""
    return {"post": posts.view(post_id, viewer_id=user_id_of(viewer))}


@router.post("", status_code=201)
async def create_post(
    title: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    type: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    tags: Optional[str] = Form(None, description="Comma-separated"),
    is_public: Optional[str] = Form(None),
    job_details: Optional[str] = Form(None, description="JSON object"),
    note_details: Optional[str] = Form(None, description="JSON object"),
    attachments: Optional[List[UploadFile]] = File(None),
    user: dict = Depends(get_current_user),
    posts: PostService = Depends(get_post_service)
):
    """
    Create a note or job post.

    Fields are validated before anything is uploaded or written.
    Storage and database calls block, so they run in the threadpool.
    """
    data = validate_form(PostCreate, {
        "title": title, "content": content, "type": type, "category": category,
        "tags": tags, "is_public": is_public,
        "job_details": job_details, "note_details": note_details
    })

    images = await read_attachments(attachments or [])
    stored = await run_in_threadpool(get_storage_service().upload_post_images, images) if images else []

    post = await run_in_threadpool(posts.create, user["_id"], data, stored)
    return {"message": "Post created successfully", "post": post}


@router.put("/{post_id}")
def update_post(
    post_id: str,
    data: PostUpdate,
    user: dict = Depends(get_current_user),
    posts: PostService = Depends(get_post_service)
):
    """Update a post. Only the author can update."""
    post = posts.update(post_id, user["_id"], data)
    return {"message": "Post updated successfully", "post": post}


@router.delete("/{post_id}", response_model=MessageResponse)
def delete_post(
    post_id: str,
    user: dict = Depends(get_current_user),
    posts: PostService = Depends(get_post_service)
):
    """Delete a post and all its comments. Only the author can delete."""
    posts.delete(post_id, user["_id"])
    return MessageResponse(message="Post deleted successfully")


@router.post("/{post_id}/like", response_model=ToggleResponse)
def like_post(
    post_id: str,
    user: dict = Depends(get_current_user),
    posts: PostService = Depends(get_post_service)
):
    """Like a post, or unlike it if already liked."""
    liked, like_count = posts.toggle_like(post_id, user["_id"])
    message = "Post liked successfully" if liked else "Post unliked successfully"
    return ToggleResponse(message=message, liked=liked, like_count=like_count)


# ============================================================
# COMMENTS UNDER A POST
# ============================================================

@router.get("/{post_id}/comments")
def get_post_comments(
    post_id: str,
    page: int = Query(1, ge=1, le=MAX_PAGE),
    limit: int = Query(10, ge=1, le=100),
    viewer: Optional[dict] = Depends(get_optional_user),
    comments: CommentService = Depends(get_comment_service)
):
    results, total = comments.list_for_post(post_id, viewer_id=user_id_of(viewer), page=page, limit=limit)
    return {"comments": results, "pagination": build_pagination(page, limit, total)}


@router.post("/{post_id}/comments", status_code=201)
def create_post_comment(
    post_id: str,
    data: PostCommentCreate,
    user: dict = Depends(get_current_user),
    comments: CommentService = Depends(get_comment_service)
):
    comment = comments.create(user["_id"], post_id, data.content, parent_comment_id=data.parent_comment_id)
    return {"message": "Comment created successfully", "comment": comment}


@router.delete("/{post_id}/comments/{comment_id}", response_model=MessageResponse)
def delete_post_comment(
    post_id: str,
    comment_id: str,
    user: dict = Depends(get_current_user),
    comments: CommentService = Depends(get_comment_service)
):
    comments.delete(comment_id, user["_id"], post_id=post_id)
    return MessageResponse(message="Comment deleted successfully")
