"""
Schemas module - Request/Response schemas for API endpoints.

All schemas live in app.schemas.schemas; the common ones are re-exported here.
"""

from app.schemas.schemas import (
    PostType, PostCategory,
    RegisterRequest, LoginRequest, ProfileUpdate,
    PostCreate, PostUpdate,
    CommentCreate, PostCommentCreate, CommentUpdate,
    MessageResponse, ToggleResponse
)

__all__ = [
    "PostType", "PostCategory",
    "RegisterRequest", "LoginRequest", "ProfileUpdate",
    "PostCreate", "PostUpdate",
    "CommentCreate", "PostCommentCreate", "CommentUpdate",
    "MessageResponse", "ToggleResponse"
]
