"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
"""

import json
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional, List, Any
from datetime import datetime
from enum import Enum


# ============================================================
# ENUMS
# ============================================================

class PostType(str, Enum):
    note = "note"
    job = "job"


class PostCategory(str, Enum):
    """Single list used by both create and update."""
    academic = "academic"
    project = "project"
    research = "research"
    study_guide = "study-guide"
    tutorial = "tutorial"
    internship = "internship"
    part_time = "part-time"
    full_time = "full-time"
    freelance = "freelance"
    research_assistant = "research-assistant"
    other = "other"


MAX_TAG_LENGTH = 20


def parse_tags(value: Any) -> List[str]:
    """'python, ml ,, notes' -> ['python', 'ml', 'notes']"""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    tags = [str(tag).strip() for tag in value]
    tags = [tag for tag in tags if tag]
    for tag in tags:
        if len(tag) > MAX_TAG_LENGTH:
            raise ValueError(f"Each tag must be at most {MAX_TAG_LENGTH} characters")
    return tags


def parse_json_object(value: Any) -> Any:
    """Multipart forms send nested objects as JSON strings."""
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            raise ValueError("Must be a JSON object")
    return value


# ============================================================
# AUTH / USER SCHEMAS
# ============================================================

class RegisterRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(..., min_length=3, max_length=30, pattern=r"^[A-Za-z0-9_.]+$")
    email: EmailStr
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=1, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)
    university: Optional[str] = None
    major: Optional[str] = None
    year: Optional[int] = Field(None, ge=1, le=10)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdate(BaseModel):
    """Blank fields keep the current value."""
    model_config = ConfigDict(str_strip_whitespace=True)

    full_name: Optional[str] = Field(None, max_length=100)
    username: Optional[str] = Field(None, max_length=30, pattern=r"^([A-Za-z0-9_.]{3,30})?$")
    email: Optional[EmailStr] = None
    university: Optional[str] = None
    major: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=500)
    year: Optional[int] = Field(None, ge=1, le=10)

    @field_validator("email", "year", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


# ============================================================
# POST SCHEMAS
# ============================================================

class SalaryRange(BaseModel):
    min: Optional[float] = Field(None, ge=0)
    max: Optional[float] = Field(None, ge=0)
    currency: str = "USD"


class JobDetails(BaseModel):
    company: Optional[str] = None
    location: Optional[str] = None
    salary: Optional[SalaryRange] = None
    requirements: List[str] = []
    deadline: Optional[datetime] = None
    contact_email: Optional[EmailStr] = None


class NoteDetails(BaseModel):
    subject: Optional[str] = None
    course_code: Optional[str] = None
    semester: Optional[str] = None
    year: Optional[int] = None


class PostCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1, max_length=5000)
    type: PostType
    category: PostCategory
    tags: List[str] = []
    is_public: bool = True
    job_details: Optional[JobDetails] = None
    note_details: Optional[NoteDetails] = None

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, value: Any) -> List[str]:
        return parse_tags(value)

    @field_validator("job_details", "note_details", mode="before")
    @classmethod
    def decode_details(cls, value: Any) -> Any:
        return parse_json_object(value)


class PostUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = Field(None, min_length=1, max_length=5000)
    category: Optional[PostCategory] = None
    tags: Optional[List[str]] = None
    is_public: Optional[bool] = None
    job_details: Optional[JobDetails] = None
    note_details: Optional[NoteDetails] = None

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, value: Any) -> Optional[List[str]]:
        if value is None or value == "":
            return None
        return parse_tags(value)

    @field_validator("job_details", "note_details", mode="before")
    @classmethod
    def decode_details(cls, value: Any) -> Any:
        return parse_json_object(value)


# ============================================================
# COMMENT SCHEMAS
# ============================================================

class PostCommentCreate(BaseModel):
    """Comment created under /posts/{post_id}/comments."""
    model_config = ConfigDict(str_strip_whitespace=True)

    content: str = Field(..., min_length=1, max_length=1000)
    parent_comment_id: Optional[str] = None


class CommentCreate(PostCommentCreate):
    post_id: str = Field(..., min_length=1)


class CommentUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    content: str = Field(..., min_length=1, max_length=1000)


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str


class ToggleResponse(BaseModel):
    message: str
    liked: bool
    like_count: int


