"""
Authentication Routes

POST /auth/register - Register new user and get JWT token
POST /auth/login - Login and get JWT token
GET /auth/me - Get current user info
PUT /auth/profile - Update own profile (JSON, no avatar)
"""

from fastapi import APIRouter, Depends

from app.core.auth import hash_password, verify_password, create_access_token, get_current_user
from app.core.exceptions import NotAuthenticatedError
from app.services.mongo_service import serialize_doc
from app.services.user_service import UserService, get_user_service
from app.schemas.schemas import RegisterRequest, LoginRequest, ProfileUpdate

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", status_code=201)
def register(request: RegisterRequest, users: UserService = Depends(get_user_service)):
    """
    Register a new user account.

    Returns a token right away so the client is logged in after sign-up.
    """
    user = users.create(
        username=request.username,
        email=request.email,
        password_hash=hash_password(request.password),
        full_name=request.full_name,
        bio=request.bio or "",
        university=request.university or "",
        major=request.major or "",
        year=request.year
    )
    token = create_access_token(data={"sub": str(user["_id"])})

    return {"message": "User registered successfully", "token": token, "user": serialize_doc(user)}


@router.post("/login")
def login(request: LoginRequest, users: UserService = Depends(get_user_service)):
    """
    Login and receive JWT access token.

    Include token in requests: Authorization: Bearer <token>
    """
    user = users.get_by_email(request.email)
    if not user or not verify_password(request.password, user["password_hash"]):
        raise NotAuthenticatedError("Invalid credentials")

    token = create_access_token(data={"sub": str(user["_id"])})
    user.pop("password_hash", None)

    return {"message": "Login successful", "token": token, "user": serialize_doc(user)}


@router.get("/me")
def get_me(user: dict = Depends(get_current_user)):
    """Get current authenticated user's info."""
    return {"user": serialize_doc(user)}


@router.put("/profile")
def update_profile(
    data: ProfileUpdate,
    user: dict = Depends(get_current_user),
    users: UserService = Depends(get_user_service)
):
    """Update own profile. Only non-empty fields are changed."""
    updated = users.update_profile(user, data.model_dump())
    return {"message": "Profile updated successfully", "user": serialize_doc(updated)}
