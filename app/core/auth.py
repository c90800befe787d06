"""
Authentication Utility - JWT and Password handling.

Provides:
- Password hashing with bcrypt
- JWT token creation/verification
- resolve_user(): credentials -> Optional[user]
- FastAPI dependencies for protected and optionally-authenticated routes

The identity is returned from the dependency and passed to the handler as
an argument; nothing is attached to the request object.
"""

from datetime import datetime, timedelta
from typing import Optional
from bson import ObjectId
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.config import get_settings
from app.core.exceptions import NotAuthenticatedError
from app.db.mongodb import get_collection, COLLECTIONS

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer token extractor (missing header handled by us, not by FastAPI's 403)
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def resolve_user(token: Optional[str]) -> Optional[dict]:
    """
    Map a bearer token to the stored user (without password hash).
    Returns None for a missing, malformed or expired token, or an unknown user.
    """
    if not token:
        return None

    payload = decode_token(token)
    if not payload:
        return None

    user_id = payload.get("sub")
    if not user_id or not ObjectId.is_valid(user_id):
        return None

    return get_collection(COLLECTIONS["users"]).find_one(
        {"_id": ObjectId(user_id)},
        {"password_hash": 0}
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> dict:
    """
    FastAPI dependency - Get current authenticated user.

    Usage:
        @router.get("/protected")
        def route(user: dict = Depends(get_current_user)):
            return user
    """
    if credentials is None:
        raise NotAuthenticatedError("No token, authorization denied")

    user = resolve_user(credentials.credentials)
    if user is None:
        raise NotAuthenticatedError("Token is not valid")
    return user


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Optional[dict]:
    """
    FastAPI dependency - Same as get_current_user but never rejects.
    Anonymous or invalid credentials give None.
    """
    if credentials is None:
        return None
    return resolve_user(credentials.credentials)


def user_id_of(user: Optional[dict]) -> Optional[ObjectId]:
    """The caller's id, or None for anonymous requests."""
    return user["_id"] if user else None
