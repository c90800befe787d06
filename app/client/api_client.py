"""
HTTP client for the Student Collab Hub API.

Usage:
    client = CollabHubClient("http://localhost:8000/api")
    client.login("alice@uni.edu", "secret123")
    feed = client.list_posts(type="note")
    client.like_post(feed["posts"][0]["_id"])
"""

from typing import Optional, Dict, Any, List

import requests

from app.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 10


class ApiError(Exception):
    """Non-2xx response. Carries the server's message and validation errors."""

    def __init__(self, status_code: int, message: str, errors: Optional[List[dict]] = None):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.errors = errors or []


class CollabHubClient:
    """
    Thin wrapper over requests.Session that keeps the bearer token.
    """

    def __init__(self, base_url: str, token: Optional[str] = None, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.token = None
        if token:
            self.set_token(token)

    def set_token(self, token: Optional[str]) -> None:
        self.token = token
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"
        else:
            self.session.headers.pop("Authorization", None)

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        response = self.session.request(method, url, timeout=DEFAULT_TIMEOUT, **kwargs)

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.ok:
            message = body.get("message") or response.reason or "Request failed"
            logger.debug(f"{method} {path} -> {response.status_code} {message}")
            raise ApiError(response.status_code, message, body.get("errors"))
        return body

    # ------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------

    def register(self, **fields) -> Dict[str, Any]:
        body = self._request("POST", "/auth/register", json=fields)
        self.set_token(body["token"])
        return body["user"]

    def login(self, email: str, password: str) -> Dict[str, Any]:
        body = self._request("POST", "/auth/login", json={"email": email, "password": password})
        self.set_token(body["token"])
        return body["user"]

    def logout(self) -> None:
        self.set_token(None)

    def me(self) -> Dict[str, Any]:
        return self._request("GET", "/auth/me")["user"]

    # ------------------------------------------------------------
    # Users
    # ------------------------------------------------------------

    def get_user(self, user_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/users/{user_id}")

    def explore_users(self, search: str = "", limit: int = 20) -> List[dict]:
        return self._request("GET", "/users/explore", params={"search": search, "limit": limit})["users"]

    def toggle_follow(self, user_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/users/{user_id}/follow")

    def unfollow(self, user_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/users/{user_id}/follow")

    # ------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------

    def list_posts(self, page: int = 1, limit: int = 10, **filters) -> Dict[str, Any]:
        params = {"page": page, "limit": limit, **{k: v for k, v in filters.items() if v}}
        return self._request("GET", "/posts", params=params)

    def get_post(self, post_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/posts/{post_id}")["post"]

    def create_post(self, files: Optional[list] = None, **fields) -> Dict[str, Any]:
        """fields are sent as form data; files as [("attachments", (name, bytes, mime)), ...]."""
        return self._request("POST", "/posts", data=fields, files=files)["post"]

    def delete_post(self, post_id: str) -> None:
        self._request("DELETE", f"/posts/{post_id}")

    def like_post(self, post_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/posts/{post_id}/like")

    # ------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------

    def comment(self, post_id: str, content: str, parent_comment_id: Optional[str] = None) -> Dict[str, Any]:
        payload = {"content": content}
        if parent_comment_id:
            payload["parent_comment_id"] = parent_comment_id
        return self._request("POST", f"/posts/{post_id}/comments", json=payload)["comment"]

    def like_comment(self, comment_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/comments/{comment_id}/like")
