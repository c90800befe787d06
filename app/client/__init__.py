"""
Client module - Python API client with optimistic like/follow state.
"""
from app.client.api_client import CollabHubClient, ApiError
from app.client.optimistic import OptimisticToggle, like_state, follow_state

__all__ = [
    "CollabHubClient",
    "ApiError",
    "OptimisticToggle",
    "like_state",
    "follow_state"
]
