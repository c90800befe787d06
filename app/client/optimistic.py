"""
Optimistic like/follow state with reconciliation.

The UI flips the state before the server answers. OptimisticToggle makes
the two outcomes explicit:

    state = OptimisticToggle(active=post["is_liked"], count=post["like_count"])
    state.toggle(lambda: client.like_post(post["_id"]), active_key="liked", count_key="like_count")

- success: local state is replaced by what the server reports
- failure: local state goes back to the snapshot and the error propagates
"""

from dataclasses import dataclass
from typing import Callable, Dict, Any, Optional

from app.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class OptimisticToggle:
    active: bool = False
    count: Optional[int] = None
    pending: bool = False

    def _flip(self) -> None:
        self.active = not self.active
        if self.count is not None:
            self.count = max(0, self.count + (1 if self.active else -1))

    def toggle(
        self,
        server_call: Callable[[], Dict[str, Any]],
        active_key: str = "liked",
        count_key: Optional[str] = "like_count"
    ) -> "OptimisticToggle":
        """Apply the flip now, then reconcile with the server response."""
        snapshot = (self.active, self.count)
        self._flip()
        self.pending = True

        try:
            response = server_call()
        except Exception:
            self.active, self.count = snapshot
            logger.debug("Optimistic toggle rolled back")
            raise
        finally:
            self.pending = False

        if active_key in response:
            self.active = bool(response[active_key])
        if count_key and count_key in response:
            self.count = response[count_key]
        return self


def like_state(item: Dict[str, Any]) -> OptimisticToggle:
    """Toggle state for a post or comment as returned by the API."""
    return OptimisticToggle(active=bool(item.get("is_liked")), count=item.get("like_count", 0))


def follow_state(is_following: bool, follower_count: Optional[int] = None) -> OptimisticToggle:
    return OptimisticToggle(active=is_following, count=follower_count)
