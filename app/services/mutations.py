"""
Multi-document mutations with compensating undo steps.

MongoDB only gives us single-document atomicity without a replica set, so
every mutation that touches more than one document (follow/unfollow,
comment create, cascade deletes) is described as a MutationPlan:

    plan = MutationPlan("follow")
    plan.add("push following", do_follow, undo=undo_follow)
    plan.add("push followers", do_follower, undo=undo_follower)
    plan.execute()

Steps run in order. If one raises, the steps that already completed are
undone in reverse order and the original exception is re-raised, so the
caller sees the failure and the data is back where it started.
Undo actions must be idempotent ($addToSet / $pull / re-insert by _id).
"""

from typing import Callable, List, Optional, Any
from dataclasses import dataclass

from app.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class MutationStep:
    name: str
    apply: Callable[[], Any]
    undo: Optional[Callable[[], Any]] = None


class MutationPlan:
    """Ordered list of steps executed with rollback on failure."""

    def __init__(self, name: str):
        self.name = name
        self.steps: List[MutationStep] = []

    def add(self, name: str, apply: Callable[[], Any], undo: Optional[Callable[[], Any]] = None) -> "MutationPlan":
        self.steps.append(MutationStep(name=name, apply=apply, undo=undo))
        return self

    def execute(self) -> List[Any]:
        """Run every step. Returns the list of step results."""
        done: List[MutationStep] = []
        results = []

        for step in self.steps:
            try:
                results.append(step.apply())
            except Exception:
                logger.error(f"{self.name}: step '{step.name}' failed, undoing {len(done)} step(s)")
                self._compensate(done)
                raise
            done.append(step)

        return results

    def _compensate(self, done: List[MutationStep]) -> None:
        for step in reversed(done):
            if step.undo is None:
                continue
            try:
                step.undo()
            except Exception as e:
                # Keep undoing the rest; the original error is re-raised by execute()
                logger.exception(f"{self.name}: undo of '{step.name}' failed: {e}")
