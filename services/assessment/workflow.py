# services/assessment/workflow.py
"""Submission workflow for take-test attempts.

Sequencing per attempt:
1. validate the draft
2. persist the draft (choices are durable before scoring)
3. re-fetch it with every choice's question resolved
4. score it with the pure engine
5. persist points and correctness flags onto the same record

Steps 3-5 make up `regrade`, which is safe to repeat. Every store round-trip
runs under `timeout` seconds.
"""

import asyncio
import logging
import time
from typing import Awaitable, Optional, TypeVar

from packages.common.tracing import xapi_event
from packages.schemas.assessment import AttemptDraft, AttemptScore, AttemptSummary, TestAttempt
from .errors import AssessmentError, AttemptNotFoundError, AttemptValidationError, StoreTimeoutError
from .repo import AttemptStore
from .scorer import score_attempt
from . import metrics

log = logging.getLogger(__name__)

T = TypeVar("T")


class GradingWorkflow:
    """Runs submissions and re-gradings against an `AttemptStore`."""

    def __init__(self, store: AttemptStore, timeout: float = 5.0) -> None:
        self.store = store
        self.timeout = timeout

    async def _step(self, name: str, aw: Awaitable[T], take_test_id: Optional[int] = None) -> T:
        """Await one store call under the timeout; tag failures with the attempt id."""
        try:
            return await asyncio.wait_for(aw, timeout=self.timeout)
        except asyncio.TimeoutError:
            log.error(f"step {name} timed out after {self.timeout}s take_test_id={take_test_id}")
            raise StoreTimeoutError(f"{name} timed out after {self.timeout}s", take_test_id)
        except AssessmentError as e:
            if e.take_test_id is None:
                e.take_test_id = take_test_id
            raise

    @staticmethod
    def validate(draft: AttemptDraft) -> None:
        """Reject drafts missing a test or user reference, or a choice's question."""
        if draft.test_id is None or draft.test_id < 1:
            raise AttemptValidationError("test reference is required")
        if not draft.user_id or not draft.user_id.strip():
            raise AttemptValidationError("user reference is required")
        for i, c in enumerate(draft.choose_answers):
            if c.question is None or c.question < 1:
                raise AttemptValidationError(f"choose_answers[{i}] has no question reference")

    async def submit(self, draft: AttemptDraft) -> int:
        """Store a new attempt, grade it, and return its id.

        Raises:
            AttemptValidationError: the draft is malformed; nothing was stored.
            ReferenceResolutionError: a question/test is missing; the attempt stays unscored.
            PersistenceError: a store call failed or timed out; retry with `regrade`
                when `take_test_id` is set on the error.
        """
        try:
            self.validate(draft)
            take_test_id = await self._step("persist_draft", self.store.create_attempt(draft))
        except AssessmentError:
            metrics.mark_submission("rejected")
            raise
        metrics.mark_submission("accepted")
        log.info(f"Stored take test {take_test_id} user={draft.user_id} test={draft.test_id} choices={len(draft.choose_answers)}")
        xapi_event(draft.user_id, "submitted", f"take_test:{take_test_id}", test_id=draft.test_id)

        await self._grade(take_test_id, trigger="submit")
        return take_test_id

    async def regrade(self, take_test_id: int) -> AttemptScore:
        """Re-run resolve, score and persist for an existing attempt."""
        return await self._grade(take_test_id, trigger="regrade")

    async def _grade(self, take_test_id: int, trigger: str) -> AttemptScore:
        t0 = time.perf_counter()
        try:
            resolved = await self._step("resolve", self.store.resolve_choices(take_test_id), take_test_id)
            score = score_attempt(resolved.choices)
            await self._step("persist_score", self.store.save_score(take_test_id, score), take_test_id)
        except AssessmentError as e:
            metrics.mark_failure(e.kind)
            log.warning(f"Grading take test {take_test_id} failed ({trigger}): {e.message}")
            raise
        metrics.observe_grading_latency_ms((time.perf_counter() - t0) * 1000)
        metrics.mark_graded(trigger)

        if resolved.test_max_points is not None and score.total_points > resolved.test_max_points:
            metrics.mark_over_ceiling()
            log.warning(
                f"take test {take_test_id} scored {score.total_points} above test "
                f"{resolved.test_id} max_points={resolved.test_max_points}"
            )
        log.info(f"Graded take test {take_test_id} points={score.total_points} ({trigger})")
        xapi_event(resolved.user_id, "graded", f"take_test:{take_test_id}", points=score.total_points, trigger=trigger)
        return score

    async def get_attempt(self, take_test_id: int) -> TestAttempt:
        attempt = await self._step("get_attempt", self.store.get_attempt(take_test_id), take_test_id)
        if attempt is None:
            raise AttemptNotFoundError(take_test_id)
        return attempt

    async def list_attempts(
        self,
        user_id: Optional[str] = None,
        test_id: Optional[int] = None,
        ungraded_only: bool = False,
    ) -> list[AttemptSummary]:
        return await self._step(
            "list_attempts",
            self.store.list_attempts(user_id=user_id, test_id=test_id, ungraded_only=ungraded_only),
        )
