"""Repository layer for the Assessment service.

Provides async database initialization, take-test persistence, and the
`resolve_choices` read that attaches full question data to every stored
choice before grading. The grading workflow depends only on the
`AttemptStore` protocol, never on SQLAlchemy directly.
"""

import json
import logging
from functools import wraps
from typing import Any, Awaitable, Callable, NamedTuple, Optional, Protocol, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import selectinload

from packages.schemas.assessment import (
    AttemptChoice,
    AttemptDraft,
    AttemptScore,
    AttemptStatus,
    AttemptSummary,
    Question,
    ResolvedChoice,
    TestAttempt,
)
from .errors import AttemptNotFoundError, PersistenceError, QuestionNotFoundError, TestNotFoundError
from . import models

log = logging.getLogger(__name__)

T = TypeVar("T")


class ResolvedAttempt(NamedTuple):
    """A stored attempt with every choice's question attached, ready to grade."""
    take_test_id: int
    test_id: int
    user_id: str
    test_max_points: Optional[int]
    choices: list[ResolvedChoice]


class AttemptStore(Protocol):
    """What the grading workflow needs from persistence."""

    async def create_attempt(self, draft: AttemptDraft) -> int: ...

    async def resolve_choices(self, take_test_id: int) -> ResolvedAttempt: ...

    async def save_score(self, take_test_id: int, score: AttemptScore) -> None: ...

    async def get_attempt(self, take_test_id: int) -> Optional[TestAttempt]: ...

    async def list_attempts(
        self,
        user_id: Optional[str] = None,
        test_id: Optional[int] = None,
        ungraded_only: bool = False,
    ) -> list[AttemptSummary]: ...


def _store_errors(fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    """Re-raise driver/ORM failures as retryable `PersistenceError`."""

    @wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        try:
            return await fn(*args, **kwargs)
        except SQLAlchemyError as e:
            log.error(f"store call {fn.__name__} failed: {e}", exc_info=True)
            raise PersistenceError(f"{fn.__name__} failed: {e.__class__.__name__}") from e

    return wrapper


def _to_question(row: models.Question) -> Question:
    return Question(
        id=row.id,
        test_id=row.test_id,
        index=row.index,
        content=row.content,
        type=row.type,
        answers=json.loads(row.answers or "[]"),
        correct_answers=json.loads(row.correct_answers or "[]"),
        max_points=row.max_points,
    )


def _decode_flags(raw: Optional[str]) -> Optional[list[bool]]:
    return None if raw is None else json.loads(raw)


class SqlAttemptStore:
    """`AttemptStore` over a SQLAlchemy async engine (Postgres or SQLite)."""

    def __init__(self, dsn: str, echo: bool = False) -> None:
        self.engine = create_async_engine(dsn, echo=echo)
        self.Session = async_sessionmaker(self.engine, expire_on_commit=False)

    async def init_db(self) -> None:
        """Create database schema if it doesn't exist."""
        async with self.engine.begin() as conn:
            await conn.run_sync(models.Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()

    @_store_errors
    async def create_attempt(self, draft: AttemptDraft) -> int:
        """Persist an ungraded attempt with its choices in submission order."""
        async with self.Session() as session:
            take_test = models.TakeTest(
                test_id=draft.test_id,
                user_id=draft.user_id,
                submit_time=draft.submit_time,
                questions_order=json.dumps(draft.questions_order),
                status=AttemptStatus.SUBMITTED.value,
                choices=[
                    models.TakeTestChoice(position=i, question_id=c.question, answers=json.dumps(c.answers))
                    for i, c in enumerate(draft.choose_answers)
                ],
            )
            session.add(take_test)
            await session.commit()
            return take_test.id

    async def _load(self, session: AsyncSession, take_test_id: int) -> Optional[models.TakeTest]:
        res = await session.execute(
            select(models.TakeTest)
            .options(selectinload(models.TakeTest.choices))
            .where(models.TakeTest.id == take_test_id)
        )
        return res.scalar_one_or_none()

    async def _questions(self, session: AsyncSession, ids: set[int]) -> dict[int, Question]:
        if not ids:
            return {}
        res = await session.execute(select(models.Question).where(models.Question.id.in_(ids)))
        return {row.id: _to_question(row) for row in res.scalars()}

    @_store_errors
    async def resolve_choices(self, take_test_id: int) -> ResolvedAttempt:
        """Load an attempt and attach each choice's question.

        Raises:
            AttemptNotFoundError: no attempt with this id.
            TestNotFoundError: the attempt's test no longer exists.
            QuestionNotFoundError: a referenced question no longer exists.
        """
        async with self.Session() as session:
            take_test = await self._load(session, take_test_id)
            if take_test is None:
                raise AttemptNotFoundError(take_test_id)
            test = await session.get(models.Test, take_test.test_id)
            if test is None:
                raise TestNotFoundError(take_test.test_id, take_test_id)
            questions = await self._questions(session, {c.question_id for c in take_test.choices})

        resolved: list[ResolvedChoice] = []
        for c in take_test.choices:
            q = questions.get(c.question_id)
            if q is None:
                raise QuestionNotFoundError(c.question_id, take_test_id)
            resolved.append(ResolvedChoice(question=q, answers=json.loads(c.answers or "[]")))
        return ResolvedAttempt(
            take_test_id=take_test.id,
            test_id=take_test.test_id,
            user_id=take_test.user_id,
            test_max_points=test.max_points,
            choices=resolved,
        )

    @_store_errors
    async def save_score(self, take_test_id: int, score: AttemptScore) -> None:
        async with self.Session() as session:
            take_test = await session.get(models.TakeTest, take_test_id)
            if take_test is None:
                raise AttemptNotFoundError(take_test_id)
            take_test.points = score.total_points
            take_test.is_correct = json.dumps(score.correctness)
            take_test.status = AttemptStatus.GRADED.value
            await session.commit()

    @_store_errors
    async def get_attempt(self, take_test_id: int) -> Optional[TestAttempt]:
        """Fetch an attempt with questions attached; deleted questions come back as None."""
        async with self.Session() as session:
            take_test = await self._load(session, take_test_id)
            if take_test is None:
                return None
            questions = await self._questions(session, {c.question_id for c in take_test.choices})

        return TestAttempt(
            id=take_test.id,
            test_id=take_test.test_id,
            user_id=take_test.user_id,
            submit_time=take_test.submit_time,
            questions_order=json.loads(take_test.questions_order or "[]"),
            choose_answers=[
                AttemptChoice(
                    question_id=c.question_id,
                    question=questions.get(c.question_id),
                    answers=json.loads(c.answers or "[]"),
                )
                for c in take_test.choices
            ],
            is_correct=_decode_flags(take_test.is_correct),
            points=take_test.points,
            status=AttemptStatus(take_test.status),
            created_at=take_test.created_at,
            updated_at=take_test.updated_at,
        )

    @_store_errors
    async def list_attempts(
        self,
        user_id: Optional[str] = None,
        test_id: Optional[int] = None,
        ungraded_only: bool = False,
    ) -> list[AttemptSummary]:
        """List attempts, optionally filtered by user, by test, or to unscored ones.

        Unscored means `points` was never written, whatever the status says.
        """
        q = select(models.TakeTest)
        if user_id is not None:
            q = q.where(models.TakeTest.user_id == user_id)
        if test_id is not None:
            q = q.where(models.TakeTest.test_id == test_id)
        if ungraded_only:
            q = q.where(models.TakeTest.points.is_(None))
        q = q.order_by(models.TakeTest.id)
        async with self.Session() as session:
            res = await session.execute(q)
            rows = list(res.scalars())
        return [
            AttemptSummary(
                id=r.id,
                test_id=r.test_id,
                user_id=r.user_id,
                submit_time=r.submit_time,
                points=r.points,
                is_correct=_decode_flags(r.is_correct),
                status=AttemptStatus(r.status),
            )
            for r in rows
        ]
